"""PostgreSQL implementation of the transaction protocols.

Uses asyncpg for async access. All batch SQL uses ``?`` placeholders; this
backend translates them to ``$N`` at execute time. Each transaction holds
one pooled connection from BEGIN until it is finalized.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import asyncpg
    from asyncpg.cursor import Cursor as _PgCursor
    from asyncpg.transaction import Transaction as _PgTransaction

    from sqlbatch.db.backend import Row, RowCursor, Transaction

logger = logging.getLogger(__name__)

# Pre-compiled regex for placeholder translation
_PLACEHOLDER_RE = re.compile(r"\?")


def _translate_placeholders(sql: str) -> str:
    """Convert ``?`` placeholders to ``$1, $2, ...`` for asyncpg."""
    counter = 0

    def _replace(_match: re.Match[str]) -> str:
        nonlocal counter
        counter += 1
        return f"${counter}"

    return _PLACEHOLDER_RE.sub(_replace, sql)


def _parse_rowcount(status: str | None) -> int:
    """Parse affected row count from an asyncpg status string.

    Examples: "INSERT 0 1" → 1, "UPDATE 3" → 3, "DELETE 0" → 0.
    """
    if not status:
        return -1
    parts = status.split()
    if len(parts) >= 2:
        try:
            return int(parts[-1])
        except ValueError:
            pass
    return -1


class PostgresRow:
    """Wraps asyncpg.Record to satisfy the Row protocol."""

    def __init__(self, record: asyncpg.Record) -> None:
        """Initialize with an asyncpg Record."""
        self._record = record

    def __getitem__(self, key: str | int) -> Any:
        """Get a column value by name or position."""
        return self._record[key]

    def keys(self) -> list[str]:
        """Return column names."""
        return list(self._record.keys())


class PostgresRowCursor:
    """Wraps an asyncpg server-side cursor as a RowCursor.

    Rows are pulled one at a time with ``fetchrow()``. ``None`` stands for
    a statement with no result columns, which yields no rows. Errors from
    the server surface from ``advance()``, so ``terminal_error`` is always
    None. The portal itself is closed by the server at transaction end.
    """

    def __init__(self, cursor: _PgCursor | None) -> None:
        """Initialize with an open server-side cursor, or None."""
        self._cursor = cursor
        self._record: asyncpg.Record | None = None

    async def advance(self) -> bool:
        """Fetch the next record from the server."""
        if self._cursor is None:
            self._record = None
            return False
        self._record = await self._cursor.fetchrow()
        if self._record is None:
            self._cursor = None
            return False
        return True

    def decode(self) -> Row:
        """Return the current record wrapped as a Row."""
        if self._record is None:
            raise LookupError("No current row; call advance() first")
        return PostgresRow(self._record)

    @property
    def terminal_error(self) -> BaseException | None:
        return None

    async def release(self) -> None:
        """Stop reading; later ``advance()`` calls return False."""
        self._cursor = None
        self._record = None


class PostgresTransaction:
    """One asyncpg transaction bound to a connection acquired from the pool."""

    def __init__(
        self,
        pool: asyncpg.Pool,
        conn: asyncpg.Connection,
        tx: _PgTransaction,
    ) -> None:
        """Initialize with a started asyncpg transaction."""
        self._pool = pool
        self._conn = conn
        self._tx = tx
        self._finalized = False

    async def execute(self, query: str, args: tuple[Any, ...] | list[Any] = ()) -> int:
        """Execute a write statement and return the affected row count."""
        self._check_open()
        status = await self._conn.execute(_translate_placeholders(query), *args)
        return _parse_rowcount(status)

    async def query(self, query: str, args: tuple[Any, ...] | list[Any] = ()) -> RowCursor:
        """Execute a statement and return a cursor over its rows."""
        self._check_open()
        stmt = await self._conn.prepare(_translate_placeholders(query))
        if not stmt.get_attributes():
            # No result columns (plain DML): run it, nothing to iterate
            await stmt.fetch(*args)
            return PostgresRowCursor(None)
        return PostgresRowCursor(await stmt.cursor(*args))

    async def commit(self) -> None:
        """Commit. The server aborts the transaction itself if COMMIT fails."""
        self._check_open()
        try:
            await self._tx.commit()
        finally:
            await self._finish()

    async def rollback(self) -> None:
        """Roll back, unless already finalized."""
        if self._finalized:
            return
        try:
            await self._tx.rollback()
        finally:
            await self._finish()

    def _check_open(self) -> None:
        if self._finalized:
            raise RuntimeError("Transaction already finalized")

    async def _finish(self) -> None:
        self._finalized = True
        await self._pool.release(self._conn)


class PostgresProvider:
    """PostgreSQL implementation of the TransactionProvider protocol.

    Each ``begin()`` acquires a connection from the pool and starts a
    transaction on it; the connection goes back to the pool when the
    transaction is committed or rolled back.
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        """Initialize with an asyncpg connection pool."""
        self._pool = pool

    @classmethod
    async def create(cls, url: str) -> PostgresProvider:
        """Create a PostgresProvider from a connection URL."""
        import asyncpg as _asyncpg

        pool = await _asyncpg.create_pool(url, min_size=2, max_size=10)
        return cls(pool)

    async def begin(self) -> Transaction:
        """Acquire a connection and start a transaction on it."""
        conn = await self._pool.acquire()
        try:
            tx = conn.transaction()
            await tx.start()
        except BaseException:
            await self._pool.release(conn)
            raise
        logger.debug("BEGIN on pooled connection")
        return PostgresTransaction(self._pool, conn, tx)

    async def close(self) -> None:
        """Close the connection pool."""
        await self._pool.close()
