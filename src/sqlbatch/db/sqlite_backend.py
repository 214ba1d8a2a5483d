"""SQLite implementation of the transaction protocols.

Thin wrapper around aiosqlite.Connection. The connection is opened in
autocommit mode (``isolation_level=None``) so transactions are delimited
explicitly with BEGIN / COMMIT / ROLLBACK.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aiosqlite

if TYPE_CHECKING:
    from sqlbatch.db.backend import Row, RowCursor, Transaction

logger = logging.getLogger(__name__)


async def _run_statement(conn: aiosqlite.Connection, sql: str) -> None:
    """Run a statement with no result rows and close its cursor."""
    cursor = await conn.execute(sql)
    await cursor.close()


class SQLiteRowCursor:
    """Wraps aiosqlite.Cursor to satisfy the RowCursor protocol.

    A database error raised while fetching is recorded as the terminal
    error instead of escaping from ``advance()``.
    """

    def __init__(self, cursor: aiosqlite.Cursor) -> None:
        """Initialize with an aiosqlite cursor."""
        self._cursor = cursor
        self._row: Row | None = None
        self._error: BaseException | None = None
        self._released = False

    async def advance(self) -> bool:
        """Fetch the next row into the cursor."""
        if self._error is not None or self._released:
            return False
        try:
            self._row = await self._cursor.fetchone()
        except aiosqlite.Error as exc:
            self._row = None
            self._error = exc
            return False
        return self._row is not None

    def decode(self) -> Row:
        """Return the current row."""
        if self._row is None:
            raise LookupError("No current row; call advance() first")
        return self._row

    @property
    def terminal_error(self) -> BaseException | None:
        """The fetch error that stopped iteration, if any."""
        return self._error

    async def release(self) -> None:
        """Close the underlying cursor. Safe to call twice."""
        if self._released:
            return
        self._released = True
        self._row = None
        await self._cursor.close()


class SQLiteTransaction:
    """One BEGIN … COMMIT/ROLLBACK span on an aiosqlite connection."""

    def __init__(self, conn: aiosqlite.Connection, lock: asyncio.Lock | None = None) -> None:
        """Initialize with a connection already inside BEGIN."""
        self._conn = conn
        self._lock = lock
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    async def execute(self, query: str, args: tuple[Any, ...] | list[Any] = ()) -> int:
        """Execute a write statement and return the affected row count."""
        self._check_open()
        cursor = await self._conn.execute(query, args)
        try:
            rc = cursor.rowcount
            return rc if rc is not None else -1
        finally:
            await cursor.close()

    async def query(self, query: str, args: tuple[Any, ...] | list[Any] = ()) -> RowCursor:
        """Execute a statement and return a cursor over its rows."""
        self._check_open()
        cursor = await self._conn.execute(query, args)
        return SQLiteRowCursor(cursor)

    async def commit(self) -> None:
        """COMMIT. On failure the transaction stays open for rollback."""
        self._check_open()
        await _run_statement(self._conn, "COMMIT")
        self._finish()

    async def rollback(self) -> None:
        """ROLLBACK, unless already finalized."""
        if self._finalized:
            return
        try:
            # SQLite may already have rolled back on its own (e.g. SQLITE_FULL)
            if self._conn.in_transaction:
                await _run_statement(self._conn, "ROLLBACK")
        finally:
            self._finish()

    def _check_open(self) -> None:
        if self._finalized:
            raise RuntimeError("Transaction already finalized")

    def _finish(self) -> None:
        self._finalized = True
        if self._lock is not None and self._lock.locked():
            self._lock.release()
            self._lock = None


class SQLiteProvider:
    """SQLite implementation of the TransactionProvider protocol.

    Owns a single connection. An asyncio.Lock admits one open transaction
    at a time; it is released when that transaction is finalized.
    """

    def __init__(self, conn: aiosqlite.Connection) -> None:
        """Initialize with an aiosqlite connection in autocommit mode."""
        self._conn = conn
        self._lock = asyncio.Lock()

    @classmethod
    async def connect(cls, db_path: str) -> SQLiteProvider:
        """Open ``db_path`` (or ``":memory:"``) and wrap it."""
        conn = await aiosqlite.connect(db_path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        await _run_statement(conn, "PRAGMA foreign_keys=ON")
        if db_path != ":memory:":
            # WAL for better concurrent read performance
            await _run_statement(conn, "PRAGMA journal_mode=WAL")
        return cls(conn)

    async def begin(self) -> Transaction:
        """Wait for the connection to be free, then BEGIN.

        aiosqlite runs the statement on its worker thread, so cancelling
        the caller does not stop a queued BEGIN. The BEGIN is shielded and,
        if the caller goes away, rolled back before the lock is released.
        """
        await self._lock.acquire()
        started = asyncio.ensure_future(_run_statement(self._conn, "BEGIN"))
        try:
            await asyncio.shield(started)
        except BaseException:
            await asyncio.shield(asyncio.ensure_future(self._abandon(started)))
            raise
        logger.debug("BEGIN")
        return SQLiteTransaction(self._conn, self._lock)

    async def _abandon(self, started: asyncio.Future[None]) -> None:
        """Undo a BEGIN whose caller failed or was cancelled, then free the lock."""
        try:
            await asyncio.wait([started])
            if not started.cancelled() and started.exception() is None:
                if self._conn.in_transaction:
                    await _run_statement(self._conn, "ROLLBACK")
        except aiosqlite.Error:
            logger.warning("Rollback of abandoned BEGIN failed", exc_info=True)
        finally:
            self._lock.release()

    async def executescript(self, sql: str) -> None:
        """Run a multi-statement script outside any batch (schema setup)."""
        async with self._lock:
            await self._conn.executescript(sql)

    async def close(self) -> None:
        """Close the database connection."""
        await self._conn.close()
