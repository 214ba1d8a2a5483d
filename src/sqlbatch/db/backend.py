"""Transaction backend protocol — thin abstraction over async DB drivers.

The batch executor programs against these protocols. Each backend (SQLite,
Postgres, ...) provides a concrete implementation. SQL dialect differences
are handled inside the backend, not by the executor.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Row(Protocol):
    """A database row supporting both named and positional access."""

    def __getitem__(self, key: str | int) -> Any:
        """Get a column value by name or position."""
        ...

    def keys(self) -> Any:
        """Return column names."""
        ...


@runtime_checkable
class RowCursor(Protocol):
    """Forward-only cursor over the rows of one query."""

    async def advance(self) -> bool:
        """Move to the next row. Return False when exhausted or faulted."""
        ...

    def decode(self) -> Row:
        """Return the current row. Only valid after ``advance()`` returned True."""
        ...

    @property
    def terminal_error(self) -> BaseException | None:
        """The fault that stopped iteration, or None on clean exhaustion."""
        ...

    async def release(self) -> None:
        """Release the cursor's resources."""
        ...


@runtime_checkable
class Transaction(Protocol):
    """An open transaction.

    All SQL uses ``?`` placeholders. Non-SQLite backends translate at
    execute time. ``rollback()`` is a no-op once the transaction has been
    committed or rolled back.
    """

    async def execute(self, query: str, args: tuple[Any, ...] | list[Any] = ()) -> int:
        """Execute a write statement and return the affected row count."""
        ...

    async def query(self, query: str, args: tuple[Any, ...] | list[Any] = ()) -> RowCursor:
        """Execute a statement and return a cursor over its rows."""
        ...

    async def commit(self) -> None:
        """Commit the transaction."""
        ...

    async def rollback(self) -> None:
        """Roll back the transaction."""
        ...


@runtime_checkable
class TransactionProvider(Protocol):
    """Source of transactions (a connection or a pool)."""

    async def begin(self) -> Transaction:
        """Begin a new transaction."""
        ...

    async def close(self) -> None:
        """Close the underlying connection(s)."""
        ...
