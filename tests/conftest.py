"""Shared test fixtures."""

from typing import Any

import pytest_asyncio

from sqlbatch.db.connection import create_provider
from sqlbatch.executor import BatchExecutor

_SCHEMA = """
CREATE TABLE accounts (
    id INTEGER PRIMARY KEY,
    owner TEXT NOT NULL UNIQUE,
    balance INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE transfers (
    id INTEGER PRIMARY KEY,
    account_id INTEGER NOT NULL
        REFERENCES accounts(id) DEFERRABLE INITIALLY DEFERRED,
    amount INTEGER NOT NULL
);
"""


@pytest_asyncio.fixture
async def provider():
    """In-memory SQLite provider with the accounts/transfers schema."""
    conn = await create_provider(":memory:")
    await conn.executescript(_SCHEMA)
    yield conn
    await conn.close()


@pytest_asyncio.fixture
async def executor(provider):
    """Batch executor backed by the in-memory provider."""
    return BatchExecutor(provider)


class FakeRow(dict):
    """Row double supporting named and positional access."""

    def __getitem__(self, key):
        if isinstance(key, int):
            return list(self.values())[key]
        return super().__getitem__(key)


class FakeCursor:
    """Scriptable RowCursor double.

    ``terminal_error`` is reported once the rows are exhausted;
    ``advance_error`` is raised by the advance that would move past
    ``fail_at`` rows.
    """

    def __init__(
        self,
        rows: list[dict[str, Any]],
        *,
        terminal_error: BaseException | None = None,
        advance_error: BaseException | None = None,
        fail_at: int = 0,
        release_error: BaseException | None = None,
    ):
        self.rows = [FakeRow(r) for r in rows]
        self._terminal = terminal_error
        self._advance_error = advance_error
        self._fail_at = fail_at
        self._release_error = release_error
        self.position = -1
        self.advance_count = 0
        self.released = False
        self.exhausted = False

    async def advance(self) -> bool:
        self.advance_count += 1
        if self._advance_error is not None and self.position + 1 >= self._fail_at:
            raise self._advance_error
        if self.position + 1 >= len(self.rows):
            self.exhausted = True
            return False
        self.position += 1
        return True

    def decode(self):
        return self.rows[self.position]

    @property
    def terminal_error(self):
        return self._terminal if self.exhausted else None

    async def release(self) -> None:
        self.released = True
        if self._release_error is not None:
            raise self._release_error


class FakeTransaction:
    """Recording Transaction double.

    ``affected`` and ``cursors`` are keyed by query text. Unknown write
    queries affect one row; unknown read queries return no rows.
    """

    def __init__(
        self,
        *,
        affected: dict[str, int] | None = None,
        cursors: dict[str, FakeCursor] | None = None,
        errors: dict[str, Exception] | None = None,
        commit_error: Exception | None = None,
        rollback_error: Exception | None = None,
    ):
        self.affected = affected or {}
        self.cursors = cursors or {}
        self.errors = errors or {}
        self.commit_error = commit_error
        self.rollback_error = rollback_error
        self.calls: list[tuple[str, str, list[Any]]] = []
        self.opened: list[FakeCursor] = []
        self.commits = 0
        self.rollbacks = 0

    async def execute(self, query, args=()):
        self._check_cursors_released()
        self.calls.append(("execute", query, list(args)))
        if query in self.errors:
            raise self.errors[query]
        return self.affected.get(query, 1)

    async def query(self, query, args=()):
        self._check_cursors_released()
        self.calls.append(("query", query, list(args)))
        if query in self.errors:
            raise self.errors[query]
        cursor = self.cursors.get(query) or FakeCursor([])
        self.opened.append(cursor)
        return cursor

    async def commit(self):
        self._check_cursors_released()
        self.commits += 1
        if self.commit_error is not None:
            raise self.commit_error

    async def rollback(self):
        self.rollbacks += 1
        if self.rollback_error is not None:
            raise self.rollback_error

    @property
    def queries(self) -> list[str]:
        return [q for _, q, _ in self.calls]

    def _check_cursors_released(self):
        # Mirrors backends that refuse a statement while a cursor is open
        assert all(c.released for c in self.opened), "cursor left open"


class FakeProvider:
    """TransactionProvider double handing out one FakeTransaction."""

    def __init__(self, tx: FakeTransaction | None = None, begin_error: Exception | None = None):
        self.tx = tx or FakeTransaction()
        self.begin_error = begin_error
        self.begins = 0

    async def begin(self):
        self.begins += 1
        if self.begin_error is not None:
            raise self.begin_error
        return self.tx

    async def close(self):
        pass
