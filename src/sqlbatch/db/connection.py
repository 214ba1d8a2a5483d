"""Transaction provider construction."""

import logging
from pathlib import Path

from sqlbatch.config import get_database_url, get_db_path
from sqlbatch.db.backend import TransactionProvider
from sqlbatch.db.sqlite_backend import SQLiteProvider

logger = logging.getLogger(__name__)


async def create_provider(db_path: Path | str | None = None) -> TransactionProvider:
    """Create a transaction provider.

    Dispatches to SQLite or PostgreSQL based on SQLBATCH_DATABASE_URL.
    For in-memory SQLite databases, pass ":memory:".
    """
    # Explicit ":memory:" always uses SQLite (used by tests)
    if db_path == ":memory:":
        return await _create_sqlite(":memory:")
    url = get_database_url()
    if url and url.startswith("postgresql"):
        return await _create_postgres(url)
    return await _create_sqlite(db_path or get_db_path())


async def _create_sqlite(db_path: Path | str) -> TransactionProvider:
    """Create a SQLite provider, creating the parent directory if needed."""
    db_path = str(db_path)

    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    logger.debug("Opening SQLite database at %s", db_path)
    return await SQLiteProvider.connect(db_path)


async def _create_postgres(url: str) -> TransactionProvider:
    """Create a PostgreSQL provider backed by an asyncpg pool."""
    from sqlbatch.db.postgres_backend import PostgresProvider

    logger.debug("Connecting to PostgreSQL")
    return await PostgresProvider.create(url)
