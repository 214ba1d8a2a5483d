"""Transaction backends and provider construction."""

from sqlbatch.db.backend import Row, RowCursor, Transaction, TransactionProvider
from sqlbatch.db.connection import create_provider
from sqlbatch.db.postgres_backend import PostgresProvider
from sqlbatch.db.sqlite_backend import SQLiteProvider

__all__ = [
    "PostgresProvider",
    "Row",
    "RowCursor",
    "SQLiteProvider",
    "Transaction",
    "TransactionProvider",
    "create_provider",
]
