"""Environment-variable-based configuration."""

import os
from pathlib import Path


def get_db_path() -> Path:
    """Return the SQLite database file path from SQLBATCH_DB_PATH."""
    raw = os.environ.get("SQLBATCH_DB_PATH", "~/.local/share/sqlbatch/batch.db")
    return Path(raw).expanduser()


def get_database_url() -> str | None:
    """Return the database URL from SQLBATCH_DATABASE_URL, if set."""
    return os.environ.get("SQLBATCH_DATABASE_URL") or None


def get_max_commands() -> int:
    """Return the per-call command limit from SQLBATCH_MAX_COMMANDS."""
    return int(os.environ.get("SQLBATCH_MAX_COMMANDS", "50"))


def get_log_level() -> str:
    """Return the logging level from SQLBATCH_LOG_LEVEL."""
    return os.environ.get("SQLBATCH_LOG_LEVEL", "WARNING").upper()
