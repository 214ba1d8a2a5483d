"""FastMCP server with lifespan management and tool registration."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from sqlbatch.config import get_database_url, get_db_path, get_log_level
from sqlbatch.db.connection import create_provider
from sqlbatch.executor import BatchExecutor
from sqlbatch.tools.sql_batch import register_sql_batch


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Manage the transaction provider lifecycle."""
    # Configure logging to stderr (stdout is MCP stdio transport)
    logging.basicConfig(
        level=getattr(logging, get_log_level()),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    if get_database_url():
        logger.info("Connecting to database from SQLBATCH_DATABASE_URL")
    else:
        logger.info("Opening database at %s", get_db_path())
    provider = await create_provider()

    try:
        yield {
            "provider": provider,
            "executor": BatchExecutor(provider),
        }
    finally:
        await provider.close()
        logger.info("Database connection closed")


_INSTRUCTIONS = """\
Runs batches of SQL commands against one database, each batch in a single \
transaction: either every command succeeds and the batch is committed, or \
nothing is.

Use sql_batch for multi-step changes that must stay consistent:
- Set affect=1 on an INSERT/UPDATE/DELETE that must touch exactly one row; \
affect=-1 asserts that no row changes.
- Use read='one' to fetch a single row (e.g. a new id) and reference it in \
later commands with {"result": <index>, "column": "<name>"}.
- Use read='all' to return every row of a query.

Placeholders are '?' regardless of the backend.
"""


def create_server() -> FastMCP:
    """Create and configure the MCP server with all tools."""
    mcp = FastMCP(
        "sqlbatch",
        instructions=_INSTRUCTIONS,
        lifespan=lifespan,
    )

    register_sql_batch(mcp)

    return mcp
