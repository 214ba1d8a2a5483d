"""sql_batch MCP tool — run several SQL commands in one transaction."""

import json
import logging
from typing import TYPE_CHECKING, Annotated, Any

from fastmcp import FastMCP
from fastmcp.server.context import Context
from pydantic import Field, ValidationError

from sqlbatch.command import UNSET
from sqlbatch.config import get_max_commands
from sqlbatch.errors import BatchError
from sqlbatch.models.batch import BatchRequest

if TYPE_CHECKING:
    from sqlbatch.executor import BatchExecutor

logger = logging.getLogger(__name__)


def _jsonable(results: list[Any]) -> list[Any]:
    return [None if value is UNSET else value for value in results]


def _payload(**fields: Any) -> str:
    # default=str covers dates, Decimals and bytes coming back from drivers
    return json.dumps(fields, default=str)


async def run_sql_batch(
    commands: list[dict[str, Any]],
    lifespan: dict[str, Any],
) -> str:
    """Core sql_batch logic, testable without MCP context."""
    limit = get_max_commands()
    if len(commands) > limit:
        return _payload(
            ok=False,
            error={
                "kind": "ValidationError",
                "message": f"Maximum {limit} commands per batch (got {len(commands)})",
                "index": None,
            },
            results=[],
        )

    try:
        request = BatchRequest.model_validate({"commands": commands})
    except ValidationError as exc:
        return _payload(
            ok=False,
            error={"kind": "ValidationError", "message": str(exc), "index": None},
            results=[],
        )

    executor: BatchExecutor = lifespan["executor"]
    try:
        results = await executor.batch(request.to_commands())
    except BatchError as exc:
        return _payload(
            ok=False,
            error={"kind": exc.kind, "message": str(exc), "index": exc.index},
            results=_jsonable(exc.results),
        )

    return _payload(ok=True, results=_jsonable(results))


def register_sql_batch(mcp: FastMCP) -> None:
    """Register the sql_batch tool with the MCP server."""

    @mcp.tool()
    async def sql_batch(
        commands: Annotated[
            list[dict[str, object]],
            Field(
                description=(
                    "Ordered list of command dicts. Each requires: query. "
                    "Optional: args (list), affect (int), read ('none' | 'one' | 'all')."
                ),
            ),
        ],
        ctx: Context | None = None,
    ) -> str:
        """Run SQL commands in a single transaction, all or nothing.

        Commands run in order. With a non-zero ``affect`` the command must
        change exactly that many rows (negative means none). Otherwise its
        rows are returned: the first row for read='one', every row for
        read='all'. An arg of the form {"result": i, "column": "c"} takes
        its value from the result of an earlier command i.

        Returns JSON: {"ok": true, "results": [...]} or
        {"ok": false, "error": {...}, "results": [...]}. Nothing is
        committed unless ok is true.
        """
        if ctx is None:
            raise RuntimeError("Context not injected")

        return await run_sql_batch(commands, ctx.lifespan_context)
