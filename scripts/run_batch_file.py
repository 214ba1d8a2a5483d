#!/usr/bin/env python3
"""Run a batch described in a JSON file against the configured database.

Usage:
    uv run python scripts/run_batch_file.py BATCH.json

The file holds a list of command dicts, the same shape the sql_batch tool
accepts. Respects SQLBATCH_DB_PATH / SQLBATCH_DATABASE_URL.
"""

import asyncio
import json
import sys
import time
from pathlib import Path

from sqlbatch.db.connection import create_provider
from sqlbatch.executor import BatchExecutor
from sqlbatch.tools.sql_batch import run_sql_batch


async def main() -> int:
    if len(sys.argv) != 2:
        print(__doc__)
        return 2

    batch_path = Path(sys.argv[1])
    commands = json.loads(batch_path.read_text(encoding="utf-8"))

    provider = await create_provider()
    try:
        t0 = time.monotonic()
        output = await run_sql_batch(
            commands, {"provider": provider, "executor": BatchExecutor(provider)}
        )
        elapsed = time.monotonic() - t0
    finally:
        await provider.close()

    payload = json.loads(output)
    print(json.dumps(payload, indent=2))
    print(f"\n{len(commands)} commands in {elapsed:.3f}s", file=sys.stderr)
    return 0 if payload["ok"] else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
