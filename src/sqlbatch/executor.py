"""Run an ordered list of commands inside a single transaction.

Commands execute strictly in order. A write-check command verifies its
affected row count; a read command feeds its rows to ``read_one`` or
``read_all`` and stores the outcome in its result slot, where the
``args_resolver`` of later commands can see it. The first failure of any
kind stops the batch and rolls the transaction back; otherwise the
transaction is committed once after the last command.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from sqlbatch.command import UNSET, Command, CommandKind
from sqlbatch.errors import (
    ArgumentFault,
    BatchError,
    BeginFault,
    CommitFault,
    DecodeFault,
    ExecutionFault,
    IterationFault,
    ResourceReleaseFault,
    RowCountMismatch,
)

if TYPE_CHECKING:
    from sqlbatch.db.backend import RowCursor, Transaction, TransactionProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


def result_of(results: Sequence[Any], index: int, kind: type[T]) -> T:
    """Return slot ``index`` of a result sequence as ``kind``.

    Raises LookupError if the slot is unset and TypeError if it holds
    something else.
    """
    value = results[index]
    if value is UNSET:
        raise LookupError(f"Result {index} is unset")
    if not isinstance(value, kind):
        raise TypeError(
            f"Result {index} is {type(value).__name__}, expected {kind.__name__}"
        )
    return value


async def _invoke(fn: Callable[..., Any], *args: Any) -> Any:
    value = fn(*args)
    if inspect.isawaitable(value):
        value = await value
    return value


class BatchExecutor:
    """Executes command batches against transactions from a provider."""

    def __init__(self, provider: TransactionProvider) -> None:
        """Initialize with the transaction provider to draw from."""
        self._provider = provider

    async def batch(self, commands: Sequence[Command[Any]]) -> list[Any]:
        """Begin a transaction and run ``commands`` in it.

        Returns one result slot per command. Raises a BatchError subclass
        carrying the partial results if anything fails.
        """
        try:
            tx = await self._provider.begin()
        except Exception as exc:
            raise BeginFault(f"Could not begin transaction: {exc}") from exc
        return await self.run(tx, commands)

    @staticmethod
    async def run(tx: Transaction, commands: Sequence[Command[Any]]) -> list[Any]:
        """Run ``commands`` in an already-open transaction and finalize it.

        Exactly one of commit or rollback happens before this returns,
        whatever the exit path. A failed commit is followed by a rollback
        so the transaction is never left open.
        """
        results: list[Any] = [UNSET] * len(commands)
        committed = False
        try:
            for index, command in enumerate(commands):
                logger.debug("Command %d (%s): %s", index, command.kind.value, command.label)
                await _run_command(tx, command, index, results)

            try:
                await tx.commit()
            except Exception as exc:
                raise CommitFault(
                    f"Commit failed after {len(commands)} commands: {exc}",
                    results=results,
                ) from exc
            committed = True
            logger.info("Committed batch of %d commands", len(commands))
            return results
        except BatchError as exc:
            logger.warning("Batch aborted (%s) at command %s: %s", exc.kind, exc.index, exc)
            raise
        finally:
            if not committed:
                await _rollback(tx)


async def run_batch(provider: TransactionProvider, commands: Sequence[Command[Any]]) -> list[Any]:
    """Shortcut for ``BatchExecutor(provider).batch(commands)``."""
    return await BatchExecutor(provider).batch(commands)


async def _rollback(tx: Transaction) -> None:
    """Roll back during cleanup without hiding the exception in flight."""
    try:
        await tx.rollback()
    except Exception:
        logger.warning("Rollback failed", exc_info=True)
    else:
        logger.debug("Rolled back")


async def _run_command(
    tx: Transaction, command: Command[Any], index: int, results: list[Any]
) -> None:
    try:
        args = command.resolve_args(tuple(results))
    except Exception as exc:
        raise ArgumentFault(
            f"Argument resolution failed for command {index}: {exc}",
            index=index,
            results=results,
        ) from exc

    if command.kind is CommandKind.WRITE_CHECK:
        await _run_write_check(tx, command, args, index, results)
    else:
        results[index] = await _run_read(tx, command, args, index, results)


async def _run_write_check(
    tx: Transaction, command: Command[Any], args: list[Any], index: int, results: list[Any]
) -> None:
    try:
        affected = await tx.execute(command.query, args)
    except Exception as exc:
        raise ExecutionFault(str(exc), index=index, results=results) from exc

    expected = command.expected_rows
    if affected != expected:
        raise RowCountMismatch(expected, affected, command.query, index=index, results=results)


async def _run_read(
    tx: Transaction, command: Command[Any], args: list[Any], index: int, results: list[Any]
) -> Any:
    try:
        cursor = await tx.query(command.query, args)
    except Exception as exc:
        raise ExecutionFault(str(exc), index=index, results=results) from exc

    try:
        value = await _read_rows(cursor, command, index, results)
        fault = cursor.terminal_error
        if fault is not None:
            raise IterationFault(str(fault), index=index, results=results) from fault
    except BaseException:
        # The cursor must be closed before anything else touches the transaction
        try:
            await cursor.release()
        except Exception:
            logger.warning("Cursor release failed for command %d", index, exc_info=True)
        raise

    try:
        await cursor.release()
    except Exception as exc:
        raise ResourceReleaseFault(str(exc), index=index, results=results) from exc
    return value


async def _read_rows(
    cursor: RowCursor, command: Command[Any], index: int, results: list[Any]
) -> Any:
    async def advance() -> bool:
        try:
            return await cursor.advance()
        except Exception as exc:
            raise IterationFault(str(exc), index=index, results=results) from exc

    async def decode(fn: Callable[..., Any], *head: Any) -> Any:
        try:
            return await _invoke(fn, *head, cursor.decode())
        except Exception as exc:
            raise DecodeFault(
                f"Row decode failed for command {index}: {exc}", index=index, results=results
            ) from exc

    if command.read_one is not None:
        if await advance():
            return await decode(command.read_one)
        return UNSET

    if command.read_all is not None:
        acc = command.init
        while await advance():
            acc = await decode(command.read_all, acc)
        return acc

    while await advance():
        pass
    return UNSET
