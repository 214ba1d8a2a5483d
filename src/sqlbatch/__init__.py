"""Run ordered SQL commands in a single all-or-nothing transaction."""

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
from sqlbatch.executor import BatchExecutor, result_of, run_batch

__all__ = [
    "UNSET",
    "ArgumentFault",
    "BatchError",
    "BatchExecutor",
    "BeginFault",
    "Command",
    "CommandKind",
    "CommitFault",
    "DecodeFault",
    "ExecutionFault",
    "IterationFault",
    "ResourceReleaseFault",
    "RowCountMismatch",
    "result_of",
    "run_batch",
]
