"""Batch failure types.

Every failure is fatal to the whole batch. Each exception carries the
partially filled result list and the index of the failing command; the
driver or callback exception that caused it is chained as ``__cause__``.
"""

from __future__ import annotations

from typing import Any


class BatchError(Exception):
    """Base class for all batch failures."""

    def __init__(
        self,
        message: str,
        *,
        index: int | None = None,
        results: list[Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.index = index
        self.results: list[Any] = results if results is not None else []

    @property
    def kind(self) -> str:
        return type(self).__name__


class BeginFault(BatchError):
    """The transaction provider could not begin a transaction."""


class ArgumentFault(BatchError):
    """An ``args_resolver`` raised while computing parameters."""


class ExecutionFault(BatchError):
    """The backend rejected a statement."""


class RowCountMismatch(BatchError):
    """A write-check command affected a different number of rows than expected."""

    def __init__(
        self,
        expected: int,
        actual: int,
        query: str,
        *,
        index: int | None = None,
        results: list[Any] | None = None,
    ) -> None:
        super().__init__(
            f"Expected to affect {expected} rows, but {actual} rows affected for query: `{query}`",
            index=index,
            results=results,
        )
        self.expected = expected
        self.actual = actual
        self.query = query


class DecodeFault(BatchError):
    """A ``read_one`` or ``read_all`` callback raised while decoding a row."""


class IterationFault(BatchError):
    """The row cursor stopped on a fault rather than exhaustion."""


class ResourceReleaseFault(BatchError):
    """Releasing a row cursor failed."""


class CommitFault(BatchError):
    """Commit failed after every command succeeded.

    Whether any statement is durable afterwards depends on the backend.
    """
