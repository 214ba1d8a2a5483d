"""Command descriptors for transactional batches.

A batch is an ordered list of :class:`Command`. Each command is either a
*write-check* (non-zero ``affect``: the affected row count is verified) or a
*read* (rows are handed to ``read_one`` / ``read_all``). The kind is derived
from ``affect`` at execution time and never declared explicitly.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final, Generic, TypeVar

if TYPE_CHECKING:
    from sqlbatch.db.backend import Row

A = TypeVar("A")


class _Unset:
    """Marker for a result slot that holds no value."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()

# Results are a snapshot of every slot, UNSET for commands not yet executed
ArgsResolver = Callable[[Sequence[Any]], Sequence[Any]]
ReadOne = Callable[["Row"], Any | Awaitable[Any]]
ReadAll = Callable[[A, "Row"], A | Awaitable[A]]


class CommandKind(StrEnum):
    """How a command is executed."""

    WRITE_CHECK = "write_check"
    READ = "read"


@dataclass(frozen=True)
class Command(Generic[A]):
    """One unit of work in a batch.

    ``args_resolver`` supersedes ``args`` and is called with the results of
    the commands that ran before this one. ``read_one`` supersedes
    ``read_all``. ``init`` seeds the ``read_all`` accumulator.
    """

    query: str
    args: Sequence[Any] = ()
    args_resolver: ArgsResolver | None = None
    affect: int = 0
    read_one: ReadOne | None = None
    read_all: ReadAll[A] | None = None
    init: A | None = None
    # Optional label used in log lines
    name: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not self.query or not self.query.strip():
            raise ValueError("Command.query is required")

    @property
    def kind(self) -> CommandKind:
        """Write-check when ``affect`` is non-zero, read otherwise."""
        return CommandKind.WRITE_CHECK if self.affect != 0 else CommandKind.READ

    @property
    def expected_rows(self) -> int:
        """Affected row count a write-check must produce (negative means zero)."""
        return max(self.affect, 0)

    def resolve_args(self, results: Sequence[Any]) -> list[Any]:
        """Return the parameters for this command given prior results."""
        if self.args_resolver is not None:
            return list(self.args_resolver(results))
        return list(self.args)

    @property
    def label(self) -> str:
        return self.name or self.query.split(None, 1)[0].upper()
