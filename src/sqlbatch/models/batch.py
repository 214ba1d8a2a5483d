"""Request models for the sql_batch tool."""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sqlbatch.command import UNSET, Command

JsonScalar = str | int | float | bool | None


class ResultRef(BaseModel):
    """Argument taken from the result of an earlier command.

    ``column`` picks a column (by name or position) of a ``read="one"`` row,
    or collects that column across the rows of a ``read="all"`` result.
    Without ``column`` the whole result is used.
    """

    model_config = ConfigDict(extra="forbid")

    result: int = Field(ge=0)
    column: str | Annotated[int, Field(ge=0)] | None = None

    def resolve(self, results: tuple[Any, ...]) -> Any:
        """Look the referenced value up in the prior results."""
        value = results[self.result]
        if value is UNSET:
            raise LookupError(f"result {self.result} has no value")
        if self.column is None:
            return value
        if isinstance(value, list):
            return [_pick(row, self.column) for row in value]
        return _pick(value, self.column)


def _pick(row: dict[str, Any], column: str | int) -> Any:
    if isinstance(column, int):
        return list(row.values())[column]
    return row[column]


def _row_to_dict(row: Any) -> dict[str, Any]:
    return {key: row[key] for key in row.keys()}


def _resolver_for(args: list[ResultRef | JsonScalar]) -> Callable[..., list[Any]] | None:
    """Return an args resolver if any argument is a ResultRef."""
    if not any(isinstance(arg, ResultRef) for arg in args):
        return None
    frozen = tuple(args)

    def resolve(results: tuple[Any, ...]) -> list[Any]:
        return [a.resolve(results) if isinstance(a, ResultRef) else a for a in frozen]

    return resolve


def _append_row(acc: list[dict[str, Any]], row: Any) -> list[dict[str, Any]]:
    acc.append(_row_to_dict(row))
    return acc


class BatchCommandSpec(BaseModel):
    """One command as described by a tool caller."""

    query: str = Field(min_length=1)
    args: list[ResultRef | JsonScalar] = Field(default_factory=list)
    affect: int = 0
    read: Literal["none", "one", "all"] = "all"

    def to_command(self) -> Command[list[dict[str, Any]]]:
        """Build the executable Command, rows decoded to dicts."""
        base: dict[str, Any] = {
            "query": self.query,
            "args": list(self.args),
            "args_resolver": _resolver_for(self.args),
            "affect": self.affect,
        }
        if self.read == "one":
            return Command(**base, read_one=_row_to_dict)
        if self.read == "all":
            return Command(**base, read_all=_append_row, init=[])
        return Command(**base)


class BatchRequest(BaseModel):
    """A whole batch; references must point at earlier commands."""

    commands: list[BatchCommandSpec] = Field(min_length=1)

    @model_validator(mode="after")
    def check_references(self) -> BatchRequest:
        for index, spec in enumerate(self.commands):
            for arg in spec.args:
                if isinstance(arg, ResultRef) and arg.result >= index:
                    raise ValueError(
                        f"command {index} references result {arg.result}, "
                        "which has not run yet"
                    )
        return self

    def to_commands(self) -> list[Command[Any]]:
        return [spec.to_command() for spec in self.commands]
