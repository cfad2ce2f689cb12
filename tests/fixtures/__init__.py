"""Test fixtures: sample record types, a fake clock and a recording connection."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel

from mortarql.connection.base import Connection, ExecutionResult
from mortarql.mapping.row import Row
from mortarql.schema.declarative import Column, table

# ---------------------------------------------------------------------------
# Record types
# ---------------------------------------------------------------------------


class Sentiment(Enum):
    NEGATIVE = 1
    NEUTRAL = 2
    POSITIVE = 3


@table("users")
class User(BaseModel):
    id: Annotated[int | None, Column(primary_key=True, auto_increment=True)] = None
    name: Annotated[str, Column(length=120, not_null=True)] = ""
    age: int = 0


@table("tickets")
class Ticket(BaseModel):
    id: Annotated[int | None, Column(primary_key=True, auto_increment=True)] = None
    title: str = ""
    sentiment: Sentiment = Sentiment.NEUTRAL
    created_at: dt.datetime | None = None


@table("items")
class Item(BaseModel):
    id: Annotated[int, Column(primary_key=True)]
    label: str = ""


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------


class RecordingConnection(Connection):
    """In-memory connection that records statements and replays queued results.

    Statements run with the standard compiler.  ``queue()`` results are
    returned in order; once the queue is empty every statement returns an
    empty result.  Setting ``fail_with`` makes the next statement raise it.
    """

    driver_errors = (RuntimeError,)

    def __init__(self, connection_string: str | None = "recording", settings: Any = None, **kwargs: Any) -> None:
        self.statements: list[tuple[str, dict[str, Any]]] = []
        self.results: list[ExecutionResult] = []
        self.open_count = 0
        self.fail_with: Exception | None = None
        self._handle: object | None = None
        super().__init__(connection_string, settings, **kwargs)

    @property
    def dialect(self) -> str:
        return "standard"

    def _open(self) -> None:
        self._handle = object()
        self.open_count += 1

    def _close(self) -> None:
        self._handle = None

    def _is_alive(self) -> bool:
        return self._handle is not None

    def _execute(self, sql: str, params: dict[str, Any]) -> ExecutionResult:
        self.statements.append((sql, dict(params)))
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error
        if self.results:
            return self.results.pop(0)
        return ExecutionResult()

    def queue(self, *results: ExecutionResult) -> RecordingConnection:
        self.results.extend(results)
        return self

    @property
    def sql(self) -> list[str]:
        return [sql for sql, _ in self.statements]


def rows(columns: list[str], *values: tuple[Any, ...]) -> ExecutionResult:
    """Build a row-returning result."""
    return ExecutionResult(
        rows=[Row.from_values(columns, v) for v in values],
        columns=list(columns),
    )
