"""Unit tests for cells, rows and the record mapper."""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from enum import Enum
from typing import Annotated

import pytest
from pydantic import BaseModel

from mortarql.errors import MappingError
from mortarql.mapping.mapper import RowMapper
from mortarql.mapping.row import Row
from mortarql.mapping.values import (
    Cell,
    ValueKind,
    enum_from_label,
    enum_label,
    to_db_value,
)
from mortarql.schema.declarative import Column, table
from tests.fixtures import Sentiment, Ticket, User


class Priority(Enum):
    LOW = 10
    HIGH = 99


class Colour(Enum):
    RED = "red"
    GREEN = "green"


@table("tasks")
class Task(BaseModel):
    id: Annotated[int, Column(primary_key=True)]
    title: Annotated[str, Column(name="task_title")]
    priority: Priority
    colour: Colour
    done: bool
    score: float
    due: dt.datetime
    note: str | None


# ---------------------------------------------------------------------------
# Cells and rows
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("value", "kind"),
    [
        (None, ValueKind.NULL),
        (True, ValueKind.BOOLEAN),
        (3, ValueKind.INTEGER),
        (1.5, ValueKind.FLOAT),
        (Decimal("2.5"), ValueKind.FLOAT),
        ("x", ValueKind.TEXT),
        (b"\x00", ValueKind.BINARY),
        (dt.datetime(2024, 1, 1), ValueKind.TIMESTAMP),
    ],
)
def test_cell_kinds(value, kind):
    assert Cell.of(value).kind is kind


def test_cell_normalizes_values():
    assert Cell.of(memoryview(b"ab")).value == b"ab"
    assert Cell.of(uuid.UUID(int=1)).value == "00000000-0000-0000-0000-000000000001"
    assert Cell.of({"a": 1}).value == '{"a": 1}'


def test_cell_rejects_unknown_values():
    with pytest.raises(MappingError):
        Cell.of(object())


def test_row_lookup_is_case_insensitive():
    row = Row.from_values(["ID", "Name"], [1, None])
    assert row["id"].value == 1
    assert row["NAME"].is_null
    assert row.value("name", "fallback") == "fallback"
    assert "missing" not in row
    assert list(row) == ["ID", "Name"]


# ---------------------------------------------------------------------------
# Enum labels
# ---------------------------------------------------------------------------


def test_enum_label_uses_string_value_else_name():
    assert enum_label(Colour.RED) == "red"
    assert enum_label(Priority.HIGH) == "HIGH"
    assert to_db_value(Sentiment.NEGATIVE) == "NEGATIVE"


def test_enum_from_label():
    assert enum_from_label(Colour, "green") is Colour.GREEN
    assert enum_from_label(Colour, "GREEN") is Colour.GREEN
    assert enum_from_label(Priority, "high") is Priority.HIGH
    with pytest.raises(MappingError):
        enum_from_label(Priority, "99")


# ---------------------------------------------------------------------------
# map_row
# ---------------------------------------------------------------------------


def test_map_row_reads_enum_by_label_and_parses_timestamps(resolver):
    mapper = RowMapper(resolver)
    row = Row.from_values(
        ["id", "title", "sentiment", "created_at"],
        [7, "broken", "NEGATIVE", "2024-05-01 10:30:00"],
    )
    ticket = mapper.map_row(row, Ticket)
    assert ticket.sentiment is Sentiment.NEGATIVE
    assert ticket.created_at == dt.datetime(2024, 5, 1, 10, 30)


def test_enum_round_trips_through_columns(resolver):
    mapper = RowMapper(resolver)
    ticket = Ticket(id=1, title="t", sentiment=Sentiment.NEGATIVE)
    columns = mapper.to_columns(ticket)
    assert columns["sentiment"] == "NEGATIVE"
    assert mapper.map_row(columns, Ticket).sentiment is Sentiment.NEGATIVE


def test_enum_with_sparse_values_round_trips(resolver):
    mapper = RowMapper(resolver)
    task = Task(
        id=1,
        title="ship",
        priority=Priority.HIGH,
        colour=Colour.GREEN,
        done=True,
        score=1.0,
        due=dt.datetime(2024, 1, 1),
        note=None,
    )
    columns = mapper.to_columns(task)
    assert columns["priority"] == "HIGH"
    assert columns["colour"] == "green"
    assert columns["task_title"] == "ship"
    assert mapper.map_row(columns, Task) == task


def test_unknown_enum_label_raises(resolver):
    mapper = RowMapper(resolver)
    with pytest.raises(MappingError) as info:
        mapper.map_row({"id": 1, "sentiment": "FURIOUS"}, Ticket)
    assert info.value.column == "sentiment"


def test_enum_falls_back_to_member_values(resolver):
    mapper = RowMapper(resolver)
    ticket = mapper.map_row({"id": 1, "title": "t", "sentiment": 1, "created_at": None}, Ticket)
    assert ticket.sentiment is Sentiment.NEGATIVE
    task = mapper.map_row({"id": 2, "priority": 99, "colour": "green"}, Task)
    assert task.priority is Priority.HIGH
    with pytest.raises(MappingError) as info:
        mapper.map_row({"id": 3, "priority": 50}, Task)
    assert info.value.column == "priority"


def test_missing_cells_get_zero_values(resolver):
    task = RowMapper(resolver).map_row({"id": 3}, Task)
    assert task.title == ""
    assert task.priority is Priority.LOW
    assert task.colour is Colour.RED
    assert task.done is False
    assert task.score == 0.0
    assert task.due == dt.datetime.min
    assert task.note is None


def test_missing_cells_prefer_field_defaults(resolver):
    user = RowMapper(resolver).map_row({"id": 1, "NAME": None}, User)
    assert user == User(id=1, name="", age=0)


def test_sqlite_booleans_coerce(resolver):
    task = RowMapper(resolver).map_row({"id": 1, "done": 1}, Task)
    assert task.done is True


def test_unconvertible_cell_raises(resolver):
    with pytest.raises(MappingError):
        RowMapper(resolver).map_row({"id": "not a number"}, Task)


def test_map_tuple(resolver):
    row = {"id": 4, "name": "ann", "age": 30, "title": "t", "sentiment": "POSITIVE"}
    user, ticket = RowMapper(resolver).map_tuple(row, (User, Ticket))
    assert user.name == "ann"
    assert ticket.sentiment is Sentiment.POSITIVE


def test_map_row_tracks_when_tracker_given(resolver, tracker):
    user = RowMapper(resolver, tracker).map_row({"id": 1, "name": "a", "age": 2}, User)
    assert tracker.is_tracked(user)


# ---------------------------------------------------------------------------
# to_columns
# ---------------------------------------------------------------------------


def test_to_columns_skips_generated_key(resolver):
    mapper = RowMapper(resolver)
    assert mapper.to_columns(User(name="ann", age=3)) == {"name": "ann", "age": 3}
    assert mapper.to_columns(User(id=9, name="ann")) == {"id": 9, "name": "ann", "age": 0}
    assert "id" in mapper.to_columns(User(name="ann"), skip_generated=False)
