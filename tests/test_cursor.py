"""Tests for key-based and offset-based batch iteration on an in-memory SQLite database."""

from __future__ import annotations

from decimal import Decimal

import pytest

from mortarql.errors import ExecutionError
from mortarql.execute.builder import QueryBuilder
from mortarql.execute.cursor import parse_key
from mortarql.query.enums import OrderDirection
from tests.fixtures import Item


@pytest.fixture()
def items(memory_db, resolver) -> QueryBuilder:
    builder = QueryBuilder(memory_db, resolver=resolver)
    builder.build(lambda q: q.raw('CREATE TABLE "items" ("id" INTEGER PRIMARY KEY, "label" TEXT)')).execute()
    for key in (1, 2, 3, 5, 8):
        builder.reset().build(lambda q, k=key: q.insert("items").value({"id": k, "label": f"item-{k}"})).execute()
    return builder.reset().build(lambda q: q.select().from_("items"))


def _count_statements(builder: QueryBuilder) -> list[str]:
    seen: list[str] = []
    builder.with_before_execution(lambda q: seen.append(q.render().sql))
    return seen


# ---------------------------------------------------------------------------
# parse_key
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (7, 7),
        (0, 0),
        ("42", 42),
        (" 9 ", 9),
        (3.0, 3),
        (Decimal("4"), 4),
        (-1, None),
        (2.5, None),
        ("abc", None),
        ("-3", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_key(value, expected):
    assert parse_key(value) == expected


# ---------------------------------------------------------------------------
# Key iteration
# ---------------------------------------------------------------------------


def test_iterate_yields_every_row_in_key_order(items):
    seen = _count_statements(items)
    keys = [row.value("id") for row in items.iterate("id", batch_size=2)]
    assert keys == [1, 2, 3, 5, 8]
    assert len(seen) == 4
    assert all('"id" > :prepared_value_0' in sql and "LIMIT 2" in sql for sql in seen)


def test_iterate_maps_records_and_honours_start(items):
    records = list(items.iterate("id", start=3, batch_size=10, record_type=Item))
    assert records == [Item(id=5, label="item-5"), Item(id=8, label="item-8")]


def test_iterate_keeps_caller_filters(items):
    items.query.where_in("id", [2, 5, 8])
    keys = [row.value("id") for row in items.iterate("id", batch_size=1)]
    assert keys == [2, 5, 8]


def test_iterate_orders_by_key_over_caller_order(items):
    items.query.order_by("label", OrderDirection.DESC)
    seen = _count_statements(items)
    keys = [row.value("id") for row in items.iterate("id", batch_size=2)]
    assert keys == [1, 2, 3, 5, 8]
    assert all(sql.endswith('ORDER BY "id" ASC LIMIT 2 OFFSET 0') for sql in seen)
    assert [item.direction for item in items.query.order_list] == [OrderDirection.DESC]


def test_iterate_stops_at_non_numeric_key(memory_db, resolver):
    builder = QueryBuilder(memory_db, resolver=resolver)
    builder.build(lambda q: q.raw('CREATE TABLE "tags" ("code" TEXT)')).execute()
    builder.reset().build(lambda q: q.insert("tags").value({"code": "abc"})).execute()
    builder.reset().build(lambda q: q.select().from_("tags"))
    assert list(builder.iterate("code")) == []


def test_query_restored_after_early_close(items):
    original = items.query
    rows = items.iterate("id", batch_size=2)
    next(rows)
    assert items.query is not original
    rows.close()
    assert items.query is original
    assert original.limit_clause is None
    assert original.where_list == []


def test_query_restored_after_failure(memory_db, resolver):
    builder = QueryBuilder(memory_db, resolver=resolver).build(lambda q: q.select().from_("missing"))
    original = builder.query
    with pytest.raises(ExecutionError) as info:
        list(builder.iterate("id"))
    assert 'FROM "missing"' in info.value.sql
    assert builder.query is original


def test_batch_size_must_be_positive(items):
    with pytest.raises(ValueError):
        next(items.iterate("id", batch_size=0))


# ---------------------------------------------------------------------------
# Offset iteration
# ---------------------------------------------------------------------------


def test_iterate_by_offset(items):
    items.query.order_by("id")
    seen = _count_statements(items)
    labels = [item.label for item in items.iterate_by_offset(batch_size=2, record_type=Item)]
    assert labels == ["item-1", "item-2", "item-3", "item-5", "item-8"]
    assert [sql.rsplit(" ", 4)[1:] for sql in seen] == [
        ["LIMIT", "2", "OFFSET", "0"],
        ["LIMIT", "2", "OFFSET", "2"],
        ["LIMIT", "2", "OFFSET", "4"],
        ["LIMIT", "2", "OFFSET", "5"],
    ]


def test_iterate_by_offset_from_start(items):
    items.query.order_by("id")
    keys = [row.value("id") for row in items.iterate_by_offset(start=3, batch_size=10)]
    assert keys == [5, 8]
