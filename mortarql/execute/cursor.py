"""Batch-wise streaming of large result sets.

Key iteration (``iterate_by_key``) re-runs the caller's query once per batch
with ``key > last_seen``, ``ORDER BY key ASC`` and ``LIMIT batch_size``
in place of any ordering of its own, so the database seeks on an index
instead of skipping rows.  Offset iteration
(``iterate_by_offset``) is the fallback for tables without a monotonic
numeric key; every batch makes the database skip all rows already read.

Both generators work on clones of a snapshot taken at the first ``next()``
and put the builder's own query back when they finish, are closed early, or
fail.  Iteration ends on an empty batch.  Key iteration also ends, before
yielding the row, at the first key that is not a non-negative integer.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from mortarql.mapping.row import Row
from mortarql.query.clauses import FieldSelector
from mortarql.query.enums import OrderDirection, WhereComparer

if TYPE_CHECKING:
    from mortarql.execute.builder import QueryBuilder, RecordSpec

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


def parse_key(value: Any) -> int | None:
    """Read a cursor key; ``None`` when it is not a non-negative integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, (float, Decimal)):
        try:
            parsed = int(value)
        except (ValueError, OverflowError, ArithmeticError):
            return None
        if parsed != value:
            return None
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        return None
    return parsed if parsed >= 0 else None


def _check_batch_size(batch_size: int) -> None:
    if batch_size <= 0:
        raise ValueError("batch_size must be positive.")


def iterate_by_key(
    builder: QueryBuilder,
    key_field: str | FieldSelector,
    start: int = 0,
    batch_size: int = DEFAULT_BATCH_SIZE,
    record_type: RecordSpec = None,
) -> Iterator[Any]:
    """Yield rows (or records) of the builder's query in ascending key order.

    Args:
        builder: Builder whose current query is iterated.
        key_field: Monotonic integer key column.
        start: Only rows with a key greater than this are read.
        batch_size: Rows fetched per round trip.
        record_type: Map rows to this record type (or tuple of types).
    """
    _check_batch_size(batch_size)
    key = FieldSelector.coerce(key_field)
    original = builder.query
    snapshot = original.clone()
    last_seen = start
    batches = 0
    try:
        while True:
            batch = snapshot.clone().where(key, last_seen, WhereComparer.GREATER)
            batch.order_list = []
            batch.order_by(key, OrderDirection.ASC)
            batch.limit(batch_size)
            builder.query = batch
            rows = builder.execute(force=True).rows
            batches += 1
            logger.debug("Cursor batch %d after key %s: %d rows", batches, last_seen, len(rows))
            if not rows:
                return
            advanced = False
            for row in rows:
                parsed = parse_key(_key_value(row, key))
                if parsed is None:
                    logger.debug("Stopping cursor at unreadable key in batch %d", batches)
                    return
                if parsed > last_seen:
                    last_seen = parsed
                    advanced = True
                yield builder.map_result(row, record_type)
            if not advanced:
                return
    finally:
        builder.query = original


def iterate_by_offset(
    builder: QueryBuilder,
    start: int = 0,
    batch_size: int = DEFAULT_BATCH_SIZE,
    record_type: RecordSpec = None,
) -> Iterator[Any]:
    """Yield rows (or records) of the builder's query using LIMIT/OFFSET paging.

    Slower than :func:`iterate_by_key` on large tables; use it only when no
    monotonic key column exists.
    """
    _check_batch_size(batch_size)
    original = builder.query
    snapshot = original.clone()
    offset = start
    try:
        while True:
            builder.query = snapshot.clone().limit(batch_size, offset)
            rows = builder.execute(force=True).rows
            logger.debug("Offset batch at %d: %d rows", offset, len(rows))
            if not rows:
                return
            for row in rows:
                yield builder.map_result(row, record_type)
            offset += len(rows)
    finally:
        builder.query = original


def _key_value(row: Row, key: FieldSelector) -> Any:
    cell = row.get(key.field)
    if cell is None or cell.is_null:
        return None
    return cell.value
