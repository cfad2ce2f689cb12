"""Query execution and result consumption.

``QueryBuilder`` pairs a live :class:`~mortarql.query.model.Query` with a
connection.  Every consumption path (``execute_as``, ``as_enumerable``,
``to_list``, ``first_or_default``, ``iterate``, ``iterate_by_offset``) runs
the same render → bind → execute → map pipeline.

Execution hooks
---------------
``with_before_execution(fn)`` and ``with_after_execution(fn)`` receive the
query being run.  ``with_on_exception(fn)`` receives the query and the
error; the error is always re-raised afterwards.
"""
from __future__ import annotations

import contextlib
import logging
import math
from collections.abc import Callable, Iterator
from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel

from mortarql.compile.base import RenderedQuery
from mortarql.connection.base import Connection, ExecutionResult
from mortarql.execute import cursor
from mortarql.execute.transactions import TransactionStack
from mortarql.mapping.mapper import RowMapper
from mortarql.mapping.row import Row
from mortarql.query.clauses import FieldSelector
from mortarql.query.enums import QueryType
from mortarql.query.model import Query
from mortarql.schema.metadata import DEFAULT_RESOLVER, SchemaResolver
from mortarql.tracking.tracker import ChangeTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")

#: A record type, a tuple of record types, or ``None`` for raw rows.
RecordSpec = type[BaseModel] | tuple[type[BaseModel], ...] | None

QueryHook = Callable[[Query], Any]
ExceptionHook = Callable[[Query, BaseException], Any]

_NUMERIC_TYPES = (int, float, Decimal)


class QueryBuilder:
    """Executes a query model on a connection and maps its results.

    Args:
        connection: The connection statements run on.
        query: Initial query; an empty one using the connection's compiler
            is created when omitted.
        tracker: Change tracker; when given, every mapped record is tracked
            and :meth:`update_record` is available.
        resolver: Schema resolver for record types.
    """

    def __init__(
        self,
        connection: Connection,
        query: Query | None = None,
        *,
        tracker: ChangeTracker | None = None,
        resolver: SchemaResolver | None = None,
    ) -> None:
        self.connection = connection
        self.resolver = resolver or DEFAULT_RESOLVER
        self.tracker = tracker
        self.mapper = RowMapper(self.resolver, tracker)
        self.query = query if query is not None else self._new_query()
        self.transactions = TransactionStack()
        self.result: ExecutionResult | None = None
        self.total_count = 0
        self._executed: RenderedQuery | None = None
        self._before: QueryHook | None = None
        self._after: QueryHook | None = None
        self._on_exception: ExceptionHook | None = None

    def _new_query(self) -> Query:
        return Query(self.connection.compiler, resolver=self.resolver)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def build(self, fn: Callable[[Query], Any]) -> QueryBuilder:
        """Apply ``fn`` to the live query and return the builder."""
        fn(self.query)
        return self

    def reset(self) -> QueryBuilder:
        """Start over with an empty query and no result."""
        self.query = self._new_query()
        self.result = None
        self.total_count = 0
        self._executed = None
        return self

    def with_before_execution(self, fn: QueryHook | None) -> QueryBuilder:
        self._before = fn
        return self

    def with_after_execution(self, fn: QueryHook | None) -> QueryBuilder:
        self._after = fn
        return self

    def with_on_exception(self, fn: ExceptionHook | None) -> QueryBuilder:
        self._on_exception = fn
        return self

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _run(self, query: Query) -> ExecutionResult:
        if self._before is not None:
            self._before(query)
        try:
            rendered = query.render()
            sql, params = query.compiler.bind_parameters(rendered)
            logger.debug("Executing: %s", rendered.display)
            result = self.connection.execute(sql, params)
        except Exception as exc:
            if self._on_exception is not None:
                self._on_exception(query, exc)
            raise
        if self._after is not None:
            self._after(query)
        return result

    def execute(self, force: bool = False) -> ExecutionResult:
        """Run the live query.

        An unchanged query that already ran returns its previous result
        unless ``force`` is set.

        Raises:
            ExecutionError: If the driver rejects the statement.
        """
        rendered = self.query.render()
        if not force and self.result is not None and rendered is self._executed:
            return self.result
        self.result = self._run(self.query)
        self._executed = rendered
        if self.query.query_type is QueryType.COUNT:
            self.total_count = int(self._first_cell(self.result) or 0)
        return self.result

    def execute_as(self, result_type: type[T]) -> T:
        """Run the live query and read the result as ``result_type``.

        * COUNT: numeric types read the counted value.
        * SELECT: ``bool`` reads whether rows came back, numeric types read
          how many.
        * INSERT: numeric types and ``str`` read the generated key when
          exactly one row was inserted and the driver reported one, else
          the affected-row count.
        * UPDATE / DELETE: ``bool`` reads whether any row was affected,
          numeric types read how many.

        Any other combination returns the first cell of the first row.
        """
        result = self.execute()
        kind = self.query.query_type

        if kind is QueryType.COUNT and result_type in _NUMERIC_TYPES:
            return result_type(self._first_cell(result) or 0)
        if kind is QueryType.SELECT:
            if result_type is bool:
                return bool(result.rows)
            if result_type in _NUMERIC_TYPES:
                return result_type(len(result.rows))
        if kind is QueryType.INSERT and (result_type in _NUMERIC_TYPES or result_type is str):
            if result.affected_count == 1 and result.last_insert_id is not None:
                return result_type(result.last_insert_id)
            return result_type(result.affected_count)
        if kind in (QueryType.UPDATE, QueryType.DELETE):
            if result_type is bool:
                return result.affected_count > 0
            if result_type in _NUMERIC_TYPES:
                return result_type(result.affected_count)
        return self._first_cell(result)

    @staticmethod
    def _first_cell(result: ExecutionResult) -> Any:
        if not result.rows:
            return None
        first = result.rows[0]
        return first.value(next(iter(first)))

    @property
    def affected_rows(self) -> int:
        return self.result.affected_count if self.result else 0

    @property
    def last_insert_id(self) -> Any:
        return self.result.last_insert_id if self.result else None

    @property
    def scalar_value(self) -> Any:
        return self._first_cell(self.result) if self.result else None

    def count(self) -> int:
        """Count the rows the live query matches, ignoring ORDER BY and LIMIT."""
        original = self.query.query_type
        self.query.set_query_type(QueryType.COUNT)
        try:
            result = self._run(self.query)
        finally:
            self.query.set_query_type(original)
        self.total_count = int(self._first_cell(result) or 0)
        return self.total_count

    def pages(self) -> int:
        """Number of pages of ``LIMIT`` rows the live query spans.

        Returns 0 when the query has no (or a zero) limit.
        """
        limit = self.query.limit_clause
        if limit is None or limit.count == 0:
            return 0
        return math.ceil(self.count() / limit.count)

    # ------------------------------------------------------------------
    # Consumption
    # ------------------------------------------------------------------

    def map_result(self, row: Row, record_type: RecordSpec = None) -> Any:
        """Return ``row`` as-is, as a record, or as a tuple of records."""
        if record_type is None:
            return row
        if isinstance(record_type, tuple):
            return self.mapper.map_tuple(row, record_type)
        return self.mapper.map_row(row, record_type)

    def as_enumerable(self, record_type: RecordSpec = None) -> Iterator[Any]:
        """Run the live query and lazily map each returned row."""
        result = self.execute(force=True)
        for row in result.rows:
            yield self.map_result(row, record_type)

    def to_list(self, record_type: RecordSpec = None) -> list[Any]:
        return list(self.as_enumerable(record_type))

    def first_or_default(self, record_type: RecordSpec = None, default: Any = None) -> Any:
        result = self.execute(force=True)
        if not result.rows:
            return default
        return self.map_result(result.rows[0], record_type)

    def iterate(
        self,
        key_field: str | FieldSelector,
        start: int = 0,
        batch_size: int = cursor.DEFAULT_BATCH_SIZE,
        record_type: RecordSpec = None,
    ) -> Iterator[Any]:
        """Stream the live query in key order, ``batch_size`` rows per round trip.

        See :func:`mortarql.execute.cursor.iterate_by_key`.
        """
        return cursor.iterate_by_key(self, key_field, start, batch_size, record_type)

    def iterate_by_offset(
        self,
        start: int = 0,
        batch_size: int = cursor.DEFAULT_BATCH_SIZE,
        record_type: RecordSpec = None,
    ) -> Iterator[Any]:
        """Stream the live query with LIMIT/OFFSET paging.

        See :func:`mortarql.execute.cursor.iterate_by_offset`.
        """
        return cursor.iterate_by_offset(self, start, batch_size, record_type)

    # ------------------------------------------------------------------
    # Record updates
    # ------------------------------------------------------------------

    def update_record(self, record: BaseModel) -> bool:
        """Write the fields of ``record`` changed since it was mapped.

        Returns ``False`` without touching the database when the record is
        untracked, unchanged, or has no key value.  A successful update
        re-snapshots the record, so repeating the call is a no-op.
        """
        if self.tracker is None:
            return False
        update = self.tracker.build_update(record, self.connection.compiler)
        if update is None:
            return False
        result = self._run(update)
        if result.affected_count > 0:
            self.tracker.refresh(record)
            return True
        return False

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _run_statement(self, sql: str) -> None:
        self._run(self._new_query().raw(sql))

    def begin(self, name: str | None = None) -> QueryBuilder:
        """Open a transaction; a named one is a savepoint."""
        key = self.transactions.open(name)
        try:
            self._run_statement(self.connection.compiler.begin_statement(name))
        except Exception:
            self.transactions.close(key)
            raise
        return self

    def commit(self, name: str | None = None) -> QueryBuilder:
        """Commit everything (unnamed) or release the named savepoint.

        Raises:
            TransactionError: If ``name`` is not open.
        """
        self.transactions.ensure_open(name)
        self._run_statement(self.connection.compiler.commit_statement(name))
        self.transactions.close(name)
        return self

    def rollback(self, name: str | None = None) -> QueryBuilder:
        """Roll back everything (unnamed) or back to the named savepoint.

        Raises:
            TransactionError: If ``name`` is not open.
        """
        self.transactions.ensure_open(name)
        self._run_statement(self.connection.compiler.rollback_statement(name))
        self.transactions.close(name)
        return self

    @property
    def open_transactions(self) -> list[str]:
        return list(self.transactions)

    @contextlib.contextmanager
    def transaction(self, name: str | None = None) -> Iterator[QueryBuilder]:
        """Commit on success, roll back and re-raise on error."""
        self.begin(name)
        try:
            yield self
        except BaseException:
            self.rollback(name)
            raise
        self.commit(name)
