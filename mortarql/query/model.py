"""The mutable, engine-agnostic query model.

``Query`` holds ordered clause lists, a statement kind and a dirty flag.
Every mutator appends to one clause list, marks the model dirty and returns
the model, so calls chain::

    query = (
        Query("sqlite")
        .select("id", "name")
        .from_("users")
        .where("id", 5)
        .limit(1)
    )
    rendered = query.render()
    rendered.sql         # SELECT "id", "name" FROM "users" WHERE "id" = :prepared_value_0 LIMIT 1 OFFSET 0
    rendered.parameters  # {"prepared_value_0": PreparedValue(value=5, escape=True)}

``render()`` is memoized: without an intervening mutation it returns the
same :class:`~mortarql.compile.base.RenderedQuery` object, parameter table
included.  Parameter labels come from a counter owned by the query being
rendered; it never rewinds, so a re-render after a mutation always produces
fresh labels.
"""
from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from mortarql.compile.base import RenderedQuery, SQLCompiler
from mortarql.compile.expression_builder import LiteralBinder, ParameterBinder
from mortarql.compile.registry import resolve_compiler
from mortarql.compile.renderer import QueryRenderer
from mortarql.errors import SchemaError
from mortarql.mapping.mapper import RowMapper
from mortarql.query.clauses import (
    FieldSelector,
    FromItem,
    GroupByItem,
    JoinItem,
    LimitClause,
    OrderByItem,
    PreparedValue,
    SelectItem,
    SetItem,
    WhereCondition,
    WhereInCondition,
)
from mortarql.query.enums import (
    JoinDirection,
    OrderDirection,
    QueryType,
    WhereComparer,
    WhereOperator,
)
from mortarql.schema.metadata import DEFAULT_RESOLVER, SchemaResolver, TableMetadata

logger = logging.getLogger(__name__)

FieldRef = str | FieldSelector


def field_of(
    record_type: type, field_name: str, resolver: SchemaResolver = DEFAULT_RESOLVER
) -> FieldSelector:
    """Return a table-qualified selector for a record field.

    Raises:
        SchemaError: If the record type has no such field.
    """
    table = resolver.resolve(record_type)
    column = table.column_for_field(field_name)
    if column is None:
        raise SchemaError(f"{record_type.__name__} has no field '{field_name}'.")
    return FieldSelector(table=table.name, field=column.column_name)


def _is_record_type(value: Any) -> bool:
    return isinstance(value, type) and issubclass(value, BaseModel)


class Query:
    """One SQL statement under construction.

    Args:
        compiler: Compiler instance or dialect name; defaults to the
            ``"standard"`` compiler.
        resolver: Schema resolver for record types; defaults to the
            process-wide resolver.
    """

    def __init__(
        self,
        compiler: SQLCompiler | str | None = None,
        *,
        resolver: SchemaResolver | None = None,
    ) -> None:
        self.compiler = resolve_compiler(compiler)
        self.resolver = resolver or DEFAULT_RESOLVER
        self.parent_query: Query | None = None
        self._label_counter = 0
        self._rendered: RenderedQuery | None = None
        self._clear()

    def _clear(self) -> None:
        self.query_type = QueryType.SELECT
        self.select_list: list[SelectItem] = []
        self.from_list: list[FromItem] = []
        self.join_list: list[JoinItem] = []
        self.where_list: list[WhereCondition | WhereInCondition] = []
        self.having_list: list[WhereCondition | WhereInCondition] = []
        self.set_list: list[SetItem] = []
        self.group_list: list[GroupByItem] = []
        self.order_list: list[OrderByItem] = []
        self.value_rows: list[dict[str, Any]] = []
        self.column_set: list[str] = []
        self.limit_clause: LimitClause | None = None
        self.create_table: TableMetadata | None = None
        self.raw_sql: str | None = None
        self.raw_parameters: dict[str, Any] = {}
        self.dirty = True

    # ------------------------------------------------------------------
    # Dirty tracking
    # ------------------------------------------------------------------

    def touch(self) -> Query:
        """Mark this query, and every query it is embedded in, as dirty."""
        self.dirty = True
        if self.parent_query is not None:
            self.parent_query.touch()
        return self

    @property
    def root(self) -> Query:
        """The outermost query this one is embedded in."""
        query = self
        while query.parent_query is not None:
            query = query.parent_query
        return query

    def _embed(self, subquery: Query) -> Query:
        if subquery is self:
            raise ValueError("A query cannot be embedded in itself.")
        subquery.parent_query = self
        return subquery

    # ------------------------------------------------------------------
    # Statement kind
    # ------------------------------------------------------------------

    def set_query_type(self, query_type: QueryType) -> Query:
        self.query_type = query_type
        return self.touch()

    def insert(self, table: str | type | None = None) -> Query:
        if table is not None:
            self.into(table)
        return self.set_query_type(QueryType.INSERT)

    def update(self, table: str | type | None = None) -> Query:
        if table is not None:
            self.from_(table)
        return self.set_query_type(QueryType.UPDATE)

    def delete(self, table: str | type | None = None) -> Query:
        if table is not None:
            self.from_(table)
        return self.set_query_type(QueryType.DELETE)

    def count(self) -> Query:
        return self.set_query_type(QueryType.COUNT)

    def create(self, record_type: type) -> Query:
        """Turn this query into ``CREATE TABLE`` for ``record_type``.

        Raises:
            UnmappedTypeError: If a field has no column data kind.
        """
        self.create_table = self.resolver.resolve(record_type)
        return self.set_query_type(QueryType.CREATE)

    def raw(self, sql: str, parameters: Mapping[str, Any] | None = None) -> Query:
        """Use a hand-written statement.

        ``parameters`` are passed to the driver as-is, so ``sql`` must use
        the driver's own placeholder style.
        """
        self.raw_sql = sql
        self.raw_parameters = dict(parameters or {})
        return self.set_query_type(QueryType.RAW)

    def reset(self) -> Query:
        """Drop every clause and return to an empty SELECT."""
        self._clear()
        return self.touch()

    # ------------------------------------------------------------------
    # SELECT / FROM / JOIN
    # ------------------------------------------------------------------

    def select(self, *fields: FieldRef | type, escape: bool = True) -> Query:
        """Add columns to the select list and make this a SELECT.

        Each field may be a column name, ``"table.column"``, a
        :class:`FieldSelector`, or a record type (all of its columns).
        """
        for field in fields:
            if _is_record_type(field):
                table = self.resolver.resolve(field)
                self.select_list.extend(
                    SelectItem(field=FieldSelector(table=table.name, field=c.column_name))
                    for c in table.columns
                )
            else:
                self.select_list.append(
                    SelectItem(field=FieldSelector.coerce(field, escape=escape))
                )
        return self.set_query_type(QueryType.SELECT)

    def select_as(self, field: FieldRef, alias: str, escape: bool = True) -> Query:
        self.select_list.append(
            SelectItem(field=FieldSelector.coerce(field, escape=escape), alias=alias)
        )
        return self.set_query_type(QueryType.SELECT)

    def select_subquery(self, subquery: Query, alias: str) -> Query:
        self.select_list.append(SelectItem(subquery=self._embed(subquery), alias=alias))
        return self.touch()

    def from_(
        self,
        source: str | type | Query,
        alias: str | None = None,
        escape: bool = True,
    ) -> Query:
        """Add a table, a record type's table, or a subquery to FROM."""
        if isinstance(source, Query):
            self.from_list.append(FromItem(subquery=self._embed(source), alias=alias))
        elif _is_record_type(source):
            table = self.resolver.resolve(source)
            self.from_list.append(FromItem(table=table.name, alias=alias))
        else:
            self.from_list.append(FromItem(table=source, alias=alias, escape=escape))
        return self.touch()

    def into(self, table: str | type) -> Query:
        """Set the INSERT target table."""
        return self.from_(table)

    def join(
        self,
        table: str | type | Query,
        left: FieldRef,
        right: FieldRef,
        comparer: WhereComparer = WhereComparer.EQUALS,
        direction: JoinDirection = JoinDirection.NONE,
        alias: str | None = None,
    ) -> Query:
        """Join ``table`` on ``left <comparer> right``."""
        condition = WhereCondition(
            field=FieldSelector.coerce(left),
            value_field=FieldSelector.coerce(right),
            comparer=comparer,
        )
        return self.join_on(table, [condition], direction=direction, alias=alias)

    def join_on(
        self,
        table: str | type | Query,
        conditions: Iterable[WhereCondition],
        direction: JoinDirection = JoinDirection.NONE,
        alias: str | None = None,
    ) -> Query:
        source: dict[str, Any]
        if isinstance(table, Query):
            source = {"subquery": self._embed(table)}
        elif _is_record_type(table):
            source = {"table": self.resolver.resolve(table).name}
        else:
            source = {"table": table}
        self.join_list.append(
            JoinItem(
                **source,
                alias=alias,
                conditions=list(conditions),
                direction=direction,
            )
        )
        return self.touch()

    # ------------------------------------------------------------------
    # WHERE / HAVING
    # ------------------------------------------------------------------

    def _condition(
        self,
        field: FieldRef,
        value: Any,
        comparer: WhereComparer,
        operator: WhereOperator,
        escape: bool,
    ) -> WhereCondition:
        if isinstance(value, Query):
            return WhereCondition(
                field=FieldSelector.coerce(field),
                subquery=self._embed(value),
                comparer=comparer,
                operator=operator,
            )
        return WhereCondition(
            field=FieldSelector.coerce(field),
            value=value,
            comparer=comparer,
            operator=operator,
            escape=escape,
        )

    def where(
        self,
        field: FieldRef,
        value: Any = None,
        comparer: WhereComparer = WhereComparer.EQUALS,
        operator: WhereOperator = WhereOperator.AND,
        escape: bool = True,
    ) -> Query:
        """Add ``field <comparer> value``.

        ``value`` may be a literal (bound as a parameter), ``None`` (renders
        ``IS NULL`` / ``IS NOT NULL`` for equality comparers) or a query.
        """
        self.where_list.append(self._condition(field, value, comparer, operator, escape))
        return self.touch()

    def or_where(
        self,
        field: FieldRef,
        value: Any = None,
        comparer: WhereComparer = WhereComparer.EQUALS,
        escape: bool = True,
    ) -> Query:
        return self.where(field, value, comparer, WhereOperator.OR, escape)

    def where_field(
        self,
        left: FieldRef,
        right: FieldRef,
        comparer: WhereComparer = WhereComparer.EQUALS,
        operator: WhereOperator = WhereOperator.AND,
    ) -> Query:
        """Compare two columns."""
        self.where_list.append(
            WhereCondition(
                field=FieldSelector.coerce(left),
                value_field=FieldSelector.coerce(right),
                comparer=comparer,
                operator=operator,
            )
        )
        return self.touch()

    def where_in(
        self,
        field: FieldRef,
        values: Iterable[Any] | Query,
        negate: bool = False,
        operator: WhereOperator = WhereOperator.AND,
        escape: bool = True,
    ) -> Query:
        if isinstance(values, Query):
            condition = WhereInCondition(
                field=FieldSelector.coerce(field),
                subquery=self._embed(values),
                negate=negate,
                operator=operator,
            )
        else:
            condition = WhereInCondition(
                field=FieldSelector.coerce(field),
                values=list(values),
                negate=negate,
                operator=operator,
                escape=escape,
            )
        self.where_list.append(condition)
        return self.touch()

    def where_not_in(
        self,
        field: FieldRef,
        values: Iterable[Any] | Query,
        operator: WhereOperator = WhereOperator.AND,
    ) -> Query:
        return self.where_in(field, values, negate=True, operator=operator)

    def where_like(self, field: FieldRef, value: str, escape: bool = True) -> Query:
        return self.where(field, value, WhereComparer.LIKE, escape=escape)

    def where_like_left(self, field: FieldRef, value: str) -> Query:
        """``field LIKE '%value'`` (ends with)."""
        return self.where(field, f"%{value.lstrip('%')}", WhereComparer.LIKE_LEFT)

    def where_like_right(self, field: FieldRef, value: str) -> Query:
        """``field LIKE 'value%'`` (starts with)."""
        return self.where(field, f"{value.rstrip('%')}%", WhereComparer.LIKE_RIGHT)

    def having(
        self,
        field: FieldRef,
        value: Any = None,
        comparer: WhereComparer = WhereComparer.EQUALS,
        operator: WhereOperator = WhereOperator.AND,
        escape: bool = True,
    ) -> Query:
        self.having_list.append(self._condition(field, value, comparer, operator, escape))
        return self.touch()

    # ------------------------------------------------------------------
    # SET / VALUES
    # ------------------------------------------------------------------

    def set(self, field: FieldRef, value: Any = None, escape: bool = True) -> Query:
        self.set_list.append(
            SetItem(field=FieldSelector.coerce(field), value=value, escape=escape)
        )
        return self.touch()

    def set_field(self, field: FieldRef, other: FieldRef) -> Query:
        """``SET field = other`` (column to column)."""
        self.set_list.append(
            SetItem(field=FieldSelector.coerce(field), value_field=FieldSelector.coerce(other))
        )
        return self.touch()

    def set_values(self, values: Mapping[str, Any]) -> Query:
        for field, value in values.items():
            self.set_list.append(SetItem(field=FieldSelector.coerce(field), value=value))
        return self.touch()

    def value(self, row: Mapping[str, Any] | BaseModel) -> Query:
        """Append one INSERT row.

        A record is converted through its table metadata; when no target
        table has been set, the record's table becomes the target.
        """
        if isinstance(row, BaseModel):
            if not self.from_list:
                self.from_(type(row))
            row = RowMapper(self.resolver).to_columns(row)
        values = dict(row)
        self.value_rows.append(values)
        for column in values:
            if column not in self.column_set:
                self.column_set.append(column)
        return self.touch()

    def values(self, rows: Iterable[Mapping[str, Any] | BaseModel]) -> Query:
        for row in rows:
            self.value(row)
        return self

    # ------------------------------------------------------------------
    # GROUP BY / ORDER BY / LIMIT
    # ------------------------------------------------------------------

    def group_by(self, field: FieldRef, table: str | None = None) -> Query:
        selector = FieldSelector.coerce(field)
        if table is not None:
            selector = selector.model_copy(update={"table": table})
        self.group_list.append(GroupByItem(field=selector))
        return self.touch()

    def order_by(
        self,
        field: FieldRef,
        direction: OrderDirection = OrderDirection.ASC,
        table: str | None = None,
    ) -> Query:
        selector = FieldSelector.coerce(field)
        if table is not None:
            selector = selector.model_copy(update={"table": table})
        self.order_list.append(OrderByItem(field=selector, direction=direction))
        return self.touch()

    def limit(self, count: int, offset: int = 0) -> Query:
        self.limit_clause = LimitClause(count=count, offset=offset)
        return self.touch()

    def with_compiler(self, compiler: SQLCompiler | str) -> Query:
        self.compiler = resolve_compiler(compiler)
        return self.touch()

    def build(self, fn: Callable[[Query], Any]) -> Query:
        """Apply ``fn`` to this query and return the query."""
        fn(self)
        return self

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _next_label(self) -> str:
        label = f"{self.compiler.parameter_prefix}{self._label_counter}"
        self._label_counter += 1
        return label

    def render(self) -> RenderedQuery:
        """Render the display and parameterized forms of this statement.

        Recomputes only when the query is dirty or was never rendered;
        otherwise returns the previous result unchanged.

        Raises:
            UnsupportedClauseError: If the dialect lacks a needed clause.
            CompilationError: If the clauses cannot form a statement.
        """
        if not self.dirty and self._rendered is not None:
            return self._rendered

        if self.query_type is QueryType.RAW:
            sql = self.raw_sql or ""
            rendered = RenderedQuery(
                display=sql,
                sql=sql,
                parameters={k: PreparedValue(value=v) for k, v in self.raw_parameters.items()},
                dialect=self.compiler.dialect_name,
            )
        else:
            renderer = QueryRenderer(self.compiler)
            parameters: dict[str, PreparedValue] = {}
            sql = renderer.render(
                self, ParameterBinder(self.compiler, parameters, self._next_label)
            )
            display = renderer.render(self, LiteralBinder(self.compiler))
            rendered = RenderedQuery(
                display=display,
                sql=sql,
                parameters=parameters,
                dialect=self.compiler.dialect_name,
            )

        self._rendered = rendered
        self.dirty = False
        logger.debug("Rendered %s query: %s", self.query_type.value, rendered.display)
        return rendered

    def render_parameterized(self) -> str:
        return self.render().sql

    def render_display(self) -> str:
        return self.render().display

    @property
    def rendered_display(self) -> str | None:
        return self._rendered.display if self._rendered else None

    @property
    def rendered_parameterized(self) -> str | None:
        return self._rendered.sql if self._rendered else None

    @property
    def parameters(self) -> dict[str, PreparedValue]:
        """The parameter table of the last render (empty before any render)."""
        return self._rendered.parameters if self._rendered else {}

    # ------------------------------------------------------------------
    # Copying
    # ------------------------------------------------------------------

    def clone(self) -> Query:
        """Return an independent deep copy detached from any parent query."""
        memo: dict[int, Any] = {}
        if self.parent_query is not None:
            memo[id(self.parent_query)] = None
        return copy.deepcopy(self, memo)

    def __deepcopy__(self, memo: dict[int, Any]) -> Query:
        clone = copy.copy(self)
        memo[id(self)] = clone
        for name, value in vars(self).items():
            # Compilers and resolvers are shared, not copied.
            if name in ("compiler", "resolver"):
                continue
            setattr(clone, name, copy.deepcopy(value, memo))
        return clone

    def __str__(self) -> str:
        return self.render().display

    def __repr__(self) -> str:
        return f"Query(type={self.query_type.value}, dialect={self.compiler.dialect_name!r})"
