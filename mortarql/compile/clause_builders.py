"""Clause-level SQL builders.

Each class handles exactly one clause group.  Builders that can embed a
subquery render it through ``ctx.render_subquery``, which reuses the same
:class:`~mortarql.compile.context.RenderContext` as the outer statement, so
parameter labels are unique across the whole statement.

Classes
-------
SelectClauseBuilder: ``SELECT <items>`` / ``SELECT COUNT(*)``
FromClauseBuilder: ``FROM <table | subquery>, ...``
JoinClauseBuilder: ``[direction] JOIN … ON …``
ConditionClauseBuilder: ``WHERE …`` / ``HAVING …``
GroupByBuilder: ``GROUP BY …``
OrderByBuilder: ``ORDER BY …``
InsertBuilder: ``INSERT INTO t`` and ``(cols) VALUES (…), (…)``
UpdateBuilder: ``UPDATE t`` and ``SET a = …``
DeleteBuilder: ``DELETE FROM t``
CreateTableBuilder: ``CREATE TABLE t (…)``
"""
from __future__ import annotations

from typing import Any

from mortarql.compile.context import RenderContext
from mortarql.compile.expression_builder import ConditionBuilder
from mortarql.errors import CompilationError
from mortarql.query.clauses import (
    FromItem,
    GroupByItem,
    JoinItem,
    OrderByItem,
    SelectItem,
    SetItem,
    WhereCondition,
    WhereInCondition,
)
from mortarql.query.enums import JoinDirection
from mortarql.schema.metadata import ColumnMetadata, TableMetadata


def target_table(query: Any, ctx: RenderContext, clause: str) -> str:
    """Return the quoted table a write statement targets (first FROM entry)."""
    for item in query.from_list:
        if item.table:
            return ctx.compiler.quote_identifier(item.table) if item.escape else item.table
    raise CompilationError(f"A {clause} statement needs a target table.", clause=clause)


class SelectClauseBuilder:
    """Builds the ``SELECT …`` clause."""

    def __init__(self, ctx: RenderContext) -> None:
        self._ctx = ctx

    def build(self, items: list[SelectItem]) -> str:
        if not items:
            return "SELECT *"
        return "SELECT " + ", ".join(self._build_item(item) for item in items)

    def build_count(self) -> str:
        return "SELECT COUNT(*)"

    def _build_item(self, item: SelectItem) -> str:
        quote = self._ctx.compiler.quote_identifier
        if item.subquery is not None:
            sql = f"({self._ctx.render_subquery(item.subquery)})"
        elif item.field is not None:
            sql = self._ctx.compiler.field_sql(item.field)
        else:
            raise CompilationError("SELECT item has no field or subquery.", clause="select")
        if item.alias:
            return f"{sql} AS {quote(item.alias)}"
        return sql


class FromClauseBuilder:
    """Builds the ``FROM <table | subquery>, …`` fragment."""

    def __init__(self, ctx: RenderContext) -> None:
        self._ctx = ctx

    def build(self, items: list[FromItem]) -> str:
        if not items:
            return ""
        return "FROM " + ", ".join(self.build_item(item) for item in items)

    def build_item(self, item: FromItem) -> str:
        quote = self._ctx.compiler.quote_identifier
        if item.subquery is not None:
            sql = f"({self._ctx.render_subquery(item.subquery)})"
            return f"{sql} AS {quote(item.alias or '_sub')}"
        if item.table:
            sql = quote(item.table) if item.escape else item.table
            if item.alias:
                return f"{sql} AS {quote(item.alias)}"
            return sql
        raise CompilationError("FROM item has no table or subquery.", clause="from")


class JoinClauseBuilder:
    """Builds ``[direction] JOIN … ON …`` fragments."""

    def __init__(self, ctx: RenderContext) -> None:
        self._ctx = ctx
        self._conditions = ConditionBuilder(ctx)

    def build(self, joins: list[JoinItem]) -> str:
        return " ".join(self.build_item(join) for join in joins)

    def build_item(self, join: JoinItem) -> str:
        source = FromClauseBuilder(self._ctx).build_item(
            FromItem(
                table=join.table,
                subquery=join.subquery,
                alias=join.alias,
                escape=join.escape,
            )
        )
        keyword = f"{join.direction.value} JOIN" if join.direction.value else "JOIN"
        if join.direction is JoinDirection.CROSS or not join.conditions:
            return f"{keyword} {source}"
        return f"{keyword} {source} ON {self._conditions.build_list(join.conditions)}"


class ConditionClauseBuilder:
    """Builds ``WHERE …`` or ``HAVING …``."""

    def __init__(self, ctx: RenderContext, keyword: str) -> None:
        self._keyword = keyword
        self._conditions = ConditionBuilder(ctx)

    def build(self, conditions: list[WhereCondition | WhereInCondition]) -> str:
        if not conditions:
            return ""
        return f"{self._keyword} {self._conditions.build_list(conditions)}"


class GroupByBuilder:
    def __init__(self, ctx: RenderContext) -> None:
        self._ctx = ctx

    def build(self, items: list[GroupByItem]) -> str:
        if not items:
            return ""
        return "GROUP BY " + ", ".join(self._ctx.compiler.field_sql(i.field) for i in items)


class OrderByBuilder:
    def __init__(self, ctx: RenderContext) -> None:
        self._ctx = ctx

    def build(self, items: list[OrderByItem]) -> str:
        if not items:
            return ""
        parts = [
            f"{self._ctx.compiler.field_sql(item.field)} {item.direction.value}"
            for item in items
        ]
        return "ORDER BY " + ", ".join(parts)


class InsertBuilder:
    """Builds ``INSERT INTO t`` and the ``(cols) VALUES …`` rows.

    Rows are rendered over the union of all columns seen; a row lacking one
    of them binds ``NULL`` in its place.
    """

    def __init__(self, ctx: RenderContext) -> None:
        self._ctx = ctx

    def build_into(self, query: Any) -> str:
        return f"INSERT INTO {target_table(query, self._ctx, 'insert')}"

    def build_values(self, value_rows: list[dict[str, Any]], columns: list[str]) -> str:
        if not value_rows:
            raise CompilationError("INSERT needs at least one value row.", clause="insert_values")
        quote = self._ctx.compiler.quote_identifier
        column_sql = ", ".join(quote(c) for c in columns)
        rows_sql = ", ".join(
            "(" + ", ".join(self._ctx.bind(row.get(c)) for c in columns) + ")"
            for row in value_rows
        )
        return f"({column_sql}) VALUES {rows_sql}"


class UpdateBuilder:
    def __init__(self, ctx: RenderContext) -> None:
        self._ctx = ctx

    def build_update(self, query: Any) -> str:
        return f"UPDATE {target_table(query, self._ctx, 'update')}"

    def build_set(self, items: list[SetItem]) -> str:
        if not items:
            raise CompilationError("UPDATE needs at least one SET entry.", clause="set")
        compiler = self._ctx.compiler
        parts = []
        for item in items:
            if item.value_field is not None:
                value_sql = compiler.field_sql(item.value_field)
            else:
                value_sql = self._ctx.bind(item.value, item.escape)
            parts.append(f"{compiler.field_sql(item.field)} = {value_sql}")
        return "SET " + ", ".join(parts)


class DeleteBuilder:
    def __init__(self, ctx: RenderContext) -> None:
        self._ctx = ctx

    def build(self, query: Any) -> str:
        return f"DELETE FROM {target_table(query, self._ctx, 'delete')}"


class CreateTableBuilder:
    """Builds ``CREATE [TEMPORARY] TABLE [IF NOT EXISTS] t (…)`` from metadata."""

    def __init__(self, ctx: RenderContext) -> None:
        self._ctx = ctx

    def build(self, table: TableMetadata) -> str:
        compiler = self._ctx.compiler
        head = "CREATE TEMPORARY TABLE" if table.temporary else "CREATE TABLE"
        if table.if_not_exists:
            head += " IF NOT EXISTS"
        definitions = [self.build_column(column) for column in table.columns]
        primary = [c for c in table.columns if c.primary_key]
        if primary and not compiler.primary_key_inline(primary):
            names = ", ".join(compiler.quote_identifier(c.column_name) for c in primary)
            definitions.append(f"PRIMARY KEY ({names})")
        return f"{head} {compiler.quote_identifier(table.name)} ({', '.join(definitions)})"

    def build_column(self, column: ColumnMetadata) -> str:
        return self._ctx.compiler.column_definition(column)
