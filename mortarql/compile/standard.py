"""ANSI-flavoured compiler implementing every clause group.

Dialect compilers subclass :class:`StandardCompiler` and override only the
vendor-specific steps (placeholders, quoting, LIMIT syntax, DDL types).
"""
from __future__ import annotations

from typing import Any

from mortarql.compile.base import SQLCompiler
from mortarql.compile.clause_builders import (
    ConditionClauseBuilder,
    CreateTableBuilder,
    DeleteBuilder,
    FromClauseBuilder,
    GroupByBuilder,
    InsertBuilder,
    JoinClauseBuilder,
    OrderByBuilder,
    SelectClauseBuilder,
    UpdateBuilder,
)
from mortarql.compile.context import RenderContext
from mortarql.errors import CompilationError
from mortarql.query.clauses import LimitClause
from mortarql.schema.metadata import ColumnMetadata
from mortarql.schema.types import ColumnDataType


class StandardCompiler(SQLCompiler):
    """Compiles query models to ANSI-style parameterized SQL.

    Parameter style: ``:name``.  Identifiers are double-quoted.  Row limits
    render as ``LIMIT count OFFSET offset``.
    """

    type_names: dict[ColumnDataType, str] = {
        ColumnDataType.BOOLEAN: "BOOLEAN",
        ColumnDataType.INT: "INTEGER",
        ColumnDataType.INT16: "SMALLINT",
        ColumnDataType.INT32: "INTEGER",
        ColumnDataType.INT64: "BIGINT",
        ColumnDataType.UINT: "INTEGER",
        ColumnDataType.UINT16: "SMALLINT",
        ColumnDataType.UINT32: "INTEGER",
        ColumnDataType.UINT64: "BIGINT",
        ColumnDataType.DECIMAL: "DECIMAL",
        ColumnDataType.FLOAT: "REAL",
        ColumnDataType.DOUBLE: "DOUBLE PRECISION",
        ColumnDataType.TEXT: "TEXT",
        ColumnDataType.CHAR: "CHAR",
        ColumnDataType.VARCHAR: "VARCHAR",
        ColumnDataType.ENUM: "VARCHAR",
        ColumnDataType.DATE: "DATE",
        ColumnDataType.DATETIME: "TIMESTAMP",
        ColumnDataType.TIME: "TIME",
        ColumnDataType.TIMESTAMP: "TIMESTAMP",
        ColumnDataType.BINARY: "BLOB",
        ColumnDataType.GUID: "CHAR",
        ColumnDataType.JSON: "TEXT",
        ColumnDataType.XML: "TEXT",
    }

    @property
    def dialect_name(self) -> str:
        return "standard"

    def param_placeholder(self, name: str) -> str:
        return f":{name}"

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace('"', '""')
        return f'"{escaped}"'

    # ------------------------------------------------------------------
    # Clause groups
    # ------------------------------------------------------------------

    def render_select(self, query: Any, ctx: RenderContext) -> str:
        return SelectClauseBuilder(ctx).build(query.select_list)

    def render_count(self, query: Any, ctx: RenderContext) -> str:
        return SelectClauseBuilder(ctx).build_count()

    def render_from(self, query: Any, ctx: RenderContext) -> str:
        return FromClauseBuilder(ctx).build(query.from_list)

    def render_join(self, query: Any, ctx: RenderContext) -> str:
        return JoinClauseBuilder(ctx).build(query.join_list)

    def render_where(self, query: Any, ctx: RenderContext) -> str:
        return ConditionClauseBuilder(ctx, "WHERE").build(query.where_list)

    def render_group(self, query: Any, ctx: RenderContext) -> str:
        return GroupByBuilder(ctx).build(query.group_list)

    def render_having(self, query: Any, ctx: RenderContext) -> str:
        return ConditionClauseBuilder(ctx, "HAVING").build(query.having_list)

    def render_order(self, query: Any, ctx: RenderContext) -> str:
        return OrderByBuilder(ctx).build(query.order_list)

    def render_limit(self, query: Any, ctx: RenderContext) -> str:
        if query.limit_clause is None:
            return ""
        return self.limit_sql(query.limit_clause)

    def render_insert_into(self, query: Any, ctx: RenderContext) -> str:
        return InsertBuilder(ctx).build_into(query)

    def render_insert_values(self, query: Any, ctx: RenderContext) -> str:
        return InsertBuilder(ctx).build_values(query.value_rows, query.column_set)

    def render_update(self, query: Any, ctx: RenderContext) -> str:
        return UpdateBuilder(ctx).build_update(query)

    def render_set(self, query: Any, ctx: RenderContext) -> str:
        return UpdateBuilder(ctx).build_set(query.set_list)

    def render_delete(self, query: Any, ctx: RenderContext) -> str:
        return DeleteBuilder(ctx).build(query)

    def render_create(self, query: Any, ctx: RenderContext) -> str:
        if query.create_table is None:
            raise CompilationError("CREATE needs a record type.", clause="create")
        return CreateTableBuilder(ctx).build(query.create_table)

    # ------------------------------------------------------------------
    # Dialect steps
    # ------------------------------------------------------------------

    def limit_sql(self, limit: LimitClause) -> str:
        return f"LIMIT {limit.count} OFFSET {limit.offset}"

    def column_type(self, column: ColumnMetadata) -> str:
        name = self.type_names[column.data_type]
        if column.data_type in (ColumnDataType.VARCHAR, ColumnDataType.ENUM):
            return f"{name}({column.length or 255})"
        if column.data_type is ColumnDataType.CHAR:
            return f"{name}({column.length or 1})"
        if column.data_type is ColumnDataType.GUID:
            return f"{name}(36)"
        if column.data_type is ColumnDataType.DECIMAL and column.precision:
            return f"{name}({column.precision}, {column.scale or 0})"
        return name

    def column_definition(self, column: ColumnMetadata) -> str:
        parts = [self.quote_identifier(column.column_name), self.column_type(column)]
        if column.not_null:
            parts.append("NOT NULL")
        if column.default is not None:
            parts.append(f"DEFAULT {column.default}")
        if column.auto_increment:
            parts.append(self.auto_increment_sql(column))
        if column.unique and not column.primary_key:
            parts.append("UNIQUE")
        return " ".join(p for p in parts if p)

    def auto_increment_sql(self, column: ColumnMetadata) -> str:
        return "GENERATED BY DEFAULT AS IDENTITY"

    def primary_key_inline(self, primary: list[ColumnMetadata]) -> bool:
        """Whether the column definitions already declare the primary key."""
        return False
