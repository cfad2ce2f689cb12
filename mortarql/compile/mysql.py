"""MySQL dialect compiler."""
from __future__ import annotations

from mortarql.compile.standard import StandardCompiler
from mortarql.mapping.values import enum_label
from mortarql.query.clauses import LimitClause
from mortarql.schema.metadata import ColumnMetadata
from mortarql.schema.types import ColumnDataType

_UNSIGNED_TYPES = {
    ColumnDataType.UINT,
    ColumnDataType.UINT16,
    ColumnDataType.UINT32,
    ColumnDataType.UINT64,
}


class MySQLCompiler(StandardCompiler):
    """Compiles query models to MySQL-flavoured parameterized SQL.

    Parameter style: ``%(name)s`` – compatible with ``PyMySQL`` and
    ``mysql-connector-python`` named-parameter execution.

    Identifiers are quoted with backticks (`` ` ``) rather than double-quotes,
    and row limits use ``LIMIT offset, count``.
    """

    type_names = {
        **StandardCompiler.type_names,
        ColumnDataType.BOOLEAN: "TINYINT(1)",
        ColumnDataType.INT: "INT",
        ColumnDataType.INT32: "INT",
        ColumnDataType.UINT: "INT",
        ColumnDataType.UINT32: "INT",
        ColumnDataType.FLOAT: "FLOAT",
        ColumnDataType.DOUBLE: "DOUBLE",
        ColumnDataType.DATETIME: "DATETIME",
        ColumnDataType.JSON: "JSON",
    }

    @property
    def dialect_name(self) -> str:
        return "mysql"

    def param_placeholder(self, name: str) -> str:
        return f"%({name})s"

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace("`", "``")
        return f"`{escaped}`"

    def boolean_literal(self, value: bool) -> str:
        return "1" if value else "0"

    def limit_sql(self, limit: LimitClause) -> str:
        return f"LIMIT {limit.offset}, {limit.count}"

    def column_type(self, column: ColumnMetadata) -> str:
        if column.data_type is ColumnDataType.ENUM and column.enum_type is not None:
            labels = ", ".join(self._quote_string(enum_label(m)) for m in column.enum_type)
            return f"ENUM({labels})"
        name = super().column_type(column)
        if column.unsigned or column.data_type in _UNSIGNED_TYPES:
            return f"{name} UNSIGNED"
        return name

    def column_definition(self, column: ColumnMetadata) -> str:
        sql = super().column_definition(column)
        if column.comment:
            sql += f" COMMENT {self._quote_string(column.comment)}"
        return sql

    def auto_increment_sql(self, column: ColumnMetadata) -> str:
        return "AUTO_INCREMENT"

    def begin_statement(self, name: str | None = None) -> str:
        if name:
            return super().begin_statement(name)
        return "START TRANSACTION"
