"""SQLite dialect compiler."""
from __future__ import annotations

from mortarql.compile.standard import StandardCompiler
from mortarql.schema.metadata import ColumnMetadata
from mortarql.schema.types import ColumnDataType

_INTEGER_TYPES = {
    ColumnDataType.INT,
    ColumnDataType.INT16,
    ColumnDataType.INT32,
    ColumnDataType.INT64,
    ColumnDataType.UINT,
    ColumnDataType.UINT16,
    ColumnDataType.UINT32,
    ColumnDataType.UINT64,
}


class SQLiteCompiler(StandardCompiler):
    """Compiles query models to SQLite-flavoured parameterized SQL.

    Parameter style: ``:name`` – compatible with Python's built-in
    ``sqlite3`` named-parameter execution (``cursor.execute(sql, dict)``).

    Note: SQLite only honours ``AUTOINCREMENT`` on an
    ``INTEGER PRIMARY KEY`` column, so a single auto-increment key is
    declared inline rather than in a table-level constraint.
    """

    type_names = {
        **StandardCompiler.type_names,
        ColumnDataType.BOOLEAN: "INTEGER",
        ColumnDataType.DECIMAL: "NUMERIC",
        ColumnDataType.DOUBLE: "REAL",
        ColumnDataType.DATETIME: "TEXT",
        ColumnDataType.TIMESTAMP: "TEXT",
        ColumnDataType.DATE: "TEXT",
        ColumnDataType.TIME: "TEXT",
        ColumnDataType.GUID: "TEXT",
        ColumnDataType.ENUM: "TEXT",
        **{t: "INTEGER" for t in _INTEGER_TYPES},
    }

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    def boolean_literal(self, value: bool) -> str:
        return "1" if value else "0"

    def column_type(self, column: ColumnMetadata) -> str:
        if column.data_type in (
            ColumnDataType.GUID,
            ColumnDataType.ENUM,
            ColumnDataType.DECIMAL,
        ):
            return self.type_names[column.data_type]
        return super().column_type(column)

    def column_definition(self, column: ColumnMetadata) -> str:
        if column.primary_key and column.auto_increment:
            return f"{self.quote_identifier(column.column_name)} INTEGER PRIMARY KEY AUTOINCREMENT"
        return super().column_definition(column)

    def auto_increment_sql(self, column: ColumnMetadata) -> str:
        return ""

    def primary_key_inline(self, primary: list[ColumnMetadata]) -> bool:
        return len(primary) == 1 and primary[0].auto_increment
