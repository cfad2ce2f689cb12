"""PostgreSQL dialect compiler."""
from __future__ import annotations

from mortarql.compile.standard import StandardCompiler
from mortarql.schema.metadata import ColumnMetadata
from mortarql.schema.types import ColumnDataType

_SERIAL_TYPES = {
    ColumnDataType.INT16: "SMALLSERIAL",
    ColumnDataType.UINT16: "SMALLSERIAL",
    ColumnDataType.INT64: "BIGSERIAL",
    ColumnDataType.UINT64: "BIGSERIAL",
}


class PostgresCompiler(StandardCompiler):
    """Compiles query models to PostgreSQL-flavoured parameterized SQL.

    Parameter style: ``%(name)s`` – compatible with ``psycopg`` named
    parameter execution.  Auto-increment columns use the ``SERIAL`` family.
    """

    type_names = {
        **StandardCompiler.type_names,
        ColumnDataType.DECIMAL: "NUMERIC",
        ColumnDataType.BINARY: "BYTEA",
        ColumnDataType.GUID: "UUID",
        ColumnDataType.JSON: "JSONB",
        ColumnDataType.XML: "XML",
    }

    @property
    def dialect_name(self) -> str:
        return "postgres"

    def param_placeholder(self, name: str) -> str:
        return f"%({name})s"

    def column_type(self, column: ColumnMetadata) -> str:
        if column.auto_increment:
            return _SERIAL_TYPES.get(column.data_type, "SERIAL")
        if column.data_type is ColumnDataType.GUID:
            return "UUID"
        return super().column_type(column)

    def auto_increment_sql(self, column: ColumnMetadata) -> str:
        return ""
