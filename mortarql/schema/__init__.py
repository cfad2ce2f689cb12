"""mortarQL schema layer: declarative markers, column kinds, resolved metadata."""
from mortarql.schema.declarative import Column, TableOptions, table
from mortarql.schema.metadata import (
    DEFAULT_RESOLVER,
    ColumnMetadata,
    SchemaResolver,
    TableMetadata,
)
from mortarql.schema.types import ColumnDataType, data_type_for

__all__ = [
    "Column",
    "TableOptions",
    "table",
    "DEFAULT_RESOLVER",
    "ColumnMetadata",
    "SchemaResolver",
    "TableMetadata",
    "ColumnDataType",
    "data_type_for",
]
