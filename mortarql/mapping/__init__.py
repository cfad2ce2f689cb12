"""mortarQL row mapping: tagged cells, rows, and the record mapper."""
from mortarql.mapping.mapper import RowMapper
from mortarql.mapping.row import Row
from mortarql.mapping.values import (
    Cell,
    ValueKind,
    enum_from_label,
    enum_label,
    to_db_value,
)

__all__ = [
    "RowMapper",
    "Row",
    "Cell",
    "ValueKind",
    "enum_from_label",
    "enum_label",
    "to_db_value",
]
