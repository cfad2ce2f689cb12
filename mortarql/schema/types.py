"""Column data kinds and the Python type → column data kind mapping."""
from __future__ import annotations

import datetime as dt
import types
import typing
import uuid
from decimal import Decimal
from enum import Enum
from typing import Any

from mortarql.errors import UnmappedTypeError


class ColumnDataType(str, Enum):
    """Engine-neutral column data kinds; dialects map them to DDL type names."""

    BOOLEAN = "BOOLEAN"
    INT = "INT"
    INT16 = "INT16"
    INT32 = "INT32"
    INT64 = "INT64"
    UINT = "UINT"
    UINT16 = "UINT16"
    UINT32 = "UINT32"
    UINT64 = "UINT64"
    DECIMAL = "DECIMAL"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    TEXT = "TEXT"
    CHAR = "CHAR"
    VARCHAR = "VARCHAR"
    ENUM = "ENUM"
    DATE = "DATE"
    DATETIME = "DATETIME"
    TIME = "TIME"
    TIMESTAMP = "TIMESTAMP"
    BINARY = "BINARY"
    GUID = "GUID"
    JSON = "JSON"
    XML = "XML"


# Checked in order: bool before int, datetime before date.
_SCALAR_TYPES: list[tuple[type, ColumnDataType]] = [
    (bool, ColumnDataType.BOOLEAN),
    (int, ColumnDataType.INT),
    (float, ColumnDataType.DOUBLE),
    (Decimal, ColumnDataType.DECIMAL),
    (str, ColumnDataType.TEXT),
    (dt.datetime, ColumnDataType.DATETIME),
    (dt.date, ColumnDataType.DATE),
    (dt.time, ColumnDataType.TIME),
    (dt.timedelta, ColumnDataType.TIME),
    (uuid.UUID, ColumnDataType.GUID),
    (bytes, ColumnDataType.BINARY),
    (bytearray, ColumnDataType.BINARY),
]


def unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    """Strip ``Optional[...]`` / ``X | None`` from an annotation.

    Returns:
        ``(inner_type, nullable)``.  Unions of several non-None types are
        returned unchanged.
    """
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        nullable = len(args) != len(typing.get_args(annotation))
        if len(args) == 1:
            return args[0], nullable
        return annotation, nullable
    return annotation, False


def enum_type_of(annotation: Any) -> type[Enum] | None:
    inner, _ = unwrap_optional(annotation)
    if typing.get_origin(inner) is None and isinstance(inner, type) and issubclass(inner, Enum):
        return inner
    return None


def data_type_for(annotation: Any, field: str | None = None) -> ColumnDataType:
    """Map a field annotation to its column data kind.

    Args:
        annotation: The (possibly optional) field annotation.
        field: Field name, used in the error message.

    Returns:
        The matching :class:`ColumnDataType`.

    Raises:
        UnmappedTypeError: If the type has no known column data kind.
    """
    inner, _ = unwrap_optional(annotation)
    origin = typing.get_origin(inner)
    if isinstance(inner, type) and origin is None and issubclass(inner, Enum):
        return ColumnDataType.ENUM
    if origin in (dict, list) or inner in (dict, list):
        return ColumnDataType.JSON
    if isinstance(inner, type) and origin is None:
        for python_type, data_type in _SCALAR_TYPES:
            if issubclass(inner, python_type):
                return data_type
    raise UnmappedTypeError(annotation, field)
