"""Tagged cell values and value conversions shared by reads and writes.

Result rows are carried as :class:`Cell` values tagged with one of a small,
closed set of :class:`ValueKind` primitives.  Enums cross the database
boundary by *label*: a string-valued member uses its value, any other member
its name.  Ordinals are never written or read.
"""
from __future__ import annotations

import datetime as dt
import json
import uuid
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from mortarql.errors import MappingError


class ValueKind(str, Enum):
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    TEXT = "TEXT"
    BINARY = "BINARY"
    TIMESTAMP = "TIMESTAMP"
    BOOLEAN = "BOOLEAN"
    NULL = "NULL"


@dataclass(frozen=True)
class Cell:
    """One result cell.

    Attributes:
        kind: The primitive kind of ``value``.
        value: The driver value, normalized for its kind (``bytes`` for
            binary data, ``str`` for UUIDs and JSON documents).
    """

    kind: ValueKind
    value: Any = None

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    @classmethod
    def of(cls, value: Any) -> Cell:
        """Classify a raw driver value.

        Raises:
            MappingError: If the value is of no known primitive kind.
        """
        if value is None:
            return NULL_CELL
        if isinstance(value, bool):
            return cls(ValueKind.BOOLEAN, value)
        if isinstance(value, int):
            return cls(ValueKind.INTEGER, value)
        if isinstance(value, (float, Decimal)):
            return cls(ValueKind.FLOAT, value)
        if isinstance(value, str):
            return cls(ValueKind.TEXT, value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls(ValueKind.BINARY, bytes(value))
        if isinstance(value, (dt.datetime, dt.date, dt.time, dt.timedelta)):
            return cls(ValueKind.TIMESTAMP, value)
        if isinstance(value, uuid.UUID):
            return cls(ValueKind.TEXT, str(value))
        if isinstance(value, (dict, list)):
            return cls(ValueKind.TEXT, json.dumps(value))
        raise MappingError(f"Unsupported driver value of type {type(value).__name__}.")


NULL_CELL = Cell(ValueKind.NULL)


def enum_label(member: Enum) -> str:
    """Return the external label of an enum member."""
    if isinstance(member.value, str):
        return member.value
    return member.name


def enum_from_label(enum_type: type[Enum], label: Any) -> Enum:
    """Resolve an enum member from its external label.

    Matches the label first, then the member name case-insensitively.

    Raises:
        MappingError: If no member carries the label.
    """
    if isinstance(label, enum_type):
        return label
    text = str(label)
    for member in enum_type:
        if enum_label(member) == text:
            return member
    lowered = text.lower()
    for member in enum_type:
        if member.name.lower() == lowered:
            return member
    raise MappingError(
        f"'{text}' is not a label of {enum_type.__name__}.",
        record_type=enum_type,
    )


def to_db_value(value: Any) -> Any:
    """Convert a record value to its write-side representation."""
    if isinstance(value, Enum):
        return enum_label(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value
