"""Resolved table metadata and the schema resolver.

The resolver turns a declarative pydantic record type into a
:class:`TableMetadata` once and caches it; every component that needs table
or column names (query model, row mapper, change tracker, DDL renderer)
goes through a resolver handle.
"""
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mortarql.errors import SchemaError
from mortarql.schema.declarative import Column, table_options
from mortarql.schema.types import (
    ColumnDataType,
    data_type_for,
    enum_type_of,
    unwrap_optional,
)

logger = logging.getLogger(__name__)


class ColumnMetadata(BaseModel):
    """Metadata for one mapped column.

    Attributes:
        field_name: Attribute name on the record type.
        column_name: Database column name.
        data_type: Column data kind.
        annotation: The record field annotation.
        nullable: Whether the annotation admits ``None``.
        enum_type: Enum class for ``ENUM`` columns.
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    field_name: str
    column_name: str
    data_type: ColumnDataType
    annotation: Any = None
    nullable: bool = False
    enum_type: type[Enum] | None = None
    length: int | None = None
    precision: int | None = None
    scale: int | None = None
    unsigned: bool = False
    not_null: bool = False
    primary_key: bool = False
    unique: bool = False
    auto_increment: bool = False
    default: str | None = None
    comment: str | None = None


class TableMetadata(BaseModel):
    """Metadata for one record type.

    Attributes:
        name: Table name.
        record_type: The pydantic record class.
        columns: Mapped columns in field declaration order.
        key_column: Column name identifying a row: the single primary-key
            column, else the single unique column, else ``None``.
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    name: str
    record_type: type
    columns: list[ColumnMetadata] = Field(default_factory=list)
    key_column: str | None = None
    temporary: bool = False
    if_not_exists: bool = False

    @property
    def column_names(self) -> list[str]:
        return [c.column_name for c in self.columns]

    @property
    def key(self) -> ColumnMetadata | None:
        if self.key_column is None:
            return None
        return self.column(self.key_column)

    def column(self, column_name: str) -> ColumnMetadata | None:
        """Returns the column with the given database name, or ``None``."""
        for column in self.columns:
            if column.column_name == column_name:
                return column
        return None

    def column_for_field(self, field_name: str) -> ColumnMetadata | None:
        """Returns the column mapped from a record field, or ``None``."""
        for column in self.columns:
            if column.field_name == field_name:
                return column
        return None


class SchemaResolver:
    """Resolves and caches :class:`TableMetadata` per record type.

    Thread-safe: the cache is guarded by a lock, and metadata is built at
    most once per type.
    """

    def __init__(self) -> None:
        self._cache: dict[type, TableMetadata] = {}
        self._lock = threading.Lock()

    def resolve(self, record_type: type) -> TableMetadata:
        """Return the table metadata for ``record_type``.

        Raises:
            SchemaError: If ``record_type`` is not a pydantic model class.
            UnmappedTypeError: If a field type has no column data kind.
        """
        with self._lock:
            cached = self._cache.get(record_type)
            if cached is None:
                cached = self._build(record_type)
                self._cache[record_type] = cached
            return cached

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def _build(self, record_type: type) -> TableMetadata:
        if not (isinstance(record_type, type) and issubclass(record_type, BaseModel)):
            raise SchemaError(f"{record_type!r} is not a pydantic record type.")

        options = table_options(record_type)
        columns = [
            _column_metadata(field_name, field_info)
            for field_name, field_info in record_type.model_fields.items()
        ]
        metadata = TableMetadata(
            name=options.name,
            record_type=record_type,
            columns=columns,
            key_column=_key_column(columns),
            temporary=options.temporary,
            if_not_exists=options.if_not_exists,
        )
        logger.debug(
            "Resolved %s -> table %s (key column: %s)",
            record_type.__name__,
            metadata.name,
            metadata.key_column,
        )
        return metadata


def _column_metadata(field_name: str, field_info: Any) -> ColumnMetadata:
    marker = next(
        (m for m in field_info.metadata if isinstance(m, Column)),
        Column(),
    )
    annotation = field_info.annotation
    _, nullable = unwrap_optional(annotation)
    data_type = marker.data_type or data_type_for(annotation, field_name)
    if data_type is ColumnDataType.TEXT and marker.length:
        data_type = ColumnDataType.VARCHAR
    return ColumnMetadata(
        field_name=field_name,
        column_name=marker.name or field_name,
        data_type=data_type,
        annotation=annotation,
        nullable=nullable,
        enum_type=enum_type_of(annotation),
        length=marker.length,
        precision=marker.precision,
        scale=marker.scale,
        unsigned=marker.unsigned,
        not_null=marker.not_null or marker.primary_key,
        primary_key=marker.primary_key,
        unique=marker.unique,
        auto_increment=marker.auto_increment,
        default=marker.default,
        comment=marker.comment,
    )


def _key_column(columns: list[ColumnMetadata]) -> str | None:
    primary = [c for c in columns if c.primary_key]
    if primary:
        # A composite primary key cannot address a row with a single
        # predicate, so such records have no key column.
        return primary[0].column_name if len(primary) == 1 else None
    unique = [c for c in columns if c.unique]
    if len(unique) == 1:
        return unique[0].column_name
    return None


#: Process-wide resolver used when no explicit handle is passed.
DEFAULT_RESOLVER = SchemaResolver()
