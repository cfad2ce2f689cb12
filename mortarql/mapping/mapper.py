"""Row ↔ record conversion.

``RowMapper.map_row`` reads a result row into a pydantic record using the
record type's table metadata: each field reads the column named by its
``Column(name=...)`` marker (else the field name).  Enum fields are matched
by label, then by pydantic's own enum validation.  A missing or NULL cell
yields the field default, else ``None`` for optional fields, else the zero
value of the column kind.  Everything else is left to pydantic validation,
which coerces ISO timestamps, 0/1 booleans and numeric strings.

``RowMapper.to_columns`` is the write-side inverse used for INSERT rows.
"""
from __future__ import annotations

import datetime as dt
import logging
import uuid
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from mortarql.errors import MappingError
from mortarql.mapping.row import Row
from mortarql.mapping.values import Cell, enum_from_label, to_db_value
from mortarql.schema.metadata import DEFAULT_RESOLVER, ColumnMetadata, SchemaResolver
from mortarql.schema.types import ColumnDataType

if TYPE_CHECKING:
    from mortarql.tracking.tracker import ChangeTracker

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

_ZERO_VALUES: dict[ColumnDataType, Any] = {
    ColumnDataType.BOOLEAN: False,
    ColumnDataType.DECIMAL: Decimal(0),
    ColumnDataType.FLOAT: 0.0,
    ColumnDataType.DOUBLE: 0.0,
    ColumnDataType.TEXT: "",
    ColumnDataType.CHAR: "",
    ColumnDataType.VARCHAR: "",
    ColumnDataType.JSON: "",
    ColumnDataType.XML: "",
    ColumnDataType.DATE: dt.date.min,
    ColumnDataType.DATETIME: dt.datetime.min,
    ColumnDataType.TIMESTAMP: dt.datetime.min,
    ColumnDataType.BINARY: b"",
    ColumnDataType.GUID: uuid.UUID(int=0),
}


class RowMapper:
    """Maps result rows to records and records to column dicts.

    Args:
        resolver: Schema resolver for record types.
        tracker: When given, every mapped record is tracked for diff-based
            updates.
    """

    def __init__(
        self,
        resolver: SchemaResolver | None = None,
        tracker: ChangeTracker | None = None,
    ) -> None:
        self.resolver = resolver or DEFAULT_RESOLVER
        self.tracker = tracker

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def map_row(self, row: Row | Mapping[str, Any], record_type: type[RecordT]) -> RecordT:
        """Build a ``record_type`` instance from one result row.

        Raises:
            MappingError: If a cell cannot be converted to its field type.
        """
        if not isinstance(row, Row):
            row = Row.from_mapping(row)
        table = self.resolver.resolve(record_type)
        data: dict[str, Any] = {}
        for column in table.columns:
            cell = row.get(column.column_name)
            if cell is None or cell.is_null:
                data[column.field_name] = self._empty_value(record_type, column)
            else:
                data[column.field_name] = self._convert(cell, column, record_type)
        try:
            record = record_type.model_validate(data)
        except ValidationError as exc:
            raise MappingError(
                f"Row does not fit {record_type.__name__}: {exc}",
                record_type=record_type,
            ) from exc
        if self.tracker is not None:
            self.tracker.track(record)
        return record

    def map_tuple(
        self, row: Row | Mapping[str, Any], record_types: Sequence[type[BaseModel]]
    ) -> tuple[BaseModel, ...]:
        """Map the same row into several record types (joined results)."""
        return tuple(self.map_row(row, record_type) for record_type in record_types)

    def _convert(self, cell: Cell, column: ColumnMetadata, record_type: type) -> Any:
        if column.enum_type is not None:
            try:
                return enum_from_label(column.enum_type, cell.value)
            except MappingError as exc:
                miss = exc
            # Unknown label: let pydantic try the raw value (ordinals, member values).
            try:
                return TypeAdapter(column.enum_type).validate_python(cell.value)
            except ValidationError:
                raise MappingError(
                    str(miss), record_type=record_type, column=column.column_name
                ) from miss
        return cell.value

    @staticmethod
    def _empty_value(record_type: type[BaseModel], column: ColumnMetadata) -> Any:
        field_info = record_type.model_fields[column.field_name]
        if not field_info.is_required():
            return field_info.get_default(call_default_factory=True)
        if column.nullable:
            return None
        if column.enum_type is not None:
            return next(iter(column.enum_type))
        if column.data_type is ColumnDataType.TIME:
            if column.annotation is dt.timedelta:
                return dt.timedelta(0)
            return dt.time.min
        return _ZERO_VALUES.get(column.data_type, 0)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def to_columns(self, record: BaseModel, skip_generated: bool = True) -> dict[str, Any]:
        """Return the record's column → write value mapping.

        With ``skip_generated``, a ``None`` in a NOT NULL primary-key or
        auto-increment column is left out so the database assigns it.
        Mixing such rows with rows that carry explicit keys in one
        multi-row INSERT is not supported: the omitted column is then bound
        as NULL for those rows.
        """
        table = self.resolver.resolve(type(record))
        columns: dict[str, Any] = {}
        for column in table.columns:
            value = getattr(record, column.field_name)
            generated = column.auto_increment or (column.primary_key and column.not_null)
            if skip_generated and generated and value is None:
                continue
            columns[column.column_name] = to_db_value(value)
        return columns
