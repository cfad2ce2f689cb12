"""Declarative table and column markers for pydantic record types.

Usage::

    from typing import Annotated

    @table("users")
    class User(BaseModel):
        id: Annotated[int | None, Column(primary_key=True, auto_increment=True)] = None
        name: Annotated[str, Column(length=120, not_null=True)]
        email: Annotated[str, Column(name="email_address", unique=True)]
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from mortarql.schema.types import ColumnDataType

TABLE_ATTRIBUTE = "__mortarql_table__"

RecordT = TypeVar("RecordT", bound=type)


@dataclass(frozen=True)
class Column:
    """Column metadata attached to a record field via ``typing.Annotated``.

    Attributes:
        name: Database column name; defaults to the field name.
        data_type: Explicit column data kind; inferred from the annotation
            when omitted.
        length: Character length (``VARCHAR(n)``) or binary size.
        precision: Numeric precision for ``DECIMAL``.
        scale: Numeric scale for ``DECIMAL``.
        unsigned: Unsigned integer column (engines that support it).
        not_null: Emit ``NOT NULL``.
        primary_key: Part of the primary key.
        unique: Emit ``UNIQUE``.
        auto_increment: Value is generated by the database.
        default: Default value as raw SQL text.
        comment: Column comment (engines that support it).
    """

    name: str | None = None
    data_type: ColumnDataType | None = None
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


@dataclass(frozen=True)
class TableOptions:
    name: str
    temporary: bool = False
    if_not_exists: bool = False


def table(
    name: str | None = None,
    *,
    temporary: bool = False,
    if_not_exists: bool = False,
) -> Callable[[RecordT], RecordT]:
    """Class decorator naming the table a record type maps to.

    Args:
        name: Table name; defaults to the class name.
        temporary: Render ``CREATE TEMPORARY TABLE``.
        if_not_exists: Render ``CREATE TABLE IF NOT EXISTS``.
    """

    def decorator(record_type: RecordT) -> RecordT:
        options = TableOptions(
            name=name or record_type.__name__,
            temporary=temporary,
            if_not_exists=if_not_exists,
        )
        setattr(record_type, TABLE_ATTRIBUTE, options)
        return record_type

    return decorator


def table_options(record_type: type) -> TableOptions:
    # Looked up in the class's own namespace so subclasses do not inherit
    # the parent's table name.
    options = vars(record_type).get(TABLE_ATTRIBUTE)
    if options is None:
        return TableOptions(name=record_type.__name__)
    return options
