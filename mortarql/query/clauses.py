"""Pydantic clause entities held by the query model.

Each entity is a plain data record; the compilers decide how it renders.
Subqueries are stored as :class:`~mortarql.query.model.Query` instances in
``Any``-typed fields so the clause layer does not depend on the model.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mortarql.query.enums import (
    JoinDirection,
    OrderDirection,
    WhereComparer,
    WhereOperator,
)


class _Clause(BaseModel):
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)


class FieldSelector(_Clause):
    """A ``(table?, field, escape)`` reference to a column.

    Attributes:
        field: Column name, or a raw SQL expression when ``escape`` is False.
        table: Optional qualifying table or alias.
        escape: Quote the identifiers when rendering.
    """

    field: str
    table: str | None = None
    escape: bool = True

    @classmethod
    def coerce(cls, value: str | FieldSelector, escape: bool = True) -> FieldSelector:
        """Build a selector from ``"column"`` or ``"table.column"``.

        Raw expressions (``escape=False``) are never split.
        """
        if isinstance(value, FieldSelector):
            return value
        if escape and value.count(".") == 1:
            table, field = value.split(".")
            return cls(table=table, field=field)
        return cls(field=value, escape=escape)


class SelectItem(_Clause):
    field: FieldSelector | None = None
    subquery: Any = None
    alias: str | None = None


class FromItem(_Clause):
    table: str | None = None
    subquery: Any = None
    alias: str | None = None
    escape: bool = True


class WhereCondition(_Clause):
    """One predicate in a WHERE, HAVING or JOIN ON list.

    The right-hand side is exactly one of ``value_field`` (column to column),
    ``subquery`` or ``value`` (bound literal).

    Attributes:
        field: Left-hand column.
        value_field: Right-hand column for column comparisons.
        subquery: Right-hand subquery.
        value: Right-hand literal, bound as a parameter.
        comparer: Comparison operator.
        operator: Boolean operator joining this predicate to the previous one.
        escape: Bind ``value`` as a typed parameter; when False the value is
            inlined verbatim.
    """

    field: FieldSelector
    value_field: FieldSelector | None = None
    subquery: Any = None
    value: Any = None
    comparer: WhereComparer = WhereComparer.EQUALS
    operator: WhereOperator = WhereOperator.AND
    escape: bool = True


class WhereInCondition(_Clause):
    """``field [NOT] IN (values | subquery)``."""

    field: FieldSelector
    values: list[Any] = Field(default_factory=list)
    subquery: Any = None
    negate: bool = False
    operator: WhereOperator = WhereOperator.AND
    escape: bool = True


class JoinItem(_Clause):
    table: str | None = None
    subquery: Any = None
    alias: str | None = None
    conditions: list[WhereCondition] = Field(default_factory=list)
    direction: JoinDirection = JoinDirection.NONE
    escape: bool = True


class SetItem(_Clause):
    """``field = value`` in an UPDATE SET list."""

    field: FieldSelector
    value: Any = None
    value_field: FieldSelector | None = None
    escape: bool = True


class GroupByItem(_Clause):
    field: FieldSelector


class OrderByItem(_Clause):
    field: FieldSelector
    direction: OrderDirection = OrderDirection.ASC


class LimitClause(_Clause):
    count: int = Field(ge=0)
    offset: int = Field(default=0, ge=0)


class PreparedValue(_Clause):
    """A parameter table entry: the bound value and its escape flag."""

    value: Any = None
    escape: bool = True
