"""Enumerations shared by the query model and the compilers."""
from __future__ import annotations

from enum import Enum


class QueryType(str, Enum):
    """Statement kind; decides which clause groups are rendered."""

    RAW = "RAW"
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    COUNT = "COUNT"
    CREATE = "CREATE"


class WhereComparer(str, Enum):
    """Comparison used by WHERE, HAVING and JOIN conditions.

    ``LIKE_LEFT`` and ``LIKE_RIGHT`` render as ``LIKE`` with the wildcard
    added to the bound value (``%value`` and ``value%`` respectively).
    """

    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    GREATER = "GREATER"
    GREATER_EQUALS = "GREATER_EQUALS"
    LOWER = "LOWER"
    LOWER_EQUALS = "LOWER_EQUALS"
    LIKE = "LIKE"
    LIKE_LEFT = "LIKE_LEFT"
    LIKE_RIGHT = "LIKE_RIGHT"
    NOT_LIKE = "NOT_LIKE"
    IS = "IS"
    IS_NOT = "IS_NOT"
    IN = "IN"
    NOT_IN = "NOT_IN"

    @property
    def sql(self) -> str:
        """The SQL operator keyword or symbol."""
        return _COMPARER_SQL[self]


class WhereOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class JoinDirection(str, Enum):
    NONE = ""
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"
    CROSS = "CROSS"


class OrderDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


_COMPARER_SQL: dict[WhereComparer, str] = {
    WhereComparer.EQUALS: "=",
    WhereComparer.NOT_EQUALS: "<>",
    WhereComparer.GREATER: ">",
    WhereComparer.GREATER_EQUALS: ">=",
    WhereComparer.LOWER: "<",
    WhereComparer.LOWER_EQUALS: "<=",
    WhereComparer.LIKE: "LIKE",
    WhereComparer.LIKE_LEFT: "LIKE",
    WhereComparer.LIKE_RIGHT: "LIKE",
    WhereComparer.NOT_LIKE: "NOT LIKE",
    WhereComparer.IS: "IS",
    WhereComparer.IS_NOT: "IS NOT",
    WhereComparer.IN: "IN",
    WhereComparer.NOT_IN: "NOT IN",
}
