"""mortarQL query model: statement kinds, clause entities and the Query builder."""
from mortarql.query.clauses import (
    FieldSelector,
    FromItem,
    GroupByItem,
    JoinItem,
    LimitClause,
    OrderByItem,
    PreparedValue,
    SelectItem,
    SetItem,
    WhereCondition,
    WhereInCondition,
)
from mortarql.query.enums import (
    JoinDirection,
    OrderDirection,
    QueryType,
    WhereComparer,
    WhereOperator,
)
from mortarql.query.model import Query, field_of

__all__ = [
    "FieldSelector",
    "FromItem",
    "GroupByItem",
    "JoinItem",
    "LimitClause",
    "OrderByItem",
    "PreparedValue",
    "SelectItem",
    "SetItem",
    "WhereCondition",
    "WhereInCondition",
    "JoinDirection",
    "OrderDirection",
    "QueryType",
    "WhereComparer",
    "WhereOperator",
    "Query",
    "field_of",
]
