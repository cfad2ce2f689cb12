"""mortarQL execution layer: the query builder, cursors and transactions."""
from mortarql.execute.builder import QueryBuilder, RecordSpec
from mortarql.execute.cursor import (
    DEFAULT_BATCH_SIZE,
    iterate_by_key,
    iterate_by_offset,
    parse_key,
)
from mortarql.execute.transactions import OUTER_TRANSACTION, TransactionStack

__all__ = [
    "QueryBuilder",
    "RecordSpec",
    "DEFAULT_BATCH_SIZE",
    "iterate_by_key",
    "iterate_by_offset",
    "parse_key",
    "OUTER_TRANSACTION",
    "TransactionStack",
]
