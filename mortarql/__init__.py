"""mortarQL – Engine-agnostic fluent SQL for typed Python records.

Describe Queries. Don't Concatenate Them.

Public API
----------
``Query``
    Fluent, engine-agnostic query model.  ``render()`` returns a display
    string with literals inlined and a parameterized string with its
    parameter table.

``QueryBuilder``
    Executes a query on a connection and maps rows to pydantic records,
    with key-based cursors, change-tracked updates and transactions.

``ConnectionManager``
    One connection and one builder per worker thread, with automatic
    connection renewal.

Extensibility
-------------
New engines are added by registering a compiler::

    from mortarql.compile.registry import CompilerFactory
    from mortarql.compile.standard import StandardCompiler

    @CompilerFactory.register("oracle")
    class OracleCompiler(StandardCompiler):
        ...

Queries and connections pick it up by dialect name afterwards.
"""

from __future__ import annotations

from mortarql.errors import (
    CompilationError,
    ConnectionConfigError,
    DatabaseConnectionError,
    ExecutionError,
    MappingError,
    MortarQLError,
    SchemaError,
    TransactionError,
    UnmappedTypeError,
    UnsupportedClauseError,
)
from mortarql.log import disable_console_logging, enable_console_logging, set_log_level
from mortarql.schema import (
    Column,
    ColumnDataType,
    ColumnMetadata,
    SchemaResolver,
    TableMetadata,
    table,
)
from mortarql.mapping import Cell, Row, RowMapper, ValueKind
from mortarql.query import (
    FieldSelector,
    JoinDirection,
    OrderDirection,
    Query,
    QueryType,
    WhereComparer,
    WhereOperator,
    field_of,
)
from mortarql.compile import (
    CompilerFactory,
    MySQLCompiler,
    PostgresCompiler,
    RenderedQuery,
    SQLCompiler,
    SQLiteCompiler,
    StandardCompiler,
)
from mortarql.tracking import ChangeTracker, TTLCache
from mortarql.execute import QueryBuilder, TransactionStack
from mortarql.connection import (
    Connection,
    ConnectionSettings,
    ExecutionResult,
    SQLAlchemyConnection,
    SQLiteConnection,
)
from mortarql.connection.manager import ConnectionManager

# ---------------------------------------------------------------------------
# Register built-in compilers with CompilerFactory
# ---------------------------------------------------------------------------

CompilerFactory.register_class("standard", StandardCompiler)
CompilerFactory.register_class("sqlite", SQLiteCompiler, aliases=("sqlite3",))
CompilerFactory.register_class("postgres", PostgresCompiler, aliases=("postgresql", "psycopg"))
CompilerFactory.register_class("mysql", MySQLCompiler, aliases=("mariadb",))

__version__ = "0.1.0"

__all__ = [
    # Query model
    "Query",
    "QueryType",
    "WhereComparer",
    "WhereOperator",
    "JoinDirection",
    "OrderDirection",
    "FieldSelector",
    "field_of",
    # Schema
    "table",
    "Column",
    "ColumnDataType",
    "ColumnMetadata",
    "TableMetadata",
    "SchemaResolver",
    # Mapping
    "Cell",
    "Row",
    "RowMapper",
    "ValueKind",
    # Compilation
    "RenderedQuery",
    "SQLCompiler",
    "CompilerFactory",
    "StandardCompiler",
    "SQLiteCompiler",
    "PostgresCompiler",
    "MySQLCompiler",
    # Tracking
    "ChangeTracker",
    "TTLCache",
    # Execution
    "QueryBuilder",
    "TransactionStack",
    # Connections
    "Connection",
    "ConnectionSettings",
    "ExecutionResult",
    "SQLiteConnection",
    "SQLAlchemyConnection",
    "ConnectionManager",
    # Logging
    "set_log_level",
    "enable_console_logging",
    "disable_console_logging",
    # Errors
    "MortarQLError",
    "CompilationError",
    "UnsupportedClauseError",
    "SchemaError",
    "UnmappedTypeError",
    "MappingError",
    "ConnectionConfigError",
    "DatabaseConnectionError",
    "ExecutionError",
    "TransactionError",
]
