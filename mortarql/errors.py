"""Custom exception hierarchy for mortarQL.

All public errors inherit from MortarQLError so callers can catch the base
class for any mortarQL-specific failure.
"""
from __future__ import annotations

from typing import Any


class MortarQLError(Exception):
    """Base exception for all mortarQL errors."""


class CompilationError(MortarQLError):
    """Raised when a query model cannot be rendered to SQL.

    Args:
        message: Human-readable description.
        clause: The clause group that failed (e.g. ``"where"``), if known.
    """

    def __init__(self, message: str, clause: str | None = None) -> None:
        super().__init__(message)
        self.clause = clause


class UnsupportedClauseError(CompilationError):
    """Raised when the active dialect does not implement a clause group.

    Args:
        clause: The clause group name (e.g. ``"create"``).
        dialect: The dialect that lacks the renderer.
    """

    def __init__(self, clause: str, dialect: str) -> None:
        super().__init__(
            f"Clause '{clause}' is not implemented for the '{dialect}' engine.",
            clause=clause,
        )
        self.dialect = dialect


class SchemaError(MortarQLError):
    """Raised when a record type cannot be resolved to table metadata."""


class UnmappedTypeError(SchemaError):
    """Raised when a field type has no known column data kind.

    Args:
        python_type: The offending annotation.
        field: The record field carrying it, if known.
    """

    def __init__(self, python_type: Any, field: str | None = None) -> None:
        where = f" (field '{field}')" if field else ""
        super().__init__(f"No column data type is mapped for {python_type!r}{where}.")
        self.python_type = python_type
        self.field = field


class MappingError(MortarQLError):
    """Raised when a result row cannot be converted into a record.

    Args:
        message: Human-readable description.
        record_type: The target record type.
        column: The column whose value failed conversion, if known.
    """

    def __init__(
        self,
        message: str,
        record_type: type | None = None,
        column: str | None = None,
    ) -> None:
        super().__init__(message)
        self.record_type = record_type
        self.column = column


class ConnectionConfigError(MortarQLError):
    """Raised when a connection is built without a connection string or settings."""


class DatabaseConnectionError(MortarQLError):
    """Raised when the driver cannot open a connection."""


class ExecutionError(MortarQLError):
    """Raised when the driver fails to execute a rendered statement.

    The driver exception is always chained as ``__cause__``.

    Args:
        message: Human-readable description.
        sql: The parameterized SQL that failed.
        params: The bound parameters.
    """

    def __init__(
        self,
        message: str,
        sql: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.sql = sql
        self.params: dict[str, Any] = params or {}


class TransactionError(MortarQLError):
    """Raised when committing or rolling back a transaction that is not open."""
