"""Connection abstraction: state machine, execution result and the ABC.

Each concrete connection wraps one driver connection and moves through::

    UNOPENED --connect()--> OPEN --connect(force=True)--> OPEN --disconnect()--> CLOSED

``connected`` is true only in ``OPEN`` with a live driver handle.  Driver
exceptions never escape :meth:`Connection.execute` unwrapped: they are
re-raised as :class:`~mortarql.errors.ExecutionError` with the driver
exception chained.
"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from mortarql.compile.base import SQLCompiler
from mortarql.compile.registry import resolve_compiler
from mortarql.connection.settings import ConnectionSettings
from mortarql.errors import (
    ConnectionConfigError,
    DatabaseConnectionError,
    ExecutionError,
)
from mortarql.mapping.row import Row

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    UNOPENED = "UNOPENED"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


@dataclass
class ExecutionResult:
    """What the driver returned for one statement.

    Attributes:
        rows: Result rows (empty for statements that return none).
        columns: Result column names in order.
        affected_count: Rows affected by INSERT / UPDATE / DELETE.
        last_insert_id: Generated key of the last inserted row, when the
            driver reports one.
    """

    rows: list[Row] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    affected_count: int = 0
    last_insert_id: Any = None


class Connection(ABC):
    """One database connection.

    Args:
        connection_string: Raw connection string (driver specific).
        settings: Structured settings, used when no string is given.
        compiler: Compiler for queries run on this connection; defaults to
            the compiler registered for the connection's dialect.
        clock: Monotonic time source for the connect timestamp.

    Raises:
        ConnectionConfigError: If neither a connection string nor settings
            are given.
    """

    #: Driver exception types wrapped into :class:`ExecutionError`.
    driver_errors: ClassVar[tuple[type[BaseException], ...]] = ()

    def __init__(
        self,
        connection_string: str | None = None,
        settings: ConnectionSettings | None = None,
        *,
        compiler: SQLCompiler | str | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not connection_string and settings is None:
            raise ConnectionConfigError(
                "A connection needs either a connection string or connection settings."
            )
        self.connection_string = connection_string
        self.settings = settings
        self.state = ConnectionState.UNOPENED
        self.connection_timestamp: float | None = None
        self._clock = clock
        self.compiler = resolve_compiler(compiler or self.dialect)

    # ------------------------------------------------------------------
    # Driver hooks
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def dialect(self) -> str:
        """Dialect name used to pick the default compiler."""

    @abstractmethod
    def _open(self) -> None:
        """Open the driver connection."""

    @abstractmethod
    def _close(self) -> None:
        """Close the driver connection."""

    @abstractmethod
    def _is_alive(self) -> bool:
        """Whether the driver handle exists and is usable."""

    @abstractmethod
    def _execute(self, sql: str, params: dict[str, Any]) -> ExecutionResult:
        """Run one statement on the open driver connection."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.OPEN and self._is_alive()

    def connect(self, force: bool = False) -> bool:
        """Open the connection, or reopen it when ``force`` is set.

        Returns:
            ``True`` if a driver connection was (re)opened.

        Raises:
            DatabaseConnectionError: If the driver cannot connect.
        """
        if self.connected and not force:
            return False
        if self.state is ConnectionState.OPEN:
            self.disconnect()
        try:
            self._open()
        except self.driver_errors as exc:
            self.state = ConnectionState.CLOSED
            raise DatabaseConnectionError(f"Could not open {self.dialect} connection: {exc}") from exc
        self.state = ConnectionState.OPEN
        self.connection_timestamp = self._clock()
        logger.debug("Opened %s connection (forced=%s)", self.dialect, force)
        return True

    def disconnect(self) -> None:
        if self.state is not ConnectionState.OPEN:
            return
        try:
            self._close()
        finally:
            self.state = ConnectionState.CLOSED
            logger.debug("Closed %s connection", self.dialect)

    def age(self) -> float | None:
        """Seconds since the last (re)connect, or ``None`` if never opened."""
        if self.connection_timestamp is None:
            return None
        return self._clock() - self.connection_timestamp

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(self, sql: str, params: dict[str, Any] | None = None) -> ExecutionResult:
        """Execute one statement, opening the connection first if needed.

        Raises:
            ExecutionError: If the driver rejects the statement.
        """
        if not self.connected:
            self.connect()
        params = params or {}
        try:
            return self._execute(sql, params)
        except self.driver_errors as exc:
            raise ExecutionError(f"Statement failed: {exc}", sql=sql, params=params) from exc

    def __enter__(self) -> Connection:
        self.connect()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(dialect={self.dialect!r}, state={self.state.value})"
