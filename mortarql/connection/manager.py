"""Per-worker connection and builder lifecycle.

``ConnectionManager`` hands every worker thread its own connection and its
own :class:`~mortarql.execute.builder.QueryBuilder`.  The maps from thread
id to connection / builder are the only state shared between workers; the
lock guards map lookups and updates only, never a network call.

Example::

    manager = (
        ConnectionManager("postgresql+psycopg://app@db/orders")
        .with_automatic_connection_renewal_interval(600)
    )
    users = manager.builder_for_current_worker().build(
        lambda q: q.select().from_(User).where("active", True)
    ).to_list(User)
"""
from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from mortarql.connection.alchemy import SQLAlchemyConnection
from mortarql.connection.base import Connection
from mortarql.connection.settings import ConnectionSettings, ConnectionSettingsBuilder
from mortarql.connection.sqlite import SQLiteConnection
from mortarql.errors import ConnectionConfigError
from mortarql.execute.builder import QueryBuilder
from mortarql.schema.metadata import DEFAULT_RESOLVER, SchemaResolver
from mortarql.tracking.tracker import ChangeTracker

logger = logging.getLogger(__name__)

DEFAULT_RENEWAL_INTERVAL = 900.0


class ConnectionManager:
    """Owns one connection and one query builder per worker thread.

    Args:
        connection_string: Raw connection string.  A SQLAlchemy URL selects
            :class:`SQLAlchemyConnection` (except plain ``sqlite://`` URLs),
            anything else is treated as a SQLite file path.
        settings: Structured settings, used when no string is given.
        connection_class: Explicit connection class, overriding the choice
            above.
        tracker: Change tracker shared by every builder; one with a fresh
            TTL cache is created when omitted.
        resolver: Schema resolver shared by every builder.
        clock: Monotonic time source, injectable for tests.

    Raises:
        ConnectionConfigError: If neither a connection string nor settings
            are given.
    """

    def __init__(
        self,
        connection_string: str | None = None,
        settings: ConnectionSettings | None = None,
        *,
        connection_class: type[Connection] | None = None,
        tracker: ChangeTracker | None = None,
        resolver: SchemaResolver | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not connection_string and settings is None:
            raise ConnectionConfigError(
                "A connection manager needs either a connection string or connection settings."
            )
        self.connection_string = connection_string
        self.settings = settings
        self.connection_class = connection_class
        self.resolver = resolver or DEFAULT_RESOLVER
        self.tracker = tracker or ChangeTracker(self.resolver)
        self.automatic_renewal = True
        self.renewal_interval = DEFAULT_RENEWAL_INTERVAL
        self._clock = clock
        self._connections: dict[int, Connection] = {}
        self._builders: dict[int, QueryBuilder] = {}
        self._lock = threading.Lock()

    @classmethod
    def configure(
        cls,
        fn: Callable[[ConnectionSettingsBuilder], ConnectionSettingsBuilder],
        dialect: str = "sqlite",
        **kwargs: object,
    ) -> ConnectionManager:
        """Build a manager from settings assembled by ``fn``.

        Example::

            manager = ConnectionManager.configure(
                lambda s: s.host("db", 5432).credentials("app", "pw").database("orders"),
                dialect="postgres",
            )
        """
        settings = fn(ConnectionSettings.builder(dialect)).build()
        return cls(settings=settings, **kwargs)

    # ------------------------------------------------------------------
    # Fluent configuration
    # ------------------------------------------------------------------

    def with_automatic_connection_renewal(self, enabled: bool = True) -> ConnectionManager:
        self.automatic_renewal = enabled
        return self

    def with_automatic_connection_renewal_interval(self, seconds: float) -> ConnectionManager:
        if seconds <= 0:
            raise ValueError("The renewal interval must be positive.")
        self.renewal_interval = seconds
        return self

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def _connection_class(self) -> type[Connection]:
        if self.connection_class is not None:
            return self.connection_class
        if self.connection_string:
            text = self.connection_string
            if "://" in text and not text.startswith("sqlite://"):
                return SQLAlchemyConnection
            return SQLiteConnection
        if self.settings.is_sqlite and not self.settings.driver:
            return SQLiteConnection
        return SQLAlchemyConnection

    def _new_connection(self) -> Connection:
        return self._connection_class()(
            self.connection_string,
            self.settings,
            clock=self._clock,
        )

    def initialize(self, connection: Connection) -> Connection:
        """Open ``connection``, or reopen it once it is older than the renewal interval."""
        if not connection.connected:
            connection.connect()
            return connection
        age = connection.age()
        if self.automatic_renewal and age is not None and age >= self.renewal_interval:
            logger.info("Renewing connection after %.0f seconds", age)
            connection.connect(force=True)
        return connection

    def get_for_current_worker(self) -> Connection:
        """Return the calling thread's connection, creating or reviving it as needed."""
        worker = threading.get_ident()
        with self._lock:
            connection = self._connections.get(worker)
            if connection is None or not connection.connected:
                connection = self._new_connection()
                self._connections[worker] = connection
                logger.debug("Created connection for worker %s", worker)
        return self.initialize(connection)

    def get_detached(self) -> Connection:
        """Return a new, initialized connection that no worker map tracks.

        The caller owns it and must disconnect it.
        """
        return self.initialize(self._new_connection())

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def builder_for_current_worker(self) -> QueryBuilder:
        """Return the calling thread's builder, reset to an empty query.

        The builder is recreated whenever the worker's connection was
        replaced.
        """
        connection = self.get_for_current_worker()
        worker = threading.get_ident()
        with self._lock:
            builder = self._builders.get(worker)
            if builder is None or builder.connection is not connection:
                builder = self._new_builder(connection)
                self._builders[worker] = builder
        return builder.reset()

    def new_builder(self) -> QueryBuilder:
        """Return a fresh builder on the calling thread's connection."""
        return self._new_builder(self.get_for_current_worker())

    def _new_builder(self, connection: Connection) -> QueryBuilder:
        return QueryBuilder(connection, tracker=self.tracker, resolver=self.resolver)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def release_current_worker(self) -> None:
        """Close and forget the calling thread's connection and builder."""
        worker = threading.get_ident()
        with self._lock:
            connection = self._connections.pop(worker, None)
            self._builders.pop(worker, None)
        if connection is not None:
            connection.disconnect()

    def close_all(self) -> None:
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
            self._builders.clear()
        for connection in connections:
            connection.disconnect()
        logger.debug("Closed %d worker connections", len(connections))

    @property
    def worker_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def __enter__(self) -> ConnectionManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close_all()
