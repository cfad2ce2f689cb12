"""mortarQL connections: settings, driver connections.

The per-worker :class:`~mortarql.connection.manager.ConnectionManager` lives
in :mod:`mortarql.connection.manager`; it depends on the execution layer and
is re-exported from the top-level package.
"""
from mortarql.connection.alchemy import SQLAlchemyConnection
from mortarql.connection.base import Connection, ConnectionState, ExecutionResult
from mortarql.connection.settings import ConnectionSettings, ConnectionSettingsBuilder
from mortarql.connection.sqlite import SQLiteConnection

__all__ = [
    "SQLAlchemyConnection",
    "Connection",
    "ConnectionState",
    "ExecutionResult",
    "ConnectionSettings",
    "ConnectionSettingsBuilder",
    "SQLiteConnection",
]
