"""Connection on a SQLAlchemy engine (PostgreSQL, MySQL, SQLite, ...).

Statements are sent with ``exec_driver_sql``, so the SQL must already use
the DBAPI driver's placeholder style; the dialect compilers take care of
that (``%(name)s`` for psycopg and PyMySQL, ``:name`` for sqlite3).

Install the driver extra before connecting::

    pip install "mortarql[postgres]"
"""
from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.engine import Connection as SAConnection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from mortarql.connection.base import Connection, ExecutionResult
from mortarql.mapping.row import Row

#: Backends whose DBAPI cursor reports ``lastrowid`` for generated keys.
_LASTROWID_BACKENDS = {"sqlite", "mysql", "mariadb"}


class SQLAlchemyConnection(Connection):
    """Connection opened from a SQLAlchemy URL.

    Each instance owns a private engine without pooling: the lifecycle
    manager already keeps one connection per worker, and renewal must
    really close the server session.  The connection runs in
    ``AUTOCOMMIT`` mode so explicit transaction statements control
    atomicity.
    """

    driver_errors = (SQLAlchemyError,)

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._url = None
        super().__init__(*args, **kwargs)
        self._engine: Engine | None = None
        self._conn: SAConnection | None = None

    @property
    def url(self) -> URL:
        if self._url is None:
            if self.connection_string:
                self._url = make_url(self.connection_string)
            else:
                self._url = self.settings.to_url()
        return self._url

    @property
    def dialect(self) -> str:
        return self.url.get_backend_name()

    def _open(self) -> None:
        self._engine = create_engine(self.url, poolclass=NullPool)
        self._conn = self._engine.connect().execution_options(isolation_level="AUTOCOMMIT")

    def _close(self) -> None:
        try:
            if self._conn is not None:
                self._conn.close()
        finally:
            if self._engine is not None:
                self._engine.dispose()
            self._conn = None
            self._engine = None

    def _is_alive(self) -> bool:
        return self._conn is not None and not self._conn.closed and not self._conn.invalidated

    def _execute(self, sql: str, params: dict[str, Any]) -> ExecutionResult:
        result = self._conn.exec_driver_sql(sql, params or None)
        if result.returns_rows:
            columns = list(result.keys())
            rows = [Row.from_values(columns, tuple(values)) for values in result.fetchall()]
            return ExecutionResult(rows=rows, columns=columns)
        last_insert_id = None
        if self.dialect in _LASTROWID_BACKENDS:
            last_insert_id = result.lastrowid or None
        return ExecutionResult(
            affected_count=max(result.rowcount, 0),
            last_insert_id=last_insert_id,
        )
