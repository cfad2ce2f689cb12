"""SQLite connection on the standard library ``sqlite3`` driver."""
from __future__ import annotations

import datetime as dt
import sqlite3
from decimal import Decimal
from typing import Any

from mortarql.connection.base import Connection, ExecutionResult
from mortarql.mapping.row import Row


def _adapt(value: Any) -> Any:
    # sqlite3's implicit datetime adapters are deprecated; store ISO text.
    if isinstance(value, dt.datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, dt.timedelta):
        return value.total_seconds()
    if isinstance(value, Decimal):
        return str(value)
    return value


class SQLiteConnection(Connection):
    """Connection to a SQLite database file (or ``:memory:``).

    The connection string is the database path; a ``sqlite:///path`` URL is
    accepted too.  The driver runs in autocommit mode so transactions are
    controlled only through explicit ``BEGIN`` / ``COMMIT`` statements.
    """

    driver_errors = (sqlite3.Error,)

    def __init__(self, *args: Any, timeout: float = 30.0, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None

    @property
    def dialect(self) -> str:
        return "sqlite"

    @property
    def path(self) -> str:
        if self.connection_string:
            text = self.connection_string
            for prefix in ("sqlite:///", "sqlite://"):
                if text.startswith(prefix):
                    return text[len(prefix):] or ":memory:"
            return text
        return self.settings.sqlite_path()

    def _open(self) -> None:
        # The owning worker is the only user; the flag lets the manager close
        # it from another thread on shutdown.
        self._conn = sqlite3.connect(
            self.path,
            timeout=self.timeout,
            isolation_level=None,
            check_same_thread=False,
        )

    def _close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _is_alive(self) -> bool:
        return self._conn is not None

    def _execute(self, sql: str, params: dict[str, Any]) -> ExecutionResult:
        cursor = self._conn.execute(sql, {k: _adapt(v) for k, v in params.items()})
        try:
            if cursor.description:
                columns = [d[0] for d in cursor.description]
                rows = [Row.from_values(columns, values) for values in cursor.fetchall()]
                return ExecutionResult(rows=rows, columns=columns)
            return ExecutionResult(
                affected_count=max(cursor.rowcount, 0),
                last_insert_id=cursor.lastrowid or None,
            )
        finally:
            cursor.close()
