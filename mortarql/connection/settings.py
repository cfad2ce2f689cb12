"""Structured connection settings.

A connection is configured either with a raw connection string (a SQLAlchemy
URL, or a filesystem path for SQLite) or with a :class:`ConnectionSettings`
object, usually assembled through :class:`ConnectionSettingsBuilder`::

    settings = (
        ConnectionSettings.builder("postgres")
        .host("db.internal", 5432)
        .credentials("app", "s3cret")
        .database("orders")
        .build()
    )
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from sqlalchemy.engine import URL, make_url

#: Dialect names as SQLAlchemy spells them.
_SQLALCHEMY_BACKENDS = {"postgres": "postgresql", "sqlite3": "sqlite", "mariadb": "mysql"}


class ConnectionSettings(BaseModel):
    """Settings for one database connection.

    Attributes:
        dialect: Engine name (``"sqlite"``, ``"postgres"``, ``"mysql"``).
        driver: Optional DBAPI driver (``"psycopg"``, ``"pymysql"``).
        database: Database name, or the file path for SQLite.
        host: Server host.
        port: Server port.
        username: Login name.
        password: Login password; never rendered in ``repr`` or logs.
        options: Extra URL query options passed to the driver.
    """

    model_config = ConfigDict(extra="forbid")

    dialect: str = "sqlite"
    driver: str | None = None
    database: str | None = None
    host: str | None = None
    port: int | None = Field(default=None, ge=1, le=65535)
    username: str | None = None
    password: SecretStr | None = None
    options: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def builder(cls, dialect: str = "sqlite") -> ConnectionSettingsBuilder:
        return ConnectionSettingsBuilder(dialect)

    @classmethod
    def from_url(cls, url: str) -> ConnectionSettings:
        """Parse a SQLAlchemy URL into settings."""
        parsed = make_url(url)
        backend, _, driver = parsed.drivername.partition("+")
        return cls(
            dialect=backend,
            driver=driver or None,
            database=parsed.database,
            host=parsed.host,
            port=parsed.port,
            username=parsed.username,
            password=parsed.password,
            options={k: str(v) for k, v in parsed.query.items()},
        )

    @property
    def is_sqlite(self) -> bool:
        return self.dialect.lower() in ("sqlite", "sqlite3")

    @property
    def drivername(self) -> str:
        backend = _SQLALCHEMY_BACKENDS.get(self.dialect.lower(), self.dialect.lower())
        return f"{backend}+{self.driver}" if self.driver else backend

    def sqlite_path(self) -> str:
        return self.database or ":memory:"

    def to_url(self) -> URL:
        """Return the SQLAlchemy URL for these settings."""
        return URL.create(
            self.drivername,
            username=self.username,
            password=self.password.get_secret_value() if self.password else None,
            host=self.host,
            port=self.port,
            database=self.database,
            query=self.options,
        )


class ConnectionSettingsBuilder:
    """Fluent builder for :class:`ConnectionSettings`.

    Always obtained via :meth:`ConnectionSettings.builder`.
    """

    def __init__(self, dialect: str) -> None:
        self._values: dict[str, object] = {"dialect": dialect}
        self._options: dict[str, str] = {}

    def driver(self, driver: str) -> ConnectionSettingsBuilder:
        self._values["driver"] = driver
        return self

    def database(self, database: str) -> ConnectionSettingsBuilder:
        self._values["database"] = database
        return self

    def host(self, host: str, port: int | None = None) -> ConnectionSettingsBuilder:
        self._values["host"] = host
        if port is not None:
            self._values["port"] = port
        return self

    def credentials(self, username: str, password: str | None = None) -> ConnectionSettingsBuilder:
        self._values["username"] = username
        if password is not None:
            self._values["password"] = password
        return self

    def option(self, name: str, value: str) -> ConnectionSettingsBuilder:
        self._options[name] = value
        return self

    def build(self) -> ConnectionSettings:
        """Validate and return the settings.

        Raises:
            pydantic.ValidationError: If a value is out of range.
        """
        return ConnectionSettings(**self._values, options=dict(self._options))
