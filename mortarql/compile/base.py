"""Compiler abstractions: RenderedQuery, ClauseGroup and the SQLCompiler ABC.

The Template Method pattern (GoF) is used:
- ``QueryRenderer`` decides *which* clause groups a statement kind needs and
  joins their fragments.
- ``SQLCompiler`` renders each fragment.  Every ``render_<group>`` method on
  the base class raises :class:`~mortarql.errors.UnsupportedClauseError`;
  dialect compilers override the groups their engine supports.
"""
from __future__ import annotations

import datetime as dt
import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any

from mortarql.errors import UnsupportedClauseError
from mortarql.mapping.values import enum_label, to_db_value
from mortarql.query.clauses import FieldSelector, PreparedValue

if TYPE_CHECKING:
    from mortarql.compile.context import RenderContext
    from mortarql.schema.metadata import ColumnMetadata


@dataclass
class RenderedQuery:
    """The output of one render.

    Attributes:
        display: Statement with literals inlined.  For logging and debugging
            only; it is not guaranteed to match what executes and must never
            be sent to a database.
        sql: Statement with ``prepared_value_<n>`` placeholders.
        parameters: Parameter table, label → :class:`PreparedValue`.
        dialect: The dialect that rendered the statement.
    """

    display: str
    sql: str
    parameters: dict[str, PreparedValue]
    dialect: str


class ClauseGroup(str, Enum):
    """Clause groups a statement kind is assembled from."""

    SELECT = "select"
    COUNT = "count"
    FROM = "from"
    JOIN = "join"
    WHERE = "where"
    GROUP = "group"
    HAVING = "having"
    ORDER = "order"
    LIMIT = "limit"
    INSERT_INTO = "insert_into"
    INSERT_VALUES = "insert_values"
    UPDATE = "update"
    SET = "set"
    DELETE = "delete"
    CREATE = "create"


class SQLCompiler(ABC):
    """Abstract base for dialect-specific SQL compilers.

    Subclasses implement the dialect-specific methods; the ``QueryRenderer``
    uses this interface via the Strategy / Template Method patterns.
    """

    #: Prefix of generated parameter labels.
    parameter_prefix = "prepared_value_"

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the canonical dialect name (e.g. ``'postgres'``)."""

    @abstractmethod
    def param_placeholder(self, name: str) -> str:
        """Return the SQL placeholder string for a named parameter.

        Args:
            name: Parameter label (e.g. ``'prepared_value_0'``).

        Returns:
            Dialect-specific placeholder string.
        """

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Return a properly-quoted SQL identifier.

        Args:
            name: Unquoted identifier (table or column name).

        Returns:
            Quoted identifier.
        """

    # ------------------------------------------------------------------
    # Fragment dispatch
    # ------------------------------------------------------------------

    def render_fragment(
        self, group: ClauseGroup, query: Any, ctx: RenderContext
    ) -> str:
        """Render one clause group of ``query``; ``""`` means omit."""
        renderer = getattr(self, f"render_{group.value}")
        return renderer(query, ctx)

    def _unsupported(self, group: ClauseGroup) -> str:
        raise UnsupportedClauseError(group.value, self.dialect_name)

    def render_select(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.SELECT)

    def render_count(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.COUNT)

    def render_from(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.FROM)

    def render_join(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.JOIN)

    def render_where(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.WHERE)

    def render_group(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.GROUP)

    def render_having(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.HAVING)

    def render_order(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.ORDER)

    def render_limit(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.LIMIT)

    def render_insert_into(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.INSERT_INTO)

    def render_insert_values(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.INSERT_VALUES)

    def render_update(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.UPDATE)

    def render_set(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.SET)

    def render_delete(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.DELETE)

    def render_create(self, query: Any, ctx: RenderContext) -> str:
        return self._unsupported(ClauseGroup.CREATE)

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def field_sql(self, selector: FieldSelector) -> str:
        """Render a field selector as ``"table"."field"``."""
        if not selector.escape:
            if selector.table:
                return f"{selector.table}.{selector.field}"
            return selector.field
        field_sql = "*" if selector.field == "*" else self.quote_identifier(selector.field)
        if selector.table:
            return f"{self.quote_identifier(selector.table)}.{field_sql}"
        return field_sql

    def column_type(self, column: ColumnMetadata) -> str:
        """Return the DDL type name for a column."""
        raise UnsupportedClauseError("create", self.dialect_name)

    def boolean_literal(self, value: bool) -> str:
        return "TRUE" if value else "FALSE"

    def literal(self, value: Any) -> str:
        """Best-effort inline SQL literal, used by the display rendering only."""
        if value is None:
            return "NULL"
        if isinstance(value, Enum):
            return self._quote_string(enum_label(value))
        if isinstance(value, bool):
            return self.boolean_literal(value)
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return f"X'{bytes(value).hex().upper()}'"
        if isinstance(value, dt.datetime):
            return self._quote_string(value.isoformat(sep=" "))
        if isinstance(value, (dt.date, dt.time)):
            return self._quote_string(value.isoformat())
        if isinstance(value, uuid.UUID):
            return self._quote_string(str(value))
        return self._quote_string(str(value))

    def _quote_string(self, text: str) -> str:
        return "'" + text.replace("'", "''") + "'"

    def driver_value(self, value: Any) -> Any:
        """Convert a bound value to what the driver accepts."""
        return to_db_value(value)

    def bind_parameters(self, rendered: RenderedQuery) -> tuple[str, dict[str, Any]]:
        """Turn a rendered statement into ``(sql, params)`` for the driver.

        Escaped parameters are bound as typed values.  Unescaped parameters
        are inlined verbatim in place of their placeholder.
        """
        sql = rendered.sql
        params: dict[str, Any] = {}
        for label, prepared in rendered.parameters.items():
            if prepared.escape:
                params[label] = self.driver_value(prepared.value)
                continue
            pattern = re.escape(self.param_placeholder(label)) + r"(?!\w)"
            sql = re.sub(pattern, lambda _m, v=prepared.value: str(v), sql)
        return sql, params

    # ------------------------------------------------------------------
    # Transaction statement templates
    # ------------------------------------------------------------------

    def begin_statement(self, name: str | None = None) -> str:
        if name:
            return f"SAVEPOINT {self.quote_identifier(name)}"
        return "BEGIN"

    def commit_statement(self, name: str | None = None) -> str:
        if name:
            return f"RELEASE SAVEPOINT {self.quote_identifier(name)}"
        return "COMMIT"

    def rollback_statement(self, name: str | None = None) -> str:
        if name:
            return f"ROLLBACK TO SAVEPOINT {self.quote_identifier(name)}"
        return "ROLLBACK"
