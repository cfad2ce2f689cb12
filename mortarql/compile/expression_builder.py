"""Value binders and the condition builder.

A render pass runs twice over the same query model: once with a
:class:`ParameterBinder` (placeholders + parameter table) and once with a
:class:`LiteralBinder` (inline literals for the display string).  Clause
builders never know which one they are talking to.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from mortarql.errors import CompilationError
from mortarql.query.clauses import PreparedValue, WhereCondition, WhereInCondition
from mortarql.query.enums import WhereComparer

if TYPE_CHECKING:
    from mortarql.compile.base import SQLCompiler
    from mortarql.compile.context import RenderContext


# ---------------------------------------------------------------------------
# Value binders
# ---------------------------------------------------------------------------


class ValueBinder(ABC):
    """Turns a literal value into SQL text."""

    def __init__(self, compiler: SQLCompiler) -> None:
        self._compiler = compiler

    @abstractmethod
    def bind(self, value: Any, escape: bool = True) -> str:
        """Return the SQL text standing for ``value`` in the statement."""


class ParameterBinder(ValueBinder):
    """Registers values in a parameter table and returns placeholders.

    Args:
        compiler: Supplies the placeholder style.
        parameters: The parameter table being filled.
        next_label: Returns the next unused ``prepared_value_<n>`` label of
            the outermost query being rendered.
    """

    def __init__(
        self,
        compiler: SQLCompiler,
        parameters: dict[str, PreparedValue],
        next_label: Callable[[], str],
    ) -> None:
        super().__init__(compiler)
        self.parameters = parameters
        self._next_label = next_label

    def bind(self, value: Any, escape: bool = True) -> str:
        label = self._next_label()
        self.parameters[label] = PreparedValue(value=value, escape=escape)
        return self._compiler.param_placeholder(label)


class LiteralBinder(ValueBinder):
    """Inlines values as best-effort SQL literals (display rendering)."""

    def bind(self, value: Any, escape: bool = True) -> str:
        if not escape:
            return str(value)
        return self._compiler.literal(value)


# ---------------------------------------------------------------------------
# Condition builder
# ---------------------------------------------------------------------------

_NULL_COMPARERS = {
    WhereComparer.EQUALS: "IS NULL",
    WhereComparer.IS: "IS NULL",
    WhereComparer.NOT_EQUALS: "IS NOT NULL",
    WhereComparer.IS_NOT: "IS NOT NULL",
}


class ConditionBuilder:
    """Builds WHERE / HAVING / JOIN ON predicate lists.

    The first predicate of a list carries no boolean operator; every later
    one is prefixed with its own ``AND`` / ``OR``.
    """

    def __init__(self, ctx: RenderContext) -> None:
        self._ctx = ctx

    def build_list(self, conditions: list[WhereCondition | WhereInCondition]) -> str:
        parts: list[str] = []
        for index, condition in enumerate(conditions):
            sql = self.build(condition)
            if index == 0:
                parts.append(sql)
            else:
                parts.append(f"{condition.operator.value} {sql}")
        return " ".join(parts)

    def build(self, condition: WhereCondition | WhereInCondition) -> str:
        if isinstance(condition, WhereInCondition):
            return self._build_in(condition)
        if isinstance(condition, WhereCondition):
            return self._build_comparison(condition)
        raise CompilationError(
            f"Unknown condition type: {type(condition).__name__}", clause="where"
        )

    def _build_comparison(self, condition: WhereCondition) -> str:
        compiler = self._ctx.compiler
        left = compiler.field_sql(condition.field)
        comparer = condition.comparer

        if condition.value_field is not None:
            return f"{left} {comparer.sql} {compiler.field_sql(condition.value_field)}"
        if condition.subquery is not None:
            return f"{left} {comparer.sql} ({self._ctx.render_subquery(condition.subquery)})"
        if condition.value is None and comparer in _NULL_COMPARERS:
            return f"{left} {_NULL_COMPARERS[comparer]}"
        if comparer in (WhereComparer.IN, WhereComparer.NOT_IN):
            values = condition.value
            if not isinstance(values, (list, tuple, set, frozenset)):
                values = [values]
            return self._build_in(
                WhereInCondition(
                    field=condition.field,
                    values=list(values),
                    negate=comparer is WhereComparer.NOT_IN,
                    escape=condition.escape,
                )
            )
        return f"{left} {comparer.sql} {self._ctx.bind(condition.value, condition.escape)}"

    def _build_in(self, condition: WhereInCondition) -> str:
        left = self._ctx.compiler.field_sql(condition.field)
        keyword = "NOT IN" if condition.negate else "IN"
        if condition.subquery is not None:
            return f"{left} {keyword} ({self._ctx.render_subquery(condition.subquery)})"
        if not condition.values:
            # x IN () is invalid SQL; it can never match.
            return "1 = 1" if condition.negate else "1 = 0"
        bound = ", ".join(self._ctx.bind(v, condition.escape) for v in condition.values)
        return f"{left} {keyword} ({bound})"
