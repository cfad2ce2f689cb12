"""Statement assembly: statement kind → ordered clause groups → SQL.

``QueryRenderer`` is the top-level orchestrator.  It looks up the clause
plan for the query's statement kind, asks the compiler for each fragment,
drops empty fragments and joins the rest with a single space.  The order of
clauses in the output is therefore fixed by the statement kind, never by
the order builder calls were made in.

Nested queries are rendered through :meth:`QueryRenderer.render_with`
using the same :class:`~mortarql.compile.context.RenderContext`, so a
subquery's literal values land in the outer statement's parameter table.
"""
from __future__ import annotations

from typing import Any

from mortarql.compile.base import ClauseGroup, SQLCompiler
from mortarql.compile.context import RenderContext
from mortarql.compile.expression_builder import ValueBinder
from mortarql.errors import CompilationError
from mortarql.query.enums import QueryType

#: Clause groups per statement kind, in output order.
STATEMENT_PLANS: dict[QueryType, tuple[ClauseGroup, ...]] = {
    QueryType.SELECT: (
        ClauseGroup.SELECT,
        ClauseGroup.FROM,
        ClauseGroup.JOIN,
        ClauseGroup.WHERE,
        ClauseGroup.GROUP,
        ClauseGroup.HAVING,
        ClauseGroup.ORDER,
        ClauseGroup.LIMIT,
    ),
    QueryType.COUNT: (
        ClauseGroup.COUNT,
        ClauseGroup.FROM,
        ClauseGroup.JOIN,
        ClauseGroup.WHERE,
        ClauseGroup.GROUP,
        ClauseGroup.HAVING,
    ),
    QueryType.INSERT: (ClauseGroup.INSERT_INTO, ClauseGroup.INSERT_VALUES),
    QueryType.UPDATE: (
        ClauseGroup.UPDATE,
        ClauseGroup.SET,
        ClauseGroup.WHERE,
        ClauseGroup.ORDER,
        ClauseGroup.LIMIT,
    ),
    QueryType.DELETE: (
        ClauseGroup.DELETE,
        ClauseGroup.WHERE,
        ClauseGroup.ORDER,
        ClauseGroup.LIMIT,
    ),
    QueryType.CREATE: (ClauseGroup.CREATE,),
}


class QueryRenderer:
    """Renders query models with one compiler.

    Args:
        compiler: Dialect-specific compiler instance.
    """

    def __init__(self, compiler: SQLCompiler) -> None:
        self._compiler = compiler

    def render(self, query: Any, binder: ValueBinder) -> str:
        """Render ``query`` with a fresh context around ``binder``."""
        ctx = RenderContext(
            compiler=self._compiler,
            binder=binder,
            render_subquery=lambda sub: self.render_with(sub, ctx),
        )
        return self.render_with(query, ctx)

    def render_with(self, query: Any, ctx: RenderContext) -> str:
        """Render ``query`` inside an existing context (used for subqueries)."""
        if query.query_type is QueryType.RAW:
            if query.raw_parameters:
                raise CompilationError(
                    "A raw query with parameters cannot be embedded in another query.",
                    clause="raw",
                )
            return query.raw_sql or ""
        plan = STATEMENT_PLANS.get(query.query_type)
        if plan is None:
            raise CompilationError(
                f"No clause plan for statement kind {query.query_type.value}."
            )
        fragments = (self._compiler.render_fragment(group, query, ctx) for group in plan)
        return " ".join(f for f in fragments if f)
