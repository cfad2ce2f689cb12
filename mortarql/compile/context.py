"""Render context value object.

Packages the ``(compiler, binder, subquery renderer)`` clump that every
clause-level builder needs into a single object, created once per render
pass and shared with every nested subquery so parameter labels stay unique
across the whole statement.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mortarql.compile.base import SQLCompiler
    from mortarql.compile.expression_builder import ValueBinder


@dataclass(frozen=True)
class RenderContext:
    """Immutable context for a single render pass.

    Attributes:
        compiler: Dialect-specific SQL compiler instance.
        binder: Turns literal values into placeholders or inline literals.
        render_subquery: Renders a nested query with this same context.
    """

    compiler: SQLCompiler
    binder: ValueBinder
    render_subquery: Callable[[Any], str]

    def bind(self, value: Any, escape: bool = True) -> str:
        return self.binder.bind(value, escape)
