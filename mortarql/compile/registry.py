"""Dialect name to compiler lookup.

Every compiler is registered under one dialect name plus any number of
aliases, so SQLAlchemy backend names (``postgresql``), driver-qualified URL
schemes (``postgresql+psycopg``) and engine forks (``mariadb``) all reach the
same class.  Query models and connections only ever hold a name;
:func:`resolve_compiler` turns it into a fresh compiler.

Usage::

    from mortarql.compile.registry import CompilerFactory

    @CompilerFactory.register("oracle", "oracledb")
    class OracleCompiler(StandardCompiler):
        ...
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import ClassVar

from mortarql.compile.base import SQLCompiler
from mortarql.errors import CompilationError


def _normalize(name: str) -> str:
    """``"PostgreSQL+psycopg"`` -> ``"postgresql"``."""
    return name.lower().split("+", 1)[0]


class CompilerFactory:
    """Dialect names and aliases mapped to :class:`SQLCompiler` classes."""

    _compilers: ClassVar[dict[str, type[SQLCompiler]]] = {}
    _aliases: ClassVar[dict[str, str]] = {}

    @classmethod
    def register(
        cls, name: str, *aliases: str
    ) -> Callable[[type[SQLCompiler]], type[SQLCompiler]]:
        """Class decorator form of :meth:`register_class`."""

        def decorator(compiler_cls: type[SQLCompiler]) -> type[SQLCompiler]:
            cls.register_class(name, compiler_cls, aliases)
            return compiler_cls

        return decorator

    @classmethod
    def register_class(
        cls, name: str, compiler_cls: type[SQLCompiler], aliases: Iterable[str] = ()
    ) -> None:
        """Register ``compiler_cls`` as dialect ``name``.

        Args:
            name: Dialect name reported by :meth:`registered_targets`.
            compiler_cls: The compiler class; a new instance is made per lookup.
            aliases: Other spellings that resolve to ``name``.
        """
        key = _normalize(name)
        cls._compilers[key] = compiler_cls
        for alias in aliases:
            cls._aliases[_normalize(alias)] = key

    @classmethod
    def unregister(cls, name: str) -> None:
        """Drop dialect ``name`` and every alias pointing at it."""
        key = _normalize(name)
        cls._compilers.pop(key, None)
        for alias in [a for a, target in cls._aliases.items() if target == key]:
            del cls._aliases[alias]

    @classmethod
    def create(cls, name: str) -> SQLCompiler:
        """Instantiate the compiler for a dialect name, alias or URL scheme.

        Raises:
            CompilationError: If nothing is registered under ``name``.
        """
        key = _normalize(name)
        compiler_cls = cls._compilers.get(cls._aliases.get(key, key))
        if compiler_cls is None:
            raise CompilationError(
                f"No compiler for dialect '{name}'. Known dialects: {cls.registered_targets()}."
            )
        return compiler_cls()

    @classmethod
    def registered_targets(cls) -> list[str]:
        return sorted(cls._compilers)


def resolve_compiler(compiler: SQLCompiler | str | None) -> SQLCompiler:
    """Accept a compiler instance, a dialect name, or ``None`` (standard)."""
    if isinstance(compiler, SQLCompiler):
        return compiler
    return CompilerFactory.create(compiler or "standard")
