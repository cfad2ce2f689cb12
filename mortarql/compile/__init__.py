"""mortarQL compilation layer: query model → display and parameterized SQL."""
from mortarql.compile.base import ClauseGroup, RenderedQuery, SQLCompiler
from mortarql.compile.mysql import MySQLCompiler
from mortarql.compile.postgres import PostgresCompiler
from mortarql.compile.registry import CompilerFactory, resolve_compiler
from mortarql.compile.renderer import QueryRenderer
from mortarql.compile.sqlite import SQLiteCompiler
from mortarql.compile.standard import StandardCompiler

__all__ = [
    "ClauseGroup",
    "RenderedQuery",
    "SQLCompiler",
    "MySQLCompiler",
    "PostgresCompiler",
    "CompilerFactory",
    "resolve_compiler",
    "QueryRenderer",
    "SQLiteCompiler",
    "StandardCompiler",
]
