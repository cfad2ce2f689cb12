"""Unit tests for the query model and the render pipeline (all dialects)."""

from __future__ import annotations

import re

import pytest

from mortarql.compile.base import RenderedQuery, SQLCompiler
from mortarql.compile.mysql import MySQLCompiler
from mortarql.compile.postgres import PostgresCompiler
from mortarql.compile.registry import CompilerFactory
from mortarql.compile.sqlite import SQLiteCompiler
from mortarql.compile.standard import StandardCompiler
from mortarql.errors import CompilationError, UnsupportedClauseError
from mortarql.query.clauses import FieldSelector, PreparedValue
from mortarql.query.enums import JoinDirection, OrderDirection, QueryType, WhereComparer
from mortarql.query.model import Query
from tests.fixtures import Sentiment, Ticket, User

LABEL = re.compile(r":(prepared_value_\d+)")


class SelectOnlyCompiler(SQLCompiler):
    """A dialect that implements no clause group at all."""

    @property
    def dialect_name(self) -> str:
        return "select_only"

    def param_placeholder(self, name: str) -> str:
        return f":{name}"

    def quote_identifier(self, name: str) -> str:
        return name


def _scenario(compiler: SQLCompiler | str | None = None) -> Query:
    return Query(compiler).select().from_("t").where("id", 5).limit(1)


# ---------------------------------------------------------------------------
# Scenario and render memoization
# ---------------------------------------------------------------------------


def test_scenario_select_where_limit():
    rendered = _scenario().render()
    assert rendered.sql == 'SELECT * FROM "t" WHERE "id" = :prepared_value_0 LIMIT 1 OFFSET 0'
    assert rendered.parameters == {"prepared_value_0": PreparedValue(value=5, escape=True)}
    assert rendered.display == 'SELECT * FROM "t" WHERE "id" = 5 LIMIT 1 OFFSET 0'


def test_scenario_mysql_limit_is_offset_then_count():
    rendered = _scenario("mysql").render()
    assert rendered.sql == (
        "SELECT * FROM `t` WHERE `id` = %(prepared_value_0)s LIMIT 0, 1"
    )
    assert [p.value for p in rendered.parameters.values()] == [5]


def test_render_twice_returns_same_result():
    query = _scenario()
    first = query.render()
    second = query.render()
    assert first is second
    assert first.parameters is second.parameters
    assert query.rendered_parameterized == first.sql
    assert query.rendered_display == first.display


def test_render_does_not_mutate_clauses():
    query = _scenario()
    before = (list(query.select_list), list(query.where_list), query.limit_clause)
    query.render()
    assert (query.select_list, query.where_list, query.limit_clause) == before


def test_mutation_after_render_forces_rerender():
    query = _scenario()
    first = query.render()
    # Same limit again: the clause content is unchanged but the model is dirty.
    query.limit(1)
    second = query.render()
    assert second is not first
    assert second.sql != first.sql
    assert "prepared_value_1" in second.sql
    assert list(second.parameters) == ["prepared_value_1"]


def test_touch_marks_dirty():
    query = _scenario()
    query.render()
    assert not query.dirty
    query.touch()
    assert query.dirty


def test_rendered_properties_empty_before_render():
    query = Query().select().from_("t")
    assert query.rendered_display is None
    assert query.rendered_parameterized is None
    assert query.parameters == {}


def test_str_is_display_rendering():
    assert str(_scenario()) == 'SELECT * FROM "t" WHERE "id" = 5 LIMIT 1 OFFSET 0'


# ---------------------------------------------------------------------------
# Subqueries
# ---------------------------------------------------------------------------


def _nested() -> tuple[Query, Query, Query]:
    inner = Query().select("user_id").from_("orders").where("total", 100, WhereComparer.GREATER)
    middle = Query().select("id").from_("users").where("active", True).where_in("id", inner)
    outer = (
        Query()
        .select()
        .from_("accounts")
        .where("status", "open")
        .where_in("owner_id", middle)
        .where_in("region", ["eu", "us"])
    )
    return outer, middle, inner


def test_parameter_labels_unique_across_subqueries():
    outer, _, _ = _nested()
    rendered = outer.render()
    labels = LABEL.findall(rendered.sql)
    assert len(labels) == 5
    assert len(set(labels)) == 5
    assert set(labels) == set(rendered.parameters)
    assert [p.value for p in rendered.parameters.values()] == ["open", True, 100, "eu", "us"]


def test_nested_sql_shape():
    outer, _, _ = _nested()
    assert outer.render().sql == (
        'SELECT * FROM "accounts" WHERE "status" = :prepared_value_0 '
        'AND "owner_id" IN (SELECT "id" FROM "users" WHERE "active" = :prepared_value_1 '
        'AND "id" IN (SELECT "user_id" FROM "orders" WHERE "total" > :prepared_value_2)) '
        'AND "region" IN (:prepared_value_3, :prepared_value_4)'
    )


def test_subquery_mutation_dirties_outer():
    outer, middle, inner = _nested()
    outer.render()
    assert inner.parent_query is middle
    assert inner.root is outer
    inner.where("currency", "EUR")
    assert outer.dirty
    assert "currency" in outer.render().sql


def test_subquery_in_from_and_select():
    sub = Query().select("id").from_("users")
    query = (
        Query()
        .select("u.id")
        .select_subquery(Query().select().count().from_("orders"), "order_count")
        .from_(sub, alias="u")
    )
    assert query.render().sql == (
        'SELECT "u"."id", (SELECT COUNT(*) FROM "orders") AS "order_count" '
        'FROM (SELECT "id" FROM "users") AS "u"'
    )


def test_query_cannot_embed_itself():
    query = Query().select().from_("t")
    with pytest.raises(ValueError):
        query.where_in("id", query)


def test_embedded_raw_with_parameters_fails():
    raw = Query().raw("SELECT id FROM t WHERE x = :x", {"x": 1})
    query = Query().select().from_("t").where_in("id", raw)
    with pytest.raises(CompilationError):
        query.render()


def test_raw_query_renders_verbatim():
    rendered = Query().raw("SELECT 1 WHERE :a = 1", {"a": 1}).render()
    assert rendered.sql == "SELECT 1 WHERE :a = 1"
    assert rendered.parameters == {"a": PreparedValue(value=1)}


# ---------------------------------------------------------------------------
# Clone
# ---------------------------------------------------------------------------


def test_clone_is_independent():
    query = _scenario()
    copy = query.clone()
    copy.where("name", "Ann")
    assert len(query.where_list) == 1
    assert len(copy.where_list) == 2
    assert copy.compiler is query.compiler


def test_clone_of_subquery_is_detached():
    outer, middle, _ = _nested()
    copy = middle.clone()
    assert copy.parent_query is None
    assert middle.parent_query is outer
    copy.where("x", 1)
    outer.render()
    copy.where("y", 2)
    assert not outer.dirty


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------


def test_none_renders_is_null():
    rendered = (
        Query()
        .select()
        .from_("t")
        .where("deleted_at", None)
        .where("owner", None, WhereComparer.NOT_EQUALS)
        .render()
    )
    assert rendered.sql == 'SELECT * FROM "t" WHERE "deleted_at" IS NULL AND "owner" IS NOT NULL'
    assert rendered.parameters == {}


def test_empty_in_lists():
    assert Query().select().from_("t").where_in("id", []).render().sql == (
        'SELECT * FROM "t" WHERE 1 = 0'
    )
    assert Query().select().from_("t").where_not_in("id", []).render().sql == (
        'SELECT * FROM "t" WHERE 1 = 1'
    )


def test_in_comparer_with_list_value():
    rendered = Query().select().from_("t").where("id", [1, 2], WhereComparer.NOT_IN).render()
    assert rendered.sql == 'SELECT * FROM "t" WHERE "id" NOT IN (:prepared_value_0, :prepared_value_1)'


def test_or_where_operator():
    sql = Query().select().from_("t").where("a", 1).or_where("b", 2).render_parameterized()
    assert sql == 'SELECT * FROM "t" WHERE "a" = :prepared_value_0 OR "b" = :prepared_value_1'


def test_like_helpers_add_wildcards():
    rendered = (
        Query()
        .select()
        .from_("users")
        .where_like_left("name", "son")
        .where_like_right("name", "Jo")
        .render()
    )
    assert rendered.sql.count("LIKE") == 2
    assert [p.value for p in rendered.parameters.values()] == ["%son", "Jo%"]


def test_where_field_compares_columns():
    sql = Query().select().from_("t").where_field("t.a", "t.b", WhereComparer.LOWER).render().sql
    assert sql == 'SELECT * FROM "t" WHERE "t"."a" < "t"."b"'


def test_unescaped_value_is_inlined_at_bind_time():
    query = Query().select().from_("t").where("created", "NOW()", WhereComparer.LOWER, escape=False)
    rendered = query.render()
    assert rendered.sql == 'SELECT * FROM "t" WHERE "created" < :prepared_value_0'
    assert rendered.display == 'SELECT * FROM "t" WHERE "created" < NOW()'
    sql, params = query.compiler.bind_parameters(rendered)
    assert sql == 'SELECT * FROM "t" WHERE "created" < NOW()'
    assert params == {}


def test_bind_does_not_touch_longer_labels():
    rendered = RenderedQuery(
        display="",
        sql="SELECT :prepared_value_1 + :prepared_value_10",
        parameters={
            "prepared_value_1": PreparedValue(value="X", escape=False),
            "prepared_value_10": PreparedValue(value=3),
        },
        dialect="standard",
    )
    sql, params = StandardCompiler().bind_parameters(rendered)
    assert sql == "SELECT X + :prepared_value_10"
    assert params == {"prepared_value_10": 3}


def test_enum_binds_by_label():
    query = Query().select().from_("tickets").where("sentiment", Sentiment.NEGATIVE)
    rendered = query.render()
    assert rendered.display.endswith("\"sentiment\" = 'NEGATIVE'")
    _, params = query.compiler.bind_parameters(rendered)
    assert params == {"prepared_value_0": "NEGATIVE"}


def test_display_literals():
    display = (
        Query("sqlite")
        .select()
        .from_("t")
        .where("name", "O'Brien")
        .where("flag", True)
        .where("blob", b"\x01\xff")
        .render_display()
    )
    assert display == (
        "SELECT * FROM \"t\" WHERE \"name\" = 'O''Brien' AND \"flag\" = 1 AND \"blob\" = X'01FF'"
    )


# ---------------------------------------------------------------------------
# Statement kinds
# ---------------------------------------------------------------------------


def test_join_with_aliases():
    sql = (
        Query()
        .select("u.name", "o.total")
        .from_("users", alias="u")
        .join("orders", "u.id", "o.user_id", direction=JoinDirection.LEFT, alias="o")
        .render()
        .sql
    )
    assert sql == (
        'SELECT "u"."name", "o"."total" FROM "users" AS "u" '
        'LEFT JOIN "orders" AS "o" ON "u"."id" = "o"."user_id"'
    )


def test_select_record_type_expands_columns(resolver):
    sql = Query(resolver=resolver).select(User).from_(User).render().sql
    assert sql == 'SELECT "users"."id", "users"."name", "users"."age" FROM "users"'


def test_group_having_order():
    sql = (
        Query()
        .select("dept")
        .from_("emp")
        .group_by("dept")
        .having("dept", "x", WhereComparer.NOT_EQUALS)
        .order_by("dept", OrderDirection.DESC)
        .render()
        .sql
    )
    assert sql == (
        'SELECT "dept" FROM "emp" GROUP BY "dept" '
        'HAVING "dept" <> :prepared_value_0 ORDER BY "dept" DESC'
    )


def test_clause_order_independent_of_call_order():
    a = Query().limit(5).order_by("id").where("x", 1).from_("t").select("id")
    b = Query().select("id").from_("t").where("x", 1).order_by("id").limit(5)
    assert a.render().sql == b.render().sql


def test_count_drops_order_and_limit():
    query = (
        Query()
        .select("name")
        .from_("users")
        .where("age", 18, WhereComparer.GREATER_EQUALS)
        .order_by("name")
        .limit(10)
        .count()
    )
    assert query.query_type is QueryType.COUNT
    assert query.render().sql == 'SELECT COUNT(*) FROM "users" WHERE "age" >= :prepared_value_0'


def test_insert_rows_union_columns_and_bind_missing_as_null():
    rendered = Query().insert("users").value({"name": "Ann", "age": 30}).value({"name": "Bob"}).render()
    assert rendered.sql == (
        'INSERT INTO "users" ("name", "age") VALUES '
        "(:prepared_value_0, :prepared_value_1), (:prepared_value_2, :prepared_value_3)"
    )
    assert rendered.parameters["prepared_value_3"].value is None


def test_insert_record_skips_generated_key(resolver):
    query = Query("sqlite", resolver=resolver).insert().value(User(name="Ann", age=30))
    rendered = query.render()
    assert rendered.sql == 'INSERT INTO "users" ("name", "age") VALUES (:prepared_value_0, :prepared_value_1)'
    assert [p.value for p in rendered.parameters.values()] == ["Ann", 30]


def test_insert_without_rows_fails():
    with pytest.raises(CompilationError):
        Query().insert("users").render()


def test_update_and_delete():
    update = Query().update("users").set("age", 31).set_field("name", "nickname").where("id", 7)
    assert update.render().sql == (
        'UPDATE "users" SET "age" = :prepared_value_0, "name" = "nickname" '
        'WHERE "id" = :prepared_value_1'
    )
    delete = Query().delete("users").where("id", 7)
    assert delete.render().sql == 'DELETE FROM "users" WHERE "id" = :prepared_value_0'


def test_write_without_table_fails():
    with pytest.raises(CompilationError):
        Query().update().set("a", 1).render()


def test_reset_returns_to_empty_select():
    query = _scenario()
    query.render()
    query.reset()
    assert query.query_type is QueryType.SELECT
    assert query.where_list == []
    assert query.render().sql == "SELECT *"


def test_field_selector_split_and_raw():
    assert FieldSelector.coerce("t.c") == FieldSelector(table="t", field="c")
    raw = FieldSelector.coerce("COUNT(t.id)", escape=False)
    assert raw.table is None
    assert Query().select(raw).from_("t").render().sql == 'SELECT COUNT(t.id) FROM "t"'


# ---------------------------------------------------------------------------
# CREATE TABLE per dialect
# ---------------------------------------------------------------------------


def test_create_table_sqlite(resolver):
    sql = Query("sqlite", resolver=resolver).create(User).render().sql
    assert sql == (
        'CREATE TABLE "users" ("id" INTEGER PRIMARY KEY AUTOINCREMENT, '
        '"name" VARCHAR(120) NOT NULL, "age" INTEGER)'
    )


def test_create_table_postgres(resolver):
    sql = Query("postgres", resolver=resolver).create(User).render().sql
    assert sql == (
        'CREATE TABLE "users" ("id" SERIAL NOT NULL, "name" VARCHAR(120) NOT NULL, '
        '"age" INTEGER, PRIMARY KEY ("id"))'
    )


def test_create_table_mysql(resolver):
    sql = Query("mysql", resolver=resolver).create(User).render().sql
    assert sql == (
        "CREATE TABLE `users` (`id` INT NOT NULL AUTO_INCREMENT, "
        "`name` VARCHAR(120) NOT NULL, `age` INT, PRIMARY KEY (`id`))"
    )


def test_mysql_enum_column(resolver):
    sql = Query("mysql", resolver=resolver).create(Ticket).render().sql
    assert "`sentiment` ENUM('NEGATIVE', 'NEUTRAL', 'POSITIVE')" in sql


# ---------------------------------------------------------------------------
# Dialects and the registry
# ---------------------------------------------------------------------------


def test_unsupported_clause_fails_hard():
    query = Query(SelectOnlyCompiler()).select("a").from_("t")
    with pytest.raises(UnsupportedClauseError) as exc_info:
        query.render()
    assert exc_info.value.clause == "select"
    assert "select_only" in str(exc_info.value)


def test_placeholders_per_dialect():
    assert "%(prepared_value_0)s" in _scenario("postgres").render().sql
    assert ":prepared_value_0" in _scenario("sqlite").render().sql
    assert '"t"' in _scenario("postgres").render().sql


def test_registry_aliases_and_unknown_target():
    assert isinstance(CompilerFactory.create("postgresql+psycopg"), PostgresCompiler)
    assert isinstance(CompilerFactory.create("sqlite3"), SQLiteCompiler)
    assert isinstance(CompilerFactory.create("mariadb"), MySQLCompiler)
    with pytest.raises(CompilationError):
        CompilerFactory.create("oracle")
    assert {"standard", "sqlite", "postgres", "mysql"} <= set(CompilerFactory.registered_targets())


def test_registry_decorator():
    @CompilerFactory.register("shouting", "loud+driver")
    class ShoutingCompiler(StandardCompiler):
        @property
        def dialect_name(self) -> str:
            return "shouting"

    try:
        assert _scenario("shouting").render().dialect == "shouting"
        assert isinstance(CompilerFactory.create("LOUD"), ShoutingCompiler)
    finally:
        CompilerFactory.unregister("shouting")
    with pytest.raises(CompilationError):
        CompilerFactory.create("loud")
    assert "shouting" not in CompilerFactory.registered_targets()


def test_with_compiler_switches_dialect():
    query = _scenario()
    query.render()
    query.with_compiler("mysql")
    assert "`t`" in query.render().sql


def test_transaction_statements():
    compiler = StandardCompiler()
    assert compiler.begin_statement() == "BEGIN"
    assert compiler.begin_statement("sp") == 'SAVEPOINT "sp"'
    assert compiler.commit_statement("sp") == 'RELEASE SAVEPOINT "sp"'
    assert compiler.rollback_statement("sp") == 'ROLLBACK TO SAVEPOINT "sp"'
    assert MySQLCompiler().begin_statement() == "START TRANSACTION"
