"""
Unit tests for the fluent query builder.

Tests cover:
- Clause accumulation and validation
- Terminal operations against the recording driver
- Builder and query hooks
- Logging of rendered statements
"""

import logging

import pytest

from sqlchain.application.config import BuilderConfig
from sqlchain.domain.entities.builder_state import BuilderState
from sqlchain.domain.exceptions import InvalidArgumentError, MissingBoundError, MissingTableError
from sqlchain.domain.value_objects.condition import Condition, Joint
from sqlchain.infrastructure.database.drivers import RecordingDriver
from sqlchain.infrastructure.database.query_builder import QueryBuilder, create_builder
from sqlchain.infrastructure.hooks import HookRegistry


class TestQueryBuilderInitialization:
    """Test builder construction."""

    def test_explicit_id(self, driver):
        builder = QueryBuilder(driver, "posts")
        assert builder.id == "posts"
        assert builder.driver is driver

    def test_generated_id(self, driver):
        first = QueryBuilder(driver)
        second = QueryBuilder(driver)
        assert len(first.id) == 32
        assert first.id != second.id

    def test_private_hook_registry(self, driver):
        assert isinstance(QueryBuilder(driver).hooks, HookRegistry)

    def test_config_wildcard(self, driver):
        builder = QueryBuilder(driver, config=BuilderConfig(default_wildcard="*"))
        assert builder.options == {"wildcard": "*", "default_wildcard": "*"}

    def test_create_and_helper(self, driver, hooks):
        assert QueryBuilder.create(driver, "a").id == "a"

        builder = create_builder(driver, "b", hooks)
        assert builder.id == "b"
        assert builder.hooks is hooks

    def test_state_is_a_copy(self, make_builder):
        builder = make_builder().select("a")
        builder.state.select.append("b")
        assert builder.state.select == ["a"]


class TestClauseAccumulation:
    """Test clause methods."""

    def test_round_trip(self, make_builder):
        sql = (
            make_builder()
            .select("*")
            .from_table("t", False)
            .where({"a": 5, "b": [1, 2, 3]})
            .order_by("a", "DESC")
            .limit(10)
            .offset(5)
            .to_sql()
        )
        assert sql == "SELECT * FROM t WHERE a = 5 AND b IN (1,2,3) ORDER BY a DESC LIMIT 10 OFFSET 5"

    def test_select_order_and_iterables(self, make_builder):
        sql = make_builder().select("a").select(["b", "c AS d"]).from_table("t").to_sql()
        assert sql == "SELECT a,b,c AS d FROM t"

    def test_from_table_qualifies_with_prefix(self, make_builder, prefixed_driver):
        assert make_builder(target=prefixed_driver).from_table("posts").to_sql() == "SELECT * FROM wp_posts"
        assert (
            make_builder(target=prefixed_driver).from_table("posts", qualify=False).to_sql()
            == "SELECT * FROM posts"
        )

    def test_where_pairs(self, make_builder):
        sql = (
            make_builder()
            .from_table("t")
            .where([("status", "draft"), ("status", {"value": "pending", "joint": "OR"})])
            .to_sql()
        )
        assert sql == "SELECT * FROM t WHERE status = 'draft' OR status = 'pending'"

    def test_where_is_atomic(self, make_builder):
        builder = make_builder().from_table("t")
        with pytest.raises(MissingBoundError):
            builder.where({"a": 1, "b": {"operator": "BETWEEN", "min": 1}})

        assert builder.state.where == []

    @pytest.mark.parametrize("value", ["1e999", "1" * 5000])
    def test_where_out_of_range_number_is_quoted_text(self, make_builder, value):
        sql = make_builder().from_table("t").where({"a": value}).to_sql()
        assert sql == f"SELECT * FROM t WHERE a = '{value}'"

    def test_where_empty_list_is_rejected(self, make_builder):
        builder = make_builder().from_table("t")
        with pytest.raises(InvalidArgumentError) as exc_info:
            builder.where({"a": 1, "b": []})

        assert exc_info.value.code == InvalidArgumentError.EMPTY_LIST
        assert builder.state.where == []

    def test_where_key_outside_between(self, make_builder):
        sql = make_builder().from_table("t").where({"updated": {"operator": ">", "key": "created", "value": 5}}).to_sql()
        assert sql == "SELECT * FROM t WHERE updated > 5"

    def test_keywords(self, make_builder):
        sql = make_builder().from_table("t").keywords("red", ["title", "body"]).to_sql()
        assert sql == "SELECT * FROM t WHERE (title LIKE '%red%' OR body LIKE '%red%')"

    def test_order_by_invalid_direction(self, make_builder):
        builder = make_builder()
        with pytest.raises(InvalidArgumentError) as exc_info:
            builder.order_by("a", "sideways")

        assert exc_info.value.code == InvalidArgumentError.DIRECTION
        assert str(exc_info.value) == "Invalid direction value."
        assert builder.state.order == []

    def test_order_by_empty_key_is_noop(self, make_builder):
        builder = make_builder().order_by("", "ASC")
        assert builder.state.order == []

    def test_order_by_normalizes_direction(self, make_builder):
        assert make_builder().order_by("a", "desc").state.order == ["a DESC"]

    def test_join_invalid_type(self, make_builder):
        builder = make_builder().from_table("t")
        with pytest.raises(InvalidArgumentError) as exc_info:
            builder.join("u", [{"key": "t.uid", "key_b": "u.id"}], "FOO")

        assert exc_info.value.code == InvalidArgumentError.JOIN_TYPE
        assert builder.state.join == []

    def test_join_left_lowercase(self, make_builder):
        sql = make_builder().from_table("t").join("u", [{"key": "t.uid", "key_b": "u.id"}], "left").to_sql()
        assert sql == "SELECT * FROM t LEFT JOIN u ON t.uid = u.id"

    def test_join_qualifies_table(self, make_builder, prefixed_driver):
        sql = (
            make_builder(target=prefixed_driver)
            .from_table("posts p")
            .join("postmeta m", [{"key": "p.ID", "key_b": "m.post_id"}])
            .to_sql()
        )
        assert sql == "SELECT * FROM wp_posts p JOIN wp_postmeta m ON p.ID = m.post_id"

    @pytest.mark.parametrize("value", [-1, "10", True, 1.5])
    def test_limit_rejects_invalid_values(self, make_builder, value):
        with pytest.raises(InvalidArgumentError):
            make_builder().limit(value)

    def test_limit_none_removes(self, make_builder):
        assert make_builder().from_table("t").limit(5).limit(None).to_sql() == "SELECT * FROM t"

    def test_limit_zero_is_omitted(self, make_builder):
        assert make_builder().from_table("t").limit(0).to_sql() == "SELECT * FROM t"

    def test_offset_zero_is_omitted(self, make_builder):
        assert make_builder().from_table("t").offset(0).to_sql() == "SELECT * FROM t"

    def test_offset_rejects_negative(self, make_builder):
        with pytest.raises(InvalidArgumentError):
            make_builder().offset(-5)

    def test_group_by_and_having(self, make_builder):
        sql = make_builder().select("type").from_table("t").group_by("type").group_by("").having("count(*) > 1").to_sql()
        assert sql == "SELECT type FROM t GROUP BY type HAVING count(*) > 1"

    def test_set(self, make_builder):
        sql = make_builder().from_table("t").set({"a": 1, "b": "x"}).where({"id": 3}).to_sql("update")
        assert sql == "UPDATE t SET `a` = 1,`b` = 'x' WHERE id = 3"

    def test_set_raw(self, make_builder):
        sql = make_builder().from_table("t").set({"raw": "views = views + 1"}).to_sql("update")
        assert sql == "UPDATE t SET views = views + 1"

    def test_values(self, make_builder):
        sql = make_builder().from_table("t").values({"name": "x", "age": 7}).to_sql("insert")
        assert sql == "INSERT INTO t (`name`, `age`) VALUES('x',7)"

    def test_values_overwrite_same_column(self, make_builder):
        sql = make_builder().from_table("t").values({"a": 1}).values({"a": 2}).to_sql("insert")
        assert sql == "INSERT INTO t (`a`) VALUES(2)"

    def test_auto_sanitize_disabled(self, make_builder):
        builder = make_builder(config=BuilderConfig(auto_sanitize=False))
        assert builder.from_table("t").where({"a": "<b>"}).to_sql() == "SELECT * FROM t WHERE a = '<b>'"


class TestTerminalOperations:
    """Test terminal operations against the recording driver."""

    def test_get(self, make_builder, driver):
        driver.queue("fetch_all", [{"id": 1}, {"id": 2}])

        rows = make_builder().from_table("t").get()

        assert rows == [{"id": 1}, {"id": 2}]
        assert driver.queries == [("fetch_all", "SELECT * FROM t")]

    def test_get_with_mapper(self, make_builder, driver):
        driver.queue("fetch_all", [{"id": 1}, {"id": 2}])
        assert make_builder().from_table("t").get(lambda row: row["id"]) == [1, 2]

    def test_first(self, make_builder, driver):
        driver.queue("fetch_one", {"id": 1})

        assert make_builder().from_table("t").where({"id": 1}).first() == {"id": 1}
        assert driver.last_query == "SELECT * FROM t WHERE id = 1 LIMIT 1"

    def test_value(self, make_builder, driver):
        driver.queue("fetch_scalar", "hello")

        assert make_builder().select("title").from_table("t").value() == "hello"
        assert driver.queries == [("fetch_scalar", "SELECT title FROM t")]

    def test_count_bypasses_limit(self, make_builder, driver):
        driver.queue("fetch_scalar", "12")

        count = make_builder().from_table("t").order_by("a").limit(10).offset(5).count()

        assert count == 12
        assert driver.last_query == "SELECT count(1) as `count` FROM t"

    def test_count_without_result(self, make_builder):
        assert make_builder().from_table("t").count() == 0

    def test_count_without_bypass(self, make_builder, driver):
        make_builder().from_table("t").limit(10).count("id", bypass_limit=False)
        assert driver.last_query == "SELECT count(id) as `count` FROM t LIMIT 10"

    def test_col(self, make_builder, driver):
        driver.queue("fetch_column", [1, 2])

        assert make_builder().select("id").from_table("t").col() == [1, 2]
        assert driver.queries == [("fetch_column", "SELECT id FROM t")]

    def test_query_with_sql(self, make_builder, driver):
        assert make_builder().query("OPTIMIZE TABLE t") == 1
        assert driver.queries == [("execute", "OPTIMIZE TABLE t")]

    def test_query_renders_select(self, make_builder, driver):
        make_builder().from_table("t").raw("")
        assert driver.last_query == "SELECT * FROM t"

    def test_query_without_table(self, make_builder):
        with pytest.raises(MissingTableError):
            make_builder().query()

    def test_delete(self, make_builder, driver):
        make_builder().from_table("t").where({"id": 3}).delete()
        assert driver.queries == [("execute", "DELETE FROM t WHERE id = 3")]

    def test_delete_without_where_warns(self, make_builder, caplog):
        with caplog.at_level(logging.WARNING, logger="sqlchain.infrastructure.database.query_builder"):
            make_builder().from_table("t").delete()

        assert "without WHERE" in caplog.text

    def test_update_without_where_warns(self, make_builder, caplog):
        with caplog.at_level(logging.WARNING, logger="sqlchain.infrastructure.database.query_builder"):
            make_builder().from_table("t").set({"a": 1}).update()

        assert "without WHERE" in caplog.text

    def test_insert_returns_generated_id(self, make_builder, driver):
        driver.queue_insert_id(42)
        assert make_builder().from_table("t").values({"a": 1}).insert() == 42
        assert make_builder().from_table("t").values({"a": 2}).insert() == 1

    def test_insert_failure_returns_none(self, make_builder, driver):
        driver.queue("execute", False)
        assert make_builder().from_table("t").values({"a": 1}).insert() is None

    def test_update(self, make_builder, driver):
        driver.queue("execute", 2)
        assert make_builder().from_table("t").set({"a": 1}).where({"b": 2}).update() == 2

    def test_rows_found(self, make_builder, driver):
        driver.queue("fetch_scalar", 57)
        builder = make_builder().from_table("t").limit(10)

        builder.get(calc_rows=True)

        assert builder.rows_found() == 57
        assert driver.statements == ["SELECT SQL_CALC_FOUND_ROWS * FROM t LIMIT 10", "SELECT FOUND_ROWS()"]

    def test_missing_table(self, make_builder):
        with pytest.raises(MissingTableError):
            make_builder().get()

    def test_driver_errors_propagate(self, make_builder, driver):
        def fail(sql):
            raise RuntimeError("connection lost")

        driver.fetch_all = fail

        with pytest.raises(RuntimeError, match="connection lost"):
            make_builder().from_table("t").get()

    def test_repr(self, make_builder):
        assert repr(make_builder("x").from_table("t")) == "QueryBuilder(id='x', from='t')"


def add_tenant_filter(state: BuilderState) -> BuilderState:
    state.where.append(Condition(Joint.AND, "tenant_id = 1"))
    return state


class TestHooks:
    """Test builder and query hooks."""

    def test_builder_hook_changes_state(self, make_builder, driver, hooks):
        hooks.add("query_builder_get_builder", add_tenant_filter)

        make_builder().from_table("t").where({"a": 1}).get()

        assert driver.last_query == "SELECT * FROM t WHERE a = 1 AND tenant_id = 1"

    def test_id_scoped_builder_hook(self, make_builder, driver, hooks):
        hooks.add("query_builder_get_builder_scoped", add_tenant_filter)

        make_builder("other").from_table("t").get()
        make_builder("scoped").from_table("t").get()

        assert driver.statements == ["SELECT * FROM t", "SELECT * FROM t WHERE tenant_id = 1"]

    def test_builder_hook_must_return_state(self, make_builder, hooks):
        hooks.add("query_builder_count_builder", lambda state: None)

        with pytest.raises(TypeError):
            make_builder().from_table("t").count()

    def test_query_hooks(self, make_builder, driver, hooks):
        hooks.add("query_builder_first_query", lambda sql: sql + " FOR UPDATE")
        hooks.add("query_builder_first_query_locked", lambda sql: "/* locked */ " + sql)

        make_builder("locked").from_table("t").first()

        assert driver.last_query == "/* locked */ SELECT * FROM t LIMIT 1 FOR UPDATE"

    def test_found_rows_hook(self, make_builder, driver, hooks):
        hooks.add("query_builder_found_rows_query", lambda sql: sql.replace("FOUND_ROWS()", "1"))

        make_builder().rows_found()

        assert driver.last_query == "SELECT 1"

    def test_to_sql_skips_hooks(self, make_builder, hooks):
        hooks.add("query_builder_get_builder", add_tenant_filter)
        hooks.add("query_builder_get_query", lambda sql: sql + " FOR UPDATE")

        assert make_builder().from_table("t").to_sql() == "SELECT * FROM t"


class TestLogging:
    """Test statement logging."""

    def test_rendered_sql_logged_at_debug(self, make_builder, caplog):
        with caplog.at_level(logging.DEBUG, logger="sqlchain.infrastructure.database.query_builder"):
            make_builder("logged").from_table("t").get()

        records = [record for record in caplog.records if getattr(record, "builder_id", None) == "logged"]
        assert len(records) == 1
        assert records[0].operation == "get"
        assert "SELECT * FROM t" in records[0].getMessage()


class TestSeparateDrivers:
    """Test that builders only talk to their own driver."""

    def test_two_drivers(self, make_builder):
        first, second = RecordingDriver(), RecordingDriver("x_")

        make_builder(target=first).from_table("t").get()
        make_builder(target=second).from_table("t").get()

        assert first.statements == ["SELECT * FROM t"]
        assert second.statements == ["SELECT * FROM x_t"]
