"""
Unit tests for the reference drivers.

Tests cover:
- Literal rendering through prepare()
- LIKE escaping and identifier quoting
- Convenience writers
- RecordingDriver queues and insert ids
"""

from decimal import Decimal

import pytest

from sqlchain.infrastructure.database.drivers import BaseDriver, RecordingDriver


class TestPrepare:
    """Test BaseDriver.prepare."""

    @pytest.mark.parametrize(
        "placeholder,value,expected",
        [
            ("%d", "12abc", "12"),
            ("%d", 7.9, "7"),
            ("%f", 2.5, "2.5"),
            ("%f", "3.5", "3.5"),
            ("%f", Decimal("1.10"), "1.10"),
            ("%f", float("nan"), "0"),
            ("%s", "it's", "'it''s'"),
            ("%s", None, "''"),
            ("%s", 5, "'5'"),
        ],
    )
    def test_placeholders(self, driver, placeholder, value, expected):
        assert driver.prepare(placeholder, value) == expected

    def test_unsupported_placeholder(self, driver):
        with pytest.raises(ValueError):
            driver.prepare("%x", 1)


class TestQuoting:
    """Test LIKE escaping and identifier quoting."""

    def test_escape_like(self, driver):
        assert driver.escape_like("50%_off\\") == "50\\%\\_off\\\\"

    def test_quote_identifier(self, driver):
        assert driver.quote_identifier("name") == "`name`"
        assert driver.quote_identifier("na`me") == "`na``me`"

    def test_base_driver_is_abstract(self):
        with pytest.raises(TypeError):
            BaseDriver()


class TestWriters:
    """Test insert/update/delete convenience writers."""

    def test_insert(self, driver):
        assert driver.insert("wp_posts", {"post_title": "Hello", "menu_order": 3}) == 1
        assert driver.queries == [("execute", "INSERT INTO wp_posts (`post_title`, `menu_order`) VALUES('Hello',3)")]
        assert driver.last_insert_id == 1

    def test_update(self, driver):
        driver.update("wp_posts", {"post_title": "New"}, {"ID": 3})
        assert driver.last_query == "UPDATE wp_posts SET `post_title` = 'New' WHERE ID = 3"

    def test_delete(self, driver):
        driver.delete("wp_posts", {"ID": 3, "post_status": "trash"})
        assert driver.last_query == "DELETE FROM wp_posts WHERE ID = 3 AND post_status = 'trash'"

    def test_writers_do_not_add_prefix(self, prefixed_driver):
        prefixed_driver.delete("wp_posts", {"ID": 1})
        assert prefixed_driver.last_query == "DELETE FROM wp_posts WHERE ID = 1"


class TestRecordingDriver:
    """Test RecordingDriver behaviour."""

    def test_defaults(self, driver):
        assert driver.fetch_all("SELECT 1") == []
        assert driver.fetch_one("SELECT 1") is None
        assert driver.fetch_scalar("SELECT 1") is None
        assert driver.fetch_column("SELECT 1") == []
        assert driver.execute("DELETE FROM t") == 1

    def test_queued_results_are_consumed_in_order(self, driver):
        driver.queue("fetch_one", {"a": 1}, {"a": 2})

        assert driver.fetch_one("q1") == {"a": 1}
        assert driver.fetch_one("q2") == {"a": 2}
        assert driver.fetch_one("q3") is None

    def test_queries_are_recorded(self, driver):
        driver.fetch_all("SELECT a")
        driver.execute("DELETE FROM t")

        assert driver.queries == [("fetch_all", "SELECT a"), ("execute", "DELETE FROM t")]
        assert driver.statements == ["SELECT a", "DELETE FROM t"]
        assert driver.last_query == "DELETE FROM t"

    def test_last_query_empty(self, driver):
        assert driver.last_query is None

    def test_insert_ids(self, driver):
        driver.queue_insert_id("abc")

        driver.execute("INSERT INTO t (`a`) VALUES(1)")
        assert driver.last_insert_id == "abc"

        driver.execute("INSERT INTO t (`a`) VALUES(2)")
        assert driver.last_insert_id == 1

    def test_failed_insert_keeps_last_id(self, driver):
        driver.queue("execute", False)

        assert driver.execute("INSERT INTO t (`a`) VALUES(1)") is False
        assert driver.last_insert_id is None

    def test_non_insert_keeps_last_id(self, driver):
        driver.execute("UPDATE t SET a = 1")
        assert driver.last_insert_id is None

    def test_reset(self, driver):
        driver.queue("fetch_all", [{"a": 1}])
        driver.fetch_one("SELECT 1")

        driver.reset()

        assert driver.queries == []
        assert driver.fetch_all("SELECT 1") == []

    def test_table_prefix(self, prefixed_driver):
        assert prefixed_driver.table_prefix == "wp_"
