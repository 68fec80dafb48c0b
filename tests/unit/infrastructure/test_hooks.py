"""
Unit tests for the hook registry.
"""

from unittest.mock import MagicMock

from sqlchain.infrastructure.hooks import HookRegistry


class TestApply:
    """Test filter hooks."""

    def test_no_callbacks_returns_value(self, hooks):
        assert hooks.apply("missing", 5) == 5

    def test_callbacks_chain(self, hooks):
        hooks.add("number", lambda value: value + 1)
        hooks.add("number", lambda value: value * 10)

        assert hooks.apply("number", 1) == 20

    def test_priority_then_registration_order(self, hooks):
        calls = []
        hooks.add("order", lambda value: calls.append("late") or value, priority=20)
        hooks.add("order", lambda value: calls.append("first") or value)
        hooks.add("order", lambda value: calls.append("second") or value)
        hooks.add("order", lambda value: calls.append("early") or value, priority=1)

        hooks.apply("order", None)

        assert calls == ["early", "first", "second", "late"]

    def test_extra_arguments(self, hooks):
        callback = MagicMock(return_value="changed")
        hooks.add("name", callback)

        assert hooks.apply("name", "value", "wp_posts", 3) == "changed"
        callback.assert_called_once_with("value", "wp_posts", 3)


class TestDo:
    """Test action hooks."""

    def test_do_ignores_results(self, hooks):
        callback = MagicMock(return_value="ignored")
        hooks.add("saved", callback)

        assert hooks.do("saved", "model") is None
        callback.assert_called_once_with("model")

    def test_do_without_callbacks(self, hooks):
        hooks.do("nothing", 1, 2)


class TestRegistration:
    """Test add, remove, has and clear."""

    def test_remove(self, hooks):
        def callback(value):
            return value

        hooks.add("name", callback)

        assert hooks.remove("name", callback) is True
        assert hooks.has("name") is False
        assert hooks.remove("name", callback) is False

    def test_remove_keeps_other_callbacks(self, hooks):
        first = MagicMock(return_value=1)
        second = MagicMock(return_value=2)
        hooks.add("name", first)
        hooks.add("name", second)

        hooks.remove("name", second)

        assert hooks.apply("name", 0) == 1
        second.assert_not_called()

    def test_clear_one_name(self, hooks):
        hooks.add("a", print)
        hooks.add("b", print)

        hooks.clear("a")

        assert hooks.has("a") is False
        assert hooks.has("b") is True

    def test_clear_all(self, hooks):
        hooks.add("a", print)
        hooks.add("b", print)

        hooks.clear()

        assert len(hooks) == 0

    def test_len_counts_callbacks(self, hooks):
        hooks.add("a", print)
        hooks.add("a", repr)
        hooks.add("b", print)

        assert len(hooks) == 3

    def test_registries_are_independent(self):
        first = HookRegistry()
        second = HookRegistry()
        first.add("name", lambda value: value + 1)

        assert second.apply("name", 1) == 1
