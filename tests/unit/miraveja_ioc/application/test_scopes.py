"""Unit tests for the built-in thread scope."""

import logging
import threading

from miraveja_ioc.application import THREAD_SCOPE_NAME, DIContainer, ThreadScope
from miraveja_ioc.domain import ComponentDefinition, DisposableComponent


class Session(DisposableComponent):
    destroyed = 0

    def destroy(self):
        Session.destroyed += 1


class TestThreadScope:
    """Test cases for ThreadScope."""

    def test_same_instance_within_thread(self):
        """Test that a thread reuses its instance."""
        scope = ThreadScope()

        first = scope.get("session", object)
        second = scope.get("session", object)

        assert first is second

    def test_distinct_instance_per_thread(self):
        """Test that each thread gets its own instance."""
        scope = ThreadScope()
        main = scope.get("session", object)
        seen = {}

        def other():
            seen["instance"] = scope.get("session", object)

        thread = threading.Thread(target=other)
        thread.start()
        thread.join(5)

        assert seen["instance"] is not main

    def test_remove(self):
        """Test that removed instances are recreated."""
        scope = ThreadScope()
        first = scope.get("session", object)

        assert scope.remove("session") is first
        assert scope.get("session", object) is not first
        assert scope.remove("missing") is None

    def test_conversation_id_is_thread_name(self):
        """Test that the conversation id names the current thread."""
        assert ThreadScope().get_conversation_id() == threading.current_thread().name

    def test_clear_thread_runs_callbacks(self, caplog):
        """Test that clear_thread runs callbacks, logs failures and forgets instances."""
        scope = ThreadScope()
        calls = []
        first = scope.get("session", object)
        scope.register_destruction_callback("session", lambda: calls.append("session"))

        def failing():
            raise RuntimeError("boom")

        scope.register_destruction_callback("broken", failing)

        with caplog.at_level(logging.WARNING):
            scope.clear_thread()

        assert calls == ["session"]
        assert "broken" in caplog.text
        assert scope.get("session", object) is not first

    def test_with_container(self):
        """Test thread scoped components through a container."""
        container = DIContainer()
        scope = ThreadScope()
        container.register_scope(THREAD_SCOPE_NAME, scope)
        container.register_definition("session", ComponentDefinition(component_class=Session, scope=THREAD_SCOPE_NAME))
        Session.destroyed = 0

        first = container.get_component("session")
        assert container.get_component("session") is first
        assert not container.is_singleton("session")
        assert not container.is_prototype("session")

        scope.clear_thread()

        assert Session.destroyed == 1
        assert container.get_component("session") is not first
