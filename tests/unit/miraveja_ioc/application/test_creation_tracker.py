"""Unit tests for PrototypeCreationTracker."""

import threading

import pytest

from miraveja_ioc.application.creation_tracker import PrototypeCreationTracker
from miraveja_ioc.domain import CurrentlyInCreationError


class TestPrototypeCreationTracker:
    """Test cases for PrototypeCreationTracker."""

    def test_push_and_pop(self):
        """Test that a pushed name is in creation until popped."""
        tracker = PrototypeCreationTracker()

        tracker.push("command")
        assert tracker.is_in_creation("command")

        tracker.pop("command")
        assert not tracker.is_in_creation("command")

    def test_push_twice_raises(self):
        """Test that a prototype requiring itself is detected."""
        tracker = PrototypeCreationTracker()
        tracker.push("command")

        with pytest.raises(CurrentlyInCreationError) as exc_info:
            tracker.push("command")

        assert exc_info.value.name == "command"

    def test_check_does_not_push(self):
        """Test that check only inspects the stack."""
        tracker = PrototypeCreationTracker()

        tracker.check("command")

        assert not tracker.is_in_creation("command")

    def test_pop_unknown_name_is_ignored(self):
        """Test that popping a name that is not in creation does nothing."""
        tracker = PrototypeCreationTracker()

        tracker.pop("missing")

        assert not tracker.is_in_creation("missing")

    def test_nested_names(self):
        """Test that nested creations are tracked independently."""
        tracker = PrototypeCreationTracker()
        tracker.push("outer")
        tracker.push("inner")

        tracker.pop("inner")

        assert tracker.is_in_creation("outer")
        assert not tracker.is_in_creation("inner")

    def test_thread_isolation(self):
        """Test that each thread has its own stack."""
        tracker = PrototypeCreationTracker()
        tracker.push("command")
        seen = {}

        def other_thread():
            seen["in_creation"] = tracker.is_in_creation("command")
            tracker.push("command")
            seen["pushed"] = True

        thread = threading.Thread(target=other_thread)
        thread.start()
        thread.join(5)

        assert seen == {"in_creation": False, "pushed": True}

    def test_clear(self):
        """Test that clear empties the current thread's stack."""
        tracker = PrototypeCreationTracker()
        tracker.push("a")
        tracker.push("b")

        tracker.clear()

        assert not tracker.is_in_creation("a")
        assert not tracker.is_in_creation("b")
