"""Application layer - Prototype creation tracking."""

import threading
from typing import List

from miraveja_ioc.domain import CurrentlyInCreationError


class PrototypeCreationTracker:
    """Tracks the prototype names the current thread is building.

    Prototypes are never cached, so a prototype that (directly or indirectly)
    requires itself can never be satisfied. Each thread keeps its own stack of
    names; a name appearing twice means such a cycle.

    Attributes:
        _local: Thread-local storage for the creation stacks.
    """

    def __init__(self) -> None:
        """Initialize the tracker with thread-local storage."""
        self._local = threading.local()

    def _get_stack(self) -> List[str]:
        """Get the current thread's creation stack."""
        if not hasattr(self._local, "stack"):
            self._local.stack = []
        return self._local.stack

    def check(self, name: str) -> None:
        """Fail if ``name`` is already being built by this thread.

        Raises:
            CurrentlyInCreationError: If the prototype is already in creation.
        """
        if name in self._get_stack():
            raise CurrentlyInCreationError(name)

    def push(self, name: str) -> None:
        """Mark ``name`` as in creation for the current thread.

        Raises:
            CurrentlyInCreationError: If it already is.

        Example:
            >>> tracker = PrototypeCreationTracker()
            >>> tracker.push("command")
            >>> tracker.push("command")  # Raises CurrentlyInCreationError
        """
        self.check(name)
        self._get_stack().append(name)

    def pop(self, name: str) -> None:
        """Unmark ``name``. Called in a ``finally`` block after creation."""
        stack = self._get_stack()
        if name in stack:
            stack.reverse()
            stack.remove(name)
            stack.reverse()

    def is_in_creation(self, name: str) -> bool:
        return name in self._get_stack()

    def clear(self) -> None:
        """Clear the current thread's stack. Useful for testing or error recovery."""
        if hasattr(self._local, "stack"):
            self._local.stack.clear()
