"""Application layer - Singleton cache and circular reference resolution."""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol

from miraveja_ioc.domain import (
    CreationNotAllowedError,
    CurrentlyInCreationError,
    DIException,
    IllegalStateError,
    SingletonEntry,
    SingletonState,
)

logger = logging.getLogger(__name__)

SUPPRESSED_EXCEPTIONS_LIMIT = 100


class Disposable(Protocol):
    def destroy(self) -> None: ...


class SingletonRegistry:
    """Caches shared instances and tracks which names are being built.

    Each name occupies at most one tier, represented by a ``SingletonEntry``:
    ``EARLY_FACTORY`` (a one-shot factory can expose the raw instance),
    ``EARLY_REFERENCE`` (the raw instance was handed out to break a cycle), or
    ``FINISHED``. Names being built are owned by the thread that started the
    build; other threads asking for the same name wait until it is finished.

    The registry also records dependency and containment edges between names
    and destroys disposable singletons dependents-first.

    Attributes:
        _entries: Name to cache entry.
        _creation_owners: Name in creation to the identity of the building thread.
        _waiting_for: Thread identity to the name it is waiting on.
        _condition: Single mutex (with wait support) guarding all of the above.
    """

    def __init__(self) -> None:
        """Initialize an empty singleton registry."""
        self._lock = threading.RLock()
        self._condition = threading.Condition(self._lock)
        self._entries: Dict[str, SingletonEntry] = {}
        self._registered: Dict[str, None] = {}
        self._creation_owners: Dict[str, int] = {}
        self._waiting_for: Dict[int, str] = {}
        self._local = threading.local()
        self._destroying = False
        self._disposables: Dict[str, Disposable] = {}
        self._contained: Dict[str, List[str]] = {}
        self._dependents: Dict[str, List[str]] = {}
        self._dependencies: Dict[str, List[str]] = {}

    # Cache tiers

    def register_singleton(self, name: str, instance: Any) -> None:
        """Register a fully built instance under ``name``.

        Raises:
            IllegalStateError: If an instance is already registered under ``name``.
        """
        with self._lock:
            existing = self._entries.get(name)
            if existing is not None and existing.state is SingletonState.FINISHED:
                raise IllegalStateError(
                    f"Could not register object [{instance!r}] under name '{name}': "
                    f"there is already object [{existing.instance!r}] bound"
                )
            self._add_singleton(name, instance)

    def _add_singleton(self, name: str, instance: Any) -> None:
        self._entries[name] = SingletonEntry.finished(instance)
        self._registered[name] = None

    def add_singleton_factory(self, name: str, factory: Callable[[], Any]) -> None:
        """Register a one-shot factory exposing an early reference for ``name``."""
        with self._lock:
            existing = self._entries.get(name)
            if existing is None or existing.state is not SingletonState.FINISHED:
                self._entries[name] = SingletonEntry.early_factory(factory)
                self._registered[name] = None

    def get_singleton(self, name: str, allow_early_reference: bool = True) -> Optional[Any]:
        """Return the cached instance for ``name``, or an early reference while it is built.

        Early references are only visible to the thread building ``name``; any other
        thread gets ``None`` and must go through ``get_or_create`` to wait.

        Args:
            name: Component name.
            allow_early_reference: Whether a pending early-exposure factory may be invoked.
        """
        entry = self._entries.get(name)
        if entry is not None and entry.state is SingletonState.FINISHED:
            return entry.instance
        if entry is None or self._creation_owners.get(name) != threading.get_ident():
            return None
        if entry.state is SingletonState.EARLY_REFERENCE:
            return entry.instance
        if not allow_early_reference:
            return None
        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                return None
            if entry.state is SingletonState.EARLY_FACTORY:
                instance = entry.factory()
                self._entries[name] = SingletonEntry.early_reference(instance)
                logger.debug("Exposed early reference for singleton '%s'", name)
                return instance
            return entry.instance

    def get_or_create(self, name: str, factory: Callable[[], Any]) -> Any:
        """Return the finished singleton for ``name``, creating it with ``factory`` if needed.

        The calling thread owns ``name`` until the factory returns or raises. A
        re-entrant request for the same name from the owning thread, or a request
        that would make threads wait on each other in a cycle, raises
        ``CurrentlyInCreationError``. Other threads asking for ``name`` wait.

        Raises:
            CurrentlyInCreationError: On an unresolvable circular reference.
            CreationNotAllowedError: While singletons are being destroyed.
        """
        me = threading.get_ident()
        with self._condition:
            while True:
                entry = self._entries.get(name)
                if entry is not None and entry.state is SingletonState.FINISHED:
                    return entry.instance
                if self._destroying:
                    raise CreationNotAllowedError(
                        name,
                        "Singleton creation not allowed while singletons of this container are in destruction",
                    )
                owner = self._creation_owners.get(name)
                if owner is None:
                    break
                if owner == me:
                    raise CurrentlyInCreationError(name)
                if self._closes_wait_cycle(name, me):
                    raise CurrentlyInCreationError(
                        name,
                        "Requested component is being created by another thread that is waiting on this one: "
                        "Is there an unresolvable circular reference?",
                    )
                self._waiting_for[me] = name
                try:
                    self._condition.wait()
                finally:
                    self._waiting_for.pop(me, None)

            self._creation_owners[name] = me
            record_suppressed = getattr(self._local, "suppressed", None) is None
            if record_suppressed:
                self._local.suppressed = []
            logger.debug("Creating shared instance of singleton '%s'", name)

        try:
            instance = factory()
        except Exception as e:
            with self._lock:
                self._remove_singleton(name)
            if record_suppressed and isinstance(e, DIException):
                for suppressed in self._local.suppressed:
                    e.add_suppressed(suppressed)
            raise
        else:
            with self._lock:
                self._add_singleton(name, instance)
            return instance
        finally:
            if record_suppressed:
                self._local.suppressed = None
            with self._condition:
                self._creation_owners.pop(name, None)
                self._condition.notify_all()

    def _closes_wait_cycle(self, name: str, me: int) -> bool:
        owner = self._creation_owners.get(name)
        seen = set()
        while owner is not None and owner not in seen:
            if owner == me:
                return True
            seen.add(owner)
            waited_name = self._waiting_for.get(owner)
            if waited_name is None:
                return False
            owner = self._creation_owners.get(waited_name)
        return False

    def on_suppressed_exception(self, error: BaseException) -> None:
        """Record an error swallowed during the current singleton creation."""
        suppressed = getattr(self._local, "suppressed", None)
        if suppressed is not None and len(suppressed) < SUPPRESSED_EXCEPTIONS_LIMIT:
            suppressed.append(error)

    def remove_singleton(self, name: str) -> None:
        """Forget the singleton ``name`` in every state, without destroying it.

        Args:
            name: Component name.
        """
        with self._lock:
            self._remove_singleton(name)

    def _remove_singleton(self, name: str) -> None:
        self._entries.pop(name, None)
        self._registered.pop(name, None)

    def contains_singleton(self, name: str) -> bool:
        """Check whether a fully initialized singleton is registered under ``name``.

        Returns:
            True for finished singletons; early references do not count.
        """
        entry = self._entries.get(name)
        return entry is not None and entry.state is SingletonState.FINISHED

    def entry_state(self, name: str) -> Optional[SingletonState]:
        """Return the cache tier ``name`` currently sits in, or None when absent."""
        entry = self._entries.get(name)
        return entry.state if entry is not None else None

    def singleton_names(self) -> List[str]:
        """Return the names of finished singletons in registration order."""
        with self._lock:
            return [name for name in self._registered if self.contains_singleton(name)]

    def singleton_count(self) -> int:
        return len(self.singleton_names())

    def is_currently_in_creation(self, name: str) -> bool:
        """Check whether any thread is creating the singleton ``name`` right now."""
        return name in self._creation_owners

    def is_created_by_current_thread(self, name: str) -> bool:
        """Check whether the calling thread owns the creation of ``name``."""
        return self._creation_owners.get(name) == threading.get_ident()

    # Dependency edges

    def register_contained(self, contained_name: str, containing_name: str) -> None:
        """Record that ``contained_name`` is an inner component of ``containing_name``."""
        with self._lock:
            contained = self._contained.setdefault(containing_name, [])
            if contained_name in contained:
                return
            contained.append(contained_name)
        self.register_dependent(contained_name, containing_name)

    def register_dependent(self, name: str, dependent_name: str) -> None:
        """Record that ``dependent_name`` depends on ``name``."""
        with self._lock:
            dependents = self._dependents.setdefault(name, [])
            if dependent_name not in dependents:
                dependents.append(dependent_name)
            dependencies = self._dependencies.setdefault(dependent_name, [])
            if name not in dependencies:
                dependencies.append(name)

    def is_dependent(self, name: str, dependent_name: str) -> bool:
        """Whether ``dependent_name`` depends on ``name``, directly or transitively."""
        with self._lock:
            return self._is_dependent(name, dependent_name, set())

    def _is_dependent(self, name: str, dependent_name: str, seen: set) -> bool:
        if name in seen:
            return False
        dependents = self._dependents.get(name)
        if not dependents:
            return False
        if dependent_name in dependents:
            return True
        seen.add(name)
        return any(self._is_dependent(transitive, dependent_name, seen) for transitive in dependents)

    def has_dependents(self, name: str) -> bool:
        """Check whether any component has been recorded as depending on ``name``."""
        return bool(self._dependents.get(name))

    def dependents_of(self, name: str) -> List[str]:
        """Return the components that depend on ``name``.

        Args:
            name: Component name.

        Returns:
            Dependent names in the order they were recorded.
        """
        with self._lock:
            return list(self._dependents.get(name, []))

    def dependencies_of(self, name: str) -> List[str]:
        """Return the components ``name`` depends on, in the order they were recorded."""
        with self._lock:
            return list(self._dependencies.get(name, []))

    # Destruction

    def register_disposable(self, name: str, disposable: Disposable) -> None:
        """Register the teardown callback of singleton ``name``."""
        with self._lock:
            self._disposables[name] = disposable

    def is_destroying(self) -> bool:
        """Check whether ``destroy_singletons`` is running."""
        return self._destroying

    def destroy_singletons(self) -> None:
        """Destroy every disposable singleton, dependents before their dependencies."""
        logger.debug("Destroying singletons in %s", self)
        with self._lock:
            self._destroying = True
            names = list(self._disposables)
        try:
            for name in reversed(names):
                self.destroy_singleton(name)
        finally:
            with self._condition:
                self._contained.clear()
                self._dependents.clear()
                self._dependencies.clear()
                self._entries.clear()
                self._registered.clear()
                self._destroying = False
                self._condition.notify_all()

    def destroy_singleton(self, name: str) -> None:
        """Remove singleton ``name`` and destroy it after everything that depends on it."""
        with self._lock:
            self._remove_singleton(name)
            disposable = self._disposables.pop(name, None)
        self._destroy_component(name, disposable)

    def _destroy_component(self, name: str, disposable: Optional[Disposable]) -> None:
        with self._lock:
            dependents = self._dependents.pop(name, [])
        if dependents:
            logger.debug("Retrieved dependent components for '%s': %s", name, dependents)
        for dependent in dependents:
            self.destroy_singleton(dependent)

        if disposable is not None:
            try:
                disposable.destroy()
            except Exception as e:
                logger.warning("Destruction of component with name '%s' threw an exception: %s", name, e)

        with self._lock:
            contained = self._contained.pop(name, [])
        for contained_name in contained:
            self.destroy_singleton(contained_name)

        with self._lock:
            for dependent_list in self._dependents.values():
                if name in dependent_list:
                    dependent_list.remove(name)
            self._dependencies.pop(name, None)

    def __repr__(self) -> str:
        return f"SingletonRegistry(singletons={list(self._registered)})"
