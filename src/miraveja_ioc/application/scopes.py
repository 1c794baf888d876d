"""Application layer - Built-in custom scopes."""

import logging
import threading
from typing import Any, Callable, Dict, Optional

from miraveja_ioc.domain import Scope

logger = logging.getLogger(__name__)

THREAD_SCOPE_NAME = "thread"


class ThreadScope(Scope):
    """One instance per component name and thread.

    Register it with ``container.register_scope("thread", ThreadScope())`` and give
    definitions ``scope="thread"``. Instances live until the thread calls
    ``clear_thread``, which also runs their destruction callbacks.

    Attributes:
        _local: Thread-local storage for instances and destruction callbacks.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def _objects(self) -> Dict[str, Any]:
        if not hasattr(self._local, "objects"):
            self._local.objects = {}
        return self._local.objects

    def _callbacks(self) -> Dict[str, Callable[[], None]]:
        if not hasattr(self._local, "callbacks"):
            self._local.callbacks = {}
        return self._local.callbacks

    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        objects = self._objects()
        if name not in objects:
            objects[name] = object_factory()
        return objects[name]

    def remove(self, name: str) -> Optional[Any]:
        self._callbacks().pop(name, None)
        return self._objects().pop(name, None)

    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        self._callbacks()[name] = callback

    def get_conversation_id(self) -> Optional[str]:
        return threading.current_thread().name

    def clear_thread(self) -> None:
        """Drop every instance of the current thread and run their destruction callbacks."""
        callbacks = self._callbacks()
        for name, callback in list(callbacks.items()):
            try:
                callback()
            except Exception as e:
                logger.warning("Destruction callback for thread scoped component '%s' failed: %s", name, e)
        callbacks.clear()
        self._objects().clear()
