"""Helpers for reasoning about type hints at runtime."""

import collections.abc
import inspect
from types import UnionType
from typing import Annotated, Any, List, Optional, Tuple, Union, get_args, get_origin

NoneType = type(None)

_UNION_ORIGINS = (Union, UnionType)


def unwrap_annotated(hint: Any) -> Tuple[Any, List[Any]]:
    """Split ``Annotated[T, *meta]`` into ``(T, meta)``; other hints get empty metadata."""
    metadata: List[Any] = []
    while get_origin(hint) is Annotated:
        args = get_args(hint)
        hint = args[0]
        metadata.extend(args[1:])
    return hint, metadata


def is_union(hint: Any) -> bool:
    return get_origin(hint) in _UNION_ORIGINS


def is_optional(hint: Any) -> bool:
    """Whether ``hint`` admits ``None`` (``Optional[T]``, ``T | None``)."""
    hint, _ = unwrap_annotated(hint)
    return is_union(hint) and NoneType in get_args(hint)


def strip_optional(hint: Any) -> Any:
    """Return ``T`` for ``Optional[T]``; unions of several real types are returned unchanged."""
    hint, _ = unwrap_annotated(hint)
    if is_union(hint):
        members = [arg for arg in get_args(hint) if arg is not NoneType]
        if len(members) == 1:
            return members[0]
    return hint


def runtime_class(hint: Any) -> Optional[type]:
    """Best effort mapping of a type hint to a class usable with ``isinstance``."""
    hint = strip_optional(hint)
    if hint is Any:
        return None
    if isinstance(hint, type):
        return hint
    origin = get_origin(hint)
    if isinstance(origin, type):
        return origin
    return None


def is_assignable(hint: Any, cls: Optional[type]) -> bool:
    """Whether instances of ``cls`` may be passed where ``hint`` is expected.

    Unknown classes (``None``) and hints that cannot be checked at runtime are
    treated permissively.
    """
    hint, _ = unwrap_annotated(hint)
    if hint is Any or hint is object or cls is None:
        return True
    if is_union(hint):
        return any(is_assignable(member, cls) for member in get_args(hint))
    target = runtime_class(hint)
    if target is None:
        return True
    try:
        return issubclass(cls, target)
    except TypeError:
        # Protocols that are not runtime checkable.
        return False


def is_assignable_value(hint: Any, value: Any) -> bool:
    """Whether ``value`` may be passed where ``hint`` is expected."""
    hint, _ = unwrap_annotated(hint)
    if hint is Any or hint is object or hint is inspect.Parameter.empty:
        return True
    if value is None:
        return hint is None or hint is NoneType or is_optional(hint)
    if is_union(hint):
        return any(is_assignable_value(member, value) for member in get_args(hint) if member is not NoneType)
    target = runtime_class(hint)
    if target is None:
        return True
    try:
        if not isinstance(value, target):
            return False
    except TypeError:
        return True
    return _elements_assignable(hint, value)


def _elements_assignable(hint: Any, value: Any) -> bool:
    args = get_args(hint)
    if not args:
        return True
    origin = get_origin(hint)
    if origin in MULTI_MAPPING_ORIGINS and isinstance(value, dict) and len(args) == 2:
        return all(
            is_assignable_value(args[0], key) and is_assignable_value(args[1], item) for key, item in value.items()
        )
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return all(is_assignable_value(args[0], item) for item in value)
        return len(args) == len(value) and all(is_assignable_value(arg, item) for arg, item in zip(args, value))
    # Only materialized collections are inspected; iterators would be consumed.
    if origin in MULTI_SEQUENCE_ORIGINS and isinstance(value, (list, tuple, set, frozenset)) and len(args) == 1:
        return all(is_assignable_value(args[0], item) for item in value)
    return True


def is_interface(cls: Any) -> bool:
    """Abstract base classes and protocols play the role of interfaces."""
    if not isinstance(cls, type):
        return False
    return inspect.isabstract(cls) or bool(getattr(cls, "_is_protocol", False))


def is_simple_type(cls: Any) -> bool:
    """Value types that property autowiring and on-the-fly creation skip."""
    return isinstance(cls, type) and issubclass(cls, (str, bytes, int, float, complex, bool))


MULTI_SEQUENCE_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.Collection,
    collections.abc.Iterable,
    collections.abc.Set,
    collections.abc.MutableSequence,
    collections.abc.MutableSet,
)

MULTI_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def type_display(hint: Any) -> str:
    if isinstance(hint, type):
        return hint.__qualname__
    return repr(hint)
