"""
Markers understood by the container.

Qualifiers and autowiring flags travel inside ``typing.Annotated`` metadata;
the decorators tag alternate constructors, factory-method variants and class
priorities so that the resolvers can find them without any scanning.
"""

from typing import Any, Callable, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")

FACTORY_COMPONENT_PREFIX = "&"
"""Prefix that asks for a factory component itself rather than its product."""

INFER_METHOD = "(inferred)"
"""Destroy-method name meaning "use ``close`` if the instance has one"."""

CONSTRUCTOR_MARKER = "__ioc_constructor__"
FACTORY_METHOD_MARKER = "__ioc_factory_method__"
PRIORITY_MARKER = "__ioc_priority__"


class Qualifier(BaseModel):
    """Narrows a dependency to the candidate whose name or qualifier equals ``value``.

    Example:
        >>> def __init__(self, db: Annotated[Database, Qualifier("reporting")]): ...
    """

    model_config = ConfigDict(frozen=True)

    value: str

    def __init__(self, value: str, **data: Any) -> None:
        super().__init__(value=value, **data)


class Autowired(BaseModel):
    """Marks an annotated class attribute for field injection.

    Example:
        >>> class OrderService:
        ...     repository: Annotated[OrderRepository, Autowired()]
    """

    model_config = ConfigDict(frozen=True)

    required: bool = True


def _mark(target: Any, marker: str, value: Any) -> None:
    function = getattr(target, "__func__", target)
    setattr(function, marker, value)


def read_marker(target: Any, marker: str, default: Any = None) -> Any:
    """Read a marker set by one of the decorators, looking through classmethod/staticmethod."""
    function = getattr(target, "__func__", target)
    return getattr(function, marker, default)


def constructor(target: T) -> T:
    """Declare a classmethod or staticmethod as an alternate constructor.

    Alternate constructors compete with ``__init__`` during constructor resolution.

    Example:
        >>> class Endpoint:
        ...     def __init__(self, url: str): ...
        ...
        ...     @constructor
        ...     @classmethod
        ...     def from_parts(cls, host: str, port: int) -> "Endpoint": ...
    """
    _mark(target, CONSTRUCTOR_MARKER, True)
    return target


def factory_method(name: str) -> Callable[[T], T]:
    """Declare a method as an overload of the factory method called ``name``.

    Python has no method overloading, so every variant carries its own attribute
    name and is grouped under ``name`` through this marker.
    """

    def decorator(target: T) -> T:
        _mark(target, FACTORY_METHOD_MARKER, name)
        return target

    return decorator


def priority(value: int) -> Callable[[T], T]:
    """Assign a numeric priority to a component class. Lower values win."""

    def decorator(cls: T) -> T:
        setattr(cls, PRIORITY_MARKER, value)
        return cls

    return decorator


def get_priority(obj: Any) -> Optional[int]:
    """Return the priority declared on ``obj``'s class (or on ``obj`` if it is a class)."""
    cls = obj if isinstance(obj, type) else type(obj)
    return getattr(cls, PRIORITY_MARKER, None)
