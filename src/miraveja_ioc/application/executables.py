"""Application layer - Discovery of constructors and factory methods."""

import inspect
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, get_type_hints

from pydantic import BaseModel, ConfigDict, Field

from miraveja_ioc.domain.markers import CONSTRUCTOR_MARKER, FACTORY_METHOD_MARKER, read_marker
from miraveja_ioc.domain.type_utils import type_display


class ExecutableKind(str, Enum):
    """How an executable candidate produces the instance."""

    CONSTRUCTOR = "constructor"
    ALTERNATE_CONSTRUCTOR = "alternate_constructor"
    STATIC_FACTORY_METHOD = "static_factory_method"
    INSTANCE_FACTORY_METHOD = "instance_factory_method"


class ParameterInfo(BaseModel):
    """One parameter of an executable candidate.

    Attributes:
        parameter: The ``inspect`` parameter.
        annotation: Resolved type hint, ``Any`` when missing.
        annotated: Whether the parameter carries a type hint at all.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    parameter: inspect.Parameter
    annotation: Any = Field(default=Any, description="Resolved type hint.")
    annotated: bool = False

    @property
    def name(self) -> str:
        return self.parameter.name

    @property
    def has_default(self) -> bool:
        return self.parameter.default is not inspect.Parameter.empty

    @property
    def default(self) -> Any:
        return self.parameter.default

    @property
    def keyword_only(self) -> bool:
        return self.parameter.kind is inspect.Parameter.KEYWORD_ONLY


class ExecutableCandidate(BaseModel):
    """A constructor, alternate constructor or factory method that could create a component.

    Attributes:
        declaring_class: Class owning the executable.
        attribute_name: Attribute the executable lives under (``__init__`` for constructors).
        kind: How the candidate is invoked.
        parameters: Injectable parameters, excluding ``self``/``cls`` and variadics.
        return_type: Declared return type, if any.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    declaring_class: type
    attribute_name: str
    kind: ExecutableKind
    parameters: Tuple[ParameterInfo, ...] = Field(default_factory=tuple)
    return_type: Any = None

    @property
    def is_public(self) -> bool:
        return self.attribute_name == "__init__" or not self.attribute_name.startswith("_")

    @property
    def parameter_count(self) -> int:
        return len(self.parameters)

    @property
    def parameter_types(self) -> List[Any]:
        return [parameter.annotation for parameter in self.parameters]

    @property
    def is_constructor(self) -> bool:
        return self.kind in (ExecutableKind.CONSTRUCTOR, ExecutableKind.ALTERNATE_CONSTRUCTOR)

    def invoke(self, arguments: Tuple[Any, ...], target: Any = None) -> Any:
        """Call the executable with a positional argument array.

        Args:
            arguments: One value per entry in ``parameters``.
            target: Factory instance, for instance factory methods.
        """
        positional: List[Any] = []
        keywords: Dict[str, Any] = {}
        for info, value in zip(self.parameters, arguments):
            if info.keyword_only:
                keywords[info.name] = value
            else:
                positional.append(value)
        if self.kind is ExecutableKind.CONSTRUCTOR:
            return self.declaring_class(*positional, **keywords)
        if self.kind is ExecutableKind.INSTANCE_FACTORY_METHOD:
            return getattr(target, self.attribute_name)(*positional, **keywords)
        return getattr(self.declaring_class, self.attribute_name)(*positional, **keywords)

    def __repr__(self) -> str:
        params = ", ".join(f"{p.name}: {type_display(p.annotation)}" for p in self.parameters)
        return f"{self.declaring_class.__qualname__}.{self.attribute_name}({params})"

    __str__ = __repr__


def _describe(function: Callable, skip_first: bool) -> Tuple[Tuple[ParameterInfo, ...], Any]:
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return (), None
    try:
        hints = get_type_hints(function, include_extras=True)
    except (NameError, TypeError, AttributeError):
        hints = {}

    infos: List[ParameterInfo] = []
    for index, (name, parameter) in enumerate(signature.parameters.items()):
        if skip_first and index == 0:
            continue
        if parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if name in hints:
            infos.append(ParameterInfo(parameter=parameter, annotation=hints[name], annotated=True))
        elif parameter.annotation is not inspect.Parameter.empty:
            infos.append(ParameterInfo(parameter=parameter, annotation=parameter.annotation, annotated=True))
        else:
            infos.append(ParameterInfo(parameter=parameter))
    return tuple(infos), hints.get("return")


def _class_attributes(cls: type) -> List[Tuple[str, Any]]:
    seen = set()
    attributes: List[Tuple[str, Any]] = []
    for klass in cls.__mro__:
        if klass is object:
            continue
        for name, attribute in vars(klass).items():
            if name not in seen:
                seen.add(name)
                attributes.append((name, attribute))
    return attributes


def constructor_candidates(cls: type, non_public_access_allowed: bool = True) -> List[ExecutableCandidate]:
    """``__init__`` plus every ``@constructor`` classmethod or staticmethod of ``cls``."""
    parameters, _ = _describe(cls.__init__, skip_first=True)
    candidates = [
        ExecutableCandidate(
            declaring_class=cls,
            attribute_name="__init__",
            kind=ExecutableKind.CONSTRUCTOR,
            parameters=parameters,
            return_type=cls,
        )
    ]
    for name, attribute in _class_attributes(cls):
        if not isinstance(attribute, (classmethod, staticmethod)):
            continue
        if not read_marker(attribute, CONSTRUCTOR_MARKER, False):
            continue
        parameters, return_type = _describe(attribute.__func__, skip_first=isinstance(attribute, classmethod))
        candidates.append(
            ExecutableCandidate(
                declaring_class=cls,
                attribute_name=name,
                kind=ExecutableKind.ALTERNATE_CONSTRUCTOR,
                parameters=parameters,
                return_type=return_type or cls,
            )
        )
    if not non_public_access_allowed:
        candidates = [candidate for candidate in candidates if candidate.is_public]
    return candidates


def factory_method_candidates(
    factory_class: type,
    method_name: str,
    is_static: bool,
    non_public_access_allowed: bool = True,
) -> List[ExecutableCandidate]:
    """Every method of ``factory_class`` named ``method_name`` or tagged ``@factory_method(method_name)``.

    Args:
        factory_class: Class holding the factory methods.
        method_name: Factory method name from the definition.
        is_static: Look for class/static methods (no factory component) or instance methods.
        non_public_access_allowed: Keep underscore-prefixed methods.
    """
    candidates: List[ExecutableCandidate] = []
    for name, attribute in _class_attributes(factory_class):
        if name != method_name and read_marker(attribute, FACTORY_METHOD_MARKER) != method_name:
            continue
        static = isinstance(attribute, (classmethod, staticmethod))
        if is_static and not static:
            continue
        function = attribute.__func__ if static else attribute
        if not callable(function):
            continue
        parameters, return_type = _describe(
            function, skip_first=not isinstance(attribute, staticmethod)
        )
        kind = ExecutableKind.STATIC_FACTORY_METHOD if static else ExecutableKind.INSTANCE_FACTORY_METHOD
        candidates.append(
            ExecutableCandidate(
                declaring_class=factory_class,
                attribute_name=name,
                kind=kind,
                parameters=parameters,
                return_type=return_type,
            )
        )
    if not non_public_access_allowed:
        candidates = [candidate for candidate in candidates if candidate.is_public]
    return candidates


def unique_return_type(candidates: List[ExecutableCandidate]) -> Optional[type]:
    """The common declared return class of all candidates, if they agree on one."""
    types = {candidate.return_type for candidate in candidates}
    if len(types) == 1:
        only = next(iter(types))
        return only if isinstance(only, type) else None
    return None
