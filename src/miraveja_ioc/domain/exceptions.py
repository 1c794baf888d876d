from typing import Iterable, List, Optional, Type


class DIException(Exception):
    """Base exception for container errors.

    Attributes:
        suppressed: Other errors observed while the failing operation ran. They
            did not cause the failure but may explain it.
    """

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.suppressed: List[BaseException] = []

    def add_suppressed(self, error: BaseException) -> None:
        """Record an error that was swallowed on the way to this one."""
        if error is not self and error not in self.suppressed:
            self.suppressed.append(error)


def _type_name(component_type: Optional[Type]) -> str:
    if component_type is None:
        return "None"
    return getattr(component_type, "__qualname__", None) or repr(component_type)


class NoSuchDefinitionError(DIException):
    """Raised when a component is requested for which no definition exists.

    Attributes:
        name: The requested component name, if the lookup was by name.
        component_type: The requested type, if the lookup was by type.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        component_type: Optional[Type] = None,
        message: Optional[str] = None,
    ) -> None:
        self.name = name
        self.component_type = component_type
        if message is None:
            if name is not None:
                message = f"No component named '{name}' available"
            else:
                message = f"No qualifying component of type '{_type_name(component_type)}' available"
        elif name is not None:
            message = f"No component named '{name}' available: {message}"
        else:
            message = f"No qualifying component of type '{_type_name(component_type)}' available: {message}"
        super().__init__(message)


class NoMatchingCandidateError(NoSuchDefinitionError):
    """Raised when a required dependency has no candidate of the requested type."""

    def __init__(self, component_type: Optional[Type], reason: Optional[str] = None) -> None:
        super().__init__(component_type=component_type, message=reason)


class AmbiguousDependencyError(NoSuchDefinitionError):
    """Raised when several candidates match a single-valued dependency.

    Attributes:
        candidate_names: Names of the competing candidates.
    """

    def __init__(
        self,
        component_type: Optional[Type],
        candidate_names: Iterable[str],
        reason: Optional[str] = None,
    ) -> None:
        self.candidate_names = list(candidate_names)
        detail = f"expected single matching component but found {len(self.candidate_names)}: "
        detail += ",".join(self.candidate_names)
        if reason:
            detail = f"{reason}; {detail}"
        super().__init__(component_type=component_type, message=detail)


class CandidateTypeMismatchError(DIException):
    """Raised when a component exists but is not an instance of the required type.

    Attributes:
        name: Name of the offending component.
        required_type: The type the injection point asked for.
        actual_type: The type of the instance the container holds.
    """

    def __init__(self, name: str, required_type: Type, actual_type: Type) -> None:
        self.name = name
        self.required_type = required_type
        self.actual_type = actual_type
        super().__init__(
            f"Component named '{name}' is expected to be of type '{_type_name(required_type)}' "
            f"but was actually of type '{_type_name(actual_type)}'"
        )


class ComponentCreationError(DIException):
    """Raised when the container fails while building a component.

    Attributes:
        name: The component being created.
    """

    def __init__(self, name: Optional[str], message: str) -> None:
        self.name = name
        if name is not None:
            message = f"Error creating component with name '{name}': {message}"
        super().__init__(message)


class AbstractDefinitionError(ComponentCreationError):
    """Raised when an abstract definition is asked to produce an instance."""

    def __init__(self, name: str) -> None:
        super().__init__(name, "Component definition is abstract")


class CurrentlyInCreationError(ComponentCreationError):
    """Raised when a component is requested while it is still being built.

    This is how unresolvable circular references surface: constructor cycles,
    prototype cycles, and cycles between threads.
    """

    def __init__(self, name: str, message: Optional[str] = None) -> None:
        if message is None:
            message = "Requested component is currently in creation: Is there an unresolvable circular reference?"
        super().__init__(name, message)


class CreationNotAllowedError(ComponentCreationError):
    """Raised when a singleton is requested while the container is tearing down."""


class InstantiationFailureError(ComponentCreationError):
    """Raised when the constructor, factory method or supplier of a component fails.

    The original exception is available as ``__cause__``.

    Attributes:
        component_type: The class that failed to instantiate, if known.
    """

    def __init__(self, name: Optional[str], component_type: Optional[Type], reason: str) -> None:
        self.component_type = component_type
        super().__init__(name, f"Instantiation of '{_type_name(component_type)}' failed: {reason}")


class UnsatisfiedDependencyError(ComponentCreationError):
    """Raised when an injection point cannot be satisfied.

    Attributes:
        injection_point: Human readable description of the parameter or attribute.
    """

    def __init__(self, name: Optional[str], injection_point: str, reason: str) -> None:
        self.injection_point = injection_point
        super().__init__(name, f"Unsatisfied dependency expressed through {injection_point}: {reason}")


class AmbiguousConstructorError(ComponentCreationError):
    """Raised when several constructors or factory methods rank equally in strict mode.

    Attributes:
        candidates: The tied executables.
    """

    def __init__(self, name: str, candidates: Iterable[object]) -> None:
        self.candidates = list(candidates)
        super().__init__(
            name,
            "Ambiguous constructor matches found (hint: specify index/type/name arguments "
            f"to avoid type ambiguities): {self.candidates}",
        )


class DefinitionStoreError(DIException):
    """Raised when a definition cannot be stored or read back.

    Attributes:
        name: The affected component name.
    """

    def __init__(self, name: Optional[str], message: str) -> None:
        self.name = name
        if name is not None:
            message = f"Invalid component definition with name '{name}': {message}"
        super().__init__(message)


class DefinitionOverrideError(DefinitionStoreError):
    """Raised when a definition would replace another one and overriding is disabled."""

    def __init__(self, name: str, definition: object, existing: object) -> None:
        self.definition = definition
        self.existing = existing
        super().__init__(
            name,
            f"Cannot register component definition [{definition}] since there is already "
            f"[{existing}] bound",
        )


class DefinitionValidationError(DIException):
    """Raised when a definition is internally inconsistent."""


class IllegalStateError(DIException):
    """Raised for operations the container does not allow in its current state."""


class TypeConversionError(DIException):
    """Raised when a configured value cannot be converted to the required type.

    Attributes:
        value: The value that failed to convert.
        required_type: The target type.
    """

    def __init__(self, value: object, required_type: object, reason: str) -> None:
        self.value = value
        self.required_type = required_type
        super().__init__(f"Failed to convert value {value!r} to required type '{required_type}': {reason}")
