"""
Domain layer - Core definitions, markers, contracts and errors.

This layer holds the vocabulary of the container: what a component definition
is, what an injection point is, and which errors can surface.
It has no dependencies on other layers.
"""

from .enums import AutowireMode, Role, ScopeName, SingletonState
from .exceptions import (
    AbstractDefinitionError,
    AmbiguousConstructorError,
    AmbiguousDependencyError,
    CandidateTypeMismatchError,
    ComponentCreationError,
    CreationNotAllowedError,
    CurrentlyInCreationError,
    DefinitionOverrideError,
    DefinitionStoreError,
    DefinitionValidationError,
    DIException,
    IllegalStateError,
    InstantiationFailureError,
    NoMatchingCandidateError,
    NoSuchDefinitionError,
    TypeConversionError,
    UnsatisfiedDependencyError,
)
from .interfaces import (
    ComponentFactoryAware,
    ComponentNameAware,
    ComponentPostProcessor,
    DisposableComponent,
    FactoryComponent,
    IComponentFactory,
    IDefinitionRegistry,
    InitializingComponent,
    Scope,
)
from .markers import (
    FACTORY_COMPONENT_PREFIX,
    INFER_METHOD,
    Autowired,
    Qualifier,
    constructor,
    factory_method,
    priority,
)
from .models import (
    ComponentDefinition,
    ComponentReference,
    ConstructorArgumentValues,
    DependencyDescriptor,
    SingletonEntry,
    ValueHolder,
)

# Rebuild Pydantic models to resolve forward references
ComponentDefinition.model_rebuild()

__all__ = [
    # Enums
    "AutowireMode",
    "Role",
    "ScopeName",
    "SingletonState",
    # Exceptions
    "DIException",
    "AbstractDefinitionError",
    "AmbiguousConstructorError",
    "AmbiguousDependencyError",
    "CandidateTypeMismatchError",
    "ComponentCreationError",
    "CreationNotAllowedError",
    "CurrentlyInCreationError",
    "DefinitionOverrideError",
    "DefinitionStoreError",
    "DefinitionValidationError",
    "IllegalStateError",
    "InstantiationFailureError",
    "NoMatchingCandidateError",
    "NoSuchDefinitionError",
    "TypeConversionError",
    "UnsatisfiedDependencyError",
    # Interfaces
    "IComponentFactory",
    "IDefinitionRegistry",
    "Scope",
    "ComponentPostProcessor",
    "FactoryComponent",
    "InitializingComponent",
    "DisposableComponent",
    "ComponentNameAware",
    "ComponentFactoryAware",
    # Markers
    "FACTORY_COMPONENT_PREFIX",
    "INFER_METHOD",
    "Autowired",
    "Qualifier",
    "constructor",
    "factory_method",
    "priority",
    # Models
    "ComponentDefinition",
    "ComponentReference",
    "ConstructorArgumentValues",
    "DependencyDescriptor",
    "SingletonEntry",
    "ValueHolder",
]
