"""
miraveja-ioc: Definition-driven inversion of control container.

Public API exports for the miraveja-ioc package.
"""

# Application exports
from miraveja_ioc.application.container import ComponentProvider, DIContainer
from miraveja_ioc.application.scopes import THREAD_SCOPE_NAME, ThreadScope

# Configuration
from miraveja_ioc.config import ContainerSettings

# Domain exports
from miraveja_ioc.domain.enums import AutowireMode, Role, ScopeName
from miraveja_ioc.domain.exceptions import (
    AbstractDefinitionError,
    AmbiguousConstructorError,
    AmbiguousDependencyError,
    CandidateTypeMismatchError,
    ComponentCreationError,
    CurrentlyInCreationError,
    DefinitionOverrideError,
    DefinitionStoreError,
    DIException,
    NoMatchingCandidateError,
    NoSuchDefinitionError,
    UnsatisfiedDependencyError,
)
from miraveja_ioc.domain.interfaces import (
    ComponentFactoryAware,
    ComponentNameAware,
    ComponentPostProcessor,
    DisposableComponent,
    FactoryComponent,
    InitializingComponent,
    Scope,
)
from miraveja_ioc.domain.markers import Autowired, Qualifier, constructor, factory_method, priority
from miraveja_ioc.domain.models import ComponentDefinition, ComponentReference, ValueHolder

__version__ = "0.1.0"

__all__ = [
    # Container
    "DIContainer",
    "ComponentProvider",
    "ContainerSettings",
    "ThreadScope",
    "THREAD_SCOPE_NAME",
    # Definitions
    "ComponentDefinition",
    "ComponentReference",
    "ValueHolder",
    # Enums
    "AutowireMode",
    "Role",
    "ScopeName",
    # Markers
    "Autowired",
    "Qualifier",
    "constructor",
    "factory_method",
    "priority",
    # Lifecycle contracts
    "ComponentPostProcessor",
    "FactoryComponent",
    "InitializingComponent",
    "DisposableComponent",
    "ComponentNameAware",
    "ComponentFactoryAware",
    "Scope",
    # Exceptions
    "DIException",
    "NoSuchDefinitionError",
    "NoMatchingCandidateError",
    "AmbiguousDependencyError",
    "CandidateTypeMismatchError",
    "ComponentCreationError",
    "AbstractDefinitionError",
    "CurrentlyInCreationError",
    "UnsatisfiedDependencyError",
    "AmbiguousConstructorError",
    "DefinitionStoreError",
    "DefinitionOverrideError",
]
