"""
Application layer - Use cases and orchestration.

This layer builds components from their definitions: merging, constructor
resolution, candidate selection, singleton caching and teardown.
It depends only on the Domain layer.
"""

from .constructor_resolver import ConstructorResolver
from .container import ComponentProvider, DIContainer, default_component_name
from .creation_tracker import PrototypeCreationTracker
from .definition_merger import DefinitionMerger
from .definition_registry import DefinitionRegistry
from .dependency_resolver import DependencyResolver
from .disposable_adapter import DisposableComponentAdapter
from .scopes import THREAD_SCOPE_NAME, ThreadScope
from .singleton_registry import SingletonRegistry
from .type_converter import TypeConverter

__all__ = [
    "DIContainer",
    "ComponentProvider",
    "default_component_name",
    "DefinitionRegistry",
    "DefinitionMerger",
    "SingletonRegistry",
    "PrototypeCreationTracker",
    "ConstructorResolver",
    "DependencyResolver",
    "DisposableComponentAdapter",
    "TypeConverter",
    "ThreadScope",
    "THREAD_SCOPE_NAME",
]
