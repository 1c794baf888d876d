"""Application layer - Flattening of parent/child definition chains."""

import logging
import threading
from typing import Callable, Dict, List, Optional

from miraveja_ioc.application.definition_registry import DefinitionRegistry
from miraveja_ioc.config import ContainerSettings
from miraveja_ioc.domain import (
    ComponentDefinition,
    DefinitionStoreError,
    NoSuchDefinitionError,
    ScopeName,
)

logger = logging.getLogger(__name__)


class DefinitionMerger:
    """Resolves definition inheritance into cached, flattened definitions.

    A child definition names its parent; the merged result is a copy of the
    merged parent with the child's settings applied on top. Merged definitions
    are cached per name and invalidated when the name or any ancestor changes.

    Attributes:
        _registry: Source of raw definitions.
        _parent_lookup: Merged-definition lookup of the parent container, if any.
        _cache: Name to merged definition.
        _lock: Guards ``_cache``. Distinct from the registry and singleton locks.
    """

    def __init__(
        self,
        registry: DefinitionRegistry,
        parent_lookup: Optional[Callable[[str], ComponentDefinition]] = None,
        settings: Optional[ContainerSettings] = None,
    ) -> None:
        self._registry = registry
        self._parent_lookup = parent_lookup
        self._settings = settings or ContainerSettings()
        self._cache: Dict[str, ComponentDefinition] = {}
        self._lock = threading.RLock()

    def merge(self, name: str) -> ComponentDefinition:
        """Return the merged definition for ``name``.

        Falls back to the parent container when ``name`` is not defined locally.

        Raises:
            NoSuchDefinitionError: If no definition exists for ``name``.
            DefinitionStoreError: If a parent in the chain cannot be resolved.
        """
        cached = self._cache.get(name)
        if cached is not None and not cached.stale:
            return cached
        definition = self._registry.find_definition(name)
        if definition is None:
            if self._parent_lookup is not None:
                return self._parent_lookup(name)
            raise NoSuchDefinitionError(name)
        return self.merge_definition(name, definition)

    def merge_definition(
        self,
        name: str,
        definition: ComponentDefinition,
        containing: Optional[ComponentDefinition] = None,
    ) -> ComponentDefinition:
        """Merge ``definition`` (registered as ``name``) with its ancestors.

        Args:
            name: Name of the definition, used for the cache and for parent lookups.
            definition: The raw definition.
            containing: Definition of the enclosing component when ``definition`` is an
                inner definition. Inner results are never cached.

        Returns:
            A flattened definition with scope defaulted to singleton.
        """
        with self._lock:
            merged: Optional[ComponentDefinition] = None
            previous: Optional[ComponentDefinition] = None

            if containing is None:
                merged = self._cache.get(name)

            if merged is None or merged.stale:
                previous = merged
                if definition.parent_name is None:
                    merged = definition.clone()
                else:
                    parent = self._merge_parent(name, definition.parent_name)
                    merged = parent.clone()
                    merged.override_from(definition)

                if not merged.scope:
                    merged.scope = ScopeName.SINGLETON.value

                # An inner component cannot outlive a non-singleton container.
                if containing is not None and not containing.is_singleton and merged.is_singleton:
                    merged.scope = containing.scope

                if containing is None and self._settings.cache_definition_metadata:
                    self._cache[name] = merged
                    logger.debug("Cached merged definition for '%s'", name)

            if previous is not None:
                self._copy_relevant_caches(previous, merged)
            return merged

    def _merge_parent(self, name: str, parent_name: str) -> ComponentDefinition:
        parent_name = self._registry.canonical_name(parent_name)
        try:
            if parent_name != name:
                return self.merge(parent_name)
            if self._parent_lookup is not None:
                return self._parent_lookup(parent_name)
            raise NoSuchDefinitionError(
                parent_name,
                message=f"Parent name '{parent_name}' is equal to component name '{name}': "
                "cannot be resolved without a parent container",
            )
        except NoSuchDefinitionError as e:
            raise DefinitionStoreError(name, f"Could not resolve parent component definition '{parent_name}'") from e

    @staticmethod
    def _copy_relevant_caches(previous: ComponentDefinition, merged: ComponentDefinition) -> None:
        if (
            previous.component_class is merged.component_class
            and previous.factory_component_name == merged.factory_component_name
            and previous.factory_method_name == merged.factory_method_name
        ):
            merged.cache_target_type(previous.resolved_target_type)

    def invalidate(self, name: str) -> List[str]:
        """Drop the cached merged definition of ``name`` and of every descendant.

        Returns:
            ``name`` followed by each descendant whose cache entry was dropped.
        """
        affected: List[str] = []
        self._invalidate(name, affected)
        return affected

    def _invalidate(self, name: str, affected: List[str]) -> None:
        if name in affected:
            return
        with self._lock:
            cached = self._cache.pop(name, None)
            if cached is not None:
                cached.mark_stale()
        affected.append(name)
        for other in self._registry.list_definition_names():
            if other == name:
                continue
            definition = self._registry.find_definition(other)
            if definition is not None and definition.parent_name is not None:
                if self._registry.canonical_name(definition.parent_name) == name:
                    self._invalidate(other, affected)

    def clear_metadata_cache(self, keep: Callable[[str], bool]) -> None:
        """Mark every cached definition stale except those ``keep`` selects."""
        with self._lock:
            for name, merged in list(self._cache.items()):
                if not keep(name):
                    merged.mark_stale()

    def is_cached(self, name: str) -> bool:
        cached = self._cache.get(name)
        return cached is not None and not cached.stale

    def cached_names(self) -> List[str]:
        return [name for name, merged in self._cache.items() if not merged.stale]
