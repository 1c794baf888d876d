"""Application layer - Name to definition storage, with aliases."""

import logging
import threading
from typing import Dict, List, Optional

from miraveja_ioc.config import ContainerSettings
from miraveja_ioc.domain import (
    ComponentDefinition,
    DefinitionOverrideError,
    DefinitionStoreError,
    DefinitionValidationError,
    IDefinitionRegistry,
    IllegalStateError,
    NoSuchDefinitionError,
)

logger = logging.getLogger(__name__)


class DefinitionRegistry(IDefinitionRegistry):
    """Stores component definitions by name and resolves aliases.

    Registration validates the definition and applies the override policy. The
    registry does not know about caches; callers use the returned previous
    definition to decide what must be invalidated.

    Attributes:
        _definitions: Name to raw definition.
        _names: Definition names in registration order.
        _aliases: Alias to name (which may itself be an alias).
        _lock: Guards the three collections above.
    """

    def __init__(self, settings: Optional[ContainerSettings] = None) -> None:
        """Initialize an empty registry.

        Args:
            settings: Container settings; the override policy is read from them.
        """
        self._settings = settings or ContainerSettings()
        self._definitions: Dict[str, ComponentDefinition] = {}
        self._names: List[str] = []
        self._aliases: Dict[str, str] = {}
        self._lock = threading.RLock()
        self._configuration_frozen = False
        self._frozen_names: Optional[List[str]] = None

    def register_definition(self, name: str, definition: ComponentDefinition) -> Optional[ComponentDefinition]:
        """Register ``definition`` under ``name``.

        Args:
            name: Component name; must not be empty.
            definition: The definition to store.

        Returns:
            The definition that was replaced, or ``None``.

        Raises:
            DefinitionStoreError: If the definition fails validation.
            DefinitionOverrideError: If the name is taken and overriding is disabled.
        """
        if not name:
            raise ValueError("Component name must not be empty")
        try:
            definition.validate_definition()
        except DefinitionValidationError as e:
            raise DefinitionStoreError(name, f"Validation of component definition failed: {e}") from e

        with self._lock:
            existing = self._definitions.get(name)
            if existing is not None:
                if not self._settings.allow_definition_overriding:
                    raise DefinitionOverrideError(name, definition, existing)
                if existing.role < definition.role:
                    logger.info(
                        "Overriding user-defined component definition for '%s' with a framework-generated "
                        "definition: replacing [%s] with [%s]",
                        name,
                        existing,
                        definition,
                    )
                elif not definition.same_configuration(existing):
                    logger.debug(
                        "Overriding component definition for '%s' with a different definition: "
                        "replacing [%s] with [%s]",
                        name,
                        existing,
                        definition,
                    )
                else:
                    logger.debug("Overriding component definition for '%s' with an equivalent definition", name)
            else:
                if name in self._aliases:
                    if not self._settings.allow_definition_overriding:
                        raise DefinitionOverrideError(name, definition, f"alias for '{self._aliases[name]}'")
                    del self._aliases[name]
                self._names.append(name)
            self._definitions[name] = definition
            self._frozen_names = None
        return existing

    def remove_definition(self, name: str) -> ComponentDefinition:
        """Remove and return the definition registered under ``name``.

        Raises:
            NoSuchDefinitionError: If no definition has that name.
        """
        with self._lock:
            definition = self._definitions.pop(name, None)
            if definition is None:
                logger.debug("No component named '%s' found in %s", name, self)
                raise NoSuchDefinitionError(name)
            self._names.remove(name)
            self._frozen_names = None
        return definition

    def get_definition(self, name: str) -> ComponentDefinition:
        definition = self._definitions.get(name)
        if definition is None:
            raise NoSuchDefinitionError(name)
        return definition

    def find_definition(self, name: str) -> Optional[ComponentDefinition]:
        return self._definitions.get(name)

    def contains_definition(self, name: str) -> bool:
        return name in self._definitions

    def list_definition_names(self) -> List[str]:
        with self._lock:
            if self._frozen_names is not None:
                return list(self._frozen_names)
            return list(self._names)

    def definition_count(self) -> int:
        return len(self._definitions)

    def is_name_in_use(self, name: str) -> bool:
        return self.is_alias(name) or self.contains_definition(name)

    def freeze_configuration(self) -> None:
        """Snapshot the definition names; later lookups may rely on the snapshot."""
        with self._lock:
            self._configuration_frozen = True
            self._frozen_names = list(self._names)

    def is_configuration_frozen(self) -> bool:
        return self._configuration_frozen

    # Aliases

    def register_alias(self, name: str, alias: str) -> None:
        """Register ``alias`` for ``name``.

        Raises:
            IllegalStateError: If the alias is bound to another name and overriding is
                disabled, or if it would close an alias cycle.
        """
        if not name or not alias:
            raise ValueError("Name and alias must not be empty")
        with self._lock:
            if alias == name:
                self._aliases.pop(alias, None)
                logger.debug("Alias definition '%s' ignored since it points to same name", alias)
                return
            registered = self._aliases.get(alias)
            if registered is not None:
                if registered == name:
                    return
                if not self._settings.allow_definition_overriding:
                    raise IllegalStateError(
                        f"Cannot define alias '{alias}' for name '{name}': "
                        f"It is already registered for name '{registered}'."
                    )
                logger.debug("Overriding alias '%s' definition for registered name '%s' with new target name '%s'",
                             alias, registered, name)
            if self._has_alias(alias, name):
                raise IllegalStateError(
                    f"Cannot register alias '{alias}' for name '{name}': "
                    f"Circular reference - '{name}' is a direct or indirect alias for '{alias}' already"
                )
            self._aliases[alias] = name

    def remove_alias(self, alias: str) -> None:
        with self._lock:
            if self._aliases.pop(alias, None) is None:
                raise IllegalStateError(f"No alias '{alias}' registered")

    def is_alias(self, name: str) -> bool:
        return name in self._aliases

    def get_aliases(self, name: str) -> List[str]:
        """Return every alias that (directly or transitively) resolves to ``name``."""
        result: List[str] = []
        with self._lock:
            self._collect_aliases(name, result)
        return result

    def canonical_name(self, name: str) -> str:
        """Follow the alias chain from ``name`` to the registered name."""
        canonical = name
        while True:
            resolved = self._aliases.get(canonical)
            if resolved is None:
                return canonical
            canonical = resolved

    def _collect_aliases(self, name: str, result: List[str]) -> None:
        for alias, registered in self._aliases.items():
            if registered == name and alias not in result:
                result.append(alias)
                self._collect_aliases(alias, result)

    def _has_alias(self, name: str, alias: str) -> bool:
        for registered_alias, registered_name in self._aliases.items():
            if registered_name == name and (
                registered_alias == alias or self._has_alias(registered_alias, alias)
            ):
                return True
        return False

    def __repr__(self) -> str:
        return f"DefinitionRegistry(definitions={self._names})"
