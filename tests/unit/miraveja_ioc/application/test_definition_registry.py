"""Unit tests for DefinitionRegistry."""

import pytest

from miraveja_ioc.application.definition_registry import DefinitionRegistry
from miraveja_ioc.config import ContainerSettings
from miraveja_ioc.domain import (
    ComponentDefinition,
    DefinitionOverrideError,
    DefinitionStoreError,
    IllegalStateError,
    NoSuchDefinitionError,
)


class Service:
    pass


class TestDefinitionRegistration:
    """Test cases for registering and removing definitions."""

    def test_register_and_get(self):
        """Test that a registered definition is returned unchanged."""
        registry = DefinitionRegistry()
        definition = ComponentDefinition(component_class=Service)

        assert registry.register_definition("service", definition) is None
        assert registry.get_definition("service") is definition
        assert registry.contains_definition("service")
        assert registry.definition_count() == 1

    def test_registration_order_is_kept(self):
        """Test that names are listed in registration order."""
        registry = DefinitionRegistry()
        for name in ["c", "a", "b"]:
            registry.register_definition(name, ComponentDefinition(component_class=Service))

        assert registry.list_definition_names() == ["c", "a", "b"]

    def test_empty_name_rejected(self):
        """Test that empty names are refused."""
        with pytest.raises(ValueError):
            DefinitionRegistry().register_definition("", ComponentDefinition(component_class=Service))

    def test_invalid_definition_wrapped(self):
        """Test that validation failures surface as DefinitionStoreError."""
        with pytest.raises(DefinitionStoreError, match="Validation of component definition failed"):
            DefinitionRegistry().register_definition("broken", ComponentDefinition())

    def test_override_returns_previous(self):
        """Test that overriding returns the replaced definition and keeps the position."""
        registry = DefinitionRegistry()
        first = ComponentDefinition(component_class=Service)
        second = ComponentDefinition(component_class=Service, primary=True)
        registry.register_definition("service", first)
        registry.register_definition("other", ComponentDefinition(component_class=Service))

        assert registry.register_definition("service", second) is first
        assert registry.get_definition("service") is second
        assert registry.list_definition_names() == ["service", "other"]

    def test_override_disallowed(self):
        """Test that overriding raises when disabled."""
        registry = DefinitionRegistry(ContainerSettings(allow_definition_overriding=False))
        registry.register_definition("service", ComponentDefinition(component_class=Service))

        with pytest.raises(DefinitionOverrideError):
            registry.register_definition("service", ComponentDefinition(component_class=Service))

    def test_definition_replaces_alias(self):
        """Test that registering a definition under an alias name drops the alias."""
        registry = DefinitionRegistry()
        registry.register_definition("service", ComponentDefinition(component_class=Service))
        registry.register_alias("service", "svc")

        registry.register_definition("svc", ComponentDefinition(component_class=Service))

        assert not registry.is_alias("svc")
        assert registry.canonical_name("svc") == "svc"

    def test_remove_definition(self):
        """Test removal and the error for unknown names."""
        registry = DefinitionRegistry()
        definition = ComponentDefinition(component_class=Service)
        registry.register_definition("service", definition)

        assert registry.remove_definition("service") is definition
        assert registry.list_definition_names() == []
        with pytest.raises(NoSuchDefinitionError):
            registry.remove_definition("service")

    def test_get_unknown_definition(self):
        """Test that unknown names raise NoSuchDefinitionError."""
        registry = DefinitionRegistry()

        with pytest.raises(NoSuchDefinitionError):
            registry.get_definition("missing")
        assert registry.find_definition("missing") is None

    def test_freeze_configuration(self):
        """Test that freezing keeps listing names and reports the frozen state."""
        registry = DefinitionRegistry()
        registry.register_definition("a", ComponentDefinition(component_class=Service))

        registry.freeze_configuration()

        assert registry.is_configuration_frozen()
        assert registry.list_definition_names() == ["a"]

        registry.register_definition("b", ComponentDefinition(component_class=Service))

        assert registry.list_definition_names() == ["a", "b"]


class TestAliases:
    """Test cases for alias handling."""

    def test_alias_chain_resolves(self):
        """Test that aliases of aliases resolve to the registered name."""
        registry = DefinitionRegistry()
        registry.register_alias("service", "svc")
        registry.register_alias("svc", "s")

        assert registry.canonical_name("s") == "service"
        assert registry.get_aliases("service") == ["svc", "s"]
        assert registry.is_name_in_use("s")

    def test_self_alias_ignored(self):
        """Test that an alias equal to its name is ignored."""
        registry = DefinitionRegistry()
        registry.register_alias("service", "service")

        assert not registry.is_alias("service")

    def test_alias_cycle_rejected(self):
        """Test that an alias cycle cannot be closed."""
        registry = DefinitionRegistry()
        registry.register_alias("a", "b")
        registry.register_alias("b", "c")

        with pytest.raises(IllegalStateError, match="Circular reference"):
            registry.register_alias("c", "a")

    def test_alias_rebinding_disallowed(self):
        """Test that rebinding an alias raises when overriding is disabled."""
        registry = DefinitionRegistry(ContainerSettings(allow_definition_overriding=False))
        registry.register_alias("first", "alias")

        registry.register_alias("first", "alias")
        with pytest.raises(IllegalStateError, match="already registered"):
            registry.register_alias("second", "alias")

    def test_alias_rebinding_allowed(self):
        """Test that rebinding an alias replaces its target by default."""
        registry = DefinitionRegistry()
        registry.register_alias("first", "alias")
        registry.register_alias("second", "alias")

        assert registry.canonical_name("alias") == "second"

    def test_remove_alias(self):
        """Test alias removal and the error for unknown aliases."""
        registry = DefinitionRegistry()
        registry.register_alias("service", "svc")

        registry.remove_alias("svc")

        assert not registry.is_alias("svc")
        with pytest.raises(IllegalStateError):
            registry.remove_alias("svc")
