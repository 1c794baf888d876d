"""Integration tests for circular references between components."""

from typing import Annotated

import pytest

from miraveja_ioc import Autowired, ComponentDefinition, ComponentPostProcessor, ComponentReference, DIContainer
from miraveja_ioc.config import ContainerSettings
from miraveja_ioc.domain import CurrentlyInCreationError


class Node:
    pass


class Egg:
    def __init__(self, chicken: "Chicken"):
        self.chicken = chicken


class Chicken:
    def __init__(self, egg: Egg):
        self.egg = egg


class Left:
    right: Annotated["Right", Autowired()]


class Right:
    left: Annotated[Left, Autowired()]


class Proxy:
    def __init__(self, target):
        self.target = target


class EarlyProxyProcessor(ComponentPostProcessor):
    """Wraps the named components, handing out the same proxy to early and late callers."""

    def __init__(self, names):
        self.names = set(names)
        self.early = {}

    def early_reference(self, instance, name):
        if name not in self.names:
            return instance
        proxy = Proxy(instance)
        self.early[name] = proxy
        return proxy

    def after_initialization(self, instance, name):
        if name not in self.names or name in self.early:
            return instance
        return Proxy(instance)


class LateProxyProcessor(ComponentPostProcessor):
    """Wraps the named components only once they are initialized."""

    def __init__(self, names):
        self.names = set(names)

    def after_initialization(self, instance, name):
        if name in self.names:
            return Proxy(instance)
        return instance


def register_pair(container):
    for name, other in (("a", "b"), ("b", "a")):
        container.register_definition(
            name, ComponentDefinition(component_class=Node, property_values={other: ComponentReference(other)})
        )


class TestPropertyCycles:
    """Integration tests for cycles through property values and fields."""

    def test_property_cycle_resolved_with_early_reference(self):
        """Test that two singletons referencing each other end up wired together."""
        container = DIContainer()
        register_pair(container)

        a = container.get_component("a")
        b = container.get_component("b")

        assert a.b is b
        assert b.a is a
        assert container.dependents_of("a") == ["b"]

    def test_self_reference(self):
        """Test that a singleton may reference itself."""
        container = DIContainer()
        container.register_definition(
            "node", ComponentDefinition(component_class=Node, property_values={"me": ComponentReference("node")})
        )

        node = container.get_component("node")

        assert node.me is node

    def test_autowired_field_cycle(self):
        """Test that field injection resolves a cycle between two singletons."""
        container = DIContainer()
        container.register_class(Left)
        container.register_class(Right)

        left = container.get_component(Left)

        assert left.right.left is left
        assert container.get_component(Right) is left.right

    def test_circular_references_disabled(self):
        """Test that a property cycle fails when early references are not allowed."""
        container = DIContainer(ContainerSettings(allow_circular_references=False))
        register_pair(container)

        with pytest.raises(CurrentlyInCreationError) as exc_info:
            container.get_component("a")

        assert "Requested component is currently in creation" in str(exc_info.value)
        assert container.singleton_names() == []

    def test_prototype_property_cycle(self):
        """Test that prototypes never resolve cycles."""
        container = DIContainer()
        container.register_definition(
            "a",
            ComponentDefinition(component_class=Node, scope="prototype", property_values={"b": ComponentReference("b")}),
        )
        container.register_definition(
            "b",
            ComponentDefinition(component_class=Node, scope="prototype", property_values={"a": ComponentReference("a")}),
        )

        with pytest.raises(CurrentlyInCreationError):
            container.get_component("a")


class TestConstructorCycles:
    """Integration tests for cycles through constructor arguments."""

    def test_constructor_cycle_fails(self):
        """Test that constructor cycles cannot be resolved."""
        container = DIContainer()
        container.register_class(Egg)
        container.register_class(Chicken)

        with pytest.raises(CurrentlyInCreationError):
            container.get_component(Egg)

    def test_container_left_clean(self):
        """Test that a failed cycle leaves no partially built singleton behind."""
        container = DIContainer()
        container.register_class(Egg)
        container.register_class(Chicken)

        with pytest.raises(CurrentlyInCreationError):
            container.get_component(Egg)

        assert container.singleton_names() == []
        assert not container.is_currently_in_creation("egg")
        assert not container.is_currently_in_creation("chicken")


class TestWrappedEarlyReferences:
    """Integration tests for post-processors wrapping components that are part of a cycle."""

    def test_consistent_early_proxy(self):
        """Test that everyone sees the proxy handed out as the early reference."""
        container = DIContainer()
        processor = EarlyProxyProcessor(["a"])
        container.add_post_processor(processor)
        register_pair(container)

        a = container.get_component("a")
        b = container.get_component("b")

        assert isinstance(a, Proxy)
        assert b.a is a
        assert a.target.b is b

    def test_late_wrapping_fails(self):
        """Test that wrapping a component after it was injected raw is refused."""
        container = DIContainer()
        container.add_post_processor(LateProxyProcessor(["a"]))
        register_pair(container)

        with pytest.raises(CurrentlyInCreationError, match=r"has been injected into other components \[b\]"):
            container.get_component("a")

    def test_late_wrapping_allowed_by_setting(self):
        """Test that raw injection can be accepted explicitly."""
        container = DIContainer(ContainerSettings(allow_raw_injection_despite_wrapping=True))
        container.add_post_processor(LateProxyProcessor(["a"]))
        register_pair(container)

        a = container.get_component("a")
        b = container.get_component("b")

        assert isinstance(a, Proxy)
        assert b.a is a.target

    def test_late_wrapping_without_cycle(self):
        """Test that wrapping is fine when nothing saw the raw instance."""
        container = DIContainer()
        container.add_post_processor(LateProxyProcessor(["node"]))
        container.register_class(Node)

        assert isinstance(container.get_component("node"), Proxy)
