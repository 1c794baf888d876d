"""Application layer - Resolution of configured argument and property values."""

from typing import TYPE_CHECKING, Any

from miraveja_ioc.domain import (
    ComponentCreationError,
    ComponentDefinition,
    ComponentReference,
    DIException,
    FactoryComponent,
)

if TYPE_CHECKING:
    from miraveja_ioc.application.container import DIContainer

INNER_COMPONENT_PREFIX = "(inner component)"


class ValueResolver:
    """Turns configured values into injectable objects for one component.

    - ``ComponentReference`` becomes the referenced component, and the owner is
      registered as its dependent.
    - A nested ``ComponentDefinition`` becomes a freshly built inner component,
      contained in the owner.
    - Lists, tuples, sets and dicts are resolved element by element when they
      hold any of the above; other values are returned untouched.
    """

    def __init__(self, container: "DIContainer", component_name: str, definition: ComponentDefinition) -> None:
        self._container = container
        self._component_name = component_name
        self._definition = definition

    def resolve_if_necessary(self, argument_name: str, value: Any) -> Any:
        """Resolve ``value`` configured for ``argument_name`` of the owning component.

        Raises:
            ComponentCreationError: If a reference or inner component cannot be built.
        """
        if isinstance(value, ComponentReference):
            return self._resolve_reference(argument_name, value)
        if isinstance(value, ComponentDefinition):
            inner_name = f"{INNER_COMPONENT_PREFIX}#{id(value):x}"
            return self._resolve_inner(argument_name, inner_name, value)
        if not needs_resolution(value):
            return value
        if isinstance(value, dict):
            return {
                self.resolve_if_necessary(argument_name, key): self.resolve_if_necessary(argument_name, item)
                for key, item in value.items()
            }
        resolved = [self.resolve_if_necessary(argument_name, item) for item in value]
        if isinstance(value, tuple):
            return tuple(resolved)
        if isinstance(value, (set, frozenset)):
            return type(value)(resolved)
        return resolved

    def _resolve_reference(self, argument_name: str, reference: ComponentReference) -> Any:
        try:
            if reference.to_parent:
                parent = self._container.parent
                if parent is None:
                    raise ComponentCreationError(
                        self._component_name,
                        f"Cannot resolve reference to component '{reference.name}' in parent container: "
                        "no parent container available",
                    )
                return parent.get_component(reference.name)
            instance = self._container.get_component(reference.name)
            self._container.register_dependent(reference.name, self._component_name)
            return instance
        except DIException as e:
            e.add_note(
                f"Cannot resolve reference to component '{reference.name}' while setting {argument_name} "
                f"of component '{self._component_name}'"
            )
            raise

    def _resolve_inner(self, argument_name: str, inner_name: str, inner: ComponentDefinition) -> Any:
        try:
            merged = self._container.merge_definition(inner_name, inner, containing=self._definition)
            for dependency in merged.depends_on:
                self._container.register_dependent(dependency, inner_name)
                self._container.get_component(dependency)
            self._container.register_contained(inner_name, self._component_name)
            instance = self._container.create_component(inner_name, merged, None)
            if isinstance(instance, FactoryComponent):
                instance = self._container.object_from_factory(instance, inner_name, True)
            return instance
        except DIException as e:
            e.add_note(
                f"Cannot create inner component '{inner_name}' while setting {argument_name} "
                f"of component '{self._component_name}'"
            )
            raise


def needs_resolution(value: Any) -> bool:
    """Whether ``value`` is, or contains, a reference or an inner definition."""
    if isinstance(value, (ComponentReference, ComponentDefinition)):
        return True
    if isinstance(value, dict):
        return any(needs_resolution(key) or needs_resolution(item) for key, item in value.items())
    if isinstance(value, (list, tuple, set, frozenset)):
        return any(needs_resolution(item) for item in value)
    return False
