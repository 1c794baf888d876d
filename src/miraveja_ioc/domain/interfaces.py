from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type, TypeVar, Union

if TYPE_CHECKING:
    from miraveja_ioc.domain.models import ComponentDefinition

T = TypeVar("T")


class IComponentFactory(ABC):
    """Abstract interface for retrieving components from a container."""

    @abstractmethod
    def get_component(self, name_or_type: Union[str, Type[T]], *args: Any) -> Any:
        """Return the component registered under a name, or the unique component of a type.

        Args:
            name_or_type: Component name (a leading ``&`` asks for a factory component
                itself) or the type to look up.
            *args: Explicit constructor or factory method arguments. Only meaningful for
                components created on this call (prototypes, or a singleton's first creation).
        """

    @abstractmethod
    def contains_component(self, name: str) -> bool:
        """Whether a definition or a manually registered singleton exists for ``name``."""

    @abstractmethod
    def is_singleton(self, name: str) -> bool:
        """Whether ``name`` always yields the same instance."""

    @abstractmethod
    def is_prototype(self, name: str) -> bool:
        """Whether ``name`` yields a new instance on every retrieval."""

    @abstractmethod
    def is_type_match(self, name: str, type_to_match: Any) -> bool:
        """Whether the component called ``name`` is assignable to ``type_to_match``."""

    @abstractmethod
    def get_type(self, name: str) -> Optional[type]:
        """Determine the type ``get_component(name)`` would return, without creating it if possible."""

    @abstractmethod
    def get_aliases(self, name: str) -> List[str]:
        """Return the aliases of ``name``."""

    @abstractmethod
    def get_component_names_for_type(
        self,
        component_type: Any,
        include_non_singletons: bool = True,
        allow_eager_init: bool = True,
    ) -> List[str]:
        """Return the names of every component assignable to ``component_type``."""

    @abstractmethod
    def get_components_of_type(self, component_type: Type[T]) -> Dict[str, T]:
        """Return every component assignable to ``component_type``, keyed by name."""


class IDefinitionRegistry(ABC):
    """Abstract interface for storing component definitions and aliases."""

    @abstractmethod
    def register_definition(self, name: str, definition: "ComponentDefinition") -> Optional["ComponentDefinition"]:
        """Register a definition under ``name``.

        Raises:
            DefinitionStoreError: If the definition is invalid.
            DefinitionOverrideError: If ``name`` is taken and overriding is not allowed.
        """

    @abstractmethod
    def remove_definition(self, name: str) -> "ComponentDefinition":
        """Remove and return the definition registered under ``name``.

        Raises:
            NoSuchDefinitionError: If there is no such definition.
        """

    @abstractmethod
    def get_definition(self, name: str) -> "ComponentDefinition":
        """Return the raw (unmerged) definition registered under ``name``."""

    @abstractmethod
    def contains_definition(self, name: str) -> bool:
        """Whether a definition is registered under ``name``."""

    @abstractmethod
    def list_definition_names(self) -> List[str]:
        """Return all definition names in registration order."""

    @abstractmethod
    def register_alias(self, name: str, alias: str) -> None:
        """Make ``alias`` resolve to ``name``."""

    @abstractmethod
    def remove_alias(self, alias: str) -> None:
        """Forget ``alias``."""


class Scope(ABC):
    """Storage strategy for a custom component scope.

    The container asks the scope for an instance and hands over a factory able to
    create one; the scope decides whether to reuse a stored instance.
    """

    @abstractmethod
    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        """Return the scoped instance for ``name``, creating it through ``object_factory`` if needed."""

    @abstractmethod
    def remove(self, name: str) -> Optional[Any]:
        """Remove and return the instance stored for ``name``, if any."""

    @abstractmethod
    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        """Register a callback to run when the instance for ``name`` is destroyed by the scope."""

    def resolve_contextual_object(self, key: str) -> Optional[Any]:
        """Return a contextual object for ``key``; none by default."""
        return None

    def get_conversation_id(self) -> Optional[str]:
        """Identifier of the current underlying conversation, if the scope has one."""
        return None


class ComponentPostProcessor(ABC):
    """Hook invoked around the initialization of every component.

    Subclasses override the hooks they need. Returning ``None`` from
    ``before_initialization`` or ``after_initialization`` stops the chain; the
    previous result is kept.
    """

    def before_initialization(self, instance: Any, name: str) -> Optional[Any]:
        """Called after properties are injected and before init callbacks."""
        return instance

    def after_initialization(self, instance: Any, name: str) -> Optional[Any]:
        """Called after init callbacks. May return a wrapper."""
        return instance

    def early_reference(self, instance: Any, name: str) -> Any:
        """Return the object exposed to components that cyclically reference ``name``."""
        return instance

    def on_merged_definition(self, definition: "ComponentDefinition", component_type: Optional[type], name: str) -> None:
        """Inspect or adjust a merged definition once, before its first instantiation."""

    def requires_destruction(self, instance: Any) -> bool:
        """Whether ``before_destruction`` should be called for ``instance``."""
        return False

    def before_destruction(self, instance: Any, name: str) -> None:
        """Called before the destroy callbacks of ``instance`` run."""


class FactoryComponent(ABC):
    """A component that is itself a factory for the object exposed under its name.

    ``get_component(name)`` returns ``get_object()``; ``get_component("&" + name)``
    returns the factory.
    """

    @abstractmethod
    def get_object(self) -> Any:
        """Return the produced object."""

    @abstractmethod
    def get_object_type(self) -> Optional[type]:
        """Return the type of the produced object, or ``None`` if not known in advance."""

    def is_singleton(self) -> bool:
        """Whether ``get_object`` returns the same object on every call."""
        return True

    def is_prototype(self) -> bool:
        return False

    def is_eager_init(self) -> bool:
        """Whether the product should be created during singleton pre-instantiation."""
        return False


class InitializingComponent(ABC):
    """Component that wants a callback once all its properties are set."""

    @abstractmethod
    def after_properties_set(self) -> None:
        """Validate configuration or finish initialization."""


class DisposableComponent(ABC):
    """Component that wants a callback when the container destroys it."""

    @abstractmethod
    def destroy(self) -> None:
        """Release resources."""


class ComponentNameAware(ABC):
    """Component that wants to know the name it is registered under."""

    @abstractmethod
    def set_component_name(self, name: str) -> None:
        """Receive the component name."""


class ComponentFactoryAware(ABC):
    """Component that wants a reference to the container that built it."""

    @abstractmethod
    def set_component_factory(self, factory: IComponentFactory) -> None:
        """Receive the owning container."""
