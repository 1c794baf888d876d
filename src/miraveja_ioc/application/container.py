"""Application layer - The container: retrieval, creation, type queries and lifecycle."""

import logging
import re
import threading
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Iterator,
    List,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
    get_type_hints,
)

from miraveja_ioc.application.constructor_resolver import ConstructorResolver
from miraveja_ioc.application.creation_tracker import PrototypeCreationTracker
from miraveja_ioc.application.definition_merger import DefinitionMerger
from miraveja_ioc.application.definition_registry import DefinitionRegistry
from miraveja_ioc.application.dependency_resolver import DependencyResolver
from miraveja_ioc.application.disposable_adapter import DisposableComponentAdapter, requires_destruction
from miraveja_ioc.application.executables import factory_method_candidates, unique_return_type
from miraveja_ioc.application.singleton_registry import SingletonRegistry
from miraveja_ioc.application.type_converter import TypeConverter
from miraveja_ioc.application.value_resolver import ValueResolver
from miraveja_ioc.config import ContainerSettings
from miraveja_ioc.domain import (
    FACTORY_COMPONENT_PREFIX,
    AbstractDefinitionError,
    AmbiguousDependencyError,
    AutowireMode,
    Autowired,
    CandidateTypeMismatchError,
    ComponentCreationError,
    ComponentDefinition,
    ComponentFactoryAware,
    ComponentNameAware,
    ComponentPostProcessor,
    CurrentlyInCreationError,
    DependencyDescriptor,
    DIException,
    FactoryComponent,
    IComponentFactory,
    IDefinitionRegistry,
    IllegalStateError,
    InitializingComponent,
    InstantiationFailureError,
    NoMatchingCandidateError,
    NoSuchDefinitionError,
    Scope,
    ScopeName,
    TypeConversionError,
    UnsatisfiedDependencyError,
)
from miraveja_ioc.domain.type_utils import (
    NoneType,
    is_assignable,
    is_assignable_value,
    is_interface,
    is_simple_type,
    runtime_class,
    unwrap_annotated,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


def is_factory_dereference(name: str) -> bool:
    """Whether ``name`` asks for a factory component itself rather than its product."""
    return name.startswith(FACTORY_COMPONENT_PREFIX)


def default_component_name(component_class: type) -> str:
    """Derive a component name from a class: ``HTTPClient`` becomes ``http_client``."""
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", component_class.__name__)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name).lower()


class ComponentProvider(Generic[T]):
    """Lazy handle on the components of one type.

    Nothing is looked up until one of the accessors is called, so a provider can
    be injected early and used once the container is fully configured.

    Example:
        >>> provider = container.get_provider(Notifier)
        >>> notifier = provider.get_if_available()
    """

    def __init__(self, container: "DIContainer", component_type: Type[T]) -> None:
        self._container = container
        self._component_type = component_type

    def get(self, *args: Any) -> T:
        """Return the unique component of the type.

        Raises:
            NoMatchingCandidateError: If there is none.
            AmbiguousDependencyError: If there are several and none is preferred.
        """
        return self._container.get_component_of_type(self._component_type, *args)

    def get_if_available(self) -> Optional[T]:
        """Like ``get``, but ``None`` when there is no candidate."""
        try:
            return self.get()
        except NoMatchingCandidateError:
            return None

    def get_if_unique(self) -> Optional[T]:
        """Like ``get``, but ``None`` when there is no candidate or no unique one."""
        try:
            return self.get()
        except NoSuchDefinitionError:
            return None

    def __iter__(self) -> Iterator[T]:
        return iter(self._container.get_components_of_type(self._component_type).values())


class DIContainer(IComponentFactory, IDefinitionRegistry):
    """Main dependency injection container.

    Holds component definitions, builds the components they describe on demand
    and manages their lifecycle. Singletons are created once per container and
    destroyed with it, prototypes on every request, and custom scopes decide for
    themselves. A container may have a parent; names it does not define are
    looked up in the parent.

    Attributes:
        _settings: Behavioural switches.
        _parent: Parent container, if any.
        _registry: Raw definitions and aliases.
        _merger: Merged definition cache.
        _singletons: Singleton cache, creation ownership and dependency edges.
        _prototypes: Prototype names in creation on the current thread.
        _post_processors: Hooks applied to every created component, in order.
        _scopes: Custom scopes by name.
        _factory_objects: Singleton products of factory components, by factory name.

    Example:
        >>> container = DIContainer()
        >>> container.register_definition("repository", ComponentDefinition(component_class=UserRepository))
        >>> container.register_definition("service", ComponentDefinition(component_class=UserService))
        >>> service = container.get_component("service")
    """

    def __init__(self, settings: Optional[ContainerSettings] = None, parent: Optional["DIContainer"] = None) -> None:
        """Initialize an empty container.

        Args:
            settings: Behavioural switches; read from the environment when omitted.
            parent: Container consulted for names this one does not define.
        """
        self._settings = settings or ContainerSettings()
        self._parent = parent
        self._registry = DefinitionRegistry(self._settings)
        self._merger = DefinitionMerger(
            self._registry,
            parent_lookup=parent.get_merged_definition if parent is not None else None,
            settings=self._settings,
        )
        self._singletons = SingletonRegistry()
        self._prototypes = PrototypeCreationTracker()
        self._converter = TypeConverter()
        self._dependency_resolver = DependencyResolver(self)
        self._constructor_resolver = ConstructorResolver(self, self._dependency_resolver, self._converter)
        self._post_processors: List[ComponentPostProcessor] = []
        self._scopes: Dict[str, Scope] = {}
        self._factory_objects: Dict[str, Any] = {}
        self._factory_lock = threading.RLock()

        self._dependency_resolver.register_resolvable_dependency(IComponentFactory, self)
        self._dependency_resolver.register_resolvable_dependency(type(self), self)

    @property
    def parent(self) -> Optional["DIContainer"]:
        """Container consulted for names and types this one does not define."""
        return self._parent

    @property
    def settings(self) -> ContainerSettings:
        """Behavioural switches this container was created with."""
        return self._settings

    @property
    def type_converter(self) -> TypeConverter:
        """Converter used for configured argument and property values."""
        return self._converter

    # Retrieval

    def get_component(self, name_or_type: Union[str, Type[T]], *args: Any) -> Any:
        """Return a component by name, or the unique component of a type.

        Args:
            name_or_type: Component name or alias (prefix ``&`` for a factory component
                itself), or a type.
            *args: Explicit arguments for the constructor or factory method.

        Returns:
            The shared instance for singletons, a new one for prototypes.

        Raises:
            NoSuchDefinitionError: If nothing is registered under the name or type.
            CurrentlyInCreationError: On an unresolvable circular reference.
            ComponentCreationError: If the component cannot be built.

        Example:
            >>> service = container.get_component("user_service")
            >>> service = container.get_component(UserService)
        """
        if isinstance(name_or_type, str):
            return self._do_get_component(name_or_type, None, args or None)
        return self.get_component_of_type(name_or_type, *args)

    def get_component_of_type(self, component_type: Type[T], *args: Any) -> T:
        """Return the unique component assignable to ``component_type``.

        Several candidates are narrowed to the primary one, then to the one with
        the lowest priority. The parent container is asked when there is none here.

        Raises:
            NoMatchingCandidateError: If no component has the type.
            AmbiguousDependencyError: If several do and none is preferred.
        """
        names = self.get_component_names_for_type(component_type)
        if len(names) > 1:
            candidates = [name for name in names if self._is_autowire_candidate(name)]
            if candidates:
                names = candidates
        if len(names) == 1:
            return self._do_get_component(names[0], component_type, args or None)
        if len(names) > 1:
            descriptor = DependencyDescriptor(dependency_type=component_type)
            chosen = self._dependency_resolver.determine_autowire_candidate(names, descriptor)
            if chosen is None:
                raise AmbiguousDependencyError(component_type, names)
            return self._do_get_component(chosen, component_type, args or None)
        if self._parent is not None:
            return self._parent.get_component_of_type(component_type, *args)
        raise NoMatchingCandidateError(component_type)

    def resolve(self, component_type: Type[T]) -> T:
        """Return the component of ``component_type``, building unregistered concrete classes on the fly.

        Registered components win. A concrete class with no registered candidate is
        instantiated with autowired constructor arguments, without being registered.

        Raises:
            NoMatchingCandidateError: If nothing matches and the type cannot be built.

        Example:
            >>> user_service = container.resolve(UserService)
        """
        try:
            return self.get_component_of_type(component_type)
        except NoMatchingCandidateError:
            cls = runtime_class(component_type)
            if cls is None or is_interface(cls) or is_simple_type(cls):
                raise
            return self.create_instance(cls)

    def create_instance(self, component_class: Type[T]) -> T:
        """Build a fully initialized, unregistered instance of ``component_class``.

        The instance gets constructor autowiring, field injection and every
        post-processor, but the container keeps no reference to it.
        """
        definition = ComponentDefinition(component_class=component_class, scope=ScopeName.PROTOTYPE.value)
        name = f"{component_class.__module__}.{component_class.__qualname__}"
        self._prototypes.push(name)
        try:
            return self.create_component(name, definition, None)
        finally:
            self._prototypes.pop(name)

    def get_provider(self, component_type: Type[T]) -> ComponentProvider[T]:
        """Return a lazy ``ComponentProvider`` for ``component_type``."""
        return ComponentProvider(self, component_type)

    def get_components_of_type(
        self,
        component_type: Type[T],
        include_non_singletons: bool = True,
        allow_eager_init: bool = True,
    ) -> Dict[str, T]:
        """Return every component assignable to ``component_type``, keyed by name.

        Components still in creation (part of a cycle with the caller) are skipped.
        """
        result: Dict[str, T] = {}
        for name in self.get_component_names_for_type(component_type, include_non_singletons, allow_eager_init):
            try:
                instance = self.get_component(name)
            except CurrentlyInCreationError as e:
                logger.debug("Ignoring match to currently created component '%s': %s", name, e)
                self._singletons.on_suppressed_exception(e)
                continue
            if instance is not None:
                result[name] = instance
        return result

    def _do_get_component(self, name: str, required_type: Any, args: Optional[Sequence[Any]]) -> Any:
        component_name = self._transformed_name(name)

        shared = self._singletons.get_singleton(component_name)
        if shared is not None and args is None:
            if self._singletons.is_currently_in_creation(component_name):
                logger.debug(
                    "Returning eagerly cached instance of singleton '%s' that is not fully initialized yet: "
                    "a consequence of a circular reference",
                    component_name,
                )
            instance = self._object_for_instance(shared, name, component_name)
            return self._adapt_instance(instance, component_name, required_type)

        if self._prototypes.is_in_creation(component_name):
            raise CurrentlyInCreationError(component_name)

        if self._parent is not None and not self._registry.contains_definition(component_name):
            if shared is None and not self._singletons.contains_singleton(component_name):
                return self._parent._do_get_component(self._original_name(name), required_type, args)

        definition = self.get_merged_definition(component_name)
        if definition.abstract:
            raise AbstractDefinitionError(component_name)

        for dependency in definition.depends_on:
            if self._singletons.is_dependent(component_name, dependency):
                raise CurrentlyInCreationError(
                    component_name,
                    f"Circular depends-on relationship between '{component_name}' and '{dependency}'",
                )
            self._singletons.register_dependent(dependency, component_name)
            try:
                self.get_component(dependency)
            except NoSuchDefinitionError as e:
                raise ComponentCreationError(
                    component_name, f"'{component_name}' depends on missing component '{dependency}'"
                ) from e

        if definition.is_singleton:
            shared = self._singletons.get_or_create(
                component_name, lambda: self._create_singleton(component_name, definition, args)
            )
            instance = self._object_for_instance(shared, name, component_name)
        elif definition.is_prototype:
            self._prototypes.push(component_name)
            try:
                prototype = self.create_component(component_name, definition, args)
            finally:
                self._prototypes.pop(component_name)
            instance = self._object_for_instance(prototype, name, component_name)
        else:
            scope = self._scopes.get(definition.scope)
            if scope is None:
                raise IllegalStateError(f"No scope registered for scope name '{definition.scope}'")

            def create_scoped() -> Any:
                self._prototypes.push(component_name)
                try:
                    return self.create_component(component_name, definition, args)
                finally:
                    self._prototypes.pop(component_name)

            scoped = scope.get(component_name, create_scoped)
            instance = self._object_for_instance(scoped, name, component_name)

        return self._adapt_instance(instance, component_name, required_type)

    def _create_singleton(self, name: str, definition: ComponentDefinition, args: Optional[Sequence[Any]]) -> Any:
        try:
            return self.create_component(name, definition, args)
        except Exception:
            # Drop whatever the failed attempt left behind so a retry starts clean.
            self._singletons.destroy_singleton(name)
            raise

    @staticmethod
    def _adapt_instance(instance: Any, name: str, required_type: Any) -> Any:
        if required_type is not None and instance is not None and not is_assignable_value(required_type, instance):
            raise CandidateTypeMismatchError(name, required_type, type(instance))
        return instance

    def _transformed_name(self, name: str) -> str:
        return self._registry.canonical_name(name.lstrip(FACTORY_COMPONENT_PREFIX))

    def _original_name(self, name: str) -> str:
        component_name = self._transformed_name(name)
        return FACTORY_COMPONENT_PREFIX + component_name if is_factory_dereference(name) else component_name

    # Factory components

    def _object_for_instance(self, instance: Any, name: str, component_name: str) -> Any:
        if is_factory_dereference(name):
            if instance is not None and not isinstance(instance, FactoryComponent):
                raise CandidateTypeMismatchError(component_name, FactoryComponent, type(instance))
            return instance
        if not isinstance(instance, FactoryComponent):
            return instance
        return self.object_from_factory(instance, component_name, True)

    def object_from_factory(self, factory: FactoryComponent, name: str, should_post_process: bool) -> Any:
        """Return the product of ``factory``, cached per name when both are singletons.

        Args:
            factory: The factory component.
            name: Its component name.
            should_post_process: Apply the ``after_initialization`` chain to the product.
        """
        if factory.is_singleton() and self._singletons.contains_singleton(name):
            with self._factory_lock:
                if name in self._factory_objects:
                    return self._factory_objects[name]
                product = self._get_object_from_factory(factory, name)
                if should_post_process:
                    product = self.apply_after_initialization(product, name)
                if self._singletons.contains_singleton(name):
                    self._factory_objects[name] = product
                return product
        product = self._get_object_from_factory(factory, name)
        if should_post_process:
            product = self.apply_after_initialization(product, name)
        return product

    def _get_object_from_factory(self, factory: FactoryComponent, name: str) -> Any:
        try:
            product = factory.get_object()
        except DIException:
            raise
        except Exception as e:
            raise ComponentCreationError(name, f"FactoryComponent threw exception on object creation: {e}") from e
        if product is None and self._singletons.is_currently_in_creation(name):
            raise CurrentlyInCreationError(
                name, "FactoryComponent which is currently in creation returned None from get_object"
            )
        return product

    def is_factory_component(self, name: str) -> bool:
        """Whether ``name`` is backed by a ``FactoryComponent``."""
        component_name = self._transformed_name(name)
        instance = self._singletons.get_singleton(component_name, allow_early_reference=False)
        if instance is not None:
            return isinstance(instance, FactoryComponent)
        if not self._registry.contains_definition(component_name) and self._parent is not None:
            return self._parent.is_factory_component(component_name)
        definition = self.find_merged_definition(component_name)
        if definition is None:
            return False
        raw_type = self._predict_type(component_name, definition)
        return raw_type is not None and issubclass(raw_type, FactoryComponent)

    # Creation

    def create_component(self, name: str, definition: ComponentDefinition, args: Optional[Sequence[Any]]) -> Any:
        """Instantiate, populate and initialize one component from its merged definition.

        Used by every scope; callers handle caching. Steps: instantiate, merged
        definition hooks, early reference exposure, property population,
        initialization callbacks, early reference consistency check, disposable
        registration.
        """
        logger.debug("Creating instance of component '%s'", name)
        instance = self._create_instance(name, definition, args)
        component_type = type(instance)
        if component_type is not NoneType:
            definition.cache_target_type(component_type)

        with definition.constructor_lock:
            if not definition.post_processed:
                for processor in self._post_processors:
                    processor.on_merged_definition(definition, component_type, name)
                definition.mark_post_processed()

        early_exposure = (
            definition.is_singleton
            and self._settings.allow_circular_references
            and self._singletons.is_currently_in_creation(name)
        )
        if early_exposure:
            logger.debug("Eagerly caching component '%s' to allow for resolving potential circular references", name)
            self._singletons.add_singleton_factory(name, lambda: self._early_reference(name, instance))

        try:
            self._populate(name, definition, instance)
            exposed = self._initialize(name, instance, definition)
        except DIException:
            raise
        except Exception as e:
            raise ComponentCreationError(name, f"Initialization of component failed: {e}") from e

        if early_exposure:
            early = self._singletons.get_singleton(name, allow_early_reference=False)
            if early is not None:
                if exposed is instance:
                    exposed = early
                elif not self._settings.allow_raw_injection_despite_wrapping and self._singletons.has_dependents(name):
                    dependents = self._singletons.dependents_of(name)
                    raise CurrentlyInCreationError(
                        name,
                        f"Component with name '{name}' has been injected into other components [{', '.join(dependents)}] "
                        "in its raw version as part of a circular reference, but has eventually been wrapped. "
                        "This means that said other components do not use the final version of the component.",
                    )

        self._register_disposable_if_necessary(name, instance, definition)
        return exposed

    def _create_instance(self, name: str, definition: ComponentDefinition, args: Optional[Sequence[Any]]) -> Any:
        component_class = definition.component_class
        if (
            component_class is not None
            and not definition.non_public_access_allowed
            and component_class.__name__.startswith("_")
        ):
            raise ComponentCreationError(
                name, f"Class '{component_class.__qualname__}' is not public, and non-public access is not allowed"
            )
        if definition.instance_supplier is not None:
            try:
                return definition.instance_supplier()
            except DIException:
                raise
            except Exception as e:
                raise InstantiationFailureError(name, component_class, f"Instance supplier threw exception: {e}") from e
        if definition.is_factory_method:
            return self._constructor_resolver.instantiate_using_factory_method(name, definition, args)
        return self._constructor_resolver.autowire_constructor(name, definition, args)

    def _early_reference(self, name: str, instance: Any) -> Any:
        exposed = instance
        for processor in self._post_processors:
            exposed = processor.early_reference(exposed, name)
        return exposed

    def _populate(self, name: str, definition: ComponentDefinition, instance: Any) -> None:
        if instance is None:
            if definition.property_values:
                raise ComponentCreationError(name, "Cannot apply property values to None instance")
            return

        hints = self._attribute_hints(type(instance))
        values: Dict[str, Any] = dict(definition.property_values)
        if definition.autowire_mode in (AutowireMode.BY_NAME, AutowireMode.BY_TYPE):
            for attribute in self._unsatisfied_attributes(instance, hints, values):
                if definition.autowire_mode is AutowireMode.BY_NAME:
                    self._autowire_by_name(name, attribute, values)
                else:
                    self._autowire_by_type(name, attribute, hints[attribute], type(instance), values)

        self._inject_autowired_fields(name, instance, hints)

        value_resolver = ValueResolver(self, name, definition)
        for attribute, value in values.items():
            resolved = value_resolver.resolve_if_necessary(attribute, value)
            hint = hints.get(attribute)
            if hint is not None:
                try:
                    resolved = self._converter.convert_if_necessary(resolved, hint)
                except TypeConversionError as e:
                    raise ComponentCreationError(name, f"Failed to convert property value for '{attribute}': {e}") from e
            setattr(instance, attribute, resolved)

    def _autowire_by_name(self, name: str, attribute: str, values: Dict[str, Any]) -> None:
        if self.contains_component(attribute):
            values[attribute] = self.get_component(attribute)
            self.register_dependent(attribute, name)
            logger.debug("Added autowiring by name from component name '%s' via attribute '%s'", name, attribute)
        else:
            logger.debug(
                "Not autowiring attribute '%s' of component '%s' by name: no matching component found", attribute, name
            )

    def _autowire_by_type(
        self, name: str, attribute: str, hint: Any, declaring_class: type, values: Dict[str, Any]
    ) -> None:
        descriptor = DependencyDescriptor.for_attribute(attribute, hint, declaring_class, required=False)
        try:
            value = self._dependency_resolver.resolve(descriptor, name)
        except (NoSuchDefinitionError, CandidateTypeMismatchError) as e:
            raise UnsatisfiedDependencyError(name, f"attribute '{attribute}'", str(e)) from e
        if value is not None:
            values[attribute] = value

    def _inject_autowired_fields(self, name: str, instance: Any, hints: Dict[str, Any]) -> None:
        for attribute, hint in hints.items():
            _, metadata = unwrap_annotated(hint)
            marker = next((item for item in metadata if isinstance(item, Autowired)), None)
            if marker is None:
                continue
            descriptor = DependencyDescriptor.for_attribute(attribute, hint, type(instance), required=marker.required)
            try:
                value = self._dependency_resolver.resolve(descriptor, name)
            except (NoSuchDefinitionError, CandidateTypeMismatchError) as e:
                raise UnsatisfiedDependencyError(name, f"field '{attribute}'", str(e)) from e
            if value is not None:
                setattr(instance, attribute, value)

    @staticmethod
    def _attribute_hints(component_class: type) -> Dict[str, Any]:
        try:
            return get_type_hints(component_class, include_extras=True)
        except (NameError, TypeError, AttributeError):
            hints: Dict[str, Any] = {}
            for klass in reversed(component_class.__mro__):
                hints.update(getattr(klass, "__annotations__", {}))
            return hints

    @staticmethod
    def _unsatisfied_attributes(instance: Any, hints: Dict[str, Any], values: Dict[str, Any]) -> List[str]:
        result = []
        for attribute, hint in hints.items():
            if attribute.startswith("_") or attribute in values:
                continue
            base, metadata = unwrap_annotated(hint)
            if any(isinstance(item, Autowired) for item in metadata):
                continue
            cls = runtime_class(base)
            if cls is None or is_simple_type(cls):
                continue
            if getattr(instance, attribute, None) is not None:
                continue
            result.append(attribute)
        return result

    def _initialize(self, name: str, instance: Any, definition: ComponentDefinition) -> Any:
        self._invoke_aware_methods(name, instance)
        wrapped = self.apply_before_initialization(instance, name)
        self._invoke_init_methods(name, wrapped, definition)
        return self.apply_after_initialization(wrapped, name)

    def _invoke_aware_methods(self, name: str, instance: Any) -> None:
        if isinstance(instance, ComponentNameAware):
            instance.set_component_name(name)
        if isinstance(instance, ComponentFactoryAware):
            instance.set_component_factory(self)

    def _invoke_init_methods(self, name: str, instance: Any, definition: ComponentDefinition) -> None:
        is_initializing = isinstance(instance, InitializingComponent)
        if is_initializing:
            logger.debug("Invoking after_properties_set() on component with name '%s'", name)
            instance.after_properties_set()
        method_name = definition.init_method_name
        if instance is None or not method_name or (is_initializing and method_name == "after_properties_set"):
            return
        method = getattr(instance, method_name, None)
        if not callable(method):
            raise ComponentCreationError(name, f"Could not find an init method named '{method_name}'")
        logger.debug("Invoking init method '%s' on component with name '%s'", method_name, name)
        method()

    def apply_before_initialization(self, instance: Any, name: str) -> Any:
        """Run ``before_initialization`` of every post-processor; ``None`` stops the chain."""
        result = instance
        for processor in self._post_processors:
            current = processor.before_initialization(result, name)
            if current is None:
                return result
            result = current
        return result

    def apply_after_initialization(self, instance: Any, name: str) -> Any:
        """Run ``after_initialization`` of every post-processor; ``None`` stops the chain."""
        result = instance
        for processor in self._post_processors:
            current = processor.after_initialization(result, name)
            if current is None:
                return result
            result = current
        return result

    def _register_disposable_if_necessary(self, name: str, instance: Any, definition: ComponentDefinition) -> None:
        if definition.is_prototype or not requires_destruction(instance, definition, self._post_processors):
            return
        adapter = DisposableComponentAdapter(instance, name, definition, self._post_processors)
        if definition.is_singleton:
            self._singletons.register_disposable(name, adapter)
            return
        scope = self._scopes.get(definition.scope)
        if scope is None:
            raise IllegalStateError(f"No scope registered for scope name '{definition.scope}'")
        scope.register_destruction_callback(name, adapter.destroy)

    # Type queries

    def contains_component(self, name: str) -> bool:
        """Check whether ``name`` is defined or registered here or in a parent.

        Args:
            name: Component name or alias, optionally with the ``&`` prefix.

        Returns:
            True if ``get_component(name)`` can find something to return.
        """
        component_name = self._transformed_name(name)
        if self._singletons.contains_singleton(component_name) or self._registry.contains_definition(component_name):
            return not is_factory_dereference(name) or self.is_factory_component(name)
        return self._parent is not None and self._parent.contains_component(self._original_name(name))

    def is_singleton(self, name: str) -> bool:
        """Check whether ``get_component(name)`` always returns the same instance.

        Factory components answer for their product unless ``name`` carries the ``&`` prefix.

        Raises:
            NoSuchDefinitionError: If ``name`` is unknown here and in every parent.
        """
        component_name = self._transformed_name(name)
        instance = self._singletons.get_singleton(component_name, allow_early_reference=False)
        if instance is not None:
            if isinstance(instance, FactoryComponent):
                return is_factory_dereference(name) or instance.is_singleton()
            return not is_factory_dereference(name)
        if not self._registry.contains_definition(component_name):
            if self._parent is not None:
                return self._parent.is_singleton(self._original_name(name))
            raise NoSuchDefinitionError(component_name)
        definition = self.get_merged_definition(component_name)
        if not definition.is_singleton:
            return False
        if self.is_factory_component(component_name):
            if is_factory_dereference(name):
                return True
            factory = self.get_component(FACTORY_COMPONENT_PREFIX + component_name)
            return factory.is_singleton()
        return not is_factory_dereference(name)

    def is_prototype(self, name: str) -> bool:
        """Check whether ``get_component(name)`` returns a new instance on every call.

        Raises:
            NoSuchDefinitionError: If ``name`` is unknown here and in every parent.
        """
        component_name = self._transformed_name(name)
        if not self._registry.contains_definition(component_name):
            if self._singletons.contains_singleton(component_name):
                return False
            if self._parent is not None:
                return self._parent.is_prototype(self._original_name(name))
            raise NoSuchDefinitionError(component_name)
        definition = self.get_merged_definition(component_name)
        if definition.is_prototype:
            return not is_factory_dereference(name) or self.is_factory_component(component_name)
        if is_factory_dereference(name) or not self.is_factory_component(component_name):
            return False
        factory = self.get_component(FACTORY_COMPONENT_PREFIX + component_name)
        return factory.is_prototype() or not factory.is_singleton()

    def is_type_match(self, name: str, type_to_match: Any) -> bool:
        """Check whether the component ``name`` can be injected where ``type_to_match`` is expected."""
        component_type = self.get_type(name)
        return component_type is not None and is_assignable(type_to_match, component_type)

    def get_type(self, name: str, allow_factory_init: bool = True) -> Optional[type]:
        """Determine the class of the component ``name`` without creating it when possible.

        Args:
            name: Component name; factory components report their product type unless prefixed with ``&``.
            allow_factory_init: Create a lazy factory component to ask for its product type.

        Returns:
            The component class, or None if it cannot be determined.
        """
        component_name = self._transformed_name(name)
        instance = self._singletons.get_singleton(component_name, allow_early_reference=False)
        if instance is not None:
            if isinstance(instance, FactoryComponent) and not is_factory_dereference(name):
                return instance.get_object_type()
            return type(instance)

        if not self._registry.contains_definition(component_name):
            if self._parent is not None:
                return self._parent.get_type(self._original_name(name), allow_factory_init)
            return None

        definition = self.get_merged_definition(component_name)
        raw_type = self._predict_type(component_name, definition)
        if raw_type is not None and issubclass(raw_type, FactoryComponent):
            if is_factory_dereference(name):
                return raw_type
            return self._factory_object_type(component_name, definition, allow_factory_init)
        return None if is_factory_dereference(name) else raw_type

    def _predict_type(self, name: str, definition: ComponentDefinition) -> Optional[type]:
        if definition.resolved_target_type is not None:
            return definition.resolved_target_type
        if definition.is_factory_method:
            if definition.factory_component_name is not None:
                factory_class = self.get_type(FACTORY_COMPONENT_PREFIX + definition.factory_component_name)
                if factory_class is None:
                    factory_class = self.get_type(definition.factory_component_name, allow_factory_init=False)
                is_static = False
            else:
                factory_class = definition.component_class
                is_static = True
            if factory_class is None:
                return None
            candidates = factory_method_candidates(
                factory_class,
                definition.factory_method_name or "",
                is_static,
                definition.non_public_access_allowed,
            )
            return unique_return_type(candidates)
        if definition.component_class is not None:
            return definition.component_class
        if definition.instance_supplier is not None:
            try:
                return_type = get_type_hints(definition.instance_supplier).get("return")
            except (NameError, TypeError, AttributeError):
                return None
            return return_type if isinstance(return_type, type) else None
        return None

    def _factory_object_type(
        self, name: str, definition: ComponentDefinition, allow_init: bool
    ) -> Optional[type]:
        factory = self._singletons.get_singleton(name, allow_early_reference=False)
        if (
            factory is None
            and allow_init
            and definition.is_singleton
            and (not definition.is_lazy_init or self._settings.allow_eager_class_loading)
            and not self._singletons.is_currently_in_creation(name)
        ):
            factory = self.get_component(FACTORY_COMPONENT_PREFIX + name)
        if isinstance(factory, FactoryComponent):
            return factory.get_object_type()
        return None

    def get_component_names_for_type(
        self,
        component_type: Any,
        include_non_singletons: bool = True,
        allow_eager_init: bool = True,
    ) -> List[str]:
        """Return the names of local components assignable to ``component_type``.

        Factory components match through their product type; their own type is
        matched under the ``&`` prefixed name. Manually registered singletons are
        included after the definitions.
        """
        result: List[str] = []
        for name in self._registry.list_definition_names():
            definition = self.get_merged_definition(name)
            if definition.abstract:
                continue
            raw_type = self._predict_type(name, definition)
            if raw_type is None:
                continue
            if not issubclass(raw_type, FactoryComponent):
                if (include_non_singletons or definition.is_singleton) and is_assignable(component_type, raw_type):
                    result.append(name)
                continue
            matched = False
            if include_non_singletons or definition.is_singleton:
                product_type = self._factory_object_type(name, definition, allow_eager_init)
                matched = product_type is not None and is_assignable(component_type, product_type)
            if matched:
                result.append(name)
            elif is_assignable(component_type, raw_type):
                result.append(FACTORY_COMPONENT_PREFIX + name)

        for name in self._singletons.singleton_names():
            if name in result or self._registry.contains_definition(name):
                continue
            instance = self._singletons.get_singleton(name, allow_early_reference=False)
            if isinstance(instance, FactoryComponent):
                product_type = instance.get_object_type()
                if (
                    product_type is not None
                    and (include_non_singletons or instance.is_singleton())
                    and is_assignable(component_type, product_type)
                ):
                    result.append(name)
                    continue
                if is_assignable(component_type, type(instance)):
                    result.append(FACTORY_COMPONENT_PREFIX + name)
            elif instance is not None and is_assignable(component_type, type(instance)):
                result.append(name)
        return result

    def get_aliases(self, name: str) -> List[str]:
        """Return the other names of the component; looking up an alias includes the canonical name."""
        component_name = self._transformed_name(name)
        prefix = FACTORY_COMPONENT_PREFIX if is_factory_dereference(name) else ""
        full_name = name
        aliases: List[str] = []
        if full_name != prefix + component_name:
            aliases.append(prefix + component_name)
        for alias in self._registry.get_aliases(component_name):
            if prefix + alias != full_name:
                aliases.append(prefix + alias)
        if (
            not self._registry.contains_definition(component_name)
            and not self._singletons.contains_singleton(component_name)
            and self._parent is not None
        ):
            aliases.extend(self._parent.get_aliases(self._original_name(name)))
        return aliases

    # Definitions

    def register_definition(self, name: str, definition: ComponentDefinition) -> Optional[ComponentDefinition]:
        """Register ``definition`` under ``name``.

        Replacing a definition drops the merged definitions and the singletons
        built from it and from every child definition.

        Returns:
            The replaced definition, or ``None``.

        Raises:
            DefinitionStoreError: If the definition is invalid.
            DefinitionOverrideError: If ``name`` is taken and overriding is disabled.
        """
        existing = self._registry.register_definition(name, definition)
        if existing is not None or self._singletons.contains_singleton(name):
            self._reset_definition(name)
        return existing

    def remove_definition(self, name: str) -> ComponentDefinition:
        """Unregister ``name`` and destroy the singletons built from it and its children.

        Returns:
            The removed definition.

        Raises:
            NoSuchDefinitionError: If ``name`` is not registered.
        """
        removed = self._registry.remove_definition(name)
        self._reset_definition(name)
        return removed

    def _reset_definition(self, name: str) -> None:
        for affected in self._merger.invalidate(name):
            self._singletons.destroy_singleton(affected)
            with self._factory_lock:
                self._factory_objects.pop(affected, None)
            logger.debug("Reset component definition '%s'", affected)

    def get_definition(self, name: str) -> ComponentDefinition:
        """Return the definition registered under ``name`` or one of its aliases, unmerged."""
        return self._registry.get_definition(self._registry.canonical_name(name))

    def contains_definition(self, name: str) -> bool:
        """Check whether a definition is registered in this container (parents are not consulted)."""
        return self._registry.contains_definition(name)

    def list_definition_names(self) -> List[str]:
        """Return the registered definition names in registration order."""
        return self._registry.list_definition_names()

    def definition_count(self) -> int:
        return self._registry.definition_count()

    def register_alias(self, name: str, alias: str) -> None:
        """Make ``alias`` another name for ``name``.

        Raises:
            IllegalStateError: If the alias is bound to another name while overriding is disabled,
                or if it would close an alias cycle.
        """
        self._registry.register_alias(name, alias)

    def remove_alias(self, alias: str) -> None:
        """Remove ``alias``; the aliased definition stays registered."""
        self._registry.remove_alias(alias)

    def get_merged_definition(self, name: str) -> ComponentDefinition:
        """Return the definition of ``name`` flattened with its parents.

        Raises:
            NoSuchDefinitionError: If ``name`` is defined neither here nor in a parent container.
        """
        return self._merger.merge(self._transformed_name(name))

    def find_merged_definition(self, name: str) -> Optional[ComponentDefinition]:
        """Like ``get_merged_definition``, but ``None`` for names without a definition."""
        component_name = self._transformed_name(name)
        if self._registry.contains_definition(component_name):
            return self._merger.merge(component_name)
        if self._parent is not None and not self._singletons.contains_singleton(component_name):
            return self._parent.find_merged_definition(component_name)
        return None

    def merge_definition(
        self, name: str, definition: ComponentDefinition, containing: Optional[ComponentDefinition] = None
    ) -> ComponentDefinition:
        """Merge a definition that is not registered, such as an inner component definition.

        Args:
            name: Cache key of the merged result, unless ``containing`` is given.
            definition: Definition to flatten with its parents.
            containing: Definition of the enclosing component; a non-singleton scope there
                replaces a singleton inner scope.
        """
        return self._merger.merge_definition(name, definition, containing)

    def clear_metadata_cache(self) -> None:
        """Drop merged definitions of components that were not created yet."""
        self._merger.clear_metadata_cache(self._singletons.contains_singleton)

    def freeze_configuration(self) -> None:
        """Snapshot the definition names; merged definitions of created components are kept."""
        self._registry.freeze_configuration()
        self.clear_metadata_cache()

    def is_configuration_frozen(self) -> bool:
        """Check whether ``freeze_configuration`` has been called."""
        return self._registry.is_configuration_frozen()

    def _is_autowire_candidate(self, name: str) -> bool:
        definition = self.find_merged_definition(name)
        return definition is None or definition.autowire_candidate

    # Bulk registration

    def register_singletons(self, dependencies: Dict[Type, Callable[["DIContainer"], Any]]) -> None:
        """Register several singletons built by functions of the container.

        Each component is named after its type (``UserService`` becomes ``user_service``).

        Example:
            >>> container.register_singletons({
            ...     DatabaseConfig: lambda c: DatabaseConfig.from_env(),
            ...     Database: lambda c: Database(c.resolve(DatabaseConfig)),
            ... })
        """
        for component_type, builder in dependencies.items():
            self._register_builder(component_type, builder, ScopeName.SINGLETON.value)

    def register_prototypes(self, dependencies: Dict[Type, Callable[["DIContainer"], Any]]) -> None:
        """Register several prototypes built by functions of the container; see ``register_singletons``."""
        for component_type, builder in dependencies.items():
            self._register_builder(component_type, builder, ScopeName.PROTOTYPE.value)

    def _register_builder(self, component_type: Type, builder: Callable[["DIContainer"], Any], scope: str) -> None:
        self.register_definition(
            default_component_name(component_type),
            ComponentDefinition(
                component_class=component_type,
                instance_supplier=lambda: builder(self),
                scope=scope,
            ),
        )

    def register_class(self, component_class: Type, name: Optional[str] = None, **settings: Any) -> str:
        """Register ``component_class`` with constructor autowiring and return its name.

        Args:
            component_class: Class to instantiate.
            name: Component name; derived from the class name when omitted.
            **settings: Any other ``ComponentDefinition`` field, such as ``scope`` or ``primary``.
        """
        name = name or default_component_name(component_class)
        self.register_definition(name, ComponentDefinition(component_class=component_class, **settings))
        return name

    # Singletons

    def register_singleton(self, name: str, instance: Any) -> None:
        """Register an existing object as a fully initialized singleton.

        Raises:
            IllegalStateError: If a singleton is already registered under ``name``.
        """
        self._singletons.register_singleton(name, instance)

    def contains_singleton(self, name: str) -> bool:
        """Check whether a finished singleton instance is cached under ``name``."""
        return self._singletons.contains_singleton(name)

    def singleton_names(self) -> List[str]:
        """Return the names of the cached singletons in registration order."""
        return self._singletons.singleton_names()

    def is_currently_in_creation(self, name: str) -> bool:
        """Check whether the singleton or prototype ``name`` is being created right now."""
        component_name = self._transformed_name(name)
        return self._singletons.is_currently_in_creation(component_name) or self._prototypes.is_in_creation(
            component_name
        )

    def pre_instantiate_singletons(self) -> None:
        """Create every non-lazy, non-abstract singleton now.

        Factory components are created too; their product only when ``is_eager_init()``.
        """
        logger.debug("Pre-instantiating singletons in %s", self)
        for name in list(self._registry.list_definition_names()):
            definition = self.get_merged_definition(name)
            if definition.abstract or not definition.is_singleton or definition.is_lazy_init:
                continue
            if self.is_factory_component(name):
                factory = self.get_component(FACTORY_COMPONENT_PREFIX + name)
                if isinstance(factory, FactoryComponent) and factory.is_eager_init():
                    self.get_component(name)
            else:
                self.get_component(name)

    def destroy_singletons(self) -> None:
        """Destroy every singleton, dependents before the components they depend on."""
        self._singletons.destroy_singletons()
        with self._factory_lock:
            self._factory_objects.clear()

    def destroy_singleton(self, name: str) -> None:
        """Destroy the singleton ``name`` and, before it, everything that depends on it."""
        self._singletons.destroy_singleton(name)
        with self._factory_lock:
            self._factory_objects.pop(name, None)

    def destroy_component(self, name: str, instance: Any) -> None:
        """Run the teardown callbacks of ``instance`` (typically a prototype) built for ``name``."""
        definition = self.find_merged_definition(name)
        DisposableComponentAdapter(instance, name, definition, self._post_processors).destroy()

    def destroy_scoped_component(self, name: str) -> None:
        """Remove the current instance of a custom-scoped component from its scope and destroy it.

        Raises:
            IllegalStateError: If ``name`` is a singleton or prototype, or its scope is not registered.
        """
        definition = self.get_merged_definition(name)
        if definition.is_singleton or definition.is_prototype:
            raise IllegalStateError(f"Component name '{name}' does not correspond to an object in a mutable scope")
        scope = self._scopes.get(definition.scope)
        if scope is None:
            raise IllegalStateError(f"No scope registered for scope name '{definition.scope}'")
        instance = scope.remove(self._transformed_name(name))
        if instance is not None:
            DisposableComponentAdapter(instance, name, definition, self._post_processors).destroy()

    # Edges and diagnostics used during creation

    def register_dependent(self, name: str, dependent_name: str) -> None:
        """Record that ``dependent_name`` depends on ``name``; it is destroyed first."""
        self._singletons.register_dependent(self._transformed_name(name), dependent_name)

    def register_contained(self, contained_name: str, containing_name: str) -> None:
        """Record an inner component so it is destroyed right after its containing component."""
        self._singletons.register_contained(contained_name, containing_name)

    def dependents_of(self, name: str) -> List[str]:
        """Return the names of the components that were injected with ``name``."""
        return self._singletons.dependents_of(self._transformed_name(name))

    def dependencies_of(self, name: str) -> List[str]:
        """Return the names of the components ``name`` was injected with."""
        return self._singletons.dependencies_of(self._transformed_name(name))

    def on_suppressed_exception(self, error: BaseException) -> None:
        """Attach ``error`` to the failure of the singleton currently being created, if any."""
        self._singletons.on_suppressed_exception(error)

    # Configuration

    def add_post_processor(self, processor: ComponentPostProcessor) -> None:
        """Append ``processor``; a processor added twice moves to the end."""
        if processor in self._post_processors:
            self._post_processors.remove(processor)
        self._post_processors.append(processor)

    @property
    def post_processors(self) -> List[ComponentPostProcessor]:
        """Registered post-processors in the order they are applied."""
        return list(self._post_processors)

    def register_scope(self, scope_name: str, scope: Scope) -> None:
        """Make ``scope`` handle definitions with ``scope=scope_name``.

        Raises:
            ValueError: For the built-in scope names.
        """
        if scope_name in (ScopeName.SINGLETON.value, ScopeName.PROTOTYPE.value):
            raise ValueError("Cannot replace existing scopes 'singleton' and 'prototype'")
        previous = self._scopes.get(scope_name)
        if previous is not None and previous is not scope:
            logger.debug("Replacing scope '%s' from [%r] to [%r]", scope_name, previous, scope)
        self._scopes[scope_name] = scope

    def get_registered_scope(self, scope_name: str) -> Optional[Scope]:
        """Return the custom scope registered under ``scope_name``, or None."""
        return self._scopes.get(scope_name)

    def get_registered_scope_names(self) -> List[str]:
        """Return the names of the registered custom scopes."""
        return list(self._scopes)

    def register_resolvable_dependency(self, dependency_type: type, value: Any) -> None:
        """Inject ``value`` wherever ``dependency_type`` is requested, without making it a component."""
        self._dependency_resolver.register_resolvable_dependency(dependency_type, value)

    def __enter__(self) -> "DIContainer":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.destroy_singletons()

    def __repr__(self) -> str:
        parent = f", parent={self._parent!r}" if self._parent is not None else ""
        return f"{type(self).__name__}(definitions={self._registry.list_definition_names()}{parent})"


__all__ = ["ComponentProvider", "DIContainer", "default_component_name", "is_factory_dereference"]
