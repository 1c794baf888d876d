import inspect
import threading
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Type, get_args

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from miraveja_ioc.domain.enums import AutowireMode, Role, ScopeName, SingletonState
from miraveja_ioc.domain.exceptions import DefinitionValidationError
from miraveja_ioc.domain.markers import Autowired, Qualifier
from miraveja_ioc.domain.type_utils import (
    is_assignable_value,
    is_optional,
    strip_optional,
    type_display,
    unwrap_annotated,
)


class ComponentReference(BaseModel):
    """Value object pointing at another component by name.

    Used as a constructor argument or property value; the container swaps it for
    the referenced instance when the owning component is built.

    Attributes:
        name: Name of the referenced component.
        to_parent: Look the name up in the parent container only.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Name of the referenced component.")
    to_parent: bool = Field(default=False, description="Resolve against the parent container.")

    def __init__(self, name: str, **data: Any) -> None:
        super().__init__(name=name, **data)

    def __str__(self) -> str:
        return f"<{self.name}>"


class ValueHolder(BaseModel):
    """A single configured constructor argument.

    Attributes:
        value: The configured value, possibly a reference or an inner definition.
        type: Optional declared type, used to match the argument to a parameter.
        name: Optional parameter name, used to match the argument to a parameter.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: Any = Field(default=None, description="Configured argument value.")
    type: Optional[Any] = Field(default=None, description="Declared type of the argument.")
    name: Optional[str] = Field(default=None, description="Target parameter name.")
    source: Any = Field(default=None, description="Configured value this holder was resolved from.")

    def copy_holder(self) -> "ValueHolder":
        return ValueHolder(value=self.value, type=self.type, name=self.name, source=self.source)

    def matches_type(self, required_type: Any) -> bool:
        if self.type is None:
            return True
        if required_type is None:
            return False
        required, _ = unwrap_annotated(required_type)
        declared, _ = unwrap_annotated(self.type)
        if declared == required or strip_optional(required) == declared:
            return True
        if isinstance(declared, str):
            return declared in (getattr(required, "__name__", None), getattr(required, "__qualname__", None))
        return False

    def matches_name(self, required_name: Optional[str]) -> bool:
        return self.name is None or required_name == "" or (required_name is not None and self.name == required_name)


class ConstructorArgumentValues(BaseModel):
    """Indexed and generic constructor argument values of a definition.

    Indexed values bind to a parameter position. Generic values bind to whichever
    parameter matches their declared type or name, or whose type accepts them.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    indexed: Dict[int, ValueHolder] = Field(default_factory=dict)
    generic: List[ValueHolder] = Field(default_factory=list)

    def add_indexed(self, index: int, value: Any, type: Any = None, name: Optional[str] = None) -> None:
        if index < 0:
            raise ValueError("Argument index must not be negative")
        self.indexed[index] = ValueHolder(value=value, type=type, name=name)

    def add_generic(self, value: Any, type: Any = None, name: Optional[str] = None) -> None:
        holder = ValueHolder(value=value, type=type, name=name)
        if not any(existing is holder for existing in self.generic):
            self.generic.append(holder)

    def add_all(self, other: "ConstructorArgumentValues") -> None:
        """Copy every value of ``other`` into this set, overriding indexed positions."""
        for index, holder in other.indexed.items():
            self.indexed[index] = holder.copy_holder()
        for holder in other.generic:
            if not any(existing == holder for existing in self.generic):
                self.generic.append(holder.copy_holder())

    def get_indexed(
        self, index: int, required_type: Any = None, required_name: Optional[str] = None
    ) -> Optional[ValueHolder]:
        holder = self.indexed.get(index)
        if holder is None:
            return None
        if not holder.matches_type(required_type) or not holder.matches_name(required_name):
            return None
        return holder

    def get_generic(
        self,
        required_type: Any = None,
        required_name: Optional[str] = None,
        used: Optional[List[ValueHolder]] = None,
    ) -> Optional[ValueHolder]:
        for holder in self.generic:
            if used is not None and any(holder is seen for seen in used):
                continue
            if holder.name is not None and required_name != "" and (
                required_name is None or holder.name != required_name
            ):
                continue
            if holder.type is not None and (required_type is None or not holder.matches_type(required_type)):
                continue
            if (
                required_type is not None
                and holder.type is None
                and holder.name is None
                and not is_assignable_value(required_type, holder.value)
            ):
                continue
            return holder
        return None

    def get_argument_value(
        self,
        index: int,
        required_type: Any = None,
        required_name: Optional[str] = None,
        used: Optional[List[ValueHolder]] = None,
    ) -> Optional[ValueHolder]:
        holder = self.get_indexed(index, required_type, required_name)
        if holder is None:
            holder = self.get_generic(required_type, required_name, used)
        return holder

    @property
    def argument_count(self) -> int:
        return len(self.indexed) + len(self.generic)

    def is_empty(self) -> bool:
        return not self.indexed and not self.generic

    def copy_values(self) -> "ConstructorArgumentValues":
        copied = ConstructorArgumentValues()
        copied.add_all(self)
        return copied


class ComponentDefinition(BaseModel):
    """Declarative recipe for one managed component.

    A definition names how to obtain the instance (class constructor, static or
    instance factory method, or a supplier), which arguments and properties to
    inject, and how the result is shared (scope). It may inherit from a parent
    definition by name; the container flattens the chain into a merged
    definition before use.

    Attributes:
        component_class: Class to instantiate, or the class holding a static factory method.
        instance_supplier: Zero-argument callable producing the instance.
        factory_component_name: Component whose method produces the instance.
        factory_method_name: Name of the (static or instance) factory method.
        scope: "singleton", "prototype", a custom scope name, or "" for the default.
        lazy_init: Skip eager singleton pre-instantiation; ``None`` means not set.
        depends_on: Components that must be created before this one.
        constructor_arguments: Configured constructor or factory method arguments.
        property_values: Attribute name to value, injected after construction.
        parent_name: Name of the definition to inherit from.
        abstract: Template only; never instantiated.
        role: Application, support or infrastructure.
        primary: Preferred among several autowire candidates.
        autowire_candidate: Whether the component may be injected by type.
        autowire_mode: Which injection points are resolved automatically.
        qualifiers: Extra qualifier values matched by ``Qualifier`` markers.
        priority: Numeric priority among candidates, lower wins.
        non_public_access_allowed: Consider underscore-prefixed constructors and factory methods.
        lenient_constructor_resolution: Pick the first of equally ranked constructors instead of failing.
        init_method_name: Method called after properties are set.
        destroy_method_name: Method called on teardown.
        description: Free text.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    component_class: Optional[Type] = Field(default=None, description="Class of the component.")
    instance_supplier: Optional[Callable[[], Any]] = Field(default=None, description="Instance supplier.")
    factory_component_name: Optional[str] = Field(default=None, description="Factory component name.")
    factory_method_name: Optional[str] = Field(default=None, description="Factory method name.")
    scope: str = Field(default="", description="Scope name.")
    lazy_init: Optional[bool] = Field(default=None, description="Lazy initialization flag.")
    depends_on: List[str] = Field(default_factory=list, description="Names created before this component.")
    constructor_arguments: ConstructorArgumentValues = Field(default_factory=ConstructorArgumentValues)
    property_values: Dict[str, Any] = Field(default_factory=dict, description="Injected attributes.")
    parent_name: Optional[str] = Field(default=None, description="Parent definition name.")
    abstract: bool = Field(default=False, description="Template-only definition.")
    role: Role = Field(default=Role.APPLICATION, description="Definition role.")
    primary: bool = Field(default=False, description="Primary autowire candidate.")
    autowire_candidate: bool = Field(default=True, description="Eligible for autowiring.")
    autowire_mode: AutowireMode = Field(default=AutowireMode.CONSTRUCTOR, description="Autowire mode.")
    qualifiers: Set[str] = Field(default_factory=set, description="Qualifier values.")
    priority: Optional[int] = Field(default=None, description="Candidate priority, lower wins.")
    non_public_access_allowed: bool = Field(default=True, description="Consider non-public executables.")
    lenient_constructor_resolution: bool = Field(default=True, description="Lenient overload resolution.")
    init_method_name: Optional[str] = Field(default=None, description="Initialization method.")
    destroy_method_name: Optional[str] = Field(default=None, description="Destruction method.")
    description: Optional[str] = Field(default=None, description="Human readable description.")

    _constructor_lock: Any = PrivateAttr(default_factory=threading.RLock)
    _resolved_executable: Any = PrivateAttr(default=None)
    _constructor_arguments_resolved: bool = PrivateAttr(default=False)
    _resolved_arguments: Optional[Tuple[Any, ...]] = PrivateAttr(default=None)
    _prepared_arguments: Optional[Tuple[Any, ...]] = PrivateAttr(default=None)
    _resolved_target_type: Optional[type] = PrivateAttr(default=None)
    _post_processed: bool = PrivateAttr(default=False)
    _stale: bool = PrivateAttr(default=False)

    @property
    def is_singleton(self) -> bool:
        return self.scope in (ScopeName.SINGLETON.value, "")

    @property
    def is_prototype(self) -> bool:
        return self.scope == ScopeName.PROTOTYPE.value

    @property
    def is_lazy_init(self) -> bool:
        return bool(self.lazy_init)

    @property
    def is_factory_method(self) -> bool:
        return self.factory_method_name is not None

    @property
    def has_constructor_argument_values(self) -> bool:
        return not self.constructor_arguments.is_empty()

    @property
    def constructor_lock(self) -> Any:
        return self._constructor_lock

    @property
    def stale(self) -> bool:
        return self._stale

    def mark_stale(self) -> None:
        self._stale = True

    @property
    def resolved_target_type(self) -> Optional[type]:
        """Class of the produced instance, once the container determined it."""
        return self._resolved_target_type

    def cache_target_type(self, target_type: Optional[type]) -> None:
        self._resolved_target_type = target_type

    @property
    def post_processed(self) -> bool:
        return self._post_processed

    def mark_post_processed(self) -> None:
        self._post_processed = True

    @property
    def resolved_executable(self) -> Any:
        return self._resolved_executable

    def cache_resolution(
        self,
        executable: Any,
        arguments: Optional[Tuple[Any, ...]] = None,
        prepared_arguments: Optional[Tuple[Any, ...]] = None,
    ) -> None:
        """Remember the winning constructor or factory method and its arguments.

        Exactly one of ``arguments`` (final values, reused as is) and
        ``prepared_arguments`` (a template re-resolved on every creation) is given.
        """
        with self._constructor_lock:
            self._resolved_executable = executable
            self._constructor_arguments_resolved = True
            self._resolved_arguments = arguments
            self._prepared_arguments = prepared_arguments

    def cached_resolution(self) -> Tuple[Any, Optional[Tuple[Any, ...]], Optional[Tuple[Any, ...]]]:
        """Return ``(executable, arguments, prepared_arguments)``; all ``None`` when nothing is cached."""
        with self._constructor_lock:
            if self._resolved_executable is None or not self._constructor_arguments_resolved:
                return None, None, None
            return self._resolved_executable, self._resolved_arguments, self._prepared_arguments

    def validate_definition(self) -> None:
        """Check the definition for contradictory settings.

        Raises:
            DefinitionValidationError: If the settings cannot be honoured together.
        """
        if self.instance_supplier is not None and self.factory_method_name is not None:
            raise DefinitionValidationError("Cannot combine an instance supplier with a factory method")
        if self.factory_component_name is not None and self.factory_method_name is None:
            raise DefinitionValidationError("A factory component requires a factory method name")
        if (
            not self.abstract
            and self.parent_name is None
            and self.component_class is None
            and self.instance_supplier is None
            and self.factory_method_name is None
        ):
            raise DefinitionValidationError(
                "Definition needs a component class, an instance supplier, a factory method or a parent"
            )

    def clone(self) -> "ComponentDefinition":
        """Copy the configuration, leaving every resolution cache empty."""
        return ComponentDefinition(
            component_class=self.component_class,
            instance_supplier=self.instance_supplier,
            factory_component_name=self.factory_component_name,
            factory_method_name=self.factory_method_name,
            scope=self.scope,
            lazy_init=self.lazy_init,
            depends_on=list(self.depends_on),
            constructor_arguments=self.constructor_arguments.copy_values(),
            property_values=dict(self.property_values),
            parent_name=self.parent_name,
            abstract=self.abstract,
            role=self.role,
            primary=self.primary,
            autowire_candidate=self.autowire_candidate,
            autowire_mode=self.autowire_mode,
            qualifiers=set(self.qualifiers),
            priority=self.priority,
            non_public_access_allowed=self.non_public_access_allowed,
            lenient_constructor_resolution=self.lenient_constructor_resolution,
            init_method_name=self.init_method_name,
            destroy_method_name=self.destroy_method_name,
            description=self.description,
        )

    def override_from(self, other: "ComponentDefinition") -> None:
        """Apply a child definition's settings on top of this (parent) copy.

        Unset optional settings of the child keep the parent's value; flags and
        lists the child always carries replace the parent's; argument and property
        values are added to the parent's.
        """
        if other.component_class is not None:
            self.component_class = other.component_class
        if other.scope:
            self.scope = other.scope
        self.abstract = other.abstract
        if other.lazy_init is not None:
            self.lazy_init = other.lazy_init
        if other.factory_component_name is not None:
            self.factory_component_name = other.factory_component_name
        if other.factory_method_name is not None:
            self.factory_method_name = other.factory_method_name
        self.role = other.role
        self.autowire_mode = other.autowire_mode
        self.depends_on = list(other.depends_on)
        self.autowire_candidate = other.autowire_candidate
        self.qualifiers |= other.qualifiers
        self.primary = other.primary
        if other.priority is not None:
            self.priority = other.priority
        self.non_public_access_allowed = other.non_public_access_allowed
        self.lenient_constructor_resolution = other.lenient_constructor_resolution
        if other.instance_supplier is not None:
            self.instance_supplier = other.instance_supplier
        if other.init_method_name is not None:
            self.init_method_name = other.init_method_name
        if other.destroy_method_name is not None:
            self.destroy_method_name = other.destroy_method_name
        self.constructor_arguments.add_all(other.constructor_arguments)
        self.property_values.update(other.property_values)
        if other.description is not None:
            self.description = other.description
        self.parent_name = None

    def same_configuration(self, other: "ComponentDefinition") -> bool:
        """Field-by-field comparison that ignores the resolution caches."""
        return self.__dict__ == other.__dict__

    def __repr__(self) -> str:
        target = type_display(self.component_class) if self.component_class is not None else "null"
        parts = [
            f"class [{target}]",
            f"scope={self.scope}",
            f"abstract={self.abstract}",
            f"lazy_init={self.lazy_init}",
            f"autowire_mode={self.autowire_mode}",
            f"primary={self.primary}",
            f"factory_component_name={self.factory_component_name}",
            f"factory_method_name={self.factory_method_name}",
            f"init_method_name={self.init_method_name}",
            f"destroy_method_name={self.destroy_method_name}",
        ]
        prefix = f"Child component with parent '{self.parent_name}'" if self.parent_name else "Generic component"
        return f"{prefix}: " + "; ".join(parts)

    __str__ = __repr__


class DependencyDescriptor(BaseModel):
    """A single injection point: a constructor parameter or an attribute.

    ``Optional[T]`` makes the dependency non-required, and ``Annotated`` metadata
    contributes ``Qualifier`` and ``Autowired`` markers.

    Attributes:
        dependency_type: The declared type hint, unmodified.
        required: Whether a missing candidate is an error.
        name: Parameter or attribute name, used as a last-resort tie-break.
        declaring_class: Class that declares the injection point.
        qualifiers: Qualifier values the candidate must match.
        nesting_level: 1 for the declared type, 2 for the element type of a collection.
        eager: Whether resolution may instantiate candidates.
        fallback_match_allowed: Whether self references are acceptable.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    dependency_type: Any = Field(..., description="Declared type hint.")
    required: bool = Field(default=True, description="Fail when no candidate is found.")
    name: Optional[str] = Field(default=None, description="Injection point name.")
    declaring_class: Optional[Type] = Field(default=None, description="Declaring class.")
    qualifiers: List[str] = Field(default_factory=list, description="Qualifier values.")
    nesting_level: int = Field(default=1, description="Nesting level inside collections.")
    eager: bool = Field(default=True, description="Allow eager candidate creation.")
    fallback_match_allowed: bool = Field(default=False, description="Allow self references.")

    def model_post_init(self, __context: Any) -> None:
        _, metadata = unwrap_annotated(self.dependency_type)
        for item in metadata:
            if isinstance(item, Qualifier) and item.value not in self.qualifiers:
                self.qualifiers.append(item.value)
            elif isinstance(item, Autowired) and not item.required:
                self.required = False
        if is_optional(self.dependency_type):
            self.required = False

    @classmethod
    def for_parameter(
        cls,
        parameter: inspect.Parameter,
        hint: Any,
        declaring_class: Optional[Type] = None,
    ) -> "DependencyDescriptor":
        required = parameter.default is inspect.Parameter.empty
        return cls(dependency_type=hint, required=required, name=parameter.name, declaring_class=declaring_class)

    @classmethod
    def for_attribute(
        cls, name: str, hint: Any, declaring_class: Optional[Type] = None, required: bool = True
    ) -> "DependencyDescriptor":
        return cls(dependency_type=hint, required=required, name=name, declaring_class=declaring_class)

    @property
    def target_type(self) -> Any:
        """The declared type without ``Annotated`` and ``Optional`` wrappers."""
        return strip_optional(self.dependency_type)

    def for_element(self, element_type: Any) -> "DependencyDescriptor":
        """Descriptor for the elements of a collection-shaped dependency."""
        return DependencyDescriptor(
            dependency_type=element_type,
            required=self.required,
            name=self.name,
            declaring_class=self.declaring_class,
            qualifiers=list(self.qualifiers),
            nesting_level=self.nesting_level + 1,
            eager=self.eager,
            fallback_match_allowed=self.fallback_match_allowed,
        )

    def for_fallback_match(self) -> "DependencyDescriptor":
        copy = self.model_copy()
        copy.fallback_match_allowed = True
        return copy

    def element_args(self) -> Tuple[Any, ...]:
        return get_args(self.target_type)

    def describe(self) -> str:
        owner = type_display(self.declaring_class) if self.declaring_class is not None else "?"
        return f"'{self.name}' of {owner} ({type_display(self.target_type)})"


class SingletonEntry(BaseModel):
    """Tagged cache entry: one tier per singleton name.

    Attributes:
        state: Which tier the name currently occupies.
        instance: The finished instance or the exposed early reference.
        factory: One-shot supplier of the early reference.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    state: SingletonState
    instance: Any = None
    factory: Optional[Callable[[], Any]] = None

    @classmethod
    def finished(cls, instance: Any) -> "SingletonEntry":
        return cls(state=SingletonState.FINISHED, instance=instance)

    @classmethod
    def early_reference(cls, instance: Any) -> "SingletonEntry":
        return cls(state=SingletonState.EARLY_REFERENCE, instance=instance)

    @classmethod
    def early_factory(cls, factory: Callable[[], Any]) -> "SingletonEntry":
        return cls(state=SingletonState.EARLY_FACTORY, factory=factory)
