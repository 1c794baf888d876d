"""Application layer - Constructor and factory method resolution."""

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Sequence, Set, Tuple

from miraveja_ioc.application.dependency_resolver import DependencyResolver
from miraveja_ioc.application.executables import (
    ExecutableCandidate,
    ParameterInfo,
    constructor_candidates,
    factory_method_candidates,
)
from miraveja_ioc.application.type_converter import TypeConverter
from miraveja_ioc.application.type_weights import MAX_WEIGHT, arguments_weight
from miraveja_ioc.application.value_resolver import ValueResolver, needs_resolution
from miraveja_ioc.domain import (
    AmbiguousConstructorError,
    AutowireMode,
    CandidateTypeMismatchError,
    ComponentCreationError,
    ComponentDefinition,
    ConstructorArgumentValues,
    DefinitionStoreError,
    DependencyDescriptor,
    DIException,
    InstantiationFailureError,
    NoSuchDefinitionError,
    TypeConversionError,
    UnsatisfiedDependencyError,
    ValueHolder,
)
from miraveja_ioc.domain.type_utils import NoneType

if TYPE_CHECKING:
    from miraveja_ioc.application.container import DIContainer

logger = logging.getLogger(__name__)


class _AutowiredArgument:
    """Placeholder in a prepared argument template for a value that is autowired on every creation."""

    def __repr__(self) -> str:
        return "<autowired>"


AUTOWIRED_ARGUMENT = _AutowiredArgument()


class ArgumentsHolder:
    """Argument arrays built for one candidate executable.

    Attributes:
        raw_arguments: Values before type conversion.
        arguments: Values passed to the executable.
        prepared_arguments: Template cached on the definition when values must be
            resolved again for every instance (references, autowired parameters).
        resolve_necessary: Whether the prepared template must be cached instead of ``arguments``.
    """

    def __init__(self, size: int) -> None:
        self.raw_arguments: List[Any] = [None] * size
        self.arguments: List[Any] = [None] * size
        self.prepared_arguments: List[Any] = [None] * size
        self.resolve_necessary = False

    @classmethod
    def from_explicit(cls, arguments: Sequence[Any]) -> "ArgumentsHolder":
        holder = cls(len(arguments))
        holder.raw_arguments = list(arguments)
        holder.arguments = list(arguments)
        holder.prepared_arguments = list(arguments)
        return holder

    def weight(self, parameter_types: Sequence[Any]) -> int:
        return arguments_weight(parameter_types, self.arguments, self.raw_arguments)

    def store_cache(self, definition: ComponentDefinition, executable: ExecutableCandidate) -> None:
        if self.resolve_necessary:
            definition.cache_resolution(executable, prepared_arguments=tuple(self.prepared_arguments))
        else:
            definition.cache_resolution(executable, arguments=tuple(self.arguments))


class ConstructorResolver:
    """Chooses the constructor or factory method for a definition and builds its arguments.

    Candidates are tried greediest first. Each one gets an argument array from the
    configured constructor arguments (by index, then by declared type and name),
    autowiring and parameter defaults. Arrays are ranked with the type difference
    weight; the lightest wins, and equal weights make the choice ambiguous.
    The winner is cached on the definition for the next creation.

    Attributes:
        _container: Owning container, used for references and factory components.
        _dependency_resolver: Resolves autowired parameters.
        _converter: Converts configured values to parameter types.
    """

    def __init__(
        self,
        container: "DIContainer",
        dependency_resolver: DependencyResolver,
        converter: TypeConverter,
    ) -> None:
        self._container = container
        self._dependency_resolver = dependency_resolver
        self._converter = converter

    def autowire_constructor(
        self,
        name: str,
        definition: ComponentDefinition,
        explicit_args: Optional[Sequence[Any]] = None,
    ) -> Any:
        """Create the instance through the best matching constructor of ``component_class``.

        Raises:
            UnsatisfiedDependencyError: If no constructor can be satisfied.
            AmbiguousConstructorError: If constructors tie and resolution is strict.
            InstantiationFailureError: If the chosen constructor raises.
        """
        executable, arguments = self.resolve_constructor(name, definition, explicit_args)
        return self._instantiate(name, executable, arguments)

    def instantiate_using_factory_method(
        self,
        name: str,
        definition: ComponentDefinition,
        explicit_args: Optional[Sequence[Any]] = None,
    ) -> Any:
        """Create the instance by calling the definition's factory method.

        Raises:
            UnsatisfiedDependencyError: If no factory method variant can be satisfied.
            AmbiguousConstructorError: If variants tie and resolution is strict.
            InstantiationFailureError: If the chosen factory method raises.
        """
        factory_instance, executable, arguments = self.resolve_factory_method(name, definition, explicit_args)
        return self._instantiate(name, executable, arguments, factory_instance)

    # Constructors

    def resolve_constructor(
        self,
        name: str,
        definition: ComponentDefinition,
        explicit_args: Optional[Sequence[Any]] = None,
    ) -> Tuple[ExecutableCandidate, Tuple[Any, ...]]:
        """Return the constructor to use and its arguments, without calling it."""
        component_class = definition.component_class
        if component_class is None:
            raise DefinitionStoreError(name, "Component definition declares no component class to construct")

        if explicit_args is None:
            cached = self._from_cache(name, definition)
            if cached is not None:
                return cached

        candidates = constructor_candidates(component_class, definition.non_public_access_allowed)
        if not candidates:
            raise ComponentCreationError(
                name,
                f"No accessible constructor found on class '{component_class.__qualname__}'",
            )

        if (
            explicit_args is None
            and len(candidates) == 1
            and candidates[0].parameter_count == 0
            and not definition.has_constructor_argument_values
        ):
            definition.cache_resolution(candidates[0], arguments=())
            return candidates[0], ()

        autowiring = definition.autowire_mode is AutowireMode.CONSTRUCTOR or len(candidates) > 1
        executable, holder = self._select(
            name,
            definition,
            candidates,
            explicit_args,
            autowiring,
            greedy_break=True,
        )
        if explicit_args is None:
            holder.store_cache(definition, executable)
        return executable, tuple(holder.arguments)

    # Factory methods

    def resolve_factory_method(
        self,
        name: str,
        definition: ComponentDefinition,
        explicit_args: Optional[Sequence[Any]] = None,
    ) -> Tuple[Any, ExecutableCandidate, Tuple[Any, ...]]:
        """Return ``(factory_instance, factory_method, arguments)``; the instance is ``None`` for static methods."""
        factory_name = definition.factory_component_name
        if factory_name is not None:
            if factory_name == name:
                raise ComponentCreationError(
                    name, "factory component reference points back to the same component definition"
                )
            factory_instance = self._container.get_component(factory_name)
            self._container.register_dependent(factory_name, name)
            factory_class = type(factory_instance)
            is_static = False
        else:
            if definition.component_class is None:
                raise DefinitionStoreError(
                    name, "Component definition declares neither a component class nor a factory component"
                )
            factory_instance = None
            factory_class = definition.component_class
            is_static = True

        if explicit_args is None:
            cached = self._from_cache(name, definition)
            if cached is not None:
                executable, arguments = cached
                return factory_instance, executable, arguments

        method_name = definition.factory_method_name or ""
        candidates = factory_method_candidates(
            factory_class, method_name, is_static, definition.non_public_access_allowed
        )
        if not candidates:
            kind = "static" if is_static else "instance"
            raise ComponentCreationError(
                name,
                f"No matching {kind} factory method found on class '{factory_class.__qualname__}': "
                f"factory method '{method_name}'",
            )

        if (
            explicit_args is None
            and len(candidates) == 1
            and candidates[0].parameter_count == 0
            and not definition.has_constructor_argument_values
        ):
            self._check_return_type(name, candidates[0])
            definition.cache_resolution(candidates[0], arguments=())
            return factory_instance, candidates[0], ()

        autowiring = definition.autowire_mode is AutowireMode.CONSTRUCTOR
        executable, holder = self._select(
            name,
            definition,
            candidates,
            explicit_args,
            autowiring,
            greedy_break=False,
        )
        self._check_return_type(name, executable)
        if explicit_args is None:
            holder.store_cache(definition, executable)
        return factory_instance, executable, tuple(holder.arguments)

    @staticmethod
    def _check_return_type(name: str, executable: ExecutableCandidate) -> None:
        if executable.return_type is NoneType:
            raise ComponentCreationError(
                name, f"Invalid factory method '{executable.attribute_name}': needs to have a non-None return type"
            )

    # Selection

    def _select(
        self,
        name: str,
        definition: ComponentDefinition,
        candidates: List[ExecutableCandidate],
        explicit_args: Optional[Sequence[Any]],
        autowiring: bool,
        greedy_break: bool,
    ) -> Tuple[ExecutableCandidate, ArgumentsHolder]:
        resolved_values: Optional[ConstructorArgumentValues] = None
        if explicit_args is not None:
            minimum_arguments = len(explicit_args)
        else:
            resolved_values, minimum_arguments = self._resolve_configured_arguments(name, definition)

        candidates = sorted(candidates, key=lambda candidate: (not candidate.is_public, -candidate.parameter_count))
        lenient = definition.lenient_constructor_resolution
        executable_to_use: Optional[ExecutableCandidate] = None
        arguments_to_use: Optional[ArgumentsHolder] = None
        min_weight = MAX_WEIGHT
        ambiguous: Optional[List[ExecutableCandidate]] = None
        causes: List[UnsatisfiedDependencyError] = []

        for candidate in candidates:
            parameter_count = candidate.parameter_count
            if (
                greedy_break
                and executable_to_use is not None
                and arguments_to_use is not None
                and len(arguments_to_use.arguments) > parameter_count
            ):
                # Already found a greedy candidate that can be satisfied.
                break
            if parameter_count < minimum_arguments:
                continue

            if resolved_values is not None:
                try:
                    holder = self._create_argument_array(
                        name,
                        definition,
                        resolved_values,
                        candidate,
                        autowiring,
                        fallback=len(candidates) == 1,
                    )
                except UnsatisfiedDependencyError as e:
                    logger.debug("Ignoring %s of component '%s': %s", candidate, name, e)
                    causes.append(e)
                    continue
            else:
                if parameter_count != len(explicit_args or ()):
                    continue
                holder = ArgumentsHolder.from_explicit(explicit_args or ())

            weight = holder.weight(candidate.parameter_types)
            if weight < min_weight:
                executable_to_use = candidate
                arguments_to_use = holder
                min_weight = weight
                ambiguous = None
            elif executable_to_use is not None and weight == min_weight:
                if greedy_break or (
                    not lenient
                    and parameter_count == executable_to_use.parameter_count
                    and candidate.parameter_types != executable_to_use.parameter_types
                ):
                    if ambiguous is None:
                        ambiguous = [executable_to_use]
                    ambiguous.append(candidate)

        if executable_to_use is None or arguments_to_use is None:
            if causes:
                last = causes.pop()
                for cause in causes:
                    last.add_suppressed(cause)
                    self._container.on_suppressed_exception(cause)
                raise last
            raise ComponentCreationError(
                name,
                f"Could not resolve matching constructor or factory method on '{candidates[0].declaring_class.__qualname__}' "
                "(hint: specify index/type/name arguments for simple parameters to avoid type ambiguities). "
                f"Candidates: {candidates}",
            )
        if ambiguous is not None and not lenient:
            raise AmbiguousConstructorError(name, ambiguous)
        if ambiguous is not None:
            logger.debug("Ambiguous matches for component '%s', using %s of %s", name, executable_to_use, ambiguous)
        return executable_to_use, arguments_to_use

    def _resolve_configured_arguments(
        self, name: str, definition: ComponentDefinition
    ) -> Tuple[ConstructorArgumentValues, int]:
        configured = definition.constructor_arguments
        value_resolver = ValueResolver(self._container, name, definition)
        resolved = ConstructorArgumentValues()
        minimum_arguments = configured.argument_count
        for index, holder in configured.indexed.items():
            minimum_arguments = max(minimum_arguments, index + 1)
            resolved.indexed[index] = self._resolve_holder(
                value_resolver, f"constructor argument with index {index}", holder
            )
        for holder in configured.generic:
            resolved.generic.append(self._resolve_holder(value_resolver, "constructor argument", holder))
        return resolved, minimum_arguments

    @staticmethod
    def _resolve_holder(value_resolver: ValueResolver, argument_name: str, holder: ValueHolder) -> ValueHolder:
        value = value_resolver.resolve_if_necessary(argument_name, holder.value)
        return ValueHolder(value=value, type=holder.type, name=holder.name, source=holder.value)

    def _create_argument_array(
        self,
        name: str,
        definition: ComponentDefinition,
        resolved_values: ConstructorArgumentValues,
        candidate: ExecutableCandidate,
        autowiring: bool,
        fallback: bool,
    ) -> ArgumentsHolder:
        holder = ArgumentsHolder(candidate.parameter_count)
        used: List[ValueHolder] = []
        autowired_names: Set[str] = set()

        for index, info in enumerate(candidate.parameters):
            value_holder = resolved_values.get_argument_value(index, info.annotation, info.name, used)
            if value_holder is None and (
                not autowiring or candidate.parameter_count == resolved_values.argument_count
            ):
                value_holder = resolved_values.get_generic(None, None, used)

            if value_holder is not None:
                used.append(value_holder)
                try:
                    converted = self._converter.convert_if_necessary(value_holder.value, info.annotation)
                except TypeConversionError as e:
                    raise UnsatisfiedDependencyError(
                        name, self._describe_parameter(candidate, index, info), str(e)
                    ) from e
                holder.raw_arguments[index] = value_holder.value
                holder.arguments[index] = converted
                if needs_resolution(value_holder.source):
                    holder.resolve_necessary = True
                    holder.prepared_arguments[index] = value_holder.source
                else:
                    holder.prepared_arguments[index] = converted
                continue

            if not autowiring:
                if info.has_default:
                    holder.raw_arguments[index] = holder.arguments[index] = info.default
                    holder.prepared_arguments[index] = info.default
                    continue
                raise UnsatisfiedDependencyError(
                    name,
                    self._describe_parameter(candidate, index, info),
                    "Ambiguous argument values for parameter: did you specify the correct component "
                    "references as arguments?",
                )

            value = self._resolve_autowired_argument(name, candidate, index, info, fallback, autowired_names)
            holder.raw_arguments[index] = holder.arguments[index] = value
            holder.prepared_arguments[index] = AUTOWIRED_ARGUMENT
            holder.resolve_necessary = True

        if autowired_names:
            logger.debug(
                "Autowiring by type from component name '%s' via %s to components named %s",
                name,
                candidate,
                sorted(autowired_names),
            )
        return holder

    def _resolve_autowired_argument(
        self,
        name: str,
        candidate: ExecutableCandidate,
        index: int,
        info: ParameterInfo,
        fallback: bool,
        autowired_names: Optional[Set[str]] = None,
    ) -> Any:
        descriptor = DependencyDescriptor.for_parameter(info.parameter, info.annotation, candidate.declaring_class)
        if fallback:
            descriptor = descriptor.for_fallback_match()
        try:
            value = self._dependency_resolver.resolve(descriptor, name, autowired_names)
        except (NoSuchDefinitionError, CandidateTypeMismatchError) as e:
            raise UnsatisfiedDependencyError(name, self._describe_parameter(candidate, index, info), str(e)) from e
        if value is None and info.has_default:
            return info.default
        return value

    @staticmethod
    def _describe_parameter(candidate: ExecutableCandidate, index: int, info: ParameterInfo) -> str:
        return f"parameter {index} ('{info.name}') of {candidate!r}"

    # Cached resolution

    def _from_cache(
        self, name: str, definition: ComponentDefinition
    ) -> Optional[Tuple[ExecutableCandidate, Tuple[Any, ...]]]:
        executable, arguments, prepared = definition.cached_resolution()
        if executable is None:
            return None
        if arguments is None:
            arguments = self._resolve_prepared_arguments(name, definition, executable, prepared or ())
        logger.debug("Using cached %s for component '%s'", executable, name)
        return executable, arguments

    def _resolve_prepared_arguments(
        self,
        name: str,
        definition: ComponentDefinition,
        executable: ExecutableCandidate,
        prepared: Sequence[Any],
    ) -> Tuple[Any, ...]:
        value_resolver = ValueResolver(self._container, name, definition)
        resolved: List[Any] = []
        for index, (info, value) in enumerate(zip(executable.parameters, prepared)):
            if value is AUTOWIRED_ARGUMENT:
                resolved.append(self._resolve_autowired_argument(name, executable, index, info, fallback=True))
                continue
            if needs_resolution(value):
                value = value_resolver.resolve_if_necessary(info.name, value)
            try:
                resolved.append(self._converter.convert_if_necessary(value, info.annotation))
            except TypeConversionError as e:
                raise UnsatisfiedDependencyError(name, self._describe_parameter(executable, index, info), str(e)) from e
        return tuple(resolved)

    # Invocation

    @staticmethod
    def _instantiate(
        name: str,
        executable: ExecutableCandidate,
        arguments: Tuple[Any, ...],
        factory_instance: Any = None,
    ) -> Any:
        try:
            return executable.invoke(arguments, factory_instance)
        except DIException:
            raise
        except Exception as e:
            raise InstantiationFailureError(name, executable.declaring_class, f"{executable!r} threw exception: {e}") from e
