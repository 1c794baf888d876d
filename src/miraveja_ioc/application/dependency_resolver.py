"""Application layer - Autowire candidate selection."""

import collections.abc
import logging
import math
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set, get_args, get_origin

from miraveja_ioc.domain import (
    AmbiguousDependencyError,
    CandidateTypeMismatchError,
    DependencyDescriptor,
    NoMatchingCandidateError,
)
from miraveja_ioc.domain.markers import get_priority
from miraveja_ioc.domain.type_utils import (
    MULTI_MAPPING_ORIGINS,
    MULTI_SEQUENCE_ORIGINS,
    is_assignable_value,
    runtime_class,
    type_display,
)

if TYPE_CHECKING:
    from miraveja_ioc.application.container import DIContainer

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Finds the value to inject into one injection point.

    Resolution order:
        1. Resolvable dependencies (objects registered for a type without being
           components, such as the container itself).
        2. Collection shapes (``List[T]``, ``Tuple[T, ...]``, ``Set[T]``,
           ``Sequence[T]``, ``Dict[str, T]`` ...): every autowire candidate of ``T``.
        3. A single candidate of the declared type, searched in this container and
           its ancestors. With several candidates the primary one wins, then the
           one with the lowest priority, then the one named like the injection point.

    The requesting component is never injected into itself unless it is the
    only candidate left.

    Attributes:
        _container: Container the candidates are looked up in.
        _resolvable: Type to object served for that type.
    """

    def __init__(self, container: "DIContainer") -> None:
        self._container = container
        self._resolvable: Dict[type, Any] = {}

    def register_resolvable_dependency(self, dependency_type: type, value: Any) -> None:
        """Serve ``value`` for every injection point asking for ``dependency_type``."""
        if not isinstance(value, dependency_type):
            raise TypeError(
                f"Value [{value!r}] does not implement specified dependency type [{type_display(dependency_type)}]"
            )
        self._resolvable[dependency_type] = value

    def resolve(
        self,
        descriptor: DependencyDescriptor,
        requesting_name: Optional[str],
        autowired_names: Optional[Set[str]] = None,
    ) -> Any:
        """Return the value for ``descriptor``, or ``None`` when it is optional and unsatisfied.

        Args:
            descriptor: The injection point.
            requesting_name: Component being populated; excluded from its own candidates.
            autowired_names: Collects the names of the injected components.

        Raises:
            NoMatchingCandidateError: If a required dependency has no candidate.
            AmbiguousDependencyError: If a single-valued dependency has several equal candidates.
            CandidateTypeMismatchError: If the chosen component is not of the declared type.
        """
        target = descriptor.target_type
        target_class = runtime_class(target)

        resolvable = self._find_resolvable(target_class)
        if resolvable is not None:
            return resolvable

        multiple = self._resolve_multiple(descriptor, requesting_name, autowired_names)
        if multiple is not None:
            return multiple

        if target_class is None:
            return self._resolve_by_name(descriptor, requesting_name, autowired_names)

        candidates = self._find_autowire_candidates(requesting_name, target_class, descriptor, multiple=False)
        if not candidates:
            if descriptor.required:
                raise NoMatchingCandidateError(
                    target, "expected at least 1 component which qualifies as autowire candidate"
                )
            return None

        if len(candidates) > 1:
            chosen = self.determine_autowire_candidate(candidates, descriptor)
            if chosen is None:
                if descriptor.required:
                    raise AmbiguousDependencyError(target, candidates)
                logger.debug("Ambiguous optional dependency %s left unset", descriptor.describe())
                return None
        else:
            chosen = candidates[0]

        return self._obtain(chosen, target, descriptor, requesting_name, autowired_names)

    # Lookup helpers

    def _find_resolvable(self, target_class: Optional[type]) -> Any:
        if target_class is None or target_class is object:
            return None
        for dependency_type, value in self._resolvable.items():
            if issubclass(dependency_type, target_class) and isinstance(value, target_class):
                return value
        return None

    def _obtain(
        self,
        name: str,
        target: Any,
        descriptor: DependencyDescriptor,
        requesting_name: Optional[str],
        autowired_names: Optional[Set[str]],
    ) -> Any:
        instance = self._container.get_component(name)
        if instance is None:
            if descriptor.required:
                raise NoMatchingCandidateError(target, f"component '{name}' produced no object")
            return None
        if not is_assignable_value(target, instance):
            raise CandidateTypeMismatchError(name, target, type(instance))
        if autowired_names is not None:
            autowired_names.add(name)
        if requesting_name is not None and requesting_name != name:
            self._container.register_dependent(name, requesting_name)
        logger.debug("Autowired component '%s' into %s", name, descriptor.describe())
        return instance

    def _resolve_by_name(
        self,
        descriptor: DependencyDescriptor,
        requesting_name: Optional[str],
        autowired_names: Optional[Set[str]],
    ) -> Any:
        # Untyped or non-class hints can only be matched on the injection point name.
        name = descriptor.name
        if name and name != requesting_name and self._container.contains_component(name):
            return self._obtain(name, descriptor.target_type, descriptor, requesting_name, autowired_names)
        if descriptor.required:
            raise NoMatchingCandidateError(
                descriptor.target_type, f"cannot autowire untyped injection point {descriptor.describe()} by type"
            )
        return None

    def _resolve_multiple(
        self,
        descriptor: DependencyDescriptor,
        requesting_name: Optional[str],
        autowired_names: Optional[Set[str]],
    ) -> Any:
        target = descriptor.target_type
        origin = get_origin(target)
        args = get_args(target)
        if origin in MULTI_MAPPING_ORIGINS:
            if len(args) != 2 or args[0] is not str:
                return None
            element_type = args[1]
        elif origin in MULTI_SEQUENCE_ORIGINS:
            if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
                return None
            if not args:
                return None
            element_type = args[0]
        else:
            return None

        element_class = runtime_class(element_type)
        if element_class is None:
            return None
        element_descriptor = descriptor.for_element(element_type)
        names = self._find_autowire_candidates(requesting_name, element_class, element_descriptor, multiple=True)
        if not names:
            if descriptor.required:
                raise NoMatchingCandidateError(
                    target, "expected at least 1 component which qualifies as autowire candidate"
                )
            return None

        order = {name: index for index, name in enumerate(names)}
        ranked = sorted(names, key=lambda name: (self._priority_key(name), order[name]))
        instances: Dict[str, Any] = {}
        for name in ranked:
            instance = self._obtain(name, element_type, element_descriptor, requesting_name, autowired_names)
            if instance is not None:
                instances[name] = instance

        if origin in MULTI_MAPPING_ORIGINS:
            return instances
        values = list(instances.values())
        if origin is tuple:
            return tuple(values)
        if origin is frozenset:
            return frozenset(values)
        if origin in (set, collections.abc.Set, collections.abc.MutableSet):
            return set(values)
        return values

    def _priority_key(self, name: str) -> float:
        value = self._priority_of(name)
        return math.inf if value is None else value

    def _priority_of(self, name: str) -> Optional[int]:
        definition = self._container.find_merged_definition(name)
        if definition is not None and definition.priority is not None:
            return definition.priority
        component_type = self._container.get_type(name)
        return get_priority(component_type) if component_type is not None else None

    def _find_autowire_candidates(
        self,
        requesting_name: Optional[str],
        required_class: type,
        descriptor: DependencyDescriptor,
        multiple: bool,
    ) -> List[str]:
        names: List[str] = []
        factory: Optional["DIContainer"] = self._container
        while factory is not None:
            for name in factory.get_component_names_for_type(required_class, True, descriptor.eager):
                if name not in names:
                    names.append(name)
            factory = factory.parent

        result = [
            name
            for name in names
            if not self._is_self_reference(requesting_name, name) and self._is_autowire_candidate(name, descriptor)
        ]
        if not result and not multiple:
            result = [
                name
                for name in names
                if self._is_self_reference(requesting_name, name) and self._is_autowire_candidate(name, descriptor)
            ]
        return result

    def _is_self_reference(self, requesting_name: Optional[str], candidate: str) -> bool:
        if requesting_name is None:
            return False
        if candidate == requesting_name:
            return True
        definition = self._container.find_merged_definition(candidate)
        return definition is not None and definition.factory_component_name == requesting_name

    def _is_autowire_candidate(self, name: str, descriptor: DependencyDescriptor) -> bool:
        definition = self._container.find_merged_definition(name)
        if definition is not None and not definition.autowire_candidate:
            return False
        if not descriptor.qualifiers:
            return True
        known = {name, *self._container.get_aliases(name)}
        if definition is not None:
            known |= definition.qualifiers
        return all(qualifier in known for qualifier in descriptor.qualifiers)

    # Tie-breaks

    def determine_autowire_candidate(self, candidates: List[str], descriptor: DependencyDescriptor) -> Optional[str]:
        """Pick one of several candidates: primary, then lowest priority, then injection point name.

        Raises:
            AmbiguousDependencyError: On two local primaries or two candidates sharing the lowest priority.
        """
        target = descriptor.target_type
        primary = self._determine_primary(candidates, target)
        if primary is not None:
            return primary
        highest = self._determine_highest_priority(candidates, target)
        if highest is not None:
            return highest
        if descriptor.name:
            for name in candidates:
                if name == descriptor.name or descriptor.name in self._container.get_aliases(name):
                    return name
        return None

    def _determine_primary(self, candidates: List[str], target: Any) -> Optional[str]:
        primary: Optional[str] = None
        for name in candidates:
            definition = self._container.find_merged_definition(name)
            if definition is None or not definition.primary:
                continue
            if primary is None:
                primary = name
                continue
            candidate_local = self._container.contains_definition(name)
            primary_local = self._container.contains_definition(primary)
            if candidate_local and primary_local:
                raise AmbiguousDependencyError(
                    target, candidates, "more than one 'primary' component found among candidates"
                )
            if candidate_local:
                primary = name
        return primary

    def _determine_highest_priority(self, candidates: List[str], target: Any) -> Optional[str]:
        priorities = {name: self._priority_of(name) for name in candidates}
        ranked = {name: value for name, value in priorities.items() if value is not None}
        if not ranked:
            return None
        lowest = min(ranked.values())
        winners = [name for name, value in ranked.items() if value == lowest]
        if len(winners) > 1:
            raise AmbiguousDependencyError(
                target, winners, f"multiple components found with the same priority ('{lowest}')"
            )
        return winners[0]
