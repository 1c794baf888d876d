import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from miraveja_ioc.application import DIContainer, default_component_name
from miraveja_ioc.config import ContainerSettings
from miraveja_ioc.domain import FACTORY_COMPONENT_PREFIX, ComponentDefinition, Scope, ScopeName

T = TypeVar("T")

logger = logging.getLogger(__name__)


class TestContainer(DIContainer):
    """Container for testing with dependency override capabilities.

    Copies the definitions, aliases, manual singletons, scopes and
    post-processors of a source container, then lets tests replace selected
    components. Components are built inside the test container, so overrides
    reach every component that depends on them. The source container is never
    modified.

    Attributes:
        _source_container: The container the configuration was copied from.
        _overrides: Component name to the override registered for it.

    Example:
        >>> # Production container
        >>> container = DIContainer()
        >>> container.register_class(SmtpEmailService)
        >>> container.register_class(UserService)
        >>>
        >>> # Test container with mocks
        >>> def test_user_service():
        ...     test_container = TestContainer(container)
        ...
        ...     # Override the email service with a mock
        ...     mock_email = MockEmailService()
        ...     test_container.mock_singleton(EmailService, mock_email)
        ...
        ...     # UserService will get the mocked EmailService
        ...     service = test_container.get_component(UserService)
        ...     service.send_welcome_email(user)
        ...     assert mock_email.send_called
    """

    __test__ = False  # Tell pytest not to collect this class as a test

    def __init__(self, source_container: Optional[DIContainer] = None) -> None:
        """Initialize the test container.

        Args:
            source_container: Optional container to copy the configuration from.
                            If None, creates an empty container.
        """
        settings = source_container.settings if source_container is not None else ContainerSettings()
        super().__init__(settings=settings.model_copy(update={"allow_definition_overriding": True}))
        self._source_container = source_container
        self._overrides: Dict[str, Any] = {}
        if source_container is not None:
            self._copy_configuration(source_container)

    def _copy_configuration(self, source: DIContainer) -> None:
        for name in source.list_definition_names():
            self.register_definition(name, source.get_definition(name).clone())
        for name in source.list_definition_names():
            for alias in source.get_aliases(name):
                if not self.contains_definition(alias):
                    self.register_alias(name, alias)
        for name in source.singleton_names():
            if not source.contains_definition(name):
                self.register_singleton(name, source.get_component(name))
        for scope_name in source.get_registered_scope_names():
            self.register_scope(scope_name, source.get_registered_scope(scope_name))
        for processor in source.post_processors:
            self.add_post_processor(processor)

    def _names_to_override(self, dependency_type: Type) -> List[str]:
        names = [
            name
            for name in self.get_component_names_for_type(dependency_type, allow_eager_init=False)
            if not name.startswith(FACTORY_COMPONENT_PREFIX)
        ]
        return names or [default_component_name(dependency_type)]

    def _override(self, dependency_type: Type, supplier: Callable[[], Any], scope: str) -> List[str]:
        names = self._names_to_override(dependency_type)
        for name in names:
            if self.contains_singleton(name) and not self.contains_definition(name):
                self.destroy_singleton(name)
            self.register_definition(
                name,
                ComponentDefinition(component_class=dependency_type, instance_supplier=supplier, scope=scope),
            )
            self._overrides[name] = supplier
            logger.debug("Overriding component '%s' with a test double", name)
        return names

    def mock_singleton(self, dependency_type: Type[T], mock_instance: T) -> None:
        """Replace every component of ``dependency_type`` with ``mock_instance``.

        The mock is returned for all subsequent lookups of the type, and is
        injected into every component that depends on it.

        Args:
            dependency_type: The type to mock.
            mock_instance: The mock instance to return.

        Example:
            >>> test_container = TestContainer(container)
            >>> mock_db = MockDatabase()
            >>> test_container.mock_singleton(DatabaseConnection, mock_db)
            >>>
            >>> service = test_container.get_component(UserService)
            >>> assert service.db is mock_db
        """
        self._override(dependency_type, lambda: mock_instance, ScopeName.SINGLETON.value)

    def mock_prototype(self, dependency_type: Type[T], factory: Callable[[], T]) -> None:
        """Replace every component of ``dependency_type`` with a prototype built by ``factory``.

        Example:
            >>> test_container = TestContainer(container)
            >>> test_container.mock_prototype(RequestHandler, lambda: MockRequestHandler())
            >>>
            >>> # Each lookup gets a new mock instance
            >>> handler1 = test_container.get_component(RequestHandler)
            >>> handler2 = test_container.get_component(RequestHandler)
            >>> assert handler1 is not handler2
        """
        self._override(dependency_type, factory, ScopeName.PROTOTYPE.value)

    def override_registration(
        self,
        dependency_type: Type[T],
        builder: Callable[[DIContainer], T],
        scope: str = ScopeName.SINGLETON.value,
    ) -> None:
        """Replace every component of ``dependency_type`` with one built by ``builder``.

        Args:
            dependency_type: The type to override.
            builder: Function of the container creating the instance.
            scope: Scope of the replacement.

        Example:
            >>> test_container = TestContainer(container)
            >>> test_container.override_registration(
            ...     CacheService,
            ...     lambda c: InMemoryCacheService(),  # Instead of Redis
            ... )
        """
        self._override(dependency_type, lambda: builder(self), scope)

    @property
    def overridden_names(self) -> List[str]:
        return list(self._overrides)

    def reset_overrides(self) -> None:
        """Drop every override and every created component, and copy the source configuration again.

        Useful for cleaning up between test cases.
        """
        self.destroy_singletons()
        for name in self.list_definition_names():
            self.remove_definition(name)
        self._overrides.clear()
        if self._source_container is not None:
            self._copy_configuration(self._source_container)

    def __enter__(self) -> "TestContainer":
        """Context manager entry - returns self."""
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        """Context manager exit - destroy the components and drop the overrides."""
        self.reset_overrides()
        return False


def create_mock_container(*singletons: Tuple[Type, Any]) -> TestContainer:
    """Create a test container with pre-configured mock singletons.

    Convenience function for quickly setting up a test container with
    multiple mocked dependencies.

    Args:
        *singletons: Tuples of (dependency_type, mock_instance).

    Returns:
        TestContainer with mocked dependencies.

    Example:
        >>> test_container = create_mock_container(
        ...     (DatabaseConnection, mock_db),
        ...     (CacheService, mock_cache),
        ... )
        >>> test_container.register_class(UserService)
        >>> service = test_container.get_component(UserService)
    """
    container = TestContainer()

    for dependency_type, mock_instance in singletons:
        container.mock_singleton(dependency_type, mock_instance)

    return container


class InMemoryScope(Scope):
    """Custom scope backed by a plain dictionary, closed explicitly.

    Useful for testing components of custom scopes: everything created inside
    the ``with`` block is shared, and destroyed when the block exits.

    Example:
        >>> scope = InMemoryScope()
        >>> container.register_scope("conversation", scope)
        >>> container.register_class(Conversation, scope="conversation")
        >>>
        >>> with scope:
        ...     first = container.get_component(Conversation)
        ...     assert container.get_component(Conversation) is first
        ...
        ... # Conversation destroyed here
    """

    def __init__(self, conversation_id: Optional[str] = None) -> None:
        self._objects: Dict[str, Any] = {}
        self._callbacks: Dict[str, Callable[[], None]] = {}
        self._conversation_id = conversation_id

    def get(self, name: str, object_factory: Callable[[], Any]) -> Any:
        if name not in self._objects:
            self._objects[name] = object_factory()
        return self._objects[name]

    def remove(self, name: str) -> Optional[Any]:
        self._callbacks.pop(name, None)
        return self._objects.pop(name, None)

    def register_destruction_callback(self, name: str, callback: Callable[[], None]) -> None:
        self._callbacks[name] = callback

    def get_conversation_id(self) -> Optional[str]:
        return self._conversation_id

    def __contains__(self, name: str) -> bool:
        return name in self._objects

    def close(self) -> None:
        """Run every destruction callback and forget all instances."""
        for name, callback in list(self._callbacks.items()):
            try:
                callback()
            except Exception as e:
                logger.warning("Destruction callback for scoped component '%s' failed: %s", name, e)
        self._callbacks.clear()
        self._objects.clear()

    def __enter__(self) -> "InMemoryScope":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        self.close()
        return False
