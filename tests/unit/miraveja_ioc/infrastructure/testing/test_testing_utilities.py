"""Unit tests for testing utilities."""

import logging
from unittest.mock import Mock

import pytest

from miraveja_ioc.application import DIContainer, ThreadScope
from miraveja_ioc.config import ContainerSettings
from miraveja_ioc.domain import ComponentPostProcessor, DisposableComponent
from miraveja_ioc.infrastructure.testing import InMemoryScope, TestContainer, create_mock_container


class EmailService:
    def send(self, to: str) -> str:
        return f"smtp:{to}"


class FakeEmailService(EmailService):
    def send(self, to: str) -> str:
        return f"fake:{to}"


class UserService:
    def __init__(self, email: EmailService):
        self.email = email


class Conversation(DisposableComponent):
    closed = 0

    def destroy(self):
        Conversation.closed += 1


class NoopProcessor(ComponentPostProcessor):
    pass


@pytest.fixture
def source():
    container = DIContainer()
    container.register_class(EmailService)
    container.register_class(UserService)
    return container


class TestTestContainerInitialization:
    """Test cases for TestContainer initialization."""

    def test_without_source(self):
        """Test that an empty test container is a regular container."""
        test_container = TestContainer()

        assert isinstance(test_container, DIContainer)
        assert test_container.list_definition_names() == []
        assert test_container.overridden_names == []

    def test_copies_configuration(self, source):
        """Test that definitions, aliases, singletons, scopes and post-processors are copied."""
        scope = ThreadScope()
        processor = NoopProcessor()
        manual = FakeEmailService()
        source.register_alias("email_service", "mailer")
        source.register_singleton("manual_email", manual)
        source.register_scope("thread", scope)
        source.add_post_processor(processor)

        test_container = TestContainer(source)

        assert test_container.list_definition_names() == ["email_service", "user_service"]
        assert test_container.get_aliases("email_service") == ["mailer"]
        assert test_container.get_component("manual_email") is manual
        assert test_container.get_registered_scope("thread") is scope
        assert test_container.post_processors == [processor]

    def test_components_built_separately(self, source):
        """Test that the test container does not share singletons with its source."""
        test_container = TestContainer(source)

        assert test_container.get_component(UserService) is not source.get_component(UserService)

    def test_overriding_allowed_regardless_of_source(self):
        """Test that overrides work even when the source forbids overriding."""
        source = DIContainer(ContainerSettings(allow_definition_overriding=False))
        source.register_class(EmailService)

        test_container = TestContainer(source)
        test_container.mock_singleton(EmailService, FakeEmailService())

        assert isinstance(test_container.get_component(EmailService), FakeEmailService)


class TestMockSingleton:
    """Test cases for mock_singleton."""

    def test_replaces_dependency(self, source):
        """Test that dependents receive the mock."""
        test_container = TestContainer(source)
        fake = FakeEmailService()

        test_container.mock_singleton(EmailService, fake)

        assert test_container.get_component(UserService).email is fake
        assert test_container.overridden_names == ["email_service"]

    def test_source_untouched(self, source):
        """Test that the source container keeps the real component."""
        test_container = TestContainer(source)
        test_container.mock_singleton(EmailService, FakeEmailService())

        assert type(source.get_component(UserService).email) is EmailService

    def test_spec_mock(self, source):
        """Test that a Mock with a spec passes the type checks."""
        test_container = TestContainer(source)
        mock_email = Mock(spec=EmailService)
        mock_email.send.return_value = "mocked"
        test_container.mock_singleton(EmailService, mock_email)

        service = test_container.get_component(UserService)

        assert service.email.send("ada") == "mocked"
        mock_email.send.assert_called_once_with("ada")

    def test_rebuilds_existing_dependents(self, source):
        """Test that dependents created before the override are rebuilt."""
        test_container = TestContainer(source)
        before = test_container.get_component(UserService)
        fake = FakeEmailService()

        test_container.mock_singleton(EmailService, fake)
        after = test_container.get_component(UserService)

        assert after is not before
        assert after.email is fake

    def test_unregistered_type(self):
        """Test that mocking an unknown type registers it under its default name."""
        test_container = TestContainer()
        fake = FakeEmailService()

        test_container.mock_singleton(EmailService, fake)

        assert test_container.get_component("email_service") is fake


class TestMockPrototype:
    """Test cases for mock_prototype."""

    def test_new_instance_each_time(self, source):
        """Test that every lookup builds a new mock."""
        test_container = TestContainer(source)

        test_container.mock_prototype(EmailService, FakeEmailService)

        first = test_container.get_component(EmailService)
        assert isinstance(first, FakeEmailService)
        assert test_container.get_component(EmailService) is not first


class TestOverrideRegistration:
    """Test cases for override_registration."""

    def test_builder_receives_test_container(self, source):
        """Test that the builder is called with the test container."""
        test_container = TestContainer(source)
        seen = []

        def build(container):
            seen.append(container)
            return FakeEmailService()

        test_container.override_registration(EmailService, build)

        assert isinstance(test_container.get_component(UserService).email, FakeEmailService)
        assert seen == [test_container]


class TestResetOverrides:
    """Test cases for reset_overrides and the context manager."""

    def test_reset_restores_source_configuration(self, source):
        """Test that resetting drops overrides and created components."""
        test_container = TestContainer(source)
        test_container.mock_singleton(EmailService, FakeEmailService())
        test_container.get_component(UserService)

        test_container.reset_overrides()

        assert test_container.overridden_names == []
        assert test_container.singleton_names() == []
        assert type(test_container.get_component(UserService).email) is EmailService

    def test_context_manager(self, source):
        """Test that leaving the with block resets the overrides."""
        with TestContainer(source) as test_container:
            test_container.mock_singleton(EmailService, FakeEmailService())
            assert isinstance(test_container.get_component(EmailService), FakeEmailService)

        assert test_container.overridden_names == []
        assert type(test_container.get_component(EmailService)) is EmailService


class TestCreateMockContainer:
    """Test cases for create_mock_container."""

    def test_registers_mocks(self):
        """Test that every given pair becomes a mocked singleton."""
        fake = FakeEmailService()

        test_container = create_mock_container((EmailService, fake))
        test_container.register_class(UserService)

        assert isinstance(test_container, TestContainer)
        assert test_container.get_component(UserService).email is fake


class TestInMemoryScope:
    """Test cases for InMemoryScope."""

    def test_get_and_remove(self):
        """Test that instances are shared until removed."""
        scope = InMemoryScope()
        first = scope.get("conversation", object)

        assert scope.get("conversation", object) is first
        assert "conversation" in scope
        assert scope.remove("conversation") is first
        assert "conversation" not in scope

    def test_conversation_id(self):
        """Test that the conversation id is the one given."""
        assert InMemoryScope("abc").get_conversation_id() == "abc"
        assert InMemoryScope().get_conversation_id() is None

    def test_with_container(self):
        """Test scoped components destroyed when the with block exits."""
        container = DIContainer()
        scope = InMemoryScope()
        container.register_scope("conversation", scope)
        container.register_class(Conversation, scope="conversation")
        Conversation.closed = 0

        with scope:
            first = container.get_component(Conversation)
            assert container.get_component(Conversation) is first

        assert Conversation.closed == 1
        assert container.get_component(Conversation) is not first

    def test_failing_callback_is_logged(self, caplog):
        """Test that close logs failing callbacks and keeps going."""
        scope = InMemoryScope()
        calls = []

        def failing():
            raise RuntimeError("boom")

        scope.register_destruction_callback("broken", failing)
        scope.register_destruction_callback("conversation", lambda: calls.append("conversation"))
        with caplog.at_level(logging.WARNING):
            scope.close()

        assert calls == ["conversation"]
        assert "scoped component 'broken' failed" in caplog.text
