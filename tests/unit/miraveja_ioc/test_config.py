"""Unit tests for container settings."""

import pytest
from pydantic import ValidationError

from miraveja_ioc.config import ContainerSettings


class TestContainerSettings:
    """Test cases for ContainerSettings."""

    def test_defaults(self):
        """Test the default behaviour switches."""
        settings = ContainerSettings()

        assert settings.allow_definition_overriding is True
        assert settings.allow_circular_references is True
        assert settings.allow_raw_injection_despite_wrapping is False
        assert settings.cache_definition_metadata is True
        assert settings.allow_eager_class_loading is True

    def test_keyword_arguments(self):
        """Test that keyword arguments override defaults."""
        settings = ContainerSettings(allow_circular_references=False)

        assert settings.allow_circular_references is False

    def test_environment_variables(self, monkeypatch):
        """Test that MIRAVEJA_IOC_ environment variables are read."""
        monkeypatch.setenv("MIRAVEJA_IOC_ALLOW_DEFINITION_OVERRIDING", "false")

        assert ContainerSettings().allow_definition_overriding is False

    def test_is_frozen(self):
        """Test that settings cannot be changed after creation."""
        settings = ContainerSettings()

        with pytest.raises(ValidationError):
            settings.allow_circular_references = False

    def test_model_copy_update(self):
        """Test deriving a settings copy with one switch changed."""
        settings = ContainerSettings(allow_definition_overriding=False)

        copy = settings.model_copy(update={"allow_definition_overriding": True})

        assert copy.allow_definition_overriding is True
        assert settings.allow_definition_overriding is False
