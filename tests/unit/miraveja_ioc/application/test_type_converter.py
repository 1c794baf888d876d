"""Unit tests for TypeConverter."""

from pathlib import Path
from typing import List, Optional

import pytest
from pydantic import BaseModel

from miraveja_ioc.application.type_converter import TypeConverter
from miraveja_ioc.domain import TypeConversionError


class DatabaseConfig(BaseModel):
    host: str
    port: int = 5432


class Opaque:
    pass


class TestTypeConverter:
    """Test cases for TypeConverter."""

    def test_fitting_value_unchanged(self):
        """Test that values that already fit are returned as is."""
        converter = TypeConverter()
        value = ["a"]

        assert converter.convert_if_necessary(value, list) is value
        assert converter.convert_if_necessary(5, Optional[int]) == 5

    def test_no_type_means_no_conversion(self):
        """Test that a missing type leaves the value alone."""
        converter = TypeConverter()

        assert converter.convert_if_necessary("5", None) == "5"

    def test_string_to_number(self):
        """Test lax conversion of strings to numbers and booleans."""
        converter = TypeConverter()

        assert converter.convert_if_necessary("42", int) == 42
        assert converter.convert_if_necessary("1.5", float) == 1.5
        assert converter.convert_if_necessary("true", bool) is True

    def test_generic_collections(self):
        """Test conversion into parameterized collections."""
        assert TypeConverter().convert_if_necessary(["1", "2"], List[int]) == [1, 2]

    def test_string_to_path(self):
        """Test conversion of a string to a path."""
        assert TypeConverter().convert_if_necessary("/tmp/data", Path) == Path("/tmp/data")

    def test_dict_to_model(self):
        """Test that a mapping becomes a pydantic model."""
        config = TypeConverter().convert_if_necessary({"host": "db"}, DatabaseConfig)

        assert isinstance(config, DatabaseConfig)
        assert config.port == 5432

    def test_invalid_value(self):
        """Test that an unconvertible value raises TypeConversionError."""
        with pytest.raises(TypeConversionError) as exc_info:
            TypeConverter().convert_if_necessary("abc", int)

        assert exc_info.value.value == "abc"
        assert exc_info.value.required_type is int

    def test_unsupported_target(self):
        """Test that classes without a conversion strategy raise TypeConversionError."""
        with pytest.raises(TypeConversionError, match="No conversion strategy available"):
            TypeConverter().convert_if_necessary("x", Opaque)

    def test_custom_converter_wins(self):
        """Test that a registered converter is used for its target type."""
        converter = TypeConverter()
        converter.register_converter(Opaque, lambda value: Opaque())

        assert isinstance(converter.convert_if_necessary("x", Opaque), Opaque)

    def test_custom_converter_failure(self):
        """Test that ValueError from a custom converter becomes TypeConversionError."""
        converter = TypeConverter()

        def refuse(value):
            raise ValueError("nope")

        converter.register_converter(Opaque, refuse)

        with pytest.raises(TypeConversionError, match="nope"):
            converter.convert_if_necessary("x", Opaque)
