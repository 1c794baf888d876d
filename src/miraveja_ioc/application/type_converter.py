"""Application layer - Conversion of configured values to parameter types."""

import inspect
import threading
from typing import Any, Callable, Dict

from pydantic import TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError, PydanticUserError

from miraveja_ioc.domain import TypeConversionError
from miraveja_ioc.domain.type_utils import is_assignable_value, unwrap_annotated


class TypeConverter:
    """Converts configured values (often strings) to declared parameter types.

    Values that already fit are returned unchanged. Custom converters registered
    per target type take precedence; everything else goes through a cached
    pydantic ``TypeAdapter`` in lax mode, so ``"42"`` becomes ``42`` for an
    ``int`` parameter and a dict becomes a model for a pydantic parameter.

    Attributes:
        _converters: Target type to custom conversion function.
        _adapters: Cache of pydantic adapters per target type.
    """

    def __init__(self) -> None:
        self._converters: Dict[Any, Callable[[Any], Any]] = {}
        self._adapters: Dict[Any, TypeAdapter] = {}
        self._lock = threading.Lock()

    def register_converter(self, target_type: Any, converter: Callable[[Any], Any]) -> None:
        """Use ``converter`` for every value that must become ``target_type``."""
        self._converters[target_type] = converter

    def convert_if_necessary(self, value: Any, required_type: Any) -> Any:
        """Return ``value`` converted to ``required_type``.

        Raises:
            TypeConversionError: If no conversion is possible.
        """
        if required_type is None or required_type is Any or required_type is inspect.Parameter.empty:
            return value
        base_type, _ = unwrap_annotated(required_type)
        if is_assignable_value(base_type, value):
            return value
        converter = self._converters.get(base_type)
        if converter is not None:
            try:
                return converter(value)
            except (TypeError, ValueError) as e:
                raise TypeConversionError(value, required_type, str(e)) from e
        try:
            return self._adapter_for(base_type).validate_python(value)
        except ValidationError as e:
            raise TypeConversionError(value, required_type, str(e)) from e

    def _adapter_for(self, target_type: Any) -> TypeAdapter:
        try:
            adapter = self._adapters.get(target_type)
        except TypeError:
            return self._build_adapter(target_type)
        if adapter is None:
            adapter = self._build_adapter(target_type)
            with self._lock:
                self._adapters[target_type] = adapter
        return adapter

    @staticmethod
    def _build_adapter(target_type: Any) -> TypeAdapter:
        try:
            return TypeAdapter(target_type)
        except (PydanticSchemaGenerationError, PydanticUserError) as e:
            raise TypeConversionError(None, target_type, f"No conversion strategy available: {e}") from e
