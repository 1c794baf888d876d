"""Application layer - Teardown callbacks for managed components."""

import logging
from typing import Any, List, Optional, Sequence

from miraveja_ioc.domain import (
    INFER_METHOD,
    ComponentDefinition,
    ComponentPostProcessor,
    DefinitionValidationError,
    DisposableComponent,
)

logger = logging.getLogger(__name__)

INFERRED_DESTROY_METHODS = ("close",)


def _resolve_destroy_method_name(instance: Any, definition: Optional[ComponentDefinition]) -> Optional[str]:
    method_name = definition.destroy_method_name if definition is not None else None
    if method_name == INFER_METHOD:
        if isinstance(instance, DisposableComponent):
            return None
        for candidate in INFERRED_DESTROY_METHODS:
            if callable(getattr(instance, candidate, None)):
                return candidate
        return None
    if method_name and isinstance(instance, DisposableComponent) and method_name == "destroy":
        return None
    return method_name or None


def has_destroy_method(instance: Any, definition: Optional[ComponentDefinition]) -> bool:
    """Whether ``instance`` implements ``DisposableComponent`` or names a (possibly inferred) destroy method."""
    return isinstance(instance, DisposableComponent) or _resolve_destroy_method_name(instance, definition) is not None


def requires_destruction(
    instance: Any,
    definition: Optional[ComponentDefinition],
    post_processors: Sequence[ComponentPostProcessor],
) -> bool:
    """Whether the container must keep a teardown callback for ``instance``."""
    if instance is None:
        return False
    if has_destroy_method(instance, definition):
        return True
    return any(processor.requires_destruction(instance) for processor in post_processors)


class DisposableComponentAdapter:
    """Runs the teardown steps of one component.

    Order: ``before_destruction`` of every interested post-processor, then
    ``DisposableComponent.destroy``, then the configured destroy method. A failing
    step is logged and the remaining steps still run.

    Attributes:
        name: Component name, for logging.
        instance: The component being torn down.
        destroy_method_name: Resolved destroy method, if any.
    """

    def __init__(
        self,
        instance: Any,
        name: str,
        definition: Optional[ComponentDefinition],
        post_processors: Sequence[ComponentPostProcessor],
    ) -> None:
        self.instance = instance
        self.name = name
        self.destroy_method_name = _resolve_destroy_method_name(instance, definition)
        self._post_processors: List[ComponentPostProcessor] = [
            processor for processor in post_processors if processor.requires_destruction(instance)
        ]
        if self.destroy_method_name and not callable(getattr(instance, self.destroy_method_name, None)):
            raise DefinitionValidationError(
                f"Could not find a destroy method named '{self.destroy_method_name}' on component with name '{name}'"
            )

    def destroy(self) -> None:
        for processor in self._post_processors:
            processor.before_destruction(self.instance, self.name)

        if isinstance(self.instance, DisposableComponent):
            logger.debug("Invoking destroy() on component with name '%s'", self.name)
            try:
                self.instance.destroy()
            except Exception as e:
                logger.warning("Invocation of destroy method failed on component with name '%s': %s", self.name, e)

        if self.destroy_method_name:
            logger.debug("Invoking destroy method '%s' on component with name '%s'", self.destroy_method_name, self.name)
            try:
                getattr(self.instance, self.destroy_method_name)()
            except Exception as e:
                logger.warning(
                    "Invocation of destroy method '%s' failed on component with name '%s': %s",
                    self.destroy_method_name,
                    self.name,
                    e,
                )

    def __repr__(self) -> str:
        return f"DisposableComponentAdapter(name={self.name!r}, destroy_method={self.destroy_method_name!r})"
