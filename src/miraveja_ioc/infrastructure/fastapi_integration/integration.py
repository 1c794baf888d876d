import functools
import inspect
from typing import Any, Callable, Dict, List, Tuple, Type, TypeVar, Union

from fastapi import Depends

from miraveja_ioc.application import DIContainer

T = TypeVar("T")


def create_fastapi_dependency(container: DIContainer, type_or_name: Union[Type[T], str]) -> Callable[[], T]:
    """Create a FastAPI Depends() callable that fetches a component from the container.

    This function generates a dependency function compatible with FastAPI's
    Depends() system. The returned instance follows the scope of the component
    definition (singleton, prototype or any registered custom scope).

    Args:
        container: The container to fetch the component from.
        type_or_name: Component type or component name.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> container = DIContainer()
        >>> container.register_class(UserRepository)
        >>>
        >>> get_user_repo = create_fastapi_dependency(container, UserRepository)
        >>>
        >>> @app.get("/users")
        >>> async def list_users(repo: UserRepository = Depends(get_user_repo)):
        ...     return await repo.get_all()
    """

    def dependency() -> T:
        """Fetch the component from the container."""
        return container.get_component(type_or_name)

    return dependency


def inject_dependencies(container: DIContainer, *types_or_names: Union[Type[Any], str]) -> Callable:
    """Decorator that injects components into the leading parameters of a function.

    The n-th component fills the n-th parameter. FastAPI sees the injected
    parameters as keyword-only ``Depends()`` parameters backed by the container;
    direct calls get them filled in unless the caller passes them.

    Args:
        container: The container to fetch the components from.
        *types_or_names: Component types or names, in parameter order.

    Returns:
        A decorator function.

    Example:
        >>> @app.get("/users")
        >>> @inject_dependencies(container, UserService, AuditLog)
        >>> async def list_users(user_service: UserService, audit: AuditLog):
        ...     audit.record("Listing users")
        ...     return await user_service.get_all()
    """

    def decorator(func: Callable) -> Callable:
        """Wrap the function with dependency injection logic."""
        signature = inspect.signature(func)
        parameters = list(signature.parameters.values())
        injected: List[Tuple[str, Union[Type[Any], str]]] = [
            (parameter.name, type_or_name) for parameter, type_or_name in zip(parameters, types_or_names)
        ]
        dependencies = [
            parameter.replace(
                kind=inspect.Parameter.KEYWORD_ONLY,
                default=Depends(create_fastapi_dependency(container, type_or_name)),
            )
            for parameter, type_or_name in zip(parameters, types_or_names)
        ]
        # Stable sort keeps the declared order within each parameter kind.
        exposed = signature.replace(
            parameters=sorted(parameters[len(injected) :] + dependencies, key=lambda parameter: parameter.kind)
        )

        def resolve_missing(kwargs: Dict[str, Any]) -> Dict[str, Any]:
            for param_name, type_or_name in injected:
                if param_name not in kwargs:
                    kwargs[param_name] = container.get_component(type_or_name)
            return kwargs

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(**kwargs: Any) -> Any:
                return await func(**resolve_missing(kwargs))

            async_wrapper.__signature__ = exposed  # type: ignore[attr-defined]
            del async_wrapper.__wrapped__
            return async_wrapper

        @functools.wraps(func)
        def wrapper(**kwargs: Any) -> Any:
            return func(**resolve_missing(kwargs))

        # Unwrapping would expose the original signature again.
        wrapper.__signature__ = exposed  # type: ignore[attr-defined]
        del wrapper.__wrapped__
        return wrapper

    return decorator
