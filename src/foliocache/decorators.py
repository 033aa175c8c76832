"""Cache decorators for content-fetch and content-mutation functions.

Both decorators take the service or dispatcher explicitly, so each
process wires its own cache instance instead of sharing module state.
"""

import functools
import inspect
import re
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from foliocache.core.entities.content_policy import ContentClass, ContentPolicy
from foliocache.core.entities.invalidation_event import (
    InvalidationEvent,
    InvalidationScope,
    MutationOperation,
)
from foliocache.core.interfaces.key_builder import IKeyBuilder
from foliocache.core.services.cache_service import CacheService
from foliocache.core.services.invalidation import InvalidationDispatcher
from foliocache.infrastructure.key_builders.default import DefaultKeyBuilder

F = TypeVar("F", bound=Callable[..., Any])


def cached(
    service: CacheService,
    key: str | Callable[..., str] | None = None,
    tags: list[str] | None = None,
    content_class: ContentClass | None = None,
    policy: ContentPolicy | None = None,
    key_builder: IKeyBuilder | None = None,
) -> Callable[[F], F]:
    """Decorator for caching async content-fetch results.

    Caches the result of an async function based on its arguments.
    Concurrent calls with the same key share one execution.

    Args:
        service: The cache service to store results in.
        key: Custom cache key or function to generate key.
            If string, supports {arg_name} interpolation.
            If callable, receives (*args, **kwargs) and returns key string.
        tags: Tags for cache invalidation. Supports {arg_name} interpolation.
        content_class: Policy class for TTL and stale handling.
        policy: Explicit policy, overrides ``content_class``.
        key_builder: Builder for default keys. Uses DefaultKeyBuilder with
            the service's key prefix if not provided.

    Returns:
        Decorated function.

    Example:
        @cached(service, tags=["galleries", "gallery_{slug}"],
                content_class=ContentClass.SEMI_STATIC)
        async def get_gallery(slug: str) -> dict:
            return await cms.find_gallery(slug)
    """
    builder = key_builder or DefaultKeyBuilder(prefix=service.config.key_prefix)

    def decorator(func: F) -> F:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            arguments = _bind(signature, args, kwargs)
            cache_key = _build_cache_key(func, args, kwargs, arguments, key, builder)
            resolved_tags = _resolve_tags(tags, arguments)

            return await service.cached(
                lambda: func(*args, **kwargs),
                key=cache_key,
                tags=resolved_tags,
                content_class=content_class,
                policy=policy,
            )

        return wrapper  # type: ignore

    return decorator


def invalidates(
    dispatcher: InvalidationDispatcher,
    tags: list[str] | None = None,
    collection: str | None = None,
    global_name: str | None = None,
    operation: MutationOperation = MutationOperation.UPDATE,
) -> Callable[[F], F]:
    """Decorator for invalidating cache entries after a mutation.

    Executes the decorated function, then dispatches either the explicit
    tags or a content mutation event for ``collection``/``global_name``.
    When the function returns a mapping it is used as the affected
    document, so slug-level cascade tags are included.

    Args:
        dispatcher: The invalidation dispatcher.
        tags: Tags to invalidate. Supports {arg_name} interpolation.
        collection: Collection whose cascade rule applies.
        global_name: Global whose cascade rule applies.
        operation: Kind of mutation, recorded on the event.

    Returns:
        Decorated function.

    Example:
        @invalidates(dispatcher, collection="galleries")
        async def update_gallery(slug: str, data: dict) -> dict:
            return await cms.update_gallery(slug, data)
    """
    if collection and global_name:
        raise ValueError("pass either collection or global_name, not both")

    def decorator(func: F) -> F:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            # Execute function first
            result = await func(*args, **kwargs)

            doc = result if isinstance(result, Mapping) else None
            if collection or global_name:
                await dispatcher.dispatch(
                    InvalidationEvent(
                        scope=(
                            InvalidationScope.GLOBAL
                            if global_name
                            else InvalidationScope.COLLECTION
                        ),
                        identifier=global_name or collection or "",
                        affected_doc=doc,
                        operation=operation,
                    )
                )

            if tags:
                arguments = _bind(signature, args, kwargs)
                await dispatcher.invalidate_tags(_resolve_tags(tags, arguments))

            return result

        return wrapper  # type: ignore

    return decorator


def _bind(
    signature: inspect.Signature,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> dict[str, Any]:
    """Map call arguments to parameter names, defaults applied."""
    try:
        bound = signature.bind(*args, **kwargs)
    except TypeError:
        return dict(kwargs)
    bound.apply_defaults()
    return dict(bound.arguments)


def _build_cache_key(
    func: Callable[..., Any],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    arguments: dict[str, Any],
    custom_key: str | Callable[..., str] | None,
    key_builder: IKeyBuilder,
) -> str:
    """Build cache key for a function call.

    Args:
        func: The function being cached.
        args: Positional arguments.
        kwargs: Keyword arguments.
        arguments: Arguments bound to parameter names.
        custom_key: Custom key or key builder function.
        key_builder: Builder for the default key.

    Returns:
        The cache key string.
    """
    if custom_key is not None:
        if callable(custom_key):
            return custom_key(*args, **kwargs)
        return _interpolate_string(custom_key, arguments)

    # Build default key from function module, name, and arguments
    module = func.__module__ or ""

    return key_builder.build(
        namespace=module.split(".")[-1] if module else "default",
        name=func.__qualname__,
        kwargs=arguments,
    )


def _resolve_tags(
    tags: list[str] | None,
    arguments: dict[str, Any],
) -> list[str]:
    """Resolve tags with argument interpolation.

    Args:
        tags: Tag patterns with optional {arg} placeholders.
        arguments: Call arguments by parameter name.

    Returns:
        List of resolved tag strings.
    """
    if not tags:
        return []

    return [_interpolate_string(tag, arguments) for tag in tags]


def _interpolate_string(template: str, arguments: dict[str, Any]) -> str:
    """Interpolate {arg_name} placeholders in string.

    Args:
        template: String with {arg_name} placeholders.
        arguments: Values for interpolation.

    Returns:
        Interpolated string.
    """
    pattern = r"\{(\w+)\}"

    def replacer(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in arguments:
            return str(arguments[name])
        return match.group(0)  # Keep original if not found

    return re.sub(pattern, replacer, template)
