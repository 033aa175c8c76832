"""foliocache - multi-tier content caching and invalidation.

A Python library for caching CMS-backed content across three tiers: a
tag-indexed server cache in front of expensive content fetches, HTTP
edge caching headers for responses leaving the server, and a client
request cache for API consumers. Content mutations are turned into tag
invalidations through one cascade table.

Example:
    from foliocache import (
        CacheConfig,
        CacheService,
        ContentClass,
        InMemoryTagStore,
        InvalidationDispatcher,
        InvalidationEvent,
    )

    config = CacheConfig.from_env()
    store = InMemoryTagStore(maxsize=config.max_entries)
    cache = CacheService(store, config=config)
    dispatcher = InvalidationDispatcher(store)

    gallery = await cache.cached(
        lambda: cms.find_gallery("yosemite"),
        key="gallery:yosemite",
        tags=["galleries", "gallery_yosemite"],
        content_class=ContentClass.SEMI_STATIC,
    )

    # after the CMS saves an image of that gallery
    await dispatcher.dispatch(
        InvalidationEvent.for_collection("images", {"gallery": {"slug": "yosemite"}})
    )
"""

from foliocache.core.entities import (
    DEFAULT_POLICIES,
    CacheConfig,
    CacheControlPolicy,
    CacheEntry,
    CacheScope,
    ContentClass,
    ContentPolicy,
    InvalidationEvent,
    InvalidationScope,
    MutationOperation,
    UnknownContentClassError,
)
from foliocache.core.interfaces import (
    IInvalidationSink,
    IKeyBuilder,
    ISerializer,
    ITagStore,
)
from foliocache.core.services import (
    CacheService,
    DispatchResult,
    EdgeResponseCache,
    InvalidationDispatcher,
    build_cache_control,
    compute_etag,
    handle_conditional,
    invalidation_headers,
)
from foliocache.client import CachingHttpClient
from foliocache.decorators import cached, invalidates
from foliocache.hooks import collection_hooks, global_hooks
from foliocache.infrastructure import (
    DefaultKeyBuilder,
    InMemoryTagStore,
    JsonSerializer,
    SerializationError,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core entities
    "CacheConfig",
    "CacheEntry",
    "ContentClass",
    "ContentPolicy",
    "DEFAULT_POLICIES",
    "UnknownContentClassError",
    "InvalidationEvent",
    "InvalidationScope",
    "MutationOperation",
    # Edge cache control
    "CacheScope",
    "CacheControlPolicy",
    "EdgeResponseCache",
    "build_cache_control",
    "compute_etag",
    "handle_conditional",
    "invalidation_headers",
    # Core interfaces
    "ITagStore",
    "IKeyBuilder",
    "ISerializer",
    "IInvalidationSink",
    # Core services
    "CacheService",
    "InvalidationDispatcher",
    "DispatchResult",
    # Client cache
    "CachingHttpClient",
    # Infrastructure implementations
    "InMemoryTagStore",
    "DefaultKeyBuilder",
    "JsonSerializer",
    "SerializationError",
    # Decorators and hooks
    "cached",
    "invalidates",
    "collection_hooks",
    "global_hooks",
]
