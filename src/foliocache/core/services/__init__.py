"""Domain services for foliocache."""

from foliocache.core.services.cache_service import CacheService
from foliocache.core.services.edge_cache import (
    EdgeResponseCache,
    build_cache_control,
    compute_etag,
    handle_conditional,
    invalidation_headers,
)
from foliocache.core.services.invalidation import (
    COLLECTION_RULES,
    GLOBAL_RULES,
    DispatchResult,
    InvalidationDispatcher,
)

__all__ = [
    "CacheService",
    # Edge response cache
    "EdgeResponseCache",
    "build_cache_control",
    "compute_etag",
    "handle_conditional",
    "invalidation_headers",
    # Invalidation
    "InvalidationDispatcher",
    "DispatchResult",
    "COLLECTION_RULES",
    "GLOBAL_RULES",
]
