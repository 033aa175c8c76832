"""Domain entities for foliocache."""

from foliocache.core.entities.cache_config import CacheConfig
from foliocache.core.entities.cache_control import CacheControlPolicy, CacheScope
from foliocache.core.entities.cache_entry import CacheEntry
from foliocache.core.entities.content_policy import (
    DEFAULT_POLICIES,
    ContentClass,
    ContentPolicy,
    UnknownContentClassError,
)
from foliocache.core.entities.invalidation_event import (
    InvalidationEvent,
    InvalidationScope,
    MutationOperation,
    collection_tag,
    global_tag,
    record_tag,
)

__all__ = [
    "CacheEntry",
    "CacheConfig",
    "CacheScope",
    "CacheControlPolicy",
    "ContentClass",
    "ContentPolicy",
    "DEFAULT_POLICIES",
    "UnknownContentClassError",
    "InvalidationEvent",
    "InvalidationScope",
    "MutationOperation",
    "collection_tag",
    "global_tag",
    "record_tag",
]
