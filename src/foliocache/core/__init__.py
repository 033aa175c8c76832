"""Core domain layer for foliocache."""

from foliocache.core.entities import CacheConfig, CacheEntry, InvalidationEvent
from foliocache.core.interfaces import (
    IInvalidationSink,
    IKeyBuilder,
    ISerializer,
    ITagStore,
)
from foliocache.core.services import CacheService, InvalidationDispatcher

__all__ = [
    # Entities
    "CacheConfig",
    "CacheEntry",
    "InvalidationEvent",
    # Interfaces
    "ITagStore",
    "IKeyBuilder",
    "ISerializer",
    "IInvalidationSink",
    # Services
    "CacheService",
    "InvalidationDispatcher",
]
