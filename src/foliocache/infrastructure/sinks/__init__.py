"""Downstream invalidation sinks."""

from foliocache.infrastructure.sinks.redis import (
    INVALIDATION_CHANNEL,
    RedisInvalidationSink,
    RedisInvalidationSubscriber,
)

__all__ = [
    "INVALIDATION_CHANNEL",
    "RedisInvalidationSink",
    "RedisInvalidationSubscriber",
]
