"""Infrastructure layer implementations for foliocache."""

from foliocache.infrastructure.backends import InMemoryTagStore
from foliocache.infrastructure.key_builders import DefaultKeyBuilder
from foliocache.infrastructure.serializers import JsonSerializer, SerializationError

__all__ = [
    "InMemoryTagStore",
    "DefaultKeyBuilder",
    "JsonSerializer",
    "SerializationError",
]
