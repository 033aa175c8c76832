"""Tag store backends."""

from foliocache.infrastructure.backends.memory import InMemoryTagStore

__all__ = ["InMemoryTagStore"]
