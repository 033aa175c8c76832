"""Core interfaces (Protocol classes) for foliocache."""

from foliocache.core.interfaces.invalidation_sink import IInvalidationSink
from foliocache.core.interfaces.key_builder import IKeyBuilder
from foliocache.core.interfaces.serializer import ISerializer
from foliocache.core.interfaces.tag_store import ITagStore

__all__ = [
    "ITagStore",
    "IKeyBuilder",
    "ISerializer",
    "IInvalidationSink",
]
