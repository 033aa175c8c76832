"""In-memory tag store implementation."""

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any

from cachetools import LRUCache  # type: ignore[import-untyped]

from foliocache.core.entities.cache_entry import CacheEntry, utcnow

logger = logging.getLogger(__name__)


class _EvictingLRUCache(LRUCache):  # type: ignore[misc]
    """LRUCache that reports capacity evictions."""

    def __init__(self, maxsize: int, on_evict: Callable[[str, CacheEntry], None]) -> None:
        super().__init__(maxsize=maxsize)
        self._on_evict = on_evict

    def popitem(self) -> tuple[str, CacheEntry]:
        key, entry = super().popitem()
        self._on_evict(key, entry)
        return key, entry


class _MarkCache(LRUCache):  # type: ignore[misc]
    """Generation at which each tag or key was last invalidated.

    Bounded like the entry map. A mark pushed out by capacity raises
    ``floor``, so anything captured before it still reads as invalidated.
    """

    def __init__(self, maxsize: int) -> None:
        super().__init__(maxsize=maxsize)
        self.floor = 0

    def popitem(self) -> tuple[tuple[str, str], int]:
        name, generation = super().popitem()
        self.floor = max(self.floor, generation)
        return name, generation


class InMemoryTagStore:
    """In-memory tag store using LRU with a tag index.

    Suitable for single-process deployments. Expired entries are kept
    (the server cache layer may still serve them under a stale policy)
    and are only dropped by invalidation or LRU capacity eviction.

    Every operation that touches the key map or the tag index runs under
    one lock, so a reader never observes a tag index that has lost an
    entry which is still present in the key map, or the reverse.

    Each invalidation advances a generation counter and marks the tags
    and keys it touched. A writer that captured ``generation()`` before
    loading passes it back as ``put(..., since=...)``; the write is
    dropped if the entry's key or any of its tags was invalidated in
    between, so a value read before a mutation never lands after it.
    """

    def __init__(
        self,
        maxsize: int = 1000,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the in-memory tag store.

        Args:
            maxsize: Maximum number of entries before LRU eviction.
            clock: Source of the current time for new entries.
        """
        self._maxsize = maxsize
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: LRUCache[str, CacheEntry] = _EvictingLRUCache(
            maxsize=maxsize,
            on_evict=self._unindex,
        )
        self._tags: dict[str, set[str]] = {}
        self._generation = 0
        self._marks = _MarkCache(maxsize=maxsize)

    async def generation(self) -> int:
        """Return the current invalidation generation."""
        with self._lock:
            return self._generation

    async def invalidated_since(
        self, key: str, tags: Iterable[str], since: int
    ) -> bool:
        """Check whether ``key`` or any of ``tags`` was invalidated after ``since``.

        Args:
            key: The cache key.
            tags: Tags the entry depends on.
            since: A value previously returned by ``generation()``.
        """
        with self._lock:
            return self._stale_since(key, tags, since)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve an entry by key, fresh or stale.

        Args:
            key: The cache key to retrieve.

        Returns:
            The entry, or None if absent.
        """
        with self._lock:
            return self._entries.get(key)

    async def put(
        self,
        key: str,
        value: Any,
        tags: Iterable[str] = (),
        ttl: timedelta | None = None,
        etag: str | None = None,
        metadata: dict[str, Any] | None = None,
        since: int | None = None,
    ) -> CacheEntry | None:
        """Store an entry, replacing any previous entry and its tags.

        Args:
            key: The cache key.
            value: The value to store.
            tags: Tags the entry depends on.
            ttl: Freshness window; None never expires.
            etag: Optional validator.
            metadata: Optional custom metadata.
            since: Generation captured before ``value`` was loaded. When
                given, the write is skipped if ``key`` or one of ``tags``
                was invalidated after it.

        Returns:
            The stored entry, or None if the write was skipped.
        """
        entry = CacheEntry.create(
            key=key,
            value=value,
            ttl=ttl,
            tags=list(tags),
            etag=etag,
            metadata=metadata,
            now=self._clock(),
        )
        with self._lock:
            if since is not None and self._stale_since(key, entry.tags, since):
                logger.debug("Skipped write for %s invalidated during load", key)
                return None
            self._remove(key)
            self._entries[key] = entry
            for tag in entry.tags:
                self._tags.setdefault(tag, set()).add(key)
        return entry

    async def invalidate_tag(self, tag: str) -> int:
        """Remove every entry carrying ``tag``.

        Returns:
            Number of entries removed. Zero when nothing matched.
        """
        return await self.invalidate_tags([tag])

    async def invalidate_tags(self, tags: Iterable[str]) -> int:
        """Remove every entry carrying any of ``tags`` in one step.

        Returns:
            Number of entries removed.
        """
        tags = list(tags)
        with self._lock:
            keys: set[str] = set()
            for tag in tags:
                keys |= self._tags.get(tag, set())
            count = 0
            for key in keys:
                if self._remove(key):
                    count += 1
            self._mark(tags, keys)
        if count:
            logger.debug("Invalidated %d entries", count)
        return count

    async def invalidate_key(self, key: str) -> bool:
        """Remove a single entry.

        Returns:
            True if the key existed and was removed, False otherwise.
        """
        with self._lock:
            self._mark((), (key,))
            return self._remove(key)

    async def tags(self) -> set[str]:
        """Return every tag that currently has at least one entry."""
        with self._lock:
            return set(self._tags)

    async def keys_for_tag(self, tag: str) -> set[str]:
        """Return the keys currently registered under ``tag``."""
        with self._lock:
            return set(self._tags.get(tag, set()))

    async def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()
            self._tags.clear()
            self._generation += 1
            self._marks.clear()
            self._marks.floor = self._generation

    def _mark(self, tags: Iterable[str], keys: Iterable[str]) -> None:
        """Advance the generation and stamp it on ``tags`` and ``keys``."""
        self._generation += 1
        for tag in tags:
            self._marks[("tag", tag)] = self._generation
        for key in keys:
            self._marks[("key", key)] = self._generation

    def _stale_since(self, key: str, tags: Iterable[str], since: int) -> bool:
        if since < self._marks.floor:
            return True
        names = [("key", key)] + [("tag", tag) for tag in tags]
        return any(self._marks.get(name, 0) > since for name in names)

    def _remove(self, key: str) -> bool:
        """Drop ``key`` from the map and the index. Caller holds the lock."""
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        self._unindex(key, entry)
        return True

    def _unindex(self, key: str, entry: CacheEntry) -> None:
        for tag in entry.tags:
            keys = self._tags.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._tags[tag]

    def __len__(self) -> int:
        """Return the number of entries in the store."""
        return len(self._entries)

    @property
    def maxsize(self) -> int:
        """Return the maximum size of the store."""
        return self._maxsize
