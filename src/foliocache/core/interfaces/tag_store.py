"""Tag store interface."""

from collections.abc import Iterable
from datetime import timedelta
from typing import Any, Protocol

from foliocache.core.entities.cache_entry import CacheEntry


class ITagStore(Protocol):
    """Contract for tag-indexed entry storage.

    A tag store keeps the key -> entry map and the tag -> keys index in
    step. It never decides freshness; callers compare ``expires_at``.
    Absence is a miss, never an error. Methods are async so that a
    shared external store can stand in for the in-memory one.
    """

    async def generation(self) -> int:
        """Return the current invalidation generation.

        The value only grows. Capture it before loading a value and pass
        it to ``put`` as ``since``.
        """
        ...

    async def invalidated_since(
        self, key: str, tags: Iterable[str], since: int
    ) -> bool:
        """Check whether ``key`` or any of ``tags`` was invalidated after ``since``."""
        ...

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve an entry by key, fresh or stale.

        Args:
            key: The cache key to retrieve.

        Returns:
            The entry, or None if absent.
        """
        ...

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
            since: Generation captured before ``value`` was loaded. The
                write is skipped if ``key`` or one of ``tags`` was
                invalidated after it.

        Returns:
            The stored entry, or None if the write was skipped.
        """
        ...

    async def invalidate_tag(self, tag: str) -> int:
        """Remove every entry carrying ``tag``.

        Returns:
            Number of entries removed. Zero when nothing matched.
        """
        ...

    async def invalidate_tags(self, tags: Iterable[str]) -> int:
        """Remove every entry carrying any of ``tags`` in one step.

        Returns:
            Number of entries removed.
        """
        ...

    async def invalidate_key(self, key: str) -> bool:
        """Remove a single entry.

        Returns:
            True if the key existed and was removed, False otherwise.
        """
        ...

    async def tags(self) -> set[str]:
        """Return every tag that currently has at least one entry."""
        ...

    async def clear(self) -> None:
        """Remove all entries."""
        ...
