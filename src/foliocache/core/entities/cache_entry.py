"""Cache entry entity."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    """Immutable cache entry value object.

    Represents a cached value with associated metadata including
    creation time, TTL, tags for invalidation and an optional ETag.
    Freshness is always decided against an explicit ``now`` so the
    same entry can be judged by the tag store, the server cache
    layer and the client cache with their own clocks.
    """

    key: str
    value: Any
    created_at: datetime
    ttl: timedelta | None = None
    tags: tuple[str, ...] = ()
    etag: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def expires_at(self) -> datetime | None:
        """Calculate expiration time.

        Returns:
            The datetime when this entry expires, or None if no TTL.
        """
        if self.ttl is None:
            return None
        return self.created_at + self.ttl

    def is_fresh(self, now: datetime | None = None) -> bool:
        """Check whether the entry may be served as fresh at ``now``."""
        if self.expires_at is None:
            return True
        return (now or utcnow()) < self.expires_at

    def staleness(self, now: datetime | None = None) -> timedelta:
        """How long the entry has been stale; zero while fresh."""
        if self.expires_at is None:
            return timedelta(0)
        overdue = (now or utcnow()) - self.expires_at
        return max(overdue, timedelta(0))

    def refreshed(self, now: datetime | None = None) -> "CacheEntry":
        """Return a copy whose freshness window restarts at ``now``."""
        return replace(self, created_at=now or utcnow())

    @classmethod
    def create(
        cls,
        key: str,
        value: Any,
        ttl: timedelta | None = None,
        tags: list[str] | tuple[str, ...] | None = None,
        etag: str | None = None,
        metadata: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> "CacheEntry":
        """Factory method to create a new cache entry.

        Args:
            key: The cache key.
            value: The value to cache.
            ttl: Optional time-to-live.
            tags: Optional tags for invalidation. Duplicates are dropped.
            etag: Optional validator for conditional requests.
            metadata: Optional custom metadata.
            now: Creation time, defaults to the current UTC time.

        Returns:
            A new CacheEntry instance.
        """
        return cls(
            key=key,
            value=value,
            created_at=now or utcnow(),
            ttl=ttl,
            tags=tuple(dict.fromkeys(tags)) if tags else (),
            etag=etag,
            metadata=metadata or {},
        )
