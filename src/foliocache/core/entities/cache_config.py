"""Cache configuration entity."""

import os
from dataclasses import dataclass, field
from datetime import timedelta

from foliocache.core.entities.content_policy import (
    DEFAULT_POLICIES,
    ContentClass,
    ContentPolicy,
    UnknownContentClassError,
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


@dataclass
class CacheConfig:
    """Cache configuration.

    Provides configuration options for the caching system, including
    the per-content-class policy table, size limits and the shared
    secret that gates administrative invalidation.

    The in-memory tag store is per process. Under a multi-instance
    deployment each instance only sees its own invalidations unless
    ``redis_url`` is set and the Redis fan-out is wired in; otherwise
    cross-instance staleness is bounded by the policy TTLs.
    """

    enabled: bool = True
    key_prefix: str = "foliocache"
    max_entries: int = 1000

    # Content-class policies
    policies: dict[ContentClass, ContentPolicy] = field(
        default_factory=lambda: dict(DEFAULT_POLICIES)
    )
    default_content_class: ContentClass = ContentClass.SEMI_STATIC

    # Invalidation
    revalidate_secret: str | None = None
    sweep_interval: timedelta | None = None
    redis_url: str | None = None
    invalidation_channel: str = "foliocache:invalidation"

    # Client request cache
    client_max_age: timedelta = timedelta(minutes=5)
    client_max_entries: int = 500

    def policy_for(self, content_class: ContentClass) -> ContentPolicy:
        """Look up the policy configured for a content class.

        Raises:
            UnknownContentClassError: If the class has no policy.
        """
        try:
            return self.policies[content_class]
        except KeyError:
            raise UnknownContentClassError(content_class) from None

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Build a configuration from environment variables.

        Reads ``REVALIDATE_SECRET``, ``FOLIOCACHE_ENABLED``,
        ``FOLIOCACHE_KEY_PREFIX``, ``FOLIOCACHE_MAX_ENTRIES``,
        ``FOLIOCACHE_SWEEP_INTERVAL`` (seconds, 0 disables) and
        ``REDIS_URL``.
        """
        sweep_seconds = _env_int("FOLIOCACHE_SWEEP_INTERVAL", 0)
        return cls(
            enabled=os.getenv("FOLIOCACHE_ENABLED", "true").lower() == "true",
            key_prefix=os.getenv("FOLIOCACHE_KEY_PREFIX", "foliocache"),
            max_entries=_env_int("FOLIOCACHE_MAX_ENTRIES", 1000),
            revalidate_secret=os.getenv("REVALIDATE_SECRET") or None,
            sweep_interval=timedelta(seconds=sweep_seconds) if sweep_seconds else None,
            redis_url=os.getenv("REDIS_URL") or None,
        )
