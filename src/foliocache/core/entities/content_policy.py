"""Per-content-class cache policies.

Every cached fetch and every outbound response is classified into a
``ContentClass``. The class decides the server-side TTL, the edge
``Cache-Control`` directives and the stale-serving windows, so call
sites never carry numeric TTLs of their own.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

from foliocache.core.entities.cache_control import CacheControlPolicy


class UnknownContentClassError(KeyError):
    """Raised when no policy is configured for a content class."""


class ContentClass(Enum):
    """Content classes with distinct freshness requirements."""

    DYNAMIC = "dynamic"
    SEMI_STATIC = "semi-static"
    STATIC_PAGES = "static-pages"
    DYNAMIC_PAGES = "dynamic-pages"
    STATIC_ASSETS = "static-assets"
    NO_CACHE = "no-cache"


@dataclass(frozen=True)
class ContentPolicy:
    """Server and edge caching rules for one content class.

    Attributes:
        ttl: How long a server-side entry is served as fresh.
        edge: Directives for responses leaving the server.
        stale_if_error: If set, a stale entry no older than this past its
            expiry may be returned when the refresh fails.
        background_refresh: Serve stale entries inside the
            ``stale_while_revalidate`` window and refresh asynchronously.
        stale_while_revalidate: Server-side window for background refresh.
    """

    ttl: timedelta
    edge: CacheControlPolicy = field(default_factory=CacheControlPolicy)
    stale_if_error: timedelta | None = None
    background_refresh: bool = False
    stale_while_revalidate: timedelta = timedelta(0)

    @property
    def allows_stale_if_error(self) -> bool:
        return self.stale_if_error is not None

    @classmethod
    def from_seconds(
        cls,
        ttl: int,
        max_age: int,
        s_max_age: int,
        stale_while_revalidate: int,
        stale_if_error: int | None = None,
        background_refresh: bool = False,
    ) -> "ContentPolicy":
        """Build a public policy from the usual second-based numbers."""
        return cls(
            ttl=timedelta(seconds=ttl),
            edge=CacheControlPolicy.public(
                max_age=max_age,
                s_max_age=s_max_age,
                stale_while_revalidate=stale_while_revalidate,
            ),
            stale_if_error=(
                timedelta(seconds=stale_if_error) if stale_if_error is not None else None
            ),
            background_refresh=background_refresh,
            stale_while_revalidate=timedelta(seconds=stale_while_revalidate),
        )


DEFAULT_POLICIES: dict[ContentClass, ContentPolicy] = {
    # Live counters and the like: CDN keeps them for a minute
    ContentClass.DYNAMIC: ContentPolicy.from_seconds(
        ttl=0, max_age=0, s_max_age=60, stale_while_revalidate=300,
        stale_if_error=300,
    ),
    # Galleries, blog posts
    ContentClass.SEMI_STATIC: ContentPolicy.from_seconds(
        ttl=300, max_age=300, s_max_age=3600, stale_while_revalidate=86400,
        stale_if_error=86400,
    ),
    ContentClass.STATIC_PAGES: ContentPolicy.from_seconds(
        ttl=3600, max_age=3600, s_max_age=86400, stale_while_revalidate=604800,
        stale_if_error=604800,
    ),
    ContentClass.DYNAMIC_PAGES: ContentPolicy.from_seconds(
        ttl=0, max_age=0, s_max_age=300, stale_while_revalidate=1800,
    ),
    ContentClass.STATIC_ASSETS: ContentPolicy.from_seconds(
        ttl=31536000, max_age=31536000, s_max_age=31536000,
        stale_while_revalidate=86400,
    ),
    ContentClass.NO_CACHE: ContentPolicy(
        ttl=timedelta(0),
        edge=CacheControlPolicy.never(),
    ),
}
