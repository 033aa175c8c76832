"""Cache-Control policy entities.

A ``CacheControlPolicy`` is the record the edge layer turns into an HTTP
``Cache-Control`` header. Only directives that are explicitly set appear
in the header, each at most once.

See: https://www.rfc-editor.org/rfc/rfc9111#section-5.2.2
"""

from dataclasses import dataclass
from enum import Enum


class CacheScope(Enum):
    """Cache scope for cache control.

    PUBLIC: Response can be cached globally (CDN, shared cache).
    PRIVATE: Response contains user-specific data, only cache per-user.
    """

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


@dataclass(frozen=True)
class CacheControlPolicy:
    """Directive set for an outbound response.

    Attributes:
        scope: PUBLIC or PRIVATE. None emits neither directive.
        max_age: Browser cache lifetime in seconds.
        s_max_age: Shared (CDN) cache lifetime in seconds.
        stale_while_revalidate: Seconds a stale response may be served
            while the cache revalidates in the background.
        stale_if_error: Seconds a stale response may be served when the
            origin fails.
        must_revalidate: Forbid serving stale without revalidation.
        no_cache: Require revalidation before every reuse.
        no_store: Forbid storing the response at all.
    """

    scope: CacheScope | None = None
    max_age: int | None = None
    s_max_age: int | None = None
    stale_while_revalidate: int | None = None
    stale_if_error: int | None = None
    must_revalidate: bool = False
    no_cache: bool = False
    no_store: bool = False

    def __post_init__(self) -> None:
        for name in ("max_age", "s_max_age", "stale_while_revalidate", "stale_if_error"):
            seconds = getattr(self, name)
            if seconds is not None and seconds < 0:
                raise ValueError(f"{name} must be non-negative, got {seconds}")

    @property
    def is_public(self) -> bool:
        return self.scope == CacheScope.PUBLIC

    @property
    def is_cacheable(self) -> bool:
        """Check whether any cache may store the response."""
        return not self.no_store

    def to_http_header(self) -> str:
        """Generate the HTTP Cache-Control header value."""
        from foliocache.core.services.edge_cache import build_cache_control

        return build_cache_control(self)

    @classmethod
    def public(
        cls,
        max_age: int | None = None,
        s_max_age: int | None = None,
        stale_while_revalidate: int | None = None,
        stale_if_error: int | None = None,
    ) -> "CacheControlPolicy":
        """Create a policy for content any cache may store."""
        return cls(
            scope=CacheScope.PUBLIC,
            max_age=max_age,
            s_max_age=s_max_age,
            stale_while_revalidate=stale_while_revalidate,
            stale_if_error=stale_if_error,
        )

    @classmethod
    def never(cls) -> "CacheControlPolicy":
        """Create a policy that disables caching everywhere."""
        return cls(no_cache=True, no_store=True, must_revalidate=True)
