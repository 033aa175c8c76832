"""Client-side request cache for API consumers.

Wraps an ``httpx.AsyncClient`` with an in-memory cache that skips the
network for recently fetched responses, revalidates with
``If-None-Match`` once they go stale and falls back to the last good
response when the network or the server fails.

Example:
    async with CachingHttpClient(base_url="https://example.com") as client:
        galleries = await client.fetch("/api/galleries", max_age=60)
        client.invalidate("/api/galleries")
"""

import asyncio
import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import httpx
from cachetools import LRUCache  # type: ignore[import-untyped]

from foliocache.core.entities.cache_config import CacheConfig
from foliocache.core.entities.cache_entry import CacheEntry, utcnow
from foliocache.infrastructure.key_builders.default import DefaultKeyBuilder
from foliocache.utils.hashing import canonical_json

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(minutes=5)


def _as_timedelta(max_age: timedelta | float | None, default: timedelta) -> timedelta:
    if max_age is None:
        return default
    if isinstance(max_age, timedelta):
        return max_age
    return timedelta(seconds=max_age)


@dataclass
class _Pending:
    """An in-flight request shared by overlapping fetches."""

    url: str
    future: asyncio.Future[Any] = field(init=False)
    invalidated: bool = False


class CachingHttpClient:
    """Deduplicating, stale-tolerant HTTP client cache.

    Entries are never evicted in the background: a stale entry stays in
    place until the next fetch for its key replaces or refreshes it, and
    the LRU bound only applies once ``maxsize`` distinct requests have
    been made.

    Overlapping fetches for the same key share one in-flight request.
    Invalidating a URL while its request is in flight detaches that
    request: later fetches start a new one and the detached response is
    not stored.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str = "",
        default_max_age: timedelta = DEFAULT_MAX_AGE,
        maxsize: int = 500,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the client cache.

        Args:
            client: Optional pre-built ``httpx.AsyncClient``. Owned by the
                caller when given.
            base_url: Base URL for a client created here.
            default_max_age: Freshness window when ``fetch`` gets none.
            maxsize: Maximum number of cached responses.
            clock: Source of the current time.
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url)
        self._default_max_age = default_max_age
        self._clock = clock
        self._key_builder = DefaultKeyBuilder()
        self._entries: LRUCache[str, CacheEntry] = LRUCache(maxsize=maxsize)
        self._in_flight: dict[str, _Pending] = {}

        self._hits = 0
        self._misses = 0
        self._stale_served = 0

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        json: Any = None,
        headers: Mapping[str, str] | None = None,
        max_age: timedelta | float | None = None,
    ) -> Any:
        """Fetch a JSON response, using the cache when possible.

        Args:
            url: Request URL, absolute or relative to the base URL.
            method: HTTP method.
            json: Optional JSON request body. Part of the cache key.
            headers: Extra request headers.
            max_age: Freshness window (timedelta or seconds).

        Returns:
            The decoded JSON body, possibly from cache.

        Raises:
            httpx.HTTPError: Network or HTTP failure with nothing cached.
            ValueError: Undecodable body with nothing cached.
        """
        body = canonical_json(json) if json is not None else ""
        key = self._key_builder.build_request_key(method, url, body)
        ttl = _as_timedelta(max_age, self._default_max_age)

        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(self._clock()):
            self._hits += 1
            return entry.value

        self._misses += 1

        pending = self._in_flight.get(key)
        if pending is None:
            pending = _Pending(url)
            pending.future = asyncio.ensure_future(
                self._request(key, pending, method, json, headers, ttl, entry)
            )
            self._in_flight[key] = pending
            pending.future.add_done_callback(lambda done: self._settle(key, done))
        return await asyncio.shield(pending.future)

    @classmethod
    def from_config(
        cls,
        config: CacheConfig,
        client: httpx.AsyncClient | None = None,
        base_url: str = "",
        clock: Callable[[], datetime] = utcnow,
    ) -> "CachingHttpClient":
        """Create a client cache sized and aged from ``config``.

        Uses ``client_max_age`` as the default freshness window and
        ``client_max_entries`` as the LRU bound.
        """
        return cls(
            client=client,
            base_url=base_url,
            default_max_age=config.client_max_age,
            maxsize=config.client_max_entries,
            clock=clock,
        )

    async def _request(
        self,
        key: str,
        pending: _Pending,
        method: str,
        json: Any,
        headers: Mapping[str, str] | None,
        ttl: timedelta,
        entry: CacheEntry | None,
    ) -> Any:
        url = pending.url
        request_headers = dict(headers or {})
        if entry is not None and entry.etag:
            request_headers["If-None-Match"] = entry.etag

        try:
            response = await self._client.request(
                method, url, json=json, headers=request_headers
            )

            if response.status_code == 304 and entry is not None:
                if not pending.invalidated:
                    self._entries[key] = entry.refreshed(self._clock())
                return entry.value

            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            if entry is not None:
                self._stale_served += 1
                logger.warning("Request failed, returning stale cache for %s: %s", url, e)
                return entry.value
            raise

        if pending.invalidated:
            logger.debug("Not caching %s, invalidated while in flight", url)
            return data

        self._entries[key] = CacheEntry.create(
            key=key,
            value=data,
            ttl=ttl,
            etag=response.headers.get("etag"),
            metadata={"url": url, "method": method.upper()},
            now=self._clock(),
        )
        return data

    def _settle(self, key: str, future: asyncio.Future[Any]) -> None:
        pending = self._in_flight.get(key)
        if pending is not None and pending.future is future:
            del self._in_flight[key]
        if not future.cancelled():
            future.exception()

    def invalidate(self, pattern: str | re.Pattern[str]) -> int:
        """Drop cached responses whose URL matches ``pattern``.

        Matching requests still in flight are detached as well.

        Args:
            pattern: A literal substring or a compiled regular expression.

        Returns:
            Number of entries removed.
        """
        regex = re.compile(re.escape(pattern)) if isinstance(pattern, str) else pattern
        keys = [
            key
            for key, entry in list(self._entries.items())
            if regex.search(entry.metadata.get("url", key))
        ]
        for key in keys:
            self._entries.pop(key, None)
        for key, pending in list(self._in_flight.items()):
            if regex.search(pending.url):
                self._detach(key)
        return len(keys)

    def clear_all(self) -> None:
        """Drop every cached response and detach requests in flight."""
        self._entries.clear()
        for key in list(self._in_flight):
            self._detach(key)

    def _detach(self, key: str) -> None:
        pending = self._in_flight.pop(key)
        pending.invalidated = True

    def stats(self) -> dict[str, float]:
        """Get cache statistics.

        Returns:
            Entry counts (total, valid, stale), hit/miss counters and the
            hit rate.
        """
        now = self._clock()
        entries = list(self._entries.values())
        valid = sum(1 for entry in entries if entry.is_fresh(now))
        lookups = self._hits + self._misses
        return {
            "total": len(entries),
            "valid": valid,
            "stale": len(entries) - valid,
            "hits": self._hits,
            "misses": self._misses,
            "stale_served": self._stale_served,
            "hit_rate": self._hits / lookups if lookups else 0.0,
        }

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "CachingHttpClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Async context manager exit."""
        await self.aclose()
