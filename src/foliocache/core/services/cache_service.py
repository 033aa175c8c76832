"""Cache service - server-side memoization of content fetches."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from cachetools import LRUCache  # type: ignore[import-untyped]

from foliocache.core.entities.cache_config import CacheConfig
from foliocache.core.entities.cache_entry import CacheEntry, utcnow
from foliocache.core.entities.content_policy import ContentClass, ContentPolicy
from foliocache.core.interfaces.tag_store import ITagStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Loader = Callable[[], Awaitable[Any] | Any]


@dataclass(frozen=True)
class _Registration:
    """How to recompute a key: remembered from its last ``cached()`` call."""

    fn: Loader
    tags: tuple[str, ...]
    policy: ContentPolicy


@dataclass(frozen=True)
class _Flight:
    """A shared fetch and the store generation it started from."""

    future: asyncio.Future[Any]
    generation: int


class CacheService:
    """Domain service that memoizes expensive content fetches.

    This is the main entry point for server-side caching. Values live in
    a tag store; freshness, stale serving and fetch coalescing are decided
    here from the content-class policy.

    Concurrent ``cached()`` calls for the same key while a fetch is in
    flight share that fetch: the loader runs once and every caller
    resumes with the same value or the same exception. The shared fetch
    is shielded, so a caller that is cancelled does not cancel it; it
    completes and populates the store for the next caller.

    A fetch that started before an invalidation of its key or tags is not
    joined by later callers, and its result is not written to the store.
    """

    def __init__(
        self,
        store: ITagStore,
        config: CacheConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the cache service.

        Args:
            store: The tag store holding cached entries.
            config: Optional cache configuration. Uses defaults if not provided.
            clock: Source of the current time.
        """
        self._store = store
        self._config = config or CacheConfig()
        self._clock = clock

        self._in_flight: dict[str, _Flight] = {}
        self._registrations: LRUCache[str, _Registration] = LRUCache(
            maxsize=self._config.max_entries
        )
        self._background: set[asyncio.Task[Any]] = set()

        # Statistics
        self._hits = 0
        self._misses = 0
        self._stale_served = 0
        self._errors = 0

    @property
    def config(self) -> CacheConfig:
        """Get the cache configuration."""
        return self._config

    @property
    def store(self) -> ITagStore:
        """Get the backing tag store."""
        return self._store

    @property
    def stats(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with hits, misses, stale values served, loader
            errors and total lookups.
        """
        return {
            "hits": self._hits,
            "misses": self._misses,
            "stale_served": self._stale_served,
            "errors": self._errors,
            "total": self._hits + self._misses,
        }

    def policy_for(
        self,
        content_class: ContentClass | None = None,
        policy: ContentPolicy | None = None,
    ) -> ContentPolicy:
        """Resolve the effective policy for a call."""
        if policy is not None:
            return policy
        return self._config.policy_for(content_class or self._config.default_content_class)

    async def cached(
        self,
        fn: Loader,
        key: str,
        tags: Iterable[str] = (),
        content_class: ContentClass | None = None,
        policy: ContentPolicy | None = None,
    ) -> Any:
        """Return the value for ``key``, computing it with ``fn`` when needed.

        Args:
            fn: Zero-argument loader, sync or async.
            key: Stable key identifying the computation.
            tags: Content tags the value depends on.
            content_class: Policy class; defaults to the configured one.
            policy: Explicit policy, overrides ``content_class``.

        Returns:
            The cached or freshly loaded value.

        Raises:
            Exception: Whatever ``fn`` raised, unless a stale value may be
                served under the policy's stale-if-error window.
        """
        effective = self.policy_for(content_class, policy)
        tag_tuple = tuple(dict.fromkeys(tags))

        if not self._config.enabled:
            return await _call(fn)

        self._registrations[key] = _Registration(fn, tag_tuple, effective)

        entry = await self._store.get(key)
        now = self._clock()

        if entry is not None and entry.is_fresh(now):
            self._hits += 1
            logger.debug("HIT %s", key)
            return entry.value

        self._misses += 1

        if entry is not None and self._within_revalidate_window(entry, effective, now):
            logger.debug("STALE %s, refreshing in background", key)
            self._stale_served += 1
            self._refresh_in_background(key, fn, tag_tuple, effective)
            return entry.value

        logger.debug("MISS %s", key)
        return await self._fetch(key, fn, tag_tuple, effective)

    async def refresh(self, key: str) -> Any:
        """Recompute ``key`` with the loader from its last ``cached()`` call.

        Raises:
            KeyError: If ``key`` was never loaded through this service.
        """
        registration = self._registrations.get(key)
        if registration is None:
            raise KeyError(key)
        return await self._fetch(
            key, registration.fn, registration.tags, registration.policy
        )

    async def warm(self, tags: Iterable[str]) -> list[str]:
        """Refresh every known key that carries any of ``tags``.

        Failures are logged and skipped.

        Returns:
            The keys that were refreshed successfully.
        """
        wanted = set(tags)
        keys = [
            key
            for key, registration in list(self._registrations.items())
            if wanted.intersection(registration.tags)
        ]
        results = await asyncio.gather(
            *(self.refresh(key) for key in keys), return_exceptions=True
        )

        warmed: list[str] = []
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                logger.warning("Failed to warm %s: %s", key, result)
            else:
                warmed.append(key)
        return warmed

    async def invalidate(self, tags: Iterable[str]) -> int:
        """Invalidate cached entries by tags.

        Args:
            tags: Tags to invalidate.

        Returns:
            Number of entries invalidated.
        """
        return await self._store.invalidate_tags(tags)

    async def invalidate_key(self, key: str) -> bool:
        """Drop a single entry so the next call reloads it."""
        return await self._store.invalidate_key(key)

    async def clear(self) -> None:
        """Clear all cached entries."""
        await self._store.clear()
        self._hits = 0
        self._misses = 0
        self._stale_served = 0
        self._errors = 0

    async def _fetch(
        self,
        key: str,
        fn: Loader,
        tags: tuple[str, ...],
        policy: ContentPolicy,
    ) -> Any:
        """Run the loader for ``key`` at most once concurrently."""
        generation = await self._store.generation()
        flight = self._in_flight.get(key)
        if flight is not None and await self._store.invalidated_since(
            key, tags, flight.generation
        ):
            logger.debug("Fetch for %s predates an invalidation, starting anew", key)
            flight = None
        if flight is None:
            future = asyncio.ensure_future(
                self._load(key, fn, tags, policy, generation)
            )
            flight = _Flight(future, generation)
            self._in_flight[key] = flight
            future.add_done_callback(lambda done: self._settle(key, done))
        return await asyncio.shield(flight.future)

    def _settle(self, key: str, future: asyncio.Future[Any]) -> None:
        flight = self._in_flight.get(key)
        if flight is not None and flight.future is future:
            del self._in_flight[key]
        # Mark the exception retrieved when every waiter has gone away
        if not future.cancelled():
            future.exception()

    async def _load(
        self,
        key: str,
        fn: Loader,
        tags: tuple[str, ...],
        policy: ContentPolicy,
        generation: int,
    ) -> Any:
        try:
            value = await _call(fn)
        except Exception as e:
            self._errors += 1
            stale = await self._store.get(key)
            if stale is not None and self._within_error_window(stale, policy):
                self._stale_served += 1
                logger.warning("Serving stale %s after fetch failure: %s", key, e)
                return stale.value
            raise

        await self._store.put(key, value, tags, policy.ttl, since=generation)
        return value

    def _refresh_in_background(
        self,
        key: str,
        fn: Loader,
        tags: tuple[str, ...],
        policy: ContentPolicy,
    ) -> None:
        if key in self._in_flight:
            return
        task = asyncio.ensure_future(self._fetch(key, fn, tags, policy))
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("Background refresh failed: %s", error)

    def _within_revalidate_window(
        self,
        entry: CacheEntry,
        policy: ContentPolicy,
        now: datetime,
    ) -> bool:
        if not policy.background_refresh:
            return False
        return entry.staleness(now) <= policy.stale_while_revalidate

    def _within_error_window(self, entry: CacheEntry, policy: ContentPolicy) -> bool:
        if policy.stale_if_error is None:
            return False
        return entry.staleness(self._clock()) <= policy.stale_if_error


async def _call(fn: Loader) -> Any:
    result = fn()
    if inspect.isawaitable(result):
        return await result
    return result
