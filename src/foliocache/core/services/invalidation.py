"""Invalidation dispatcher - content mutations to tag invalidations.

Each content mutation becomes one ``InvalidationEvent``. The dispatcher
looks the event up in the cascade table, which lists for every known
collection and global the tags whose cached views denormalize that
content, invalidates them in the local tag store and fans the same set
out to downstream sinks.

Delivery is fire-and-forget relative to the CMS write path: failures
are logged and recorded, never raised, and a periodic sweep over the
known tag set backs up lost deliveries.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from foliocache.core.entities.cache_entry import utcnow
from foliocache.core.entities.invalidation_event import (
    InvalidationEvent,
    InvalidationScope,
    collection_tag,
    global_tag,
    record_tag,
)
from foliocache.core.interfaces.invalidation_sink import IInvalidationSink
from foliocache.core.interfaces.tag_store import ITagStore

logger = logging.getLogger(__name__)

# The home page denormalizes recent content from every collection
HOME_TAG = global_tag("home")

GALLERY_LIST_TAGS = ("galleries", "galleries-list-optimized", "galleries-paginated")
GALLERY_BY_SLUG_TAG = "gallery-by-slug"
BLOG_LIST_TAGS = ("blog-posts", "blog-posts-list")

CascadeRule = Callable[[InvalidationEvent], list[str]]


def _gallery_slug(gallery: Any) -> str | None:
    if isinstance(gallery, Mapping) and gallery.get("slug"):
        return str(gallery["slug"])
    return None


def images_rule(event: InvalidationEvent) -> list[str]:
    """Images feed gallery listings (image counts, cover images)."""
    tags = ["images", collection_tag("images")]
    doc = event.affected_doc
    gallery = doc.get("gallery") if doc is not None else None

    # Without a document the referenced gallery is unknown
    if doc is None or gallery:
        tags.extend(GALLERY_LIST_TAGS)
        tags.append(GALLERY_BY_SLUG_TAG)

    slug = _gallery_slug(gallery)
    if slug:
        tags.append(record_tag("gallery", slug))
    return tags


def galleries_rule(event: InvalidationEvent) -> list[str]:
    tags = [*GALLERY_LIST_TAGS, collection_tag("galleries")]
    if event.slug:
        tags.append(record_tag("gallery", event.slug))
        tags.append(GALLERY_BY_SLUG_TAG)
    return tags


def blog_posts_rule(event: InvalidationEvent) -> list[str]:
    tags = [*BLOG_LIST_TAGS, collection_tag("blog-posts")]
    if event.slug:
        tags.append(record_tag("blog-post", event.slug))
    return tags


def generic_collection_rule(event: InvalidationEvent) -> list[str]:
    return [collection_tag(event.identifier)]


def plain_collection_rule(event: InvalidationEvent) -> list[str]:
    """Collections with no known dependent views."""
    return [event.identifier, collection_tag(event.identifier)]


def global_rule(event: InvalidationEvent) -> list[str]:
    return [global_tag(event.identifier)]


def home_rule(event: InvalidationEvent) -> list[str]:
    return [global_tag("home"), global_tag("settings")]


COLLECTION_RULES: dict[str, CascadeRule] = {
    "images": images_rule,
    "galleries": galleries_rule,
    "blog-posts": blog_posts_rule,
    # TODO: confirm whether gear edits should cascade into images that
    # reference the gear in their technical metadata.
    "gear": plain_collection_rule,
    "comments": plain_collection_rule,
}

GLOBAL_RULES: dict[str, CascadeRule] = {
    "home": home_rule,
    "settings": global_rule,
    "about": global_rule,
    "site-metadata": global_rule,
}


@dataclass
class DispatchResult:
    """Outcome of one dispatch.

    Attributes:
        tags: Tags invalidated, in cascade order.
        removed: Entries removed from the local store.
        failures: Sink name to error message for failed deliveries.
    """

    tags: list[str]
    removed: int = 0
    failures: dict[str, str] = field(default_factory=dict)
    event: InvalidationEvent | None = None
    dispatched_at: datetime = field(default_factory=utcnow)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "revalidated": True,
            "tags": self.tags,
            "removed": self.removed,
            "failures": self.failures,
            "timestamp": self.dispatched_at.isoformat(),
        }


class InvalidationDispatcher:
    """Fans content mutations out to tag invalidations.

    The cascade table is total over the known collections and globals.
    Unknown identifiers still invalidate their generic
    ``collection_<name>`` or ``global_<name>`` tag and log a warning.
    """

    def __init__(
        self,
        store: ITagStore,
        sinks: Iterable[IInvalidationSink] = (),
        collection_rules: Mapping[str, CascadeRule] | None = None,
        global_rules: Mapping[str, CascadeRule] | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            store: The local tag store to invalidate.
            sinks: Downstream targets that receive every tag set.
            collection_rules: Cascade rules per collection slug.
            global_rules: Cascade rules per global slug.
        """
        self._store = store
        self._sinks = list(sinks)
        self._collection_rules = dict(
            COLLECTION_RULES if collection_rules is None else collection_rules
        )
        self._global_rules = dict(GLOBAL_RULES if global_rules is None else global_rules)
        self._pending: set[asyncio.Task[DispatchResult]] = set()
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def sinks(self) -> list[IInvalidationSink]:
        return list(self._sinks)

    def add_sink(self, sink: IInvalidationSink) -> None:
        """Register a downstream invalidation target."""
        self._sinks.append(sink)
        logger.info("Registered invalidation sink: %s", getattr(sink, "name", sink))

    def compute_tags(self, event: InvalidationEvent) -> list[str]:
        """Compute the full, ordered, duplicate-free tag set for an event."""
        if event.scope == InvalidationScope.GLOBAL:
            rule = self._global_rules.get(event.identifier)
            fallback: CascadeRule = global_rule
        else:
            rule = self._collection_rules.get(event.identifier)
            fallback = generic_collection_rule

        if rule is None:
            logger.warning(
                "No cascade rule for %s %r, invalidating generic tags only",
                event.scope.value,
                event.identifier,
            )
            rule = fallback

        tags = rule(event)
        tags.append(HOME_TAG)
        return list(dict.fromkeys(tags))

    def known_tags(self) -> set[str]:
        """Every document-independent tag the cascade table can produce."""
        tags = {HOME_TAG}
        for name in self._collection_rules:
            tags.update(self.compute_tags(InvalidationEvent.for_collection(name)))
        for name in self._global_rules:
            tags.update(self.compute_tags(InvalidationEvent.for_global(name)))
        return tags

    async def dispatch(self, event: InvalidationEvent) -> DispatchResult:
        """Invalidate everything a content mutation affects.

        Never raises for delivery problems; see ``DispatchResult.failures``.
        """
        result = await self.invalidate_tags(self.compute_tags(event))
        result.event = event
        logger.info(
            "Dispatched %s %s: %d tags, %d entries",
            event.scope.value,
            event.identifier,
            len(result.tags),
            result.removed,
        )
        return result

    def dispatch_nowait(self, event: InvalidationEvent) -> asyncio.Task[DispatchResult]:
        """Schedule a dispatch without waiting for it.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(self.dispatch(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled dispatch to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def invalidate_tags(self, tags: Iterable[str]) -> DispatchResult:
        """Invalidate explicit tags locally and in every sink."""
        tag_list = list(dict.fromkeys(tags))
        result = DispatchResult(tags=tag_list)
        if not tag_list:
            return result

        try:
            result.removed = await self._store.invalidate_tags(tag_list)
        except Exception as e:
            logger.error("Local tag store invalidation failed: %s", e)
            result.failures["store"] = str(e)

        for sink in self._sinks:
            name = getattr(sink, "name", sink.__class__.__name__)
            try:
                await sink.invalidate_tags(tag_list)
            except Exception as e:
                logger.error("Invalidation delivery to %s failed: %s", name, e)
                result.failures[name] = str(e)

        return result

    async def invalidate_all_known(self) -> DispatchResult:
        """Safety net: invalidate the known tag set and every stored tag."""
        try:
            stored = await self._store.tags()
        except Exception as e:
            logger.error("Could not list stored tags: %s", e)
            stored = set()
        tags = sorted(self.known_tags() | stored)
        logger.info("Sweeping %d tags", len(tags))
        return await self.invalidate_tags(tags)

    def start_sweep(self, interval: timedelta) -> None:
        """Run ``invalidate_all_known`` every ``interval`` in the background."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(interval))
        logger.info("Started invalidation sweep every %s", interval)

    async def stop(self) -> None:
        """Stop the sweep and wait for scheduled dispatches."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
        await self.drain()

    async def _sweep_loop(self, interval: timedelta) -> None:
        seconds = interval.total_seconds()
        while True:
            await asyncio.sleep(seconds)
            await self.invalidate_all_known()
