"""Administrative cache endpoints.

Thin glue over the dispatcher and the cache service:

- ``POST /revalidate?secret=...`` with ``{"collection"|"global": ..., "doc": {...}}``
- ``GET /revalidate?secret=...`` revalidates the commonly shared tags
- ``POST /cache?secret=...`` with ``{"action": "warm-cache"}`` or
  ``{"action": "clear-cache", "tags": [...]}``

Every route requires the shared secret. With no secret configured the
routes reject all requests.
"""

import hmac
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from foliocache.core.entities.cache_entry import utcnow
from foliocache.core.entities.invalidation_event import InvalidationEvent
from foliocache.core.services.cache_service import CacheService
from foliocache.core.services.invalidation import InvalidationDispatcher

logger = logging.getLogger(__name__)

COMMON_TAGS = ["global_home", "global_settings", "galleries", "images", "blog-posts"]

CRITICAL_TAGS = [
    "global_home",
    "global_settings",
    "galleries-list-optimized",
    "galleries-paginated",
    "blog-posts-list",
]


def _events_from_payload(payload: dict[str, Any]) -> list[InvalidationEvent]:
    """A body may name both a global and a collection."""
    doc = payload.get("doc")
    events = []
    for scope in ("global", "collection"):
        if payload.get(scope):
            events.append(InvalidationEvent.from_payload({scope: payload[scope], "doc": doc}))
    return events


def create_admin_router(
    dispatcher: InvalidationDispatcher,
    cache_service: CacheService,
    secret: str | None,
) -> APIRouter:
    """Create the administrative router.

    Args:
        dispatcher: Dispatcher receiving revalidation requests.
        cache_service: Service used to warm critical keys.
        secret: Shared secret expected in the ``secret`` query parameter.

    Returns:
        A router to include in the application.
    """
    router = APIRouter()

    def require_secret(provided: str | None = Query(None, alias="secret")) -> None:
        if not secret or provided is None or not hmac.compare_digest(provided, secret):
            raise HTTPException(status_code=401, detail="Invalid token")

    @router.post("/revalidate", dependencies=[Depends(require_secret)])
    async def revalidate(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        events = _events_from_payload(payload)
        if not events:
            raise HTTPException(
                status_code=400, detail="Body must name a collection or a global"
            )

        tags: list[str] = []
        removed = 0
        failures: dict[str, str] = {}
        for event in events:
            result = await dispatcher.dispatch(event)
            tags.extend(tag for tag in result.tags if tag not in tags)
            removed += result.removed
            failures.update(result.failures)

        return {
            "revalidated": True,
            "collection": payload.get("collection"),
            "global": payload.get("global"),
            "tags": tags,
            "removed": removed,
            "failures": failures,
            "timestamp": utcnow().isoformat(),
        }

    @router.get("/revalidate", dependencies=[Depends(require_secret)])
    async def revalidate_common() -> dict[str, Any]:
        result = await dispatcher.invalidate_tags(COMMON_TAGS)
        return {
            "message": "Manual revalidation completed",
            "tags": result.tags,
            "removed": result.removed,
            "timestamp": result.dispatched_at.isoformat(),
        }

    @router.post("/cache", dependencies=[Depends(require_secret)])
    async def cache_action(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
        action = payload.get("action")
        tags = payload.get("tags")

        if action == "warm-cache":
            logger.info("Warming critical cache tags")
            await dispatcher.invalidate_tags(CRITICAL_TAGS)
            warmed = await cache_service.warm(CRITICAL_TAGS)
            return {
                "message": "Cache warmed successfully",
                "tags": CRITICAL_TAGS,
                "warmed": warmed,
                "timestamp": utcnow().isoformat(),
            }

        if action == "clear-cache" and isinstance(tags, list) and tags:
            result = await dispatcher.invalidate_tags(str(tag) for tag in tags)
            logger.info("Cleared %d cache tags on request", len(result.tags))
            return {
                "message": "Cache cleared successfully",
                "tags": result.tags,
                "removed": result.removed,
                "timestamp": result.dispatched_at.isoformat(),
            }

        raise HTTPException(status_code=400, detail="Invalid action")

    @router.get("/cache/stats", dependencies=[Depends(require_secret)])
    async def cache_stats() -> dict[str, Any]:
        return {
            "stats": cache_service.stats,
            "config": {
                "enabled": cache_service.config.enabled,
                "key_prefix": cache_service.config.key_prefix,
                "max_entries": cache_service.config.max_entries,
            },
        }

    return router
