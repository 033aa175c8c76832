"""Edge-cached JSON responses for FastAPI/Starlette routes."""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from foliocache.core.entities.cache_config import CacheConfig
from foliocache.core.entities.cache_control import CacheControlPolicy
from foliocache.core.entities.content_policy import ContentClass
from foliocache.core.services.edge_cache import EdgeResponseCache, handle_conditional

_default_config = CacheConfig()
_default_edge = EdgeResponseCache()

# Headers a 304 must repeat from the full response
_NOT_MODIFIED_HEADERS = (
    "Cache-Control",
    "ETag",
    "Vary",
    "Last-Modified",
    "X-Cache-Timestamp",
)


def edge_cached_response(
    request: Request,
    data: Any,
    content_class: ContentClass = ContentClass.SEMI_STATIC,
    policy: CacheControlPolicy | None = None,
    tags: Iterable[str] = (),
    last_modified: datetime | None = None,
    config: CacheConfig | None = None,
    edge: EdgeResponseCache | None = None,
) -> Response:
    """Render ``data`` as JSON with edge caching headers.

    Answers with an empty ``304 Not Modified`` when the request's
    validators match the rendered body.

    Args:
        request: The incoming request (validators are read from it).
        data: JSON-serializable payload.
        content_class: Policy class for the ``Cache-Control`` header.
        policy: Explicit directives, overrides ``content_class``.
        tags: Content tags exposed as ``Cache-Tag``.
        last_modified: Modification time of the content, if known.
        config: Configuration holding the policy table.
        edge: Header builder.

    Returns:
        The full JSON response or a 304.
    """
    edge = edge or _default_edge
    directives = policy or (config or _default_config).policy_for(content_class).edge

    response = JSONResponse(content=data)
    headers = edge.headers(response.body, directives, tags, last_modified)

    if request.method in ("GET", "HEAD"):
        status = handle_conditional(
            request.headers.get("if-none-match"),
            request.headers.get("if-modified-since"),
            headers.get("ETag"),
            last_modified,
        )
        if status is not None:
            return Response(
                status_code=status,
                headers={k: v for k, v in headers.items() if k in _NOT_MODIFIED_HEADERS},
            )

    response.headers.update(headers)
    return response
