"""Edge response cache: HTTP caching headers and conditional requests.

Turns a ``CacheControlPolicy`` into a ``Cache-Control`` header, derives
ETags from response content and decides when a conditional request can
be answered with ``304 Not Modified``.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from http import HTTPStatus
from typing import Any

from foliocache.core.entities.cache_control import CacheControlPolicy, CacheScope
from foliocache.core.entities.cache_entry import utcnow
from foliocache.infrastructure.serializers.json import JsonSerializer
from foliocache.utils.hashing import hash_bytes

logger = logging.getLogger(__name__)

DEFAULT_VARY = ("Accept-Encoding", "Accept")

_serializer = JsonSerializer()


def build_cache_control(policy: CacheControlPolicy) -> str:
    """Compose the ``Cache-Control`` header value for a policy.

    Only directives set on the policy appear, each once, comma-joined
    in a fixed order.

    Example:
        >>> build_cache_control(CacheControlPolicy.public(
        ...     s_max_age=60, stale_while_revalidate=300))
        'public, s-maxage=60, stale-while-revalidate=300'
    """
    parts: list[str] = []

    if policy.no_cache:
        parts.append("no-cache")
    if policy.no_store:
        parts.append("no-store")

    if policy.scope == CacheScope.PUBLIC:
        parts.append("public")
    elif policy.scope == CacheScope.PRIVATE:
        parts.append("private")

    if policy.max_age is not None:
        parts.append(f"max-age={policy.max_age}")
    if policy.s_max_age is not None:
        parts.append(f"s-maxage={policy.s_max_age}")
    if policy.stale_while_revalidate is not None:
        parts.append(f"stale-while-revalidate={policy.stale_while_revalidate}")
    if policy.stale_if_error is not None:
        parts.append(f"stale-if-error={policy.stale_if_error}")

    if policy.must_revalidate:
        parts.append("must-revalidate")

    return ", ".join(parts)


def compute_etag(body: Any) -> str:
    """Compute a strong ETag for a response body.

    Bytes and strings are hashed as-is; any other value is hashed through
    its canonical JSON form, so equal payloads give equal tags regardless
    of dict ordering.

    Returns:
        A quoted ETag, e.g. ``"3f2a..."``.
    """
    if isinstance(body, bytes):
        data = body
    elif isinstance(body, str):
        data = body.encode("utf-8")
    else:
        data = _serializer.serialize(body)
    return f'"{hash_bytes(data)}"'


def parse_http_date(value: str | None) -> datetime | None:
    """Parse an HTTP-date header value.

    Malformed values are treated as absent.
    """
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        logger.debug("Ignoring malformed HTTP date: %r", value)
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _opaque(tag: str) -> str:
    """Strip the weak prefix so validators compare weakly."""
    tag = tag.strip()
    if tag.startswith("W/"):
        tag = tag[2:]
    return tag


def etag_matches(if_none_match: str, current_etag: str) -> bool:
    """Weak comparison of an ``If-None-Match`` value with an ETag.

    Supports ``*`` and comma-separated lists.
    """
    if if_none_match.strip() == "*":
        return True
    current = _opaque(current_etag)
    return any(_opaque(candidate) == current for candidate in if_none_match.split(","))


def handle_conditional(
    if_none_match: str | None,
    if_modified_since: str | None,
    current_etag: str | None,
    last_modified: datetime | None,
) -> HTTPStatus | None:
    """Decide whether a conditional request can be answered with 304.

    When both the request and the resource carry an entity tag, the ETag
    comparison decides alone and ``If-Modified-Since`` is not consulted.
    An unparseable ``If-Modified-Since`` counts as absent.

    Returns:
        ``HTTPStatus.NOT_MODIFIED`` if the client copy is current,
        otherwise None (send the full response).
    """
    if if_none_match and current_etag:
        if etag_matches(if_none_match, current_etag):
            return HTTPStatus.NOT_MODIFIED
        return None

    if last_modified is not None:
        since = parse_http_date(if_modified_since)
        if since is not None:
            if last_modified.tzinfo is None:
                last_modified = last_modified.replace(tzinfo=timezone.utc)
            # HTTP dates have one-second resolution
            if last_modified.replace(microsecond=0) <= since:
                return HTTPStatus.NOT_MODIFIED

    return None


def invalidation_headers() -> dict[str, str]:
    """Headers that stop every cache from keeping a response."""
    return {
        "Cache-Control": build_cache_control(CacheControlPolicy.never()),
        "Pragma": "no-cache",
        "Expires": "0",
    }


class EdgeResponseCache:
    """Builds the outbound caching headers for API responses.

    Attributes:
        vary: ``Vary`` header values emitted on public responses.
    """

    def __init__(
        self,
        vary: Iterable[str] = DEFAULT_VARY,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._vary = tuple(vary)
        self._clock = clock

    def headers(
        self,
        body: Any,
        policy: CacheControlPolicy,
        tags: Iterable[str] = (),
        last_modified: datetime | None = None,
    ) -> dict[str, str]:
        """Compute the full caching header set for a response body.

        Args:
            body: The response payload (bytes, str or JSON-able value).
            policy: Directives for the response.
            tags: Content tags, exposed as ``Cache-Tag`` for CDN purges.
            last_modified: Optional modification time of the content.

        Returns:
            Header name to value mapping.
        """
        headers = {
            "Cache-Control": build_cache_control(policy),
            "X-Cache-Timestamp": self._clock().isoformat(),
            "X-Content-Type-Options": "nosniff",
        }

        if policy.is_public:
            if self._vary:
                headers["Vary"] = ", ".join(self._vary)
            headers["ETag"] = compute_etag(body)

        tag_list = list(dict.fromkeys(tags))
        if tag_list:
            headers["Cache-Tag"] = ",".join(tag_list)

        if last_modified is not None:
            if last_modified.tzinfo is None:
                last_modified = last_modified.replace(tzinfo=timezone.utc)
            headers["Last-Modified"] = format_datetime(
                last_modified.astimezone(timezone.utc), usegmt=True
            )

        return headers

    def conditional(
        self,
        request_headers: Any,
        body: Any,
        last_modified: datetime | None = None,
    ) -> HTTPStatus | None:
        """Check a request's validators against the body about to be sent."""
        return handle_conditional(
            request_headers.get("if-none-match"),
            request_headers.get("if-modified-since"),
            compute_etag(body),
            last_modified,
        )
