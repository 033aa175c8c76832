"""Tests for edge response headers and conditional requests."""

from datetime import datetime, timedelta, timezone
from http import HTTPStatus

import pytest

from foliocache.core.entities import CacheControlPolicy, CacheScope
from foliocache.core.services.edge_cache import (
    EdgeResponseCache,
    build_cache_control,
    compute_etag,
    etag_matches,
    handle_conditional,
    invalidation_headers,
    parse_http_date,
)

MODIFIED = datetime(2024, 6, 1, 12, 0, 30, tzinfo=timezone.utc)


class TestBuildCacheControl:
    """Tests for Cache-Control composition."""

    def test_only_set_directives_appear(self) -> None:
        """Test no max-age token is emitted when none was set."""
        policy = CacheControlPolicy.public(s_max_age=60, stale_while_revalidate=300)

        assert build_cache_control(policy) == "public, s-maxage=60, stale-while-revalidate=300"

    def test_full_public_policy(self) -> None:
        """Test directive order for a fully specified policy."""
        policy = CacheControlPolicy(
            scope=CacheScope.PUBLIC,
            max_age=300,
            s_max_age=3600,
            stale_while_revalidate=86400,
            stale_if_error=86400,
        )

        assert build_cache_control(policy) == (
            "public, max-age=300, s-maxage=3600, "
            "stale-while-revalidate=86400, stale-if-error=86400"
        )

    def test_zero_max_age_is_emitted(self) -> None:
        """Test an explicit zero is a set value."""
        policy = CacheControlPolicy.public(max_age=0, s_max_age=60)

        assert build_cache_control(policy) == "public, max-age=0, s-maxage=60"

    def test_private(self) -> None:
        """Test private responses."""
        policy = CacheControlPolicy(scope=CacheScope.PRIVATE, max_age=60)

        assert build_cache_control(policy) == "private, max-age=60"

    def test_never(self) -> None:
        """Test the no-cache policy."""
        assert build_cache_control(CacheControlPolicy.never()) == (
            "no-cache, no-store, must-revalidate"
        )

    def test_empty_policy(self) -> None:
        """Test a policy with nothing set renders an empty header."""
        assert build_cache_control(CacheControlPolicy()) == ""

    def test_invalidation_headers(self) -> None:
        """Test the headers used on invalidation responses."""
        headers = invalidation_headers()

        assert headers["Cache-Control"] == "no-cache, no-store, must-revalidate"
        assert headers["Pragma"] == "no-cache"
        assert headers["Expires"] == "0"


class TestComputeEtag:
    """Tests for ETag computation."""

    def test_deterministic(self) -> None:
        """Test identical bodies give identical tags."""
        assert compute_etag(b'{"a":1}') == compute_etag(b'{"a":1}')

    def test_different_bodies_differ(self) -> None:
        """Test different bodies give different tags."""
        assert compute_etag(b'{"a":1}') != compute_etag(b'{"a":2}')

    def test_quoted(self) -> None:
        """Test the tag is a quoted opaque string."""
        etag = compute_etag("hello")

        assert etag.startswith('"') and etag.endswith('"')
        assert len(etag) == 34

    def test_str_and_bytes_agree(self) -> None:
        """Test text is hashed as its UTF-8 bytes."""
        assert compute_etag("café") == compute_etag("café".encode())

    def test_structured_body_ignores_key_order(self) -> None:
        """Test JSON-able values hash through their canonical form."""
        assert compute_etag({"a": 1, "b": 2}) == compute_etag({"b": 2, "a": 1})


class TestConditionalRequests:
    """Tests for 304 decisions."""

    def test_matching_etag(self) -> None:
        """Test a matching If-None-Match yields 304."""
        assert handle_conditional('"abc"', None, '"abc"', None) == HTTPStatus.NOT_MODIFIED

    def test_mismatched_etag(self) -> None:
        """Test a stale client ETag gets the full response."""
        assert handle_conditional('"old"', None, '"abc"', None) is None

    def test_etag_wins_over_modified_since(self) -> None:
        """Test If-Modified-Since is ignored when ETags are compared."""
        later = "Sat, 01 Jun 2024 13:00:00 GMT"

        assert handle_conditional('"old"', later, '"abc"', MODIFIED) is None

    def test_not_modified_since(self) -> None:
        """Test an If-Modified-Since at or after Last-Modified yields 304."""
        since = "Sat, 01 Jun 2024 12:00:30 GMT"

        assert handle_conditional(None, since, None, MODIFIED) == HTTPStatus.NOT_MODIFIED

    def test_sub_second_modification_is_not_newer(self) -> None:
        """Test HTTP date resolution is one second."""
        since = "Sat, 01 Jun 2024 12:00:30 GMT"
        modified = MODIFIED + timedelta(milliseconds=400)

        assert handle_conditional(None, since, None, modified) == HTTPStatus.NOT_MODIFIED

    def test_modified_after_since(self) -> None:
        """Test newer content gets the full response."""
        since = "Sat, 01 Jun 2024 12:00:00 GMT"

        assert handle_conditional(None, since, None, MODIFIED) is None

    def test_malformed_modified_since_fails_open(self) -> None:
        """Test an unparseable date counts as no conditional."""
        assert handle_conditional(None, "yesterday-ish", None, MODIFIED) is None

    def test_no_validators(self) -> None:
        """Test plain requests get the full response."""
        assert handle_conditional(None, None, '"abc"', MODIFIED) is None

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("*", True),
            ('"x", "abc"', True),
            ('W/"abc"', True),
            ('"x", "y"', False),
        ],
    )
    def test_etag_matches(self, header: str, expected: bool) -> None:
        """Test If-None-Match list and weak forms."""
        assert etag_matches(header, '"abc"') is expected

    def test_parse_http_date(self) -> None:
        """Test HTTP dates parse to aware datetimes."""
        parsed = parse_http_date("Sat, 01 Jun 2024 12:00:30 GMT")

        assert parsed == MODIFIED
        assert parse_http_date("") is None
        assert parse_http_date("garbage") is None


class TestEdgeResponseCache:
    """Tests for outbound header sets."""

    @pytest.fixture
    def edge(self, clock) -> EdgeResponseCache:
        """Create an edge cache on the fake clock."""
        return EdgeResponseCache(clock=clock)

    def test_public_headers(self, edge: EdgeResponseCache, clock) -> None:
        """Test a public response carries validators and Vary."""
        body = b'{"galleries":[]}'
        policy = CacheControlPolicy.public(max_age=300, s_max_age=3600)

        headers = edge.headers(body, policy, tags=["galleries", "global_home"])

        assert headers["Cache-Control"] == "public, max-age=300, s-maxage=3600"
        assert headers["ETag"] == compute_etag(body)
        assert headers["Vary"] == "Accept-Encoding, Accept"
        assert headers["Cache-Tag"] == "galleries,global_home"
        assert headers["X-Cache-Timestamp"] == clock().isoformat()
        assert headers["X-Content-Type-Options"] == "nosniff"

    def test_no_cache_headers(self, edge: EdgeResponseCache) -> None:
        """Test non-public responses get no ETag or Vary."""
        headers = edge.headers(b"{}", CacheControlPolicy.never())

        assert "ETag" not in headers
        assert "Vary" not in headers
        assert "Cache-Tag" not in headers

    def test_last_modified(self, edge: EdgeResponseCache) -> None:
        """Test Last-Modified is rendered as an HTTP date."""
        headers = edge.headers(
            b"{}", CacheControlPolicy.public(max_age=60), last_modified=MODIFIED
        )

        assert headers["Last-Modified"] == "Sat, 01 Jun 2024 12:00:30 GMT"

    def test_conditional(self, edge: EdgeResponseCache) -> None:
        """Test request validators are checked against the body."""
        body = b'{"a":1}'

        assert edge.conditional(
            {"if-none-match": compute_etag(body)}, body
        ) == HTTPStatus.NOT_MODIFIED
        assert edge.conditional({}, body) is None
