"""Integration tests for edge-cached FastAPI responses."""

from datetime import datetime, timezone

import pytest
from fastapi import Depends, FastAPI, Request, Response
from fastapi.testclient import TestClient

from foliocache import CacheConfig, ContentClass
from foliocache.adapters.fastapi import CacheComponents, create_app, get_cache
from foliocache.adapters.fastapi.responses import edge_cached_response

UPDATED_AT = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def app() -> FastAPI:
    """Create an app with a couple of cached content routes."""
    app = create_app(CacheConfig(revalidate_secret="s3cret"))
    state = {"calls": 0}

    async def fetch_galleries() -> list[dict]:
        state["calls"] += 1
        return [{"slug": "yosemite", "images": 12}]

    @app.get("/api/galleries")
    async def galleries(
        request: Request, cache: CacheComponents = Depends(get_cache)
    ) -> Response:
        data = await cache.service.cached(
            fetch_galleries, key="galleries:list", tags=["galleries"]
        )
        return edge_cached_response(
            request,
            {"docs": data, "calls": state["calls"]},
            tags=["galleries", "global_home"],
            last_modified=UPDATED_AT,
        )

    @app.get("/api/live")
    async def live(request: Request) -> Response:
        return edge_cached_response(request, {"viewers": 3}, ContentClass.DYNAMIC)

    @app.get("/api/preview")
    async def preview(request: Request) -> Response:
        return edge_cached_response(request, {"draft": True}, ContentClass.NO_CACHE)

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create a test client."""
    return TestClient(app)


class TestEdgeHeaders:
    """Tests for outbound caching headers."""

    def test_semi_static_headers(self, client: TestClient) -> None:
        """Test a listing carries the semi-static policy and validators."""
        response = client.get("/api/galleries")

        assert response.status_code == 200
        assert response.headers["cache-control"] == (
            "public, max-age=300, s-maxage=3600, stale-while-revalidate=86400"
        )
        assert response.headers["etag"].startswith('"')
        assert response.headers["cache-tag"] == "galleries,global_home"
        assert response.headers["last-modified"] == "Sat, 01 Jun 2024 12:00:00 GMT"
        assert response.headers["vary"] == "Accept-Encoding, Accept"

    def test_dynamic_headers(self, client: TestClient) -> None:
        """Test dynamic content is kept by shared caches for a minute."""
        response = client.get("/api/live")

        assert response.headers["cache-control"] == (
            "public, max-age=0, s-maxage=60, stale-while-revalidate=300"
        )

    def test_no_cache_headers(self, client: TestClient) -> None:
        """Test previews are never stored."""
        response = client.get("/api/preview")

        assert response.headers["cache-control"] == "no-cache, no-store, must-revalidate"
        assert "etag" not in response.headers

    def test_server_cache_is_used(self, client: TestClient) -> None:
        """Test repeated requests reuse the server-side value."""
        first = client.get("/api/galleries").json()
        second = client.get("/api/galleries").json()

        assert first == second
        assert second["calls"] == 1


class TestConditionalResponses:
    """Tests for 304 handling."""

    def test_matching_etag_returns_304(self, client: TestClient) -> None:
        """Test a current ETag gets an empty 304 with validators."""
        etag = client.get("/api/galleries").headers["etag"]

        response = client.get("/api/galleries", headers={"If-None-Match": etag})

        assert response.status_code == 304
        assert response.content == b""
        assert response.headers["etag"] == etag
        assert "cache-control" in response.headers

    def test_stale_etag_returns_full_body(self, client: TestClient) -> None:
        """Test an outdated ETag gets the full response."""
        response = client.get("/api/galleries", headers={"If-None-Match": '"outdated"'})

        assert response.status_code == 200
        assert response.json()["docs"][0]["slug"] == "yosemite"

    def test_if_modified_since(self, client: TestClient) -> None:
        """Test an up-to-date If-Modified-Since gets 304."""
        response = client.get(
            "/api/galleries",
            headers={"If-Modified-Since": "Sat, 01 Jun 2024 12:00:00 GMT"},
        )

        assert response.status_code == 304

    def test_malformed_if_modified_since(self, client: TestClient) -> None:
        """Test a garbage date is ignored."""
        response = client.get("/api/galleries", headers={"If-Modified-Since": "not a date"})

        assert response.status_code == 200
