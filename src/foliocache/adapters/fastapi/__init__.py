"""FastAPI integration for foliocache.

Example:
    from fastapi import Depends, FastAPI, Request
    from foliocache.adapters.fastapi import (
        CacheComponents,
        create_app,
        edge_cached_response,
        get_cache,
    )

    app = create_app()

    @app.get("/api/galleries")
    async def galleries(request: Request, cache: CacheComponents = Depends(get_cache)):
        data = await cache.service.cached(
            fetch_galleries, key="galleries:list", tags=["galleries"]
        )
        return edge_cached_response(request, data, tags=["galleries"])
"""

from foliocache.adapters.fastapi.app import (
    CacheComponents,
    build_components,
    create_app,
    get_cache,
)
from foliocache.adapters.fastapi.responses import edge_cached_response
from foliocache.adapters.fastapi.routes import create_admin_router

__all__ = [
    "CacheComponents",
    "build_components",
    "create_app",
    "create_admin_router",
    "edge_cached_response",
    "get_cache",
]
