"""Application wiring for the cache subsystem.

Builds one tag store, cache service and dispatcher per process and hangs
them on ``app.state`` so request handlers receive them explicitly.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, Request

from foliocache.adapters.fastapi.routes import create_admin_router
from foliocache.core.entities.cache_config import CacheConfig
from foliocache.core.services.cache_service import CacheService
from foliocache.core.services.invalidation import InvalidationDispatcher
from foliocache.infrastructure.backends.memory import InMemoryTagStore
from foliocache.infrastructure.sinks.redis import (
    RedisInvalidationSink,
    RedisInvalidationSubscriber,
)

logger = logging.getLogger(__name__)


@dataclass
class CacheComponents:
    """The per-process cache objects."""

    config: CacheConfig
    store: InMemoryTagStore
    service: CacheService
    dispatcher: InvalidationDispatcher
    sink: RedisInvalidationSink | None = None
    subscriber: RedisInvalidationSubscriber | None = None


def build_components(config: CacheConfig) -> CacheComponents:
    """Construct the store, service and dispatcher for one process."""
    store = InMemoryTagStore(maxsize=config.max_entries)
    service = CacheService(store, config=config)
    dispatcher = InvalidationDispatcher(store)
    components = CacheComponents(config, store, service, dispatcher)

    if config.redis_url:
        components.sink = RedisInvalidationSink(
            redis_url=config.redis_url, channel=config.invalidation_channel
        )
        components.subscriber = RedisInvalidationSubscriber(
            store, redis_url=config.redis_url, channel=config.invalidation_channel
        )
        dispatcher.add_sink(components.sink)

    return components


def create_app(config: CacheConfig | None = None) -> FastAPI:
    """Create a FastAPI app exposing the administrative cache routes."""
    config = config or CacheConfig.from_env()
    components = build_components(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if components.subscriber is not None:
            await components.subscriber.start()
        if config.sweep_interval is not None:
            components.dispatcher.start_sweep(config.sweep_interval)
        if not config.revalidate_secret:
            logger.warning("REVALIDATE_SECRET not set, admin cache routes are disabled")
        yield
        await components.dispatcher.stop()
        if components.subscriber is not None:
            await components.subscriber.stop()
        if components.sink is not None:
            await components.sink.close()

    app = FastAPI(title="foliocache", lifespan=lifespan)
    app.state.cache = components
    app.include_router(
        create_admin_router(
            components.dispatcher, components.service, config.revalidate_secret
        ),
        prefix="/api",
    )
    return app


def get_cache(request: Request) -> CacheComponents:
    """FastAPI dependency returning the process's cache components."""
    return request.app.state.cache
