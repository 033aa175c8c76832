"""Redis Pub/Sub fan-out of tag invalidations.

The in-memory tag store is per process. Publishing every dispatched
tag set on a Redis channel lets other instances drop the same entries
from their own stores, which narrows the cross-instance staleness
window from "until TTL expiry" to "until the message arrives".

Example:
    sink = RedisInvalidationSink(redis_url="redis://localhost:6379")
    dispatcher = InvalidationDispatcher(store, sinks=[sink])

    subscriber = RedisInvalidationSubscriber(store, redis_url=...)
    await subscriber.start()
"""

import asyncio
import logging
import uuid
from typing import Any

import redis.asyncio as redis

from foliocache.core.interfaces.serializer import ISerializer
from foliocache.core.interfaces.tag_store import ITagStore
from foliocache.infrastructure.serializers.json import JsonSerializer, SerializationError

logger = logging.getLogger(__name__)

INVALIDATION_CHANNEL = "foliocache:invalidation"

# Identifies this process so it can skip its own messages
INSTANCE_ID = uuid.uuid4().hex


class RedisInvalidationSink:
    """Publishes tag invalidations to all instances via Redis Pub/Sub."""

    name = "redis"

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        channel: str = INVALIDATION_CHANNEL,
        client: Any = None,
        origin: str = INSTANCE_ID,
        serializer: ISerializer | None = None,
    ) -> None:
        """Initialize the sink.

        Args:
            redis_url: Redis connection URL.
            channel: Pub/Sub channel name.
            client: Optional pre-built ``redis.asyncio.Redis`` client.
            origin: Identifier stamped on published messages.
            serializer: Message encoder. Uses JsonSerializer if not provided.
        """
        self._redis: redis.Redis = client or redis.from_url(redis_url)  # type: ignore
        self._channel = channel
        self._origin = origin
        self._serializer = serializer or JsonSerializer()

    async def invalidate_tags(self, tags: list[str]) -> None:
        """Publish a tag invalidation message.

        Args:
            tags: Tags to invalidate on other instances.
        """
        message = self._serializer.serialize({"origin": self._origin, "tags": tags})
        receivers = await self._redis.publish(self._channel, message)
        logger.debug("Published %d tags to %s subscribers", len(tags), receivers)

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._redis.close()


class RedisInvalidationSubscriber:
    """Applies invalidations published by other instances to a local store.

    Should be started during application startup and stopped during
    shutdown.
    """

    def __init__(
        self,
        store: ITagStore,
        redis_url: str = "redis://localhost:6379",
        channel: str = INVALIDATION_CHANNEL,
        client: Any = None,
        origin: str = INSTANCE_ID,
        serializer: ISerializer | None = None,
    ) -> None:
        self._store = store
        self._redis: redis.Redis = client or redis.from_url(redis_url)  # type: ignore
        self._channel = channel
        self._origin = origin
        self._serializer = serializer or JsonSerializer()
        self._pubsub: Any = None
        self._task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start listening for invalidation messages."""
        if self._running:
            return

        self._pubsub = self._redis.pubsub()
        await self._pubsub.subscribe(self._channel)
        self._running = True
        self._task = asyncio.create_task(self._listen_loop())
        logger.info("Listening for cache invalidations on %s", self._channel)

    async def stop(self) -> None:
        """Stop listening for invalidation messages."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._pubsub:
            await self._pubsub.unsubscribe(self._channel)
            await self._pubsub.close()
            self._pubsub = None

        logger.info("Stopped cache invalidation subscriber")

    async def _listen_loop(self) -> None:
        while self._running and self._pubsub:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )
                if message is None or message.get("type") != "message":
                    continue
                await self.handle_message(message["data"])
            except asyncio.CancelledError:
                break
            except redis.RedisError as e:
                logger.error("Error in invalidation listener: %s", e)
                await asyncio.sleep(1)

    async def handle_message(self, data: bytes) -> int:
        """Apply one published invalidation to the local store.

        Returns:
            Number of local entries removed.
        """
        try:
            payload = self._serializer.deserialize(data)
        except SerializationError as e:
            logger.error("Failed to parse invalidation message: %s", e)
            return 0

        if not isinstance(payload, dict) or payload.get("origin") == self._origin:
            return 0

        tags = [str(tag) for tag in payload.get("tags", [])]
        removed = await self._store.invalidate_tags(tags)
        logger.debug("Applied remote invalidation of %d tags (%d entries)", len(tags), removed)
        return removed
