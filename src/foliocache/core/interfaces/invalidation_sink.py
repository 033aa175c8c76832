"""Invalidation sink interface."""

from typing import Protocol


class IInvalidationSink(Protocol):
    """Contract for downstream invalidation targets.

    Sinks receive the tag set computed by the dispatcher after the local
    tag store has been invalidated: a shared cache fabric, a pub/sub
    channel reaching other instances, a CDN purge API. Delivery is best
    effort; the dispatcher logs and records failures instead of raising.
    """

    name: str

    async def invalidate_tags(self, tags: list[str]) -> None:
        """Deliver a tag invalidation.

        Args:
            tags: Tags to invalidate downstream.

        Raises:
            Exception: Any delivery failure; the dispatcher handles it.
        """
        ...
