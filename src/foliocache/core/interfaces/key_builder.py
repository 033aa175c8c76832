"""Key builder interface."""

from typing import Any, Protocol


class IKeyBuilder(Protocol):
    """Contract for building cache keys for content fetches.

    Key builders are responsible for creating unique, deterministic
    cache keys from a function identity and its arguments.
    """

    def build(
        self,
        namespace: str,
        name: str,
        args: tuple[Any, ...] = (),
        kwargs: dict[str, Any] | None = None,
    ) -> str:
        """Build unique cache key for one computation.

        Args:
            namespace: Grouping for the key (usually the module name).
            name: Name of the cached function.
            args: Positional arguments of the call.
            kwargs: Keyword arguments of the call.

        Returns:
            A unique string key for caching the computation's result.
        """
        ...
