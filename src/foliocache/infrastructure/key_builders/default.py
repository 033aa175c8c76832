"""Default key builder implementation."""

from typing import Any

from foliocache.utils.hashing import hash_value


class DefaultKeyBuilder:
    """Default key builder using a hash of the call arguments.

    Creates deterministic cache keys of the form
    ``<prefix>:<namespace>:<name>[:a:<args-hash>]``. Calls with no
    arguments get a readable key without a hash part.
    """

    def __init__(self, prefix: str = "foliocache") -> None:
        """Initialize the key builder.

        Args:
            prefix: Prefix for all cache keys.
        """
        self._prefix = prefix

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
        parts = [self._prefix, namespace or "default", name]

        if args or kwargs:
            parts.append(f"a:{hash_value({'args': list(args), 'kwargs': kwargs or {}})}")

        return ":".join(parts)

    def build_request_key(self, method: str, url: str, body: str = "") -> str:
        """Build the client cache key for an outbound HTTP request."""
        return f"{method.upper()}:{url}:{body}"
