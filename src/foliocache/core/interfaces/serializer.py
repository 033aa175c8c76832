"""Serializer interface."""

from typing import Any, Protocol


class ISerializer(Protocol):
    """Contract for the wire encoding of payloads.

    Used for ETag input and for invalidation messages exchanged between
    instances. Equal values must encode to equal bytes.
    """

    def serialize(self, value: Any) -> bytes:
        """Encode a value.

        Raises:
            SerializationError: If the value has no encoded form.
        """
        ...

    def deserialize(self, data: bytes | str) -> Any:
        """Decode a payload produced by ``serialize``.

        Raises:
            SerializationError: If the payload is malformed.
        """
        ...
