"""Canonical JSON encoding for ETags and invalidation messages."""

import dataclasses
import json
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any


class SerializationError(Exception):
    """Raised when a value cannot be encoded or a payload decoded."""


def encode_value(obj: Any) -> Any:
    """Reduce a non-JSON type to something ``json`` can write.

    Dates stay readable ISO strings so response bodies and their ETags
    match what an API client sees.
    """
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if hasattr(obj, "__dict__"):
        return vars(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class JsonSerializer:
    """Canonical JSON serializer.

    Keys are sorted and separators compact, so two equal payloads always
    give the same bytes no matter how their dicts were built. That makes
    the output usable as ETag input.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def dumps(self, value: Any) -> str:
        """Encode ``value`` to a canonical JSON string.

        Raises:
            SerializationError: If the value cannot be encoded.
        """
        try:
            return json.dumps(
                value,
                default=encode_value,
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
            )
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to serialize value: {e}") from e

    def serialize(self, value: Any) -> bytes:
        """Encode ``value`` to canonical JSON bytes."""
        return self.dumps(value).encode(self._encoding)

    def deserialize(self, data: bytes | str) -> Any:
        """Decode a JSON payload.

        Accepts ``str`` as well, which is what Redis clients created with
        ``decode_responses=True`` hand back.

        Raises:
            SerializationError: If the payload is not valid JSON.
        """
        try:
            text = data.decode(self._encoding) if isinstance(data, bytes) else data
            return json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SerializationError(f"Failed to deserialize data: {e}") from e
