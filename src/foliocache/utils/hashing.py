"""Hashing utilities for cache keys and validators."""

import hashlib
import json
from typing import Any


def canonical_json(value: Any) -> str:
    """Serialize a value to canonical JSON (sorted keys, compact)."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def hash_value(value: Any) -> str:
    """Create a deterministic hash of a value.

    Args:
        value: Any JSON-serializable value.

    Returns:
        A hexadecimal hash string (first 16 chars of SHA-256).
    """
    if value is None:
        return "none"

    return hashlib.sha256(canonical_json(value).encode()).hexdigest()[:16]


def hash_bytes(data: bytes, length: int = 32) -> str:
    """Hash raw bytes with SHA-256, truncated to ``length`` hex chars."""
    return hashlib.sha256(data).hexdigest()[:length]
