# src/graphstage/core/canonical.py
"""
Canonical JSON serialization for the record wire format.

Two-phase approach:
1. Normalize: Convert tuples and typed wrappers to JSON-safe primitives (our code)
2. Serialize: Produce deterministic JSON per RFC 8785/JCS (rfc8785 package)

IMPORTANT: NaN and Infinity are strictly REJECTED, not silently converted.
A vertex record that cannot round-trip exactly must not leave its task.
"""

from __future__ import annotations

import hashlib
import json
import math
from typing import Any

import rfc8785

# Version tag of the stable_hash() algorithm
CANONICAL_VERSION = "sha256-rfc8785-v1"


def _normalize_value(obj: Any) -> Any:
    """Convert a single value to a JSON-safe primitive.

    NaN Policy: STRICT REJECTION
    - NaN and Infinity are invalid property values
    - Use a missing property for intentional absence, not NaN

    Args:
        obj: Any Python value

    Returns:
        JSON-serializable primitive

    Raises:
        ValueError: If value is NaN or Infinity
    """
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(f"Cannot canonicalize non-finite float: {obj}. Omit the property instead of storing NaN.")
        return obj

    # Primitives pass through unchanged; anything else is left for rfc8785 to reject
    return obj


def _normalize_for_canonical(data: Any) -> Any:
    """Recursively normalize a data structure for canonical JSON.

    Args:
        data: Any data structure (dict, list, tuple, primitive)

    Returns:
        Normalized data structure with only JSON-safe types

    Raises:
        ValueError: If data contains NaN, Infinity, or other non-finite values
    """
    if isinstance(data, dict):
        return {str(k): _normalize_for_canonical(v) for k, v in data.items()}
    if isinstance(data, list | tuple):
        return [_normalize_for_canonical(v) for v in data]
    return _normalize_value(data)


def canonical_json(obj: Any) -> str:
    """Produce canonical JSON.

    Args:
        obj: Data structure to serialize

    Returns:
        Canonical JSON string (no whitespace, sorted keys)

    Raises:
        ValueError: If data contains NaN, Infinity, or other non-finite values
        TypeError: If data contains types that cannot be serialized
    """
    normalized = _normalize_for_canonical(obj)
    result: bytes = rfc8785.dumps(normalized)
    return result.decode("utf-8")


def canonical_bytes(obj: Any) -> bytes:
    """Canonical JSON as UTF-8 bytes (the record wire form)."""
    return rfc8785.dumps(_normalize_for_canonical(obj))


def parse_canonical(data: bytes | str) -> Any:
    """Parse a canonical JSON document back into Python primitives."""
    return json.loads(data)


def stable_hash(obj: Any, version: str = CANONICAL_VERSION) -> str:
    """Compute stable hash of object.

    Used to assign shuffle keys to reduce partitions deterministically.

    Args:
        obj: Data structure to hash
        version: Hash algorithm version

    Returns:
        SHA-256 hex digest of canonical JSON
    """
    canonical = canonical_json(obj)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
