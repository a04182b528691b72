"""Wire codec for vertex records.

A record is a vertex plus its full adjacency, encoded as RFC 8785 canonical
JSON. Decoding always builds a fresh object graph, so every map invocation
owns the elements it mutates.

A record must decode to exactly what was encoded: a stage sees the same
values whether it reads the job input or the GRAPH output of the stage
before it. Canonical JSON alone does not give that. RFC 8785 writes the
float 3.0 as ``3`` and refuses integers beyond 2**53. So:

- ids and path counts travel as decimal strings
- every property value travels in a type envelope ``{"t": tag, "v": value}``
  where the tag is one of ``text``, ``bool``, ``long`` (decimal string)
  or ``double`` (JSON number, always decoded as float)

Record layout (keys sorted on the wire)::

    {
      "v": 2,
      "id": "17",
      "paths": "2",
      "props": {"name": {"t": "text", "v": "marko"}, "weight": {"t": "double", "v": 3}},
      "out": [{"id": "7", "out": "17", "label": "knows", "in": "23", "paths": "0", "props": {}}],
      "in": [...]
    }
"""

from __future__ import annotations

from typing import Any

from graphstage.contracts.graph import Edge, PropertyValue, Vertex
from graphstage.core.canonical import canonical_bytes, parse_canonical

RECORD_FORMAT_VERSION = 2

_TEXT = "text"
_BOOL = "bool"
_LONG = "long"
_DOUBLE = "double"


class RecordDecodeError(ValueError):
    """Raised when bytes do not hold a well-formed vertex record."""


def _property_to_wire(key: str, value: PropertyValue) -> dict[str, Any]:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return {"t": _BOOL, "v": value}
    if isinstance(value, int):
        return {"t": _LONG, "v": str(value)}
    if isinstance(value, float):
        return {"t": _DOUBLE, "v": value}
    if isinstance(value, str):
        return {"t": _TEXT, "v": value}
    raise TypeError(f"Property '{key}' has unsupported type {type(value).__name__}: {value!r}")


def _property_from_wire(key: str, envelope: Any) -> PropertyValue:
    if isinstance(envelope, dict) and set(envelope) == {"t", "v"}:
        tag, value = envelope["t"], envelope["v"]
        if tag == _TEXT and isinstance(value, str):
            return value
        if tag == _BOOL and isinstance(value, bool):
            return value
        if tag == _LONG and isinstance(value, str):
            return int(value)
        if tag == _DOUBLE and isinstance(value, int | float) and not isinstance(value, bool):
            return float(value)
    raise RecordDecodeError(f"Property '{key}' has a malformed value envelope: {envelope!r}")


def _props_to_wire(properties: dict[str, PropertyValue]) -> dict[str, Any]:
    return {key: _property_to_wire(key, value) for key, value in properties.items()}


def _props_from_wire(data: dict[str, Any]) -> dict[str, PropertyValue]:
    return {key: _property_from_wire(key, envelope) for key, envelope in data.items()}


def _decimal(value: Any, field: str) -> int:
    if not isinstance(value, str):
        raise RecordDecodeError(f"Field '{field}' must be a decimal string, got {type(value).__name__}")
    return int(value)


def _edge_to_wire(edge: Edge) -> dict[str, Any]:
    return {
        "id": str(edge.id),
        "out": str(edge.out_vertex_id),
        "label": edge.label,
        "in": str(edge.in_vertex_id),
        "paths": str(edge.path_count),
        "props": _props_to_wire(edge.properties),
    }


def vertex_to_wire(vertex: Vertex) -> dict[str, Any]:
    """Convert a vertex record to its JSON-ready dict form.

    Raises:
        TypeError: If a property value is not text, bool, int or float
    """
    return {
        "v": RECORD_FORMAT_VERSION,
        "id": str(vertex.id),
        "paths": str(vertex.path_count),
        "props": _props_to_wire(vertex.properties),
        "out": [_edge_to_wire(edge) for edge in vertex.out_edges],
        "in": [_edge_to_wire(edge) for edge in vertex.in_edges],
    }


def encode_vertex(vertex: Vertex) -> bytes:
    """Encode a vertex record to canonical JSON bytes.

    Raises:
        ValueError: If a property holds NaN or Infinity
        TypeError: If a property value is not text, bool, int or float
    """
    return canonical_bytes(vertex_to_wire(vertex))


def _edge_from_wire(data: dict[str, Any]) -> Edge:
    return Edge(
        id=_decimal(data["id"], "id"),
        out_vertex_id=_decimal(data["out"], "out"),
        label=data["label"],
        in_vertex_id=_decimal(data["in"], "in"),
        properties=_props_from_wire(data["props"]),
        path_count=_decimal(data["paths"], "paths"),
    )


def vertex_from_wire(data: dict[str, Any]) -> Vertex:
    """Build a fresh vertex record from its dict form.

    Raises:
        RecordDecodeError: If required fields are missing or malformed
    """
    if data.get("v") != RECORD_FORMAT_VERSION:
        raise RecordDecodeError(f"Unsupported record format version: {data.get('v')!r} (expected {RECORD_FORMAT_VERSION})")
    try:
        vertex = Vertex(
            _decimal(data["id"], "id"),
            properties=_props_from_wire(data["props"]),
            path_count=_decimal(data["paths"], "paths"),
        )
        vertex.out_edges.extend(_edge_from_wire(edge) for edge in data["out"])
        vertex.in_edges.extend(_edge_from_wire(edge) for edge in data["in"])
    except RecordDecodeError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise RecordDecodeError(f"Malformed vertex record: {e}") from e
    return vertex


def decode_vertex(data: bytes | str) -> Vertex:
    """Decode canonical JSON bytes into a freshly owned vertex record."""
    try:
        parsed = parse_canonical(data)
    except ValueError as e:
        raise RecordDecodeError(f"Vertex record is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise RecordDecodeError(f"Vertex record must be a JSON object, got {type(parsed).__name__}")
    return vertex_from_wire(parsed)


def copy_vertex(vertex: Vertex) -> Vertex:
    """Deep copy a vertex record through its wire form."""
    return vertex_from_wire(vertex_to_wire(vertex))
