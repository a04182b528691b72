"""Graph element model with path multiplicities.

A pipeline record is one vertex together with its full adjacency. Every
element in the record (the vertex and each of its incident edges) carries a
``path_count``: the number of traversal paths currently terminating at it.
Path counts are per-stage mutable state, not persisted graph properties.

Elements are owned by exactly one map invocation. They are decoded fresh for
each input record, mutated in place, encoded onto the GRAPH channel, and
discarded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple

from graphstage.contracts.enums import Direction

# Reserved property keys resolved by get_property() instead of the property map
ID_KEY = "_id"
LABEL_KEY = "_label"
COUNT_KEY = "_count"

# Text form of a missing value
NULL_TEXT = "null"

PropertyValue = str | int | float | bool

# Path counts are signed 64-bit longs in the engines that produce them
MAX_PATH_COUNT = 2**63 - 1


def _check_path_count(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"path_count must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"path_count cannot be negative, got {value}")
    if value > MAX_PATH_COUNT:
        raise ValueError(f"path_count exceeds the signed 64-bit range: {value}")
    return value


class EdgeId(NamedTuple):
    """Composite edge identifier."""

    out_vertex_id: int
    label: str
    in_vertex_id: int
    relation_id: int


class _PathElement:
    """Path multiplicity bookkeeping shared by vertices and edges."""

    __slots__ = ("_path_count", "id", "properties")

    def __init__(self, id: int, properties: dict[str, PropertyValue] | None, path_count: int) -> None:
        self.id = id
        self.properties: dict[str, PropertyValue] = dict(properties) if properties else {}
        self._path_count = _check_path_count(path_count)

    @property
    def path_count(self) -> int:
        return self._path_count

    @path_count.setter
    def path_count(self, value: int) -> None:
        self._path_count = _check_path_count(value)

    def has_paths(self) -> bool:
        return self._path_count > 0

    def clear_paths(self) -> None:
        self._path_count = 0

    def start_path(self) -> None:
        """Begin a traversal at this element (exactly one path)."""
        self._path_count = 1

    def get_paths(self, other: _PathElement, append: bool = True) -> None:
        """Take over the path multiplicity of another element.

        Args:
            other: Element whose paths move onto this one
            append: If True, add to the current count; otherwise replace it
        """
        if append:
            self._path_count = _check_path_count(self._path_count + other.path_count)
        else:
            self._path_count = other.path_count


class Edge(_PathElement):
    """An edge as held in one endpoint's adjacency list."""

    __slots__ = ("in_vertex_id", "label", "out_vertex_id")

    def __init__(
        self,
        id: int,
        out_vertex_id: int,
        label: str,
        in_vertex_id: int,
        properties: dict[str, PropertyValue] | None = None,
        path_count: int = 0,
    ) -> None:
        super().__init__(id, properties, path_count)
        self.out_vertex_id = out_vertex_id
        self.label = label
        self.in_vertex_id = in_vertex_id

    @property
    def edge_id(self) -> EdgeId:
        return EdgeId(self.out_vertex_id, self.label, self.in_vertex_id, self.id)

    def __repr__(self) -> str:
        return f"Edge(id={self.id}, {self.out_vertex_id}-[{self.label}]->{self.in_vertex_id}, path_count={self.path_count})"


class Vertex(_PathElement):
    """A vertex record: the vertex, its properties, and its adjacency."""

    __slots__ = ("in_edges", "out_edges")

    def __init__(
        self,
        id: int,
        properties: dict[str, PropertyValue] | None = None,
        path_count: int = 0,
    ) -> None:
        super().__init__(id, properties, path_count)
        self.out_edges: list[Edge] = []
        self.in_edges: list[Edge] = []

    def edges(self, direction: Direction) -> list[Edge]:
        """Incident edges for a direction. BOTH is OUT followed by IN."""
        if direction == Direction.OUT:
            return list(self.out_edges)
        if direction == Direction.IN:
            return list(self.in_edges)
        return [*self.out_edges, *self.in_edges]

    def add_edge(self, direction: Direction, edge: Edge) -> Edge:
        """Attach an incident edge; its matching endpoint must be this vertex."""
        if direction == Direction.OUT:
            if edge.out_vertex_id != self.id:
                raise ValueError(f"OUT edge {edge.id} does not start at vertex {self.id}")
            self.out_edges.append(edge)
        elif direction == Direction.IN:
            if edge.in_vertex_id != self.id:
                raise ValueError(f"IN edge {edge.id} does not end at vertex {self.id}")
            self.in_edges.append(edge)
        else:
            raise ValueError("add_edge requires OUT or IN, not BOTH")
        return edge

    def __repr__(self) -> str:
        return f"Vertex(id={self.id}, path_count={self.path_count}, out={len(self.out_edges)}, in={len(self.in_edges)})"


@dataclass(frozen=True)
class MicroVertex:
    """Id-only stand-in for a vertex, used as a default grouping key."""

    id: int

    def __lt__(self, other: MicroVertex | MicroEdge) -> bool:
        return self.id < other.id

    def __str__(self) -> str:
        return f"v[{self.id}]"


@dataclass(frozen=True)
class MicroEdge:
    """Id-only stand-in for an edge, used as a default grouping key."""

    id: int

    def __lt__(self, other: MicroVertex | MicroEdge) -> bool:
        return self.id < other.id

    def __str__(self) -> str:
        return f"e[{self.id}]"


MicroReference = MicroVertex | MicroEdge
GraphElement = Vertex | Edge


def micro_reference(element: GraphElement) -> MicroReference:
    """Project an element onto its id-only reference."""
    if isinstance(element, Vertex):
        return MicroVertex(element.id)
    return MicroEdge(element.id)


def get_property(element: GraphElement, key: str) -> Any:
    """Read a property, resolving the reserved keys.

    ``_id`` is the element id, ``_count`` the path count, and ``_label`` the
    edge label (None for vertices). A missing property is None.
    """
    if key == ID_KEY:
        return element.id
    if key == COUNT_KEY:
        return element.path_count
    if key == LABEL_KEY:
        return element.label if isinstance(element, Edge) else None
    return element.properties.get(key)


def to_text(value: Any) -> str:
    """Render a value as text the way output records carry it."""
    if value is None:
        return NULL_TEXT
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def get_property_as_text(element: GraphElement, key: str) -> str:
    return to_text(get_property(element, key))


def is_number(value: Any) -> bool:
    """True for int and float values. Booleans are not numbers here."""
    return isinstance(value, int | float) and not isinstance(value, bool)
