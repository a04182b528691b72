"""All kinds, directions, and type tags used across subsystem boundaries.

Stage configuration carries these as plain strings on the wire; each task
decodes them back into the enums below at setup time.
"""

from enum import StrEnum


class ElementClass(StrEnum):
    """Which graph element a stage operates on.

    VERTEX stages look at the vertex record itself. EDGE stages look at the
    edges held in the vertex record's adjacency (OUT edges for extraction
    stages, BOTH directions for the interval filter).
    """

    VERTEX = "vertex"
    EDGE = "edge"


class Direction(StrEnum):
    """Edge direction relative to the vertex that holds it.

    BOTH is OUT followed by IN.
    """

    OUT = "out"
    IN = "in"
    BOTH = "both"


class Channel(StrEnum):
    """Logical output channel of a stage.

    GRAPH carries the mutated element stream to the next stage.
    SIDEEFFECT carries terminal results and is never re-fed into the pipeline.
    """

    GRAPH = "graph"
    SIDEEFFECT = "sideeffect"


class IntervalValueType(StrEnum):
    """Declared value class for interval filtering."""

    STRING = "string"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"


class OrderingType(StrEnum):
    """Closed set of value types that can be extracted and ordered.

    Values:
        LONG: signed 64-bit integer
        INT: signed 32-bit integer (wraps on overflow)
        FLOAT: IEEE single precision
        DOUBLE: IEEE double precision
        TEXT: string form of any value ("null" for missing)
    """

    LONG = "long"
    INT = "int"
    FLOAT = "float"
    DOUBLE = "double"
    TEXT = "text"


class SortOrder(StrEnum):
    """Direction of the shuffle ordering for order stages."""

    INCR = "incr"
    DECR = "decr"
