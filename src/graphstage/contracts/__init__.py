"""Shared contracts: element model, enums, record shapes, and errors.

Everything that crosses a module or task boundary is defined here so that
stages, the engine, and tests agree on one vocabulary.
"""

from graphstage.contracts.enums import (
    Channel,
    Direction,
    ElementClass,
    IntervalValueType,
    OrderingType,
    SortOrder,
)
from graphstage.contracts.errors import (
    StageConfigError,
    StageTaskError,
    UnknownStageError,
    ValueTypeMismatchError,
)
from graphstage.contracts.graph import (
    COUNT_KEY,
    ID_KEY,
    LABEL_KEY,
    NULL_TEXT,
    Edge,
    EdgeId,
    GraphElement,
    MicroEdge,
    MicroReference,
    MicroVertex,
    Vertex,
    get_property,
    get_property_as_text,
    is_number,
    micro_reference,
    to_text,
)
from graphstage.contracts.records import OutputRecord, StageJobResult

__all__ = [
    # Enums
    "Channel",
    "Direction",
    "ElementClass",
    "IntervalValueType",
    "OrderingType",
    "SortOrder",
    # Errors
    "StageConfigError",
    "StageTaskError",
    "UnknownStageError",
    "ValueTypeMismatchError",
    # Element model
    "COUNT_KEY",
    "Edge",
    "EdgeId",
    "GraphElement",
    "ID_KEY",
    "LABEL_KEY",
    "MicroEdge",
    "MicroReference",
    "MicroVertex",
    "NULL_TEXT",
    "Vertex",
    "get_property",
    "get_property_as_text",
    "is_number",
    "micro_reference",
    "to_text",
    # Records
    "OutputRecord",
    "StageJobResult",
]
