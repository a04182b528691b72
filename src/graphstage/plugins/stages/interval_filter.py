# src/graphstage/plugins/stages/interval_filter.py
"""IntervalFilter stage - keep elements whose property lies in [start, end).

Filtering never deletes anything. An element that fails the test loses its
paths (path_count -> 0) and keeps travelling on the GRAPH channel, inert.
"""

from enum import StrEnum
from typing import Any, Self

from pydantic import Field, StrictBool, StrictFloat, StrictInt, StrictStr, model_validator

from graphstage.contracts.enums import Direction, ElementClass, IntervalValueType
from graphstage.contracts.errors import ValueTypeMismatchError
from graphstage.contracts.graph import GraphElement, Vertex, get_property, is_number
from graphstage.plugins.base import BaseStage
from graphstage.plugins.config_base import ElementStageConfig
from graphstage.plugins.context import TaskContext

Bound = StrictBool | StrictInt | StrictFloat | StrictStr


class Counters(StrEnum):
    VERTICES_FILTERED = "VERTICES_FILTERED"
    EDGES_FILTERED = "EDGES_FILTERED"


def _infer_value_type(value: Any) -> IntervalValueType:
    if isinstance(value, bool):
        return IntervalValueType.BOOLEAN
    if is_number(value):
        return IntervalValueType.NUMERIC
    return IntervalValueType.STRING


def _matches(value_type: IntervalValueType, value: Any) -> bool:
    if value_type == IntervalValueType.BOOLEAN:
        return isinstance(value, bool)
    if value_type == IntervalValueType.NUMERIC:
        return is_number(value)
    return isinstance(value, str)


class IntervalFilterConfig(ElementStageConfig):
    """Configuration for the interval filter.

    Example YAML:
        plugin: interval_filter
        options:
          element_class: vertex
          key: age
          start_value: 18
          end_value: 65
    """

    key: str = Field(description="Property to test (reserved keys allowed)")
    start_value: Bound = Field(description="Inclusive lower bound")
    end_value: Bound = Field(description="Exclusive upper bound")
    value_type: IntervalValueType | None = Field(
        default=None,
        description="string, numeric or boolean; inferred from start_value when omitted",
    )

    @model_validator(mode="before")
    @classmethod
    def _infer_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("value_type") is None and "start_value" in data:
            return {**data, "value_type": _infer_value_type(data["start_value"])}
        return data

    @model_validator(mode="after")
    def _bounds_match_type(self) -> Self:
        value_type = self.value_type or _infer_value_type(self.start_value)
        for name in ("start_value", "end_value"):
            bound = getattr(self, name)
            if not _matches(value_type, bound):
                raise ValueError(f"{name} {bound!r} is not a {value_type.value} value")
        return self


class IntervalFilter(BaseStage):
    """Clear paths of elements whose property falls outside [start, end).

    Vertex class tests the vertex. Edge class tests every incident edge in
    both directions and leaves the vertex alone. A missing property fails
    the test; a present value of the wrong type is an error.
    """

    name = "interval_filter"
    config_class = IntervalFilterConfig

    config: IntervalFilterConfig

    def __init__(self, config: dict[str, Any] | IntervalFilterConfig) -> None:
        super().__init__(config)
        self._key = self.config.key
        self._value_type = self.config.value_type or _infer_value_type(self.config.start_value)
        self._start = self.config.start_value
        self._end = self.config.end_value

    def _in_interval(self, element: GraphElement) -> bool:
        value = get_property(element, self._key)
        if value is None:
            return False
        if not _matches(self._value_type, value):
            raise ValueTypeMismatchError(self._value_type.value, value, key=self._key)
        return bool(self._start <= value < self._end)

    def map(self, vertex: Vertex, ctx: TaskContext) -> None:
        if self.config.element_class == ElementClass.VERTEX:
            if vertex.has_paths() and not self._in_interval(vertex):
                vertex.clear_paths()
                ctx.increment(Counters.VERTICES_FILTERED)
        else:
            filtered = 0
            for edge in vertex.edges(Direction.BOTH):
                if edge.has_paths() and not self._in_interval(edge):
                    edge.clear_paths()
                    filtered += 1
            ctx.increment(Counters.EDGES_FILTERED, filtered)

        ctx.write_graph(vertex)
