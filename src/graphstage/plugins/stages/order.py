# src/graphstage/plugins/stages/order.py
"""Order stage - emit (sort value, label) pairs ordered by the shuffle.

The map side turns each element with paths into typed sort keys; the shuffle
sorts them with the comparator chosen by (value_type, order); the reduce
side writes (label, value) pairs to SIDEEFFECT in that order.

Multiplicity handling:
- key ``_count``: the path count itself is the sort value, emitted once
- numeric property: value * path_count, emitted once
- anything else: the value, emitted path_count times
"""

from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import Field

from graphstage.contracts.enums import ElementClass, OrderingType, SortOrder
from graphstage.contracts.graph import COUNT_KEY, ID_KEY, GraphElement, Vertex, get_property, get_property_as_text, is_number
from graphstage.engine.ordering import Comparator, TypedValue, TypedValueHandler, create_comparator
from graphstage.plugins.base import BaseStage
from graphstage.plugins.config_base import ElementStageConfig
from graphstage.plugins.context import TaskContext


class Counters(StrEnum):
    VERTICES_PROCESSED = "VERTICES_PROCESSED"
    OUT_EDGES_PROCESSED = "OUT_EDGES_PROCESSED"


class OrderConfig(ElementStageConfig):
    """Configuration for ordering.

    Example YAML:
        plugin: order
        options:
          key: age
          value_type: int
          element_key: name
          order: decr
    """

    key: str = Field(description="Property whose value is the sort key")
    value_type: OrderingType = Field(description="Declared type of the sort key")
    element_key: str = Field(default=ID_KEY, description="Property rendered as the output label")
    order: SortOrder = Field(default=SortOrder.INCR, description="incr or decr")


class Order(BaseStage):
    """Order elements with paths by a typed property value."""

    name = "order"
    config_class = OrderConfig
    has_reduce = True

    config: OrderConfig

    def __init__(self, config: dict[str, Any] | OrderConfig) -> None:
        super().__init__(config)
        self._handler = TypedValueHandler(self.config.value_type)
        self._comparator: Comparator = create_comparator(self.config.order, self.config.value_type)

    @property
    def comparator(self) -> Comparator:
        return self._comparator

    def _emit(self, element: GraphElement, ctx: TaskContext) -> None:
        key = self.config.key
        label = get_property_as_text(element, self.config.element_key)
        value = get_property(element, key)
        if key == COUNT_KEY:
            ctx.emit(self._handler.wrap(value, key=key), label)
        elif is_number(value):
            ctx.emit(self._handler.wrap(value * element.path_count, key=key), label)
        else:
            typed = self._handler.wrap(value, key=key)
            for _ in range(element.path_count):
                ctx.emit(typed, label)

    def map(self, vertex: Vertex, ctx: TaskContext) -> None:
        if self.config.element_class == ElementClass.VERTEX:
            if vertex.has_paths():
                self._emit(vertex, ctx)
                ctx.increment(Counters.VERTICES_PROCESSED)
        else:
            processed = 0
            for edge in vertex.out_edges:
                if edge.has_paths():
                    self._emit(edge, ctx)
                    processed += 1
            ctx.increment(Counters.OUT_EDGES_PROCESSED, processed)

        ctx.write_graph(vertex)

    def reduce(self, key: TypedValue, values: list[Any], ctx: TaskContext) -> None:
        for label in values:
            ctx.write_side_effect(label, key.value)

    def shuffle_sort_key(self) -> Callable[[Any], Any]:
        return self._comparator.sort_key
