# src/graphstage/plugins/stages/property.py
"""Property stage - project one typed property value per path."""

from enum import StrEnum
from typing import Any

from pydantic import Field

from graphstage.contracts.enums import ElementClass, OrderingType
from graphstage.contracts.graph import GraphElement, Vertex, get_property
from graphstage.engine.ordering import TypedValueHandler
from graphstage.plugins.base import BaseStage
from graphstage.plugins.config_base import ElementStageConfig
from graphstage.plugins.context import TaskContext


class Counters(StrEnum):
    VERTICES_PROCESSED = "VERTICES_PROCESSED"
    OUT_EDGES_PROCESSED = "OUT_EDGES_PROCESSED"


class PropertyConfig(ElementStageConfig):
    key: str = Field(description="Property to project (reserved keys allowed)")
    value_type: OrderingType = Field(default=OrderingType.TEXT, description="Declared type of the projected value")


class Property(BaseStage):
    """Write ``typed(element[key])`` to SIDEEFFECT once per path.

    The vertex is forwarded on GRAPH before any side effect is written.
    """

    name = "property"
    config_class = PropertyConfig

    config: PropertyConfig

    def __init__(self, config: dict[str, Any] | PropertyConfig) -> None:
        super().__init__(config)
        self._handler = TypedValueHandler(self.config.value_type)

    def _project(self, element: GraphElement, ctx: TaskContext) -> None:
        typed = self._handler.wrap(get_property(element, self.config.key), key=self.config.key)
        for _ in range(element.path_count):
            ctx.write_side_effect(None, typed.value)

    def map(self, vertex: Vertex, ctx: TaskContext) -> None:
        ctx.write_graph(vertex)

        if self.config.element_class == ElementClass.VERTEX:
            if vertex.has_paths():
                self._project(vertex, ctx)
                ctx.increment(Counters.VERTICES_PROCESSED)
        else:
            processed = 0
            for edge in vertex.out_edges:
                if edge.has_paths():
                    self._project(edge, ctx)
                    processed += 1
            ctx.increment(Counters.OUT_EDGES_PROCESSED, processed)
