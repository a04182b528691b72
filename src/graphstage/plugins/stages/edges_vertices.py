# src/graphstage/plugins/stages/edges_vertices.py
"""EdgesVertices stage - move path multiplicity from edges onto the vertex.

Each vertex record holds its own incident edges, so the projection is local:
every selected edge with paths hands its count to the host vertex and is
cleared. Edges of an unselected direction are cleared without contributing.
"""

from enum import StrEnum
from typing import Any

from pydantic import Field

from graphstage.contracts.enums import Direction
from graphstage.contracts.graph import Vertex
from graphstage.plugins.base import BaseStage
from graphstage.plugins.config_base import StageConfig
from graphstage.plugins.context import TaskContext


class Counters(StrEnum):
    IN_EDGES_PROCESSED = "IN_EDGES_PROCESSED"
    OUT_EDGES_PROCESSED = "OUT_EDGES_PROCESSED"


class EdgesVerticesConfig(StageConfig):
    direction: Direction = Field(default=Direction.BOTH, description="Which incident edges to project: out, in or both")


class EdgesVertices(BaseStage):
    name = "edges_vertices"
    config_class = EdgesVerticesConfig

    config: EdgesVerticesConfig

    def __init__(self, config: dict[str, Any] | EdgesVerticesConfig) -> None:
        super().__init__(config)
        direction = self.config.direction
        self._selected = {
            Direction.IN: direction in (Direction.IN, Direction.BOTH),
            Direction.OUT: direction in (Direction.OUT, Direction.BOTH),
        }

    def map(self, vertex: Vertex, ctx: TaskContext) -> None:
        # IN before OUT
        for direction, counter in (
            (Direction.IN, Counters.IN_EDGES_PROCESSED),
            (Direction.OUT, Counters.OUT_EDGES_PROCESSED),
        ):
            if self._selected[direction]:
                processed = 0
                for edge in vertex.edges(direction):
                    if edge.has_paths():
                        vertex.get_paths(edge, append=True)
                        processed += 1
                        edge.clear_paths()
                ctx.increment(counter, processed)
            else:
                for edge in vertex.edges(direction):
                    if edge.has_paths():
                        edge.clear_paths()

        ctx.write_graph(vertex)
