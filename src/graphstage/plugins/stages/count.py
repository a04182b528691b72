# src/graphstage/plugins/stages/count.py
"""Count stage - total path multiplicity across the job."""

from enum import StrEnum
from typing import Any

from graphstage.contracts.enums import ElementClass
from graphstage.contracts.graph import Vertex
from graphstage.engine.spill import sum_int64, wrap_int64
from graphstage.plugins.base import BaseStage
from graphstage.plugins.config_base import ElementStageConfig
from graphstage.plugins.context import TaskContext


class Counters(StrEnum):
    VERTICES_COUNTED = "VERTICES_COUNTED"
    EDGES_COUNTED = "EDGES_COUNTED"


class CountConfig(ElementStageConfig):
    pass


class Count(BaseStage):
    """Sum path counts of vertices (or their OUT edges).

    Each map task keeps a running total and emits it once at cleanup under
    the single key None. The reduce side writes the job-wide total to
    SIDEEFFECT. Totals wrap at signed 64 bits in every phase. Counters
    count elements with paths, not paths.
    """

    name = "count"
    config_class = CountConfig
    has_combine = True
    has_reduce = True

    config: CountConfig

    def __init__(self, config: dict[str, Any] | CountConfig) -> None:
        super().__init__(config)
        self._total = 0

    def setup(self, ctx: TaskContext) -> None:
        self._total = 0

    def map(self, vertex: Vertex, ctx: TaskContext) -> None:
        if self.config.element_class == ElementClass.VERTEX:
            self._total = wrap_int64(self._total + vertex.path_count)
            if vertex.has_paths():
                ctx.increment(Counters.VERTICES_COUNTED)
        else:
            counted = 0
            for edge in vertex.out_edges:
                if edge.has_paths():
                    self._total = wrap_int64(self._total + edge.path_count)
                    counted += 1
            ctx.increment(Counters.EDGES_COUNTED, counted)

        ctx.write_graph(vertex)

    def cleanup(self, ctx: TaskContext) -> None:
        ctx.emit(None, self._total)

    def combine(self, key: Any, values: list[Any]) -> list[Any]:
        return [sum_int64(values)]

    def reduce(self, key: Any, values: list[Any], ctx: TaskContext) -> None:
        ctx.write_side_effect(None, sum_int64(values))
