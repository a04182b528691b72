# src/graphstage/plugins/stages/transform.py
"""Transform stage - apply an extractor to every element with paths.

Results are written as text (None renders as "null"), once per path.
"""

from enum import StrEnum
from typing import Any

from pydantic import Field

from graphstage.contracts.enums import ElementClass
from graphstage.contracts.graph import GraphElement, Vertex, to_text
from graphstage.engine.extractors import ElementEvaluator, ExtractorRegistry
from graphstage.plugins.base import BaseStage
from graphstage.plugins.config_base import ElementStageConfig, ExtractorSpec
from graphstage.plugins.context import TaskContext


class Counters(StrEnum):
    VERTICES_PROCESSED = "VERTICES_PROCESSED"
    EDGES_PROCESSED = "EDGES_PROCESSED"


class TransformConfig(ElementStageConfig):
    """Configuration for transform.

    Example YAML:
        plugin: transform
        options:
          element_class: edge
          function: "element['_label'] + ':' + str(element.get('weight', 0))"
    """

    function: ExtractorSpec = Field(description="Extractor applied to each element")


class Transform(BaseStage):
    """Write ``to_text(function(element))`` once per path, then forward."""

    name = "transform"
    config_class = TransformConfig

    config: TransformConfig

    def __init__(self, config: dict[str, Any] | TransformConfig) -> None:
        super().__init__(config)
        self._function = ElementEvaluator(None, option="function")

    def validate(self, extractors: ExtractorRegistry) -> None:
        ElementEvaluator(self.config.function, extractors, option="function")

    def setup(self, ctx: TaskContext) -> None:
        self._function = ElementEvaluator(self.config.function, ctx.extractors, option="function")

    def _apply(self, element: GraphElement, ctx: TaskContext) -> None:
        text = to_text(self._function(element))
        for _ in range(element.path_count):
            ctx.write_side_effect(None, text)

    def map(self, vertex: Vertex, ctx: TaskContext) -> None:
        if not self._function.configured:
            raise RuntimeError("Transform.setup() must run before map()")

        if self.config.element_class == ElementClass.VERTEX:
            if vertex.has_paths():
                self._apply(vertex, ctx)
                ctx.increment(Counters.VERTICES_PROCESSED)
        else:
            processed = 0
            for edge in vertex.out_edges:
                if edge.has_paths():
                    self._apply(edge, ctx)
                    processed += 1
            ctx.increment(Counters.EDGES_PROCESSED, processed)

        ctx.write_graph(vertex)
