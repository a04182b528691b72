# src/graphstage/plugins/stages/group_count.py
"""GroupCount stage - multiplicity-weighted tallies per group key.

Map tasks tally into a spill-guarded counter map and flush partial sums to
the shuffle; combine and reduce add them up. The reduce output on
SIDEEFFECT is one (group, total) pair per group.
"""

from collections.abc import Hashable
from enum import StrEnum
from typing import Any

from pydantic import Field, PositiveInt

from graphstage.contracts.enums import ElementClass, OrderingType
from graphstage.contracts.graph import GraphElement, Vertex, micro_reference, to_text
from graphstage.engine.extractors import ElementEvaluator, ExtractorRegistry
from graphstage.engine.ordering import TypedValueHandler
from graphstage.engine.spill import SpillingCounterMap, sum_int64
from graphstage.plugins.base import BaseStage
from graphstage.plugins.config_base import ElementStageConfig, ExtractorSpec
from graphstage.plugins.context import TaskContext


class Counters(StrEnum):
    VERTICES_PROCESSED = "VERTICES_PROCESSED"
    OUT_EDGES_PROCESSED = "OUT_EDGES_PROCESSED"


class GroupCountConfig(ElementStageConfig):
    """Configuration for group counting.

    Example YAML:
        plugin: group_count
        options:
          element_class: vertex
          key: "element['age'] // 10"
          value:
            extractor: weight
    """

    key: ExtractorSpec | None = Field(
        default=None,
        description="Group key extractor; defaults to the element reference (v[id] / e[id])",
    )
    value: ExtractorSpec | None = Field(
        default=None,
        description="Numeric weight extractor; defaults to 1",
    )
    spill_threshold: PositiveInt | None = Field(
        default=None,
        description="Override of the pipeline-wide spill threshold",
    )


class GroupCount(BaseStage):
    """Count elements with paths per group.

    For each vertex with paths (vertex class) or OUT edge with paths (edge
    class) the task adds ``weight * path_count`` to the element's group.
    Groups travel the shuffle in text form.
    """

    name = "group_count"
    config_class = GroupCountConfig
    has_combine = True
    has_reduce = True

    config: GroupCountConfig

    def __init__(self, config: dict[str, Any] | GroupCountConfig) -> None:
        super().__init__(config)
        # Replaced at setup, once the task's extractor registry is known
        self._key_fn = ElementEvaluator(None, option="key")
        self._value_fn = ElementEvaluator(None, option="value")
        self._weights = TypedValueHandler(OrderingType.LONG)
        self._counts: SpillingCounterMap | None = None

    def validate(self, extractors: ExtractorRegistry) -> None:
        ElementEvaluator(self.config.key, extractors, option="key")
        ElementEvaluator(self.config.value, extractors, option="value")

    def setup(self, ctx: TaskContext) -> None:
        self._key_fn = ElementEvaluator(self.config.key, ctx.extractors, option="key")
        self._value_fn = ElementEvaluator(self.config.value, ctx.extractors, option="value")

        def flush(group: Hashable, total: int) -> None:
            ctx.emit(group, total)

        threshold = self.config.spill_threshold or ctx.spill_threshold
        self._counts = SpillingCounterMap(threshold, flush)

    def _group_of(self, element: GraphElement) -> str:
        if self._key_fn.configured:
            return to_text(self._key_fn(element))
        return str(micro_reference(element))

    def _weight_of(self, element: GraphElement) -> int:
        if not self._value_fn.configured:
            return 1
        return int(self._weights.convert(self._value_fn(element), key="value"))

    def _require_counts(self) -> SpillingCounterMap:
        if self._counts is None:
            raise RuntimeError("GroupCount.setup() must run before map() or cleanup()")
        return self._counts

    def map(self, vertex: Vertex, ctx: TaskContext) -> None:
        counts = self._require_counts()
        if self.config.element_class == ElementClass.VERTEX:
            if vertex.has_paths():
                counts.increment(self._group_of(vertex), self._weight_of(vertex) * vertex.path_count)
                ctx.increment(Counters.VERTICES_PROCESSED)
        else:
            processed = 0
            for edge in vertex.out_edges:
                if edge.has_paths():
                    counts.increment(self._group_of(edge), self._weight_of(edge) * edge.path_count)
                    processed += 1
            ctx.increment(Counters.OUT_EDGES_PROCESSED, processed)

        # Bound memory under adversarial key cardinality
        counts.check()
        ctx.write_graph(vertex)

    def cleanup(self, ctx: TaskContext) -> None:
        counts = self._require_counts()
        flushed = counts.flush()
        ctx.log.debug("group_count_flushed", groups=flushed, spills=counts.spill_count)

    def combine(self, key: Any, values: list[Any]) -> list[Any]:
        return [sum_int64(values)]

    def reduce(self, key: Any, values: list[Any], ctx: TaskContext) -> None:
        ctx.write_side_effect(key, sum_int64(values))
