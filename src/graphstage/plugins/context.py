# src/graphstage/plugins/context.py
"""Task execution context.

A TaskContext is created by the substrate for every map, combine and reduce
task and handed to each stage call. It owns everything task-local: the
output multiplexer, the task's counters, and the intermediate (key, value)
pairs destined for the shuffle. Nothing in it is shared between tasks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import structlog

from graphstage.contracts.graph import Vertex
from graphstage.core.config import PipelineSettings
from graphstage.engine.extractors import ExtractorRegistry
from graphstage.engine.outputs import MemorySink, TaskOutputs
from graphstage.engine.spill import CounterMap

slog = structlog.get_logger(__name__)


@dataclass
class TaskContext:
    """Context passed to every stage operation.

    Example:
        def map(self, vertex: Vertex, ctx: TaskContext) -> None:
            if vertex.has_paths():
                ctx.emit(vertex.id, vertex.path_count)
                ctx.increment(Counters.VERTICES_COUNTED)
            ctx.write_graph(vertex)
    """

    stage: str
    task_id: str
    outputs: TaskOutputs
    settings: PipelineSettings = field(default_factory=PipelineSettings)
    extractors: ExtractorRegistry = field(default_factory=ExtractorRegistry)
    counters: CounterMap = field(default_factory=CounterMap)
    emitted: list[tuple[Any, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.log = slog.bind(stage=self.stage, task_id=self.task_id)

    @classmethod
    def in_memory(cls, stage: str, task_id: str = "map-0000", **kwargs: Any) -> TaskContext:
        """Context whose outputs go to fresh MemorySinks."""
        return cls(stage=stage, task_id=task_id, outputs=TaskOutputs(MemorySink(), MemorySink()), **kwargs)

    @property
    def spill_threshold(self) -> int:
        return self.settings.spill_threshold

    def increment(self, counter: StrEnum | str, delta: int = 1) -> None:
        """Add to a named task counter."""
        self.counters.increment(str(counter), delta)

    def counter(self, counter: StrEnum | str) -> int:
        return self.counters.get(str(counter))

    def emit(self, key: Any, value: Any) -> None:
        """Send an intermediate pair to the shuffle."""
        self.emitted.append((key, value))

    def write_graph(self, vertex: Vertex) -> None:
        self.outputs.write_graph(vertex)

    def write_side_effect(self, key: Any, value: Any) -> None:
        self.outputs.write_side_effect(key, value)
