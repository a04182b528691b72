# src/graphstage/engine/runner.py
"""In-process reference substrate for stage jobs.

LocalJobRunner executes one stage over a partitioned stream of vertex
records with the same contract a distributed map/reduce engine offers:

1. The stage config is validated (extractors included) and serialized once
   per job
2. Each partition is a map task with a private stage instance decoded from
   the serialized config; every record is decoded fresh before map()
3. Combine runs once per map task over that task's pairs
4. The shuffle partitions pairs across reduce tasks, sorts each partition
   with the stage's key ordering and groups equal keys
5. Reduce tasks run on fresh stage instances

It does no scheduling and no retries. A failing record aborts the job with
a StageTaskError naming the stage, the task and the record.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

import structlog

from graphstage.contracts.errors import StageConfigError, StageTaskError
from graphstage.contracts.graph import Vertex, to_text
from graphstage.contracts.records import OutputRecord, StageJobResult
from graphstage.core.canonical import stable_hash
from graphstage.core.codec import copy_vertex, decode_vertex
from graphstage.core.config import PipelineSettings, StageSettings
from graphstage.core.logging import configure_logging
from graphstage.engine.outputs import JsonLinesSink, MemorySink, SideEffectSink, TaskOutputs, TeeSink
from graphstage.plugins.base import BaseStage
from graphstage.plugins.context import TaskContext
from graphstage.plugins.manager import StageManager

slog = structlog.get_logger(__name__)

Record = bytes | str | Vertex
Pair = tuple[Any, Any]


def _decode(record: Record) -> Vertex:
    # Tasks never mutate caller-owned vertices
    if isinstance(record, Vertex):
        return copy_vertex(record)
    return decode_vertex(record)


def _group_by_key(pairs: list[Pair]) -> dict[Any, list[Any]]:
    grouped: dict[Any, list[Any]] = {}
    for key, value in pairs:
        grouped.setdefault(key, []).append(value)
    return grouped


def reduce_partition(key: Any, reduce_tasks: int) -> int:
    """Reduce task index for a shuffle key."""
    if reduce_tasks == 1:
        return 0
    return int(stable_hash(to_text(key))[:16], 16) % reduce_tasks


def shuffle(pairs: list[Pair], sort_key: Callable[[Any], Any]) -> list[tuple[Any, list[Any]]]:
    """Sort pairs by key and group equal keys.

    The sort is stable, so values under one key keep their emission order.
    """
    ordered = sorted(pairs, key=lambda pair: sort_key(pair[0]))
    groups: list[tuple[Any, list[Any]]] = []
    for _, run in itertools.groupby(ordered, key=lambda pair: sort_key(pair[0])):
        members = list(run)
        groups.append((members[0][0], [value for _, value in members]))
    return groups


class LocalJobRunner:
    """Runs stage jobs in-process.

    Example:
        runner = LocalJobRunner()
        result = runner.run_stage("count", {"element_class": "vertex"}, [[encoded_a, encoded_b]])
        result.side_effect_values()  # [total]
    """

    def __init__(
        self,
        manager: StageManager | None = None,
        settings: PipelineSettings | None = None,
        *,
        side_effect_dir: Path | None = None,
    ) -> None:
        """Create a runner.

        Args:
            manager: Stage registry; defaults to one with the built-in stages
            settings: Pipeline-wide settings (spill threshold, reduce tasks)
            side_effect_dir: If set, each task also appends its side effects
                to ``<dir>/<stage>-<task_id>.jsonl``
        """
        if manager is None:
            manager = StageManager()
            manager.register_builtin_stages()
        self._manager = manager
        self._settings = settings or PipelineSettings()
        self._side_effect_dir = side_effect_dir

    @property
    def settings(self) -> PipelineSettings:
        return self._settings

    @property
    def manager(self) -> StageManager:
        return self._manager

    def prepare(self, stage_name: str, options: dict[str, Any]) -> tuple[type[BaseStage], bytes]:
        """Resolve a stage, validate its config and serialize it.

        Extractor specs are compiled here against the job's registry, so a
        malformed expression fails before any task starts.

        Raises:
            UnknownStageError: If the stage is not registered
            StageConfigError: If the options are invalid; the message names the stage
        """
        stage_cls = self._manager.get_stage_by_name(stage_name)
        try:
            config = stage_cls.config_class.from_dict(options)
            stage_cls(config).validate(self._manager.extractors)
        except StageConfigError as e:
            raise StageConfigError(f"Stage '{stage_name}': {e}") from e
        return stage_cls, config.to_wire()

    def run_stage(
        self,
        stage_name: str,
        options: dict[str, Any],
        partitions: Sequence[Iterable[Record]],
    ) -> StageJobResult:
        """Run one stage over partitioned input.

        Args:
            stage_name: Registered stage name
            options: Stage options (validated before any task starts)
            partitions: One iterable of records per map task

        Returns:
            GRAPH output per map task, SIDEEFFECT records, counter totals

        Raises:
            UnknownStageError: If the stage is not registered
            StageConfigError: If options are invalid
            StageTaskError: If any record, combine or reduce call fails
        """
        stage_cls, wire = self.prepare(stage_name, options)
        result = StageJobResult(stage=stage_name)
        counters: dict[str, int] = {}
        shuffled: list[Pair] = []

        for index, partition in enumerate(partitions):
            task_id = f"map-{index:04d}"
            graph, side_effects, pairs, task_counters = self._run_map_task(stage_cls, wire, task_id, partition)
            result.graph.append(graph)
            result.side_effects.extend(side_effects)
            shuffled.extend(pairs)
            for name, total in task_counters.items():
                counters[name] = counters.get(name, 0) + total

        if stage_cls.has_reduce:
            buckets: list[list[Pair]] = [[] for _ in range(self._settings.reduce_tasks)]
            for key, value in shuffled:
                buckets[reduce_partition(key, self._settings.reduce_tasks)].append((key, value))
            for index, bucket in enumerate(buckets):
                result.side_effects.extend(self._run_reduce_task(stage_cls, wire, f"reduce-{index:04d}", bucket))

        result.counters = counters
        slog.info(
            "stage_job_completed",
            stage=stage_name,
            map_tasks=len(result.graph),
            side_effects=len(result.side_effects),
            counters=counters,
        )
        return result

    def _side_effect_sink(self, stage_name: str, task_id: str, memory: MemorySink) -> SideEffectSink:
        if self._side_effect_dir is None:
            return memory
        return TeeSink(memory, JsonLinesSink(self._side_effect_dir / f"{stage_name}-{task_id}.jsonl"))

    def _context(self, stage: BaseStage, task_id: str, graph: MemorySink, side_effects: MemorySink) -> TaskContext:
        return TaskContext(
            stage=stage.name,
            task_id=task_id,
            outputs=TaskOutputs(graph, self._side_effect_sink(stage.name, task_id, side_effects)),
            settings=self._settings,
            extractors=self._manager.extractors,
        )

    def _run_map_task(
        self,
        stage_cls: type[BaseStage],
        wire: bytes,
        task_id: str,
        partition: Iterable[Record],
    ) -> tuple[list[bytes], list[OutputRecord], list[Pair], dict[str, int]]:
        stage = stage_cls.from_wire(wire)
        graph_sink = MemorySink()
        side_sink = MemorySink()
        ctx = self._context(stage, task_id, graph_sink, side_sink)
        records = 0

        with ctx.outputs:
            # Configuration errors surface here, before any record
            try:
                stage.setup(ctx)
            except StageConfigError as e:
                raise StageConfigError(f"Stage '{stage.name}': {e}") from e
            ctx.log.debug("stage_setup", config=stage.config.model_dump(mode="json"))

            for record in partition:
                element_id: int | None = None
                try:
                    vertex = _decode(record)
                    element_id = vertex.id
                    stage.map(vertex, ctx)
                except Exception as e:
                    raise StageTaskError(stage.name, task_id, element_id=element_id, cause=e) from e
                records += 1

            try:
                stage.cleanup(ctx)
            except Exception as e:
                raise StageTaskError(stage.name, task_id, cause=e) from e

        pairs = ctx.emitted
        if stage_cls.has_combine:
            pairs = self._combine(stage, task_id, pairs)

        ctx.log.info(
            "map_task_completed",
            records=records,
            graph_written=ctx.outputs.graph_written,
            side_effects_written=ctx.outputs.side_effects_written,
            shuffle_pairs=len(pairs),
        )
        graph = graph_sink.values()
        counters = {str(name): total for name, total in ctx.counters.items()}
        return graph, list(side_sink.records), pairs, counters

    def _combine(self, stage: BaseStage, task_id: str, pairs: list[Pair]) -> list[Pair]:
        combined: list[Pair] = []
        for key, values in _group_by_key(pairs).items():
            try:
                combined.extend((key, value) for value in stage.combine(key, values))
            except Exception as e:
                raise StageTaskError(stage.name, task_id, key=key, cause=e) from e
        return combined

    def _run_reduce_task(
        self,
        stage_cls: type[BaseStage],
        wire: bytes,
        task_id: str,
        pairs: list[Pair],
    ) -> list[OutputRecord]:
        stage = stage_cls.from_wire(wire)
        side_sink = MemorySink()
        ctx = self._context(stage, task_id, MemorySink(), side_sink)
        groups = shuffle(pairs, stage.shuffle_sort_key())

        with ctx.outputs:
            for key, values in groups:
                try:
                    stage.reduce(key, values, ctx)
                except Exception as e:
                    raise StageTaskError(stage.name, task_id, key=key, cause=e) from e

        ctx.log.info("reduce_task_completed", keys=len(groups), side_effects_written=ctx.outputs.side_effects_written)
        return list(side_sink.records)


class Pipeline:
    """A chain of stages connected through the GRAPH channel.

    Every stage config is validated up front, so a bad stage late in the
    chain fails before the first stage processes anything.

    Example:
        pipeline = Pipeline.from_settings(load_settings(Path("pipeline.yaml")))
        results = pipeline.run([partition_0, partition_1])
        results[-1].side_effect_values()
    """

    def __init__(self, stages: Sequence[StageSettings], runner: LocalJobRunner | None = None) -> None:
        self._runner = runner or LocalJobRunner()
        self._stages = list(stages)
        for position, stage in enumerate(self._stages, start=1):
            try:
                self._runner.prepare(stage.plugin, stage.options)
            except StageConfigError as e:
                raise StageConfigError(f"Pipeline stage {position} of {len(self._stages)}: {e}") from e

    @classmethod
    def from_settings(cls, settings: PipelineSettings, manager: StageManager | None = None) -> Pipeline:
        """Build a pipeline and apply its logging settings."""
        configure_logging(json_output=settings.logging.json_output, level=settings.logging.level)
        return cls(settings.stages, LocalJobRunner(manager, settings))

    @property
    def stages(self) -> list[StageSettings]:
        return list(self._stages)

    def run(self, partitions: Sequence[Iterable[Record]]) -> list[StageJobResult]:
        """Run every stage in order, one result per stage."""
        results: list[StageJobResult] = []
        current: Sequence[Iterable[Record]] = partitions
        for stage in self._stages:
            result = self._runner.run_stage(stage.plugin, stage.options, current)
            results.append(result)
            current = result.graph
        return results
