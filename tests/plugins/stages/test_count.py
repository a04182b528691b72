# tests/plugins/stages/test_count.py
"""Tests for the count stage."""

from graphstage.engine.runner import LocalJobRunner
from graphstage.plugins.context import TaskContext
from tests.conftest import make_edge, make_vertex, records


class TestCount:
    def test_total_across_tasks(self, runner: LocalJobRunner) -> None:
        partitions = [
            records(make_vertex(1, path_count=2), make_vertex(2), make_vertex(3, path_count=3)),
            records(make_vertex(4, path_count=1)),
        ]

        result = runner.run_stage("count", {}, partitions)

        assert result.side_effect_pairs() == [(None, 6)]
        assert result.counter("VERTICES_COUNTED") == 3

    def test_out_edges(self, runner: LocalJobRunner) -> None:
        vertex = make_vertex(
            1,
            path_count=10,
            out_edges=[make_edge(10, 1, 2, path_count=2), make_edge(11, 1, 3, path_count=5)],
            in_edges=[make_edge(12, 4, 1, path_count=100)],
        )

        result = runner.run_stage("count", {"element_class": "edge"}, [records(vertex)])

        assert result.side_effect_values() == [7]
        assert result.counter("EDGES_COUNTED") == 2

    def test_empty_partition_counts_zero(self, runner: LocalJobRunner) -> None:
        result = runner.run_stage("count", {}, [[]])

        assert result.side_effect_values() == [0]

    def test_one_partial_total_per_task(self, ctx: TaskContext) -> None:
        from graphstage.plugins.stages import Count

        stage = Count({})
        stage.setup(ctx)
        stage.map(make_vertex(1, path_count=2), ctx)
        stage.map(make_vertex(2, path_count=5), ctx)
        assert ctx.emitted == []

        stage.cleanup(ctx)
        assert ctx.emitted == [(None, 7)]

    def test_combine_and_reduce_sum(self, ctx: TaskContext) -> None:
        from graphstage.plugins.stages import Count

        stage = Count({})
        assert stage.combine(None, [1, 2, 3]) == [6]
        with ctx.outputs:
            stage.reduce(None, [6, 4], ctx)
        assert ctx.outputs.side_effects_written == 1

    def test_totals_wrap_like_map_side_sums(self, runner: LocalJobRunner) -> None:
        from graphstage.contracts.graph import MAX_PATH_COUNT

        # Wraps inside one map task and again across tasks at reduce
        partitions = [
            records(make_vertex(1, path_count=MAX_PATH_COUNT), make_vertex(2, path_count=1)),
            records(make_vertex(3, path_count=MAX_PATH_COUNT)),
        ]

        result = runner.run_stage("count", {}, partitions)

        assert result.side_effect_values() == [-1]
