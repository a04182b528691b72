# tests/plugins/stages/test_interval_filter.py
"""Tests for the interval filter stage."""

import pytest

from graphstage.engine.runner import LocalJobRunner
from graphstage.plugins.context import TaskContext
from tests.conftest import graph_sink, graph_vertices, make_edge, make_vertex, records


class TestIntervalFilterConfig:
    def test_value_type_inferred(self) -> None:
        from graphstage.contracts import IntervalValueType
        from graphstage.plugins.stages.interval_filter import IntervalFilterConfig

        assert IntervalFilterConfig.from_dict({"key": "age", "start_value": 18, "end_value": 65}).value_type == IntervalValueType.NUMERIC
        assert IntervalFilterConfig.from_dict({"key": "name", "start_value": "a", "end_value": "m"}).value_type == IntervalValueType.STRING
        assert IntervalFilterConfig.from_dict({"key": "ok", "start_value": False, "end_value": True}).value_type == IntervalValueType.BOOLEAN

    @pytest.mark.parametrize(
        "options",
        [
            {"key": "age", "start_value": 18, "end_value": "65"},
            {"key": "age", "start_value": "a", "end_value": 3},
            {"key": "age", "start_value": 1, "end_value": 2, "value_type": "string"},
            {"key": "age", "start_value": True, "end_value": 2},
            {"key": "age", "start_value": 18},
        ],
    )
    def test_mismatched_bounds_rejected(self, options: dict[str, object]) -> None:
        from graphstage.plugins.config_base import StageConfigError
        from graphstage.plugins.stages.interval_filter import IntervalFilterConfig

        with pytest.raises(StageConfigError):
            IntervalFilterConfig.from_dict(options)

    def test_int_and_float_bounds_mix(self) -> None:
        from graphstage.plugins.stages.interval_filter import IntervalFilterConfig

        config = IntervalFilterConfig.from_dict({"key": "w", "start_value": 0, "end_value": 0.5})
        assert config.end_value == 0.5


class TestVertexFiltering:
    def test_keeps_half_open_interval(self, runner: LocalJobRunner) -> None:
        vertices = [make_vertex(i, path_count=1, age=age) for i, age in enumerate([17, 18, 64, 65])]

        result = runner.run_stage(
            "interval_filter",
            {"key": "age", "start_value": 18, "end_value": 65},
            [records(*vertices)],
        )

        kept = {vertex.properties["age"] for vertex in graph_vertices(result.graph) if vertex.has_paths()}
        assert kept == {18, 64}
        assert result.counter("VERTICES_FILTERED") == 2
        # Filtered vertices still travel on GRAPH
        assert len(graph_vertices(result.graph)) == 4
        assert result.side_effects == []

    def test_missing_property_fails_test(self, ctx: TaskContext) -> None:
        from graphstage.plugins.stages import IntervalFilter

        stage = IntervalFilter({"key": "age", "start_value": 0, "end_value": 100})
        with ctx.outputs:
            stage.map(make_vertex(1, path_count=3), ctx)

        [vertex] = graph_vertices([graph_sink(ctx).values()])
        assert vertex.path_count == 0
        assert ctx.counter("VERTICES_FILTERED") == 1

    def test_vertex_without_paths_untouched(self, ctx: TaskContext) -> None:
        from graphstage.plugins.stages import IntervalFilter

        stage = IntervalFilter({"key": "age", "start_value": 0, "end_value": 10})
        with ctx.outputs:
            stage.map(make_vertex(1, age=50), ctx)

        assert ctx.counter("VERTICES_FILTERED") == 0
        assert graph_sink(ctx).flush_count == 1

    def test_type_mismatch_raises(self, ctx: TaskContext) -> None:
        from graphstage.contracts import ValueTypeMismatchError
        from graphstage.plugins.stages import IntervalFilter

        stage = IntervalFilter({"key": "age", "start_value": 18, "end_value": 65})
        with pytest.raises(ValueTypeMismatchError, match="age"):
            stage.map(make_vertex(1, path_count=1, age="thirty"), ctx)

    def test_string_interval(self, ctx: TaskContext) -> None:
        from graphstage.plugins.stages import IntervalFilter

        stage = IntervalFilter({"key": "name", "start_value": "a", "end_value": "m"})
        josh = make_vertex(1, path_count=1, name="josh")
        peter = make_vertex(2, path_count=1, name="peter")
        stage.map(josh, ctx)
        stage.map(peter, ctx)

        assert josh.path_count == 1
        assert peter.path_count == 0

    def test_reserved_count_key(self, ctx: TaskContext) -> None:
        from graphstage.plugins.stages import IntervalFilter

        stage = IntervalFilter({"key": "_count", "start_value": 2, "end_value": 10})
        single = make_vertex(1, path_count=1)
        double = make_vertex(2, path_count=2)
        stage.map(single, ctx)
        stage.map(double, ctx)

        assert single.path_count == 0
        assert double.path_count == 2


class TestEdgeFiltering:
    def test_both_directions_filtered(self, ctx: TaskContext) -> None:
        from graphstage.plugins.stages import IntervalFilter

        light_out = make_edge(10, 1, 2, path_count=2, weight=0.2)
        heavy_out = make_edge(11, 1, 3, path_count=1, weight=0.9)
        heavy_in = make_edge(12, 4, 1, path_count=5, weight=1.0)
        idle_in = make_edge(13, 5, 1, weight=0.9)
        vertex = make_vertex(1, path_count=4, out_edges=[light_out, heavy_out], in_edges=[heavy_in, idle_in])

        stage = IntervalFilter({"element_class": "edge", "key": "weight", "start_value": 0.0, "end_value": 0.5})
        stage.map(vertex, ctx)

        assert light_out.path_count == 2
        assert heavy_out.path_count == 0
        assert heavy_in.path_count == 0
        assert idle_in.path_count == 0
        # The host vertex is not tested in edge mode
        assert vertex.path_count == 4
        assert ctx.counter("EDGES_FILTERED") == 2

    def test_label_interval(self, ctx: TaskContext) -> None:
        from graphstage.plugins.stages import IntervalFilter

        created = make_edge(10, 1, 2, label="created", path_count=1)
        knows = make_edge(11, 1, 3, label="knows", path_count=1)
        vertex = make_vertex(1, out_edges=[created, knows])

        stage = IntervalFilter({"element_class": "edge", "key": "_label", "start_value": "c", "end_value": "d"})
        stage.map(vertex, ctx)

        assert created.path_count == 1
        assert knows.path_count == 0
