# tests/plugins/stages/test_order.py
"""Tests for the order stage."""

import pytest

from graphstage.engine.runner import LocalJobRunner
from graphstage.plugins.context import TaskContext
from tests.conftest import make_edge, make_vertex, records


def _people() -> list[bytes]:
    return records(
        make_vertex(1, path_count=1, name="marko", age=29),
        make_vertex(2, path_count=2, name="vadas", age=27),
        make_vertex(3, path_count=1, name="josh", age=32),
        make_vertex(4, name="peter", age=35),
    )


class TestNumericOrdering:
    def test_value_scaled_by_paths(self, runner: LocalJobRunner) -> None:
        result = runner.run_stage(
            "order",
            {"key": "age", "value_type": "int", "element_key": "name"},
            [_people()],
        )

        # vadas: 27 * 2 paths; peter has no paths
        assert result.side_effect_pairs() == [("marko", 29), ("josh", 32), ("vadas", 54)]
        assert result.counter("VERTICES_PROCESSED") == 3

    def test_descending(self, runner: LocalJobRunner) -> None:
        result = runner.run_stage(
            "order",
            {"key": "age", "value_type": "long", "element_key": "name", "order": "decr"},
            [_people()],
        )

        assert [label for label, _ in result.side_effect_pairs()] == ["vadas", "josh", "marko"]

    def test_labels_default_to_id(self, runner: LocalJobRunner) -> None:
        result = runner.run_stage("order", {"key": "age", "value_type": "int"}, [_people()])

        assert [label for label, _ in result.side_effect_pairs()] == ["1", "3", "2"]

    def test_double_values(self, runner: LocalJobRunner) -> None:
        vertices = records(
            make_vertex(1, path_count=1, score=0.5),
            make_vertex(2, path_count=3, score=0.1),
            make_vertex(3, path_count=1, score=-2.5),
        )

        result = runner.run_stage("order", {"key": "score", "value_type": "double"}, [vertices])

        assert result.side_effect_pairs() == [("3", -2.5), ("2", pytest.approx(0.3)), ("1", 0.5)]

    def test_count_key_emitted_once(self, runner: LocalJobRunner) -> None:
        vertices = records(make_vertex(1, path_count=5), make_vertex(2, path_count=2))

        result = runner.run_stage("order", {"key": "_count", "value_type": "long"}, [vertices])

        assert result.side_effect_pairs() == [("2", 2), ("1", 5)]

    def test_sorted_across_map_tasks(self, runner: LocalJobRunner) -> None:
        partitions = [
            records(make_vertex(1, path_count=1, age=40)),
            records(make_vertex(2, path_count=1, age=10), make_vertex(3, path_count=1, age=30)),
        ]

        result = runner.run_stage("order", {"key": "age", "value_type": "long"}, partitions)

        assert result.side_effect_values() == [10, 30, 40]


class TestTextOrdering:
    def test_value_repeated_per_path(self, runner: LocalJobRunner) -> None:
        result = runner.run_stage(
            "order",
            {"key": "name", "value_type": "text"},
            [_people()],
        )

        assert result.side_effect_pairs() == [("3", "josh"), ("1", "marko"), ("2", "vadas"), ("2", "vadas")]

    def test_missing_value_is_null(self, runner: LocalJobRunner) -> None:
        vertices = records(make_vertex(1, path_count=1), make_vertex(2, path_count=1, name="zed"))

        result = runner.run_stage("order", {"key": "name", "value_type": "text"}, [vertices])

        assert result.side_effect_pairs() == [("1", "null"), ("2", "zed")]

    def test_utf8_byte_order(self, runner: LocalJobRunner) -> None:
        vertices = records(
            make_vertex(1, path_count=1, name="éclair"),
            make_vertex(2, path_count=1, name="zebra"),
            make_vertex(3, path_count=1, name="Apple"),
        )

        result = runner.run_stage("order", {"key": "name", "value_type": "text"}, [vertices])

        assert result.side_effect_values() == ["Apple", "zebra", "éclair"]


class TestEdgeOrdering:
    def test_out_edges(self, runner: LocalJobRunner) -> None:
        vertex = make_vertex(
            1,
            out_edges=[
                make_edge(10, 1, 2, path_count=1, weight=0.4),
                make_edge(11, 1, 3, path_count=1, weight=1.0),
                make_edge(12, 1, 4, weight=0.1),
            ],
            in_edges=[make_edge(13, 5, 1, path_count=1, weight=0.2)],
        )

        result = runner.run_stage(
            "order",
            {"element_class": "edge", "key": "weight", "value_type": "float", "order": "decr"},
            [records(vertex)],
        )

        assert [label for label, _ in result.side_effect_pairs()] == ["11", "10"]
        assert result.counter("OUT_EDGES_PROCESSED") == 2


class TestOrderErrors:
    def test_value_type_required(self) -> None:
        from graphstage.plugins.config_base import StageConfigError
        from graphstage.plugins.stages import Order

        with pytest.raises(StageConfigError):
            Order({"key": "age"})

    def test_unknown_order_rejected(self) -> None:
        from graphstage.plugins.config_base import StageConfigError
        from graphstage.plugins.stages import Order

        with pytest.raises(StageConfigError):
            Order({"key": "age", "value_type": "int", "order": "sideways"})

    def test_string_in_numeric_order(self, ctx: TaskContext) -> None:
        from graphstage.contracts import ValueTypeMismatchError
        from graphstage.plugins.stages import Order

        stage = Order({"key": "age", "value_type": "long"})
        with pytest.raises(ValueTypeMismatchError, match="age"):
            stage.map(make_vertex(1, path_count=1, age="old"), ctx)

    def test_missing_value_in_numeric_order(self, ctx: TaskContext) -> None:
        from graphstage.contracts import ValueTypeMismatchError
        from graphstage.plugins.stages import Order

        stage = Order({"key": "age", "value_type": "double"})
        with pytest.raises(ValueTypeMismatchError):
            stage.map(make_vertex(1, path_count=1), ctx)
