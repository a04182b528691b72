# tests/engine/test_outputs.py
"""Tests for the two-channel output multiplexer and sinks."""

import json
from pathlib import Path

import pytest

from tests.conftest import make_vertex


class TestTaskOutputs:
    def test_channels_tagged(self) -> None:
        from graphstage.contracts import Channel
        from graphstage.engine.outputs import MemorySink, TaskOutputs

        graph, side = MemorySink(), MemorySink()
        with TaskOutputs(graph, side) as outputs:
            outputs.write_graph(make_vertex(1, path_count=1))
            outputs.write_side_effect("v[1]", 3)

        [graph_record] = graph.records
        [side_record] = side.records
        assert graph_record.channel == Channel.GRAPH
        assert isinstance(graph_record.value, bytes)
        assert side_record.channel == Channel.SIDEEFFECT
        assert (side_record.key, side_record.value) == ("v[1]", 3)

    def test_flush_on_exit(self) -> None:
        from graphstage.engine.outputs import MemorySink, TaskOutputs

        graph, side = MemorySink(), MemorySink()
        with TaskOutputs(graph, side) as outputs:
            outputs.write_side_effect(None, 1)
            assert side.records == []

        assert side.values() == [1]
        assert graph.flush_count == 1
        assert side.flush_count == 1

    def test_flush_on_failure(self) -> None:
        from graphstage.engine.outputs import MemorySink, TaskOutputs

        graph, side = MemorySink(), MemorySink()
        with pytest.raises(RuntimeError, match="boom"), TaskOutputs(graph, side) as outputs:
            outputs.write_side_effect(None, 1)
            raise RuntimeError("boom")

        assert side.values() == [1]

    def test_graph_write_snapshots_vertex(self) -> None:
        from graphstage.core.codec import decode_vertex
        from graphstage.engine.outputs import MemorySink, TaskOutputs

        graph = MemorySink()
        vertex = make_vertex(1, path_count=2)
        with TaskOutputs(graph, MemorySink()) as outputs:
            outputs.write_graph(vertex)
            vertex.clear_paths()

        assert decode_vertex(graph.records[0].value).path_count == 2

    def test_write_after_close_rejected(self) -> None:
        from graphstage.engine.outputs import MemorySink, TaskOutputs

        outputs = TaskOutputs(MemorySink(), MemorySink())
        outputs.close()
        outputs.close()
        assert outputs.closed
        with pytest.raises(RuntimeError, match="already closed"):
            outputs.write_side_effect(None, 1)

    def test_counts_writes(self) -> None:
        from graphstage.engine.outputs import MemorySink, TaskOutputs

        with TaskOutputs(MemorySink(), MemorySink()) as outputs:
            outputs.write_graph(make_vertex(1))
            outputs.write_side_effect(None, "a")
            outputs.write_side_effect(None, "b")

        assert outputs.graph_written == 1
        assert outputs.side_effects_written == 2


class TestJsonLinesSink:
    def test_writes_canonical_lines(self, tmp_path: Path) -> None:
        from graphstage.contracts import Channel, OutputRecord
        from graphstage.engine.outputs import JsonLinesSink

        path = tmp_path / "out" / "order.jsonl"
        sink = JsonLinesSink(path)
        sink.write(OutputRecord(Channel.SIDEEFFECT, "marko", 29))
        sink.write(OutputRecord(Channel.SIDEEFFECT, None, "null"))
        sink.flush()

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0] == '{"channel":"sideeffect","key":"marko","value":29}'
        assert json.loads(lines[1]) == {"channel": "sideeffect", "key": None, "value": "null"}
        assert sink.written == 2

    def test_graph_records_embedded_as_text(self, tmp_path: Path) -> None:
        from graphstage.contracts import Channel, OutputRecord
        from graphstage.engine.outputs import JsonLinesSink

        sink = JsonLinesSink(tmp_path / "graph.jsonl")
        sink.write(OutputRecord(Channel.GRAPH, None, b'{"id":"1"}'))
        sink.flush()

        line = json.loads((tmp_path / "graph.jsonl").read_text(encoding="utf-8"))
        assert line["value"] == '{"id":"1"}'

    def test_flush_without_writes_creates_nothing(self, tmp_path: Path) -> None:
        from graphstage.engine.outputs import JsonLinesSink

        JsonLinesSink(tmp_path / "empty.jsonl").flush()
        assert not (tmp_path / "empty.jsonl").exists()


class TestTeeSink:
    def test_fans_out(self) -> None:
        from graphstage.contracts import Channel, OutputRecord
        from graphstage.engine.outputs import MemorySink, SideEffectSink, TeeSink

        first, second = MemorySink(), MemorySink()
        tee = TeeSink(first, second)
        assert isinstance(tee, SideEffectSink)

        tee.write(OutputRecord(Channel.SIDEEFFECT, None, 1))
        tee.flush()

        assert first.values() == second.values() == [1]
