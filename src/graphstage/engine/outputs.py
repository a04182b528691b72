"""Output multiplexing for stage tasks.

Every stage task writes to two logical channels:

- GRAPH: the mutated element stream, fed to the next stage
- SIDEEFFECT: terminal results of this stage (counts, tallies, ordered pairs)

``TaskOutputs`` owns one sink per channel for the lifetime of a task. Use
it as a context manager; both sinks are flushed when the task finishes,
whether it completes or fails.
"""

from __future__ import annotations

from pathlib import Path
from types import TracebackType
from typing import IO, Any, Protocol, Self, runtime_checkable

from graphstage.contracts.enums import Channel
from graphstage.contracts.graph import Vertex
from graphstage.contracts.records import OutputRecord
from graphstage.core.canonical import canonical_json
from graphstage.core.codec import encode_vertex


@runtime_checkable
class GraphSink(Protocol):
    """Receives encoded vertex records from the GRAPH channel."""

    def write(self, record: OutputRecord) -> None: ...

    def flush(self) -> None: ...


@runtime_checkable
class SideEffectSink(Protocol):
    """Receives terminal (key, value) records from the SIDEEFFECT channel."""

    def write(self, record: OutputRecord) -> None: ...

    def flush(self) -> None: ...


class MemorySink:
    """Buffers records in memory.

    Records become visible in ``records`` only after flush(), mirroring how
    a file-backed sink commits its output at task completion.
    """

    def __init__(self) -> None:
        self._pending: list[OutputRecord] = []
        self.records: list[OutputRecord] = []
        self.flush_count = 0

    def write(self, record: OutputRecord) -> None:
        self._pending.append(record)

    def flush(self) -> None:
        self.records.extend(self._pending)
        self._pending.clear()
        self.flush_count += 1

    def values(self) -> list[Any]:
        return [record.value for record in self.records]


def _json_safe(value: Any) -> Any:
    # GRAPH records hold canonical JSON bytes
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class JsonLinesSink:
    """Appends records as canonical JSON lines to a file.

    Each line is ``{"channel": ..., "key": ..., "value": ...}``. The file is
    opened lazily on first write and closed on flush.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._handle: IO[str] | None = None
        self.written = 0

    @property
    def path(self) -> Path:
        return self._path

    def write(self, record: OutputRecord) -> None:
        if self._handle is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self._path.open("a", encoding="utf-8")
        line = canonical_json(
            {
                "channel": record.channel.value,
                "key": _json_safe(record.key),
                "value": _json_safe(record.value),
            }
        )
        self._handle.write(line + "\n")
        self.written += 1

    def flush(self) -> None:
        if self._handle is not None:
            self._handle.flush()
            self._handle.close()
            self._handle = None


class TaskOutputs:
    """Two-channel output multiplexer scoped to one task.

    Example:
        with TaskOutputs(graph_sink, side_effect_sink) as outputs:
            outputs.write_graph(vertex)
            outputs.write_side_effect("v[1]", 3)
        # both sinks flushed here
    """

    def __init__(self, graph: GraphSink, side_effect: SideEffectSink) -> None:
        self._graph = graph
        self._side_effect = side_effect
        self._closed = False
        self.graph_written = 0
        self.side_effects_written = 0

    @property
    def graph_sink(self) -> GraphSink:
        return self._graph

    @property
    def side_effect_sink(self) -> SideEffectSink:
        return self._side_effect

    def write_graph(self, vertex: Vertex) -> None:
        """Encode a vertex record onto the GRAPH channel.

        Encoding happens immediately, so later mutation of the vertex cannot
        leak into the emitted record.
        """
        self._check_open()
        self._graph.write(OutputRecord(Channel.GRAPH, None, encode_vertex(vertex)))
        self.graph_written += 1

    def write_side_effect(self, key: Any, value: Any) -> None:
        """Emit a terminal (key, value) pair on the SIDEEFFECT channel."""
        self._check_open()
        self._side_effect.write(OutputRecord(Channel.SIDEEFFECT, key, value))
        self.side_effects_written += 1

    def close(self) -> None:
        """Flush both sinks. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._graph.flush()
        finally:
            self._side_effect.flush()

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("TaskOutputs already closed; tasks cannot write after completion")

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class TeeSink:
    """Writes every record to several sinks; flushes all of them."""

    def __init__(self, *sinks: GraphSink | SideEffectSink) -> None:
        self._sinks = sinks

    def write(self, record: OutputRecord) -> None:
        for sink in self._sinks:
            sink.write(record)

    def flush(self) -> None:
        for sink in self._sinks:
            sink.flush()
