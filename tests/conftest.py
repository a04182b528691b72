# tests/conftest.py
"""Shared test fixtures and helpers.

Builders:
- make_vertex: vertex with properties, path count, and adjacency
- make_edge: edge between two vertex ids
- records: encode vertices into wire records for the substrate

Fixtures:
- ctx: in-memory TaskContext for calling stage hooks directly
- runner: LocalJobRunner with the built-in stages

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import logging
import os
from collections.abc import Iterable, Iterator
from typing import Any

import pytest
import structlog
from hypothesis import Phase, Verbosity, settings

from graphstage.contracts import Edge, Vertex
from graphstage.core.codec import decode_vertex, encode_vertex
from graphstage.engine.outputs import MemorySink
from graphstage.engine.runner import LocalJobRunner
from graphstage.plugins.context import TaskContext

# =============================================================================
# Hypothesis Profiles
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Element Builders
# =============================================================================


def make_edge(
    id: int,
    out_vertex_id: int,
    in_vertex_id: int,
    label: str = "knows",
    path_count: int = 0,
    **properties: Any,
) -> Edge:
    return Edge(id, out_vertex_id, label, in_vertex_id, properties=properties, path_count=path_count)


def make_vertex(
    id: int,
    path_count: int = 0,
    *,
    out_edges: Iterable[Edge] = (),
    in_edges: Iterable[Edge] = (),
    **properties: Any,
) -> Vertex:
    vertex = Vertex(id, properties=properties, path_count=path_count)
    for edge in out_edges:
        vertex.out_edges.append(edge)
    for edge in in_edges:
        vertex.in_edges.append(edge)
    return vertex


def records(*vertices: Vertex) -> list[bytes]:
    """Encode vertices as one partition of wire records."""
    return [encode_vertex(vertex) for vertex in vertices]


def graph_vertices(graph: Iterable[Iterable[bytes]]) -> list[Vertex]:
    """Decode every GRAPH record of a job, in task order."""
    return [decode_vertex(record) for task in graph for record in task]


def graph_sink(ctx: TaskContext) -> MemorySink:
    """The GRAPH sink behind an in-memory context."""
    sink = ctx.outputs.graph_sink
    assert isinstance(sink, MemorySink)
    return sink


def side_effect_sink(ctx: TaskContext) -> MemorySink:
    """The SIDEEFFECT sink behind an in-memory context."""
    sink = ctx.outputs.side_effect_sink
    assert isinstance(sink, MemorySink)
    return sink


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def ctx() -> TaskContext:
    """In-memory context for calling stage hooks directly."""
    return TaskContext.in_memory("test-stage")


@pytest.fixture
def runner() -> LocalJobRunner:
    """Reference substrate with the built-in stages."""
    return LocalJobRunner()


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo configure_logging() so handlers never outlive a captured stream."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    root.handlers = handlers
    root.setLevel(level)
