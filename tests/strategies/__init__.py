# tests/strategies/__init__.py
"""Hypothesis strategies for property-based tests.

Re-exports commonly used strategies for convenience:
    from tests.strategies import vertex_partitions, vertex_records
"""

from tests.strategies.graph import (
    edge_labels,
    group_keys,
    path_counts,
    vertex_partitions,
    vertex_records,
)

__all__ = [
    "edge_labels",
    "group_keys",
    "path_counts",
    "vertex_partitions",
    "vertex_records",
]
