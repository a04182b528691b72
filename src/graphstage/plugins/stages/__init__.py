"""Built-in stages.

Registered by ``StageManager.register_builtin_stages()``.
"""

from graphstage.plugins.stages.count import Count
from graphstage.plugins.stages.edges_vertices import EdgesVertices
from graphstage.plugins.stages.group_count import GroupCount
from graphstage.plugins.stages.interval_filter import IntervalFilter
from graphstage.plugins.stages.order import Order
from graphstage.plugins.stages.property import Property
from graphstage.plugins.stages.transform import Transform

BUILTIN_STAGES = (
    IntervalFilter,
    GroupCount,
    Order,
    Property,
    Transform,
    EdgesVertices,
    Count,
)

__all__ = [
    "BUILTIN_STAGES",
    "Count",
    "EdgesVertices",
    "GroupCount",
    "IntervalFilter",
    "Order",
    "Property",
    "Transform",
]
