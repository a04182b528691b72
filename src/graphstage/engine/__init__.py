"""Engine building blocks: ordering, spill guard, outputs, extractors.

The reference substrate lives in ``graphstage.engine.runner``; it depends on
the plugin layer and is not re-exported here.
"""

from graphstage.engine.expression_parser import (
    ExpressionEvaluationError,
    ExpressionParser,
    ExpressionSecurityError,
    ExpressionSyntaxError,
)
from graphstage.engine.extractors import ElementEvaluator, Extractor, ExtractorRegistry
from graphstage.engine.ordering import (
    Comparator,
    TypedValue,
    TypedValueHandler,
    create_comparator,
)
from graphstage.engine.outputs import (
    GraphSink,
    JsonLinesSink,
    MemorySink,
    SideEffectSink,
    TaskOutputs,
    TeeSink,
)
from graphstage.engine.spill import CounterMap, SpillingCounterMap

__all__ = [
    "Comparator",
    "CounterMap",
    "ElementEvaluator",
    "ExpressionEvaluationError",
    "ExpressionParser",
    "ExpressionSecurityError",
    "ExpressionSyntaxError",
    "Extractor",
    "ExtractorRegistry",
    "GraphSink",
    "JsonLinesSink",
    "MemorySink",
    "SideEffectSink",
    "SpillingCounterMap",
    "TaskOutputs",
    "TeeSink",
    "TypedValue",
    "TypedValueHandler",
    "create_comparator",
]
