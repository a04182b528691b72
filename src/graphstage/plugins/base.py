# src/graphstage/plugins/base.py
"""Base class for stage implementations.

Every stage is a map task with optional combine and reduce phases. Stages
MUST subclass BaseStage; the StageManager registers subclasses by ``name``.

Lifecycle of one map task (one instance per task, never shared):
    setup(ctx) -> map(vertex, ctx) for each record -> cleanup(ctx)

- validate: called once per job on a throwaway instance, before any task
  starts. Compiles extractors against the job registry so configuration
  problems surface as StageConfigError up front.
- setup: compile the task's own extractors, build typed value handlers,
  size buffers.
- map: read and mutate the decoded vertex, then forward it on GRAPH. May
  emit intermediate pairs (ctx.emit) and side effects.
- cleanup: flush task-local aggregates. Called only after every record was
  mapped successfully.

If the stage sets ``has_combine``, the substrate calls combine() once per
map task with that task's pairs grouped by key. If it sets ``has_reduce``,
the substrate sorts all pairs with ``shuffle_sort_key()``, groups them by
key and calls reduce() per group on a fresh instance.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, ClassVar

from graphstage.contracts.errors import StageConfigError
from graphstage.contracts.graph import Vertex
from graphstage.engine.extractors import ExtractorRegistry
from graphstage.engine.ordering import natural_sort_key
from graphstage.plugins.config_base import StageConfig
from graphstage.plugins.context import TaskContext


class BaseStage(ABC):
    """Base class for map/combine/reduce stages.

    Subclass and implement map(). Stages with a shuffle override
    combine() and/or reduce() and set the matching flags.

    Example:
        class VertexCount(BaseStage):
            name = "vertex_count"
            config_class = StageConfig
            has_reduce = True

            def map(self, vertex: Vertex, ctx: TaskContext) -> None:
                ctx.emit(None, vertex.path_count)
                ctx.write_graph(vertex)

            def reduce(self, key: Any, values: list[Any], ctx: TaskContext) -> None:
                ctx.write_side_effect(None, sum(values))
    """

    name: ClassVar[str]
    config_class: ClassVar[type[StageConfig]] = StageConfig
    has_combine: ClassVar[bool] = False
    has_reduce: ClassVar[bool] = False

    def __init__(self, config: dict[str, Any] | StageConfig) -> None:
        """Initialize with configuration.

        Args:
            config: Options dict, or an already-built config of config_class

        Raises:
            StageConfigError: If the options are invalid
        """
        if isinstance(config, StageConfig):
            if not isinstance(config, self.config_class):
                raise StageConfigError(
                    f"{type(self).__name__} requires {self.config_class.__name__}, got {type(config).__name__}"
                )
            self.config = config
        else:
            self.config = self.config_class.from_dict(config)

    @classmethod
    def from_wire(cls, payload: bytes) -> BaseStage:
        """Fresh instance from a config serialized with to_wire()."""
        return cls(cls.config_class.from_wire(payload))

    def validate(self, extractors: ExtractorRegistry) -> None:  # noqa: B027 - optional hook
        """Check options pydantic cannot, such as extractor specs.

        Called once per job before any task starts. Default: nothing.

        Raises:
            StageConfigError: If the configuration cannot run
        """

    def setup(self, ctx: TaskContext) -> None:  # noqa: B027 - optional hook
        """Prepare task-local state. Default: nothing."""

    @abstractmethod
    def map(self, vertex: Vertex, ctx: TaskContext) -> None:
        """Process one decoded vertex record."""
        ...

    def cleanup(self, ctx: TaskContext) -> None:  # noqa: B027 - optional hook
        """Flush task-local state after the last record. Default: nothing."""

    def combine(self, key: Any, values: list[Any]) -> list[Any]:
        """Pre-aggregate one map task's values for a key.

        Only called when has_combine is set.
        """
        raise NotImplementedError(f"{type(self).__name__} has no combine phase")

    def reduce(self, key: Any, values: list[Any], ctx: TaskContext) -> None:
        """Consume every value shuffled to a key.

        Only called when has_reduce is set.
        """
        raise NotImplementedError(f"{type(self).__name__} has no reduce phase")

    def shuffle_sort_key(self) -> Callable[[Any], Any]:
        """Key function ordering shuffle keys before reduce."""
        return natural_sort_key

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.config!r})"
