"""Stage plugin system via pluggy.

- Base class: BaseStage with setup/map/cleanup/combine/reduce hooks
- Config: StageConfig base classes and ExtractorSpec
- Context: TaskContext handed to every stage call
- Manager: stage and extractor registration
- Hookspecs: pluggy hook definitions
"""

from graphstage.plugins.base import BaseStage
from graphstage.plugins.config_base import (
    ElementStageConfig,
    ExtractorSpec,
    StageConfig,
    StageConfigError,
)
from graphstage.plugins.context import TaskContext
from graphstage.plugins.hookspecs import hookimpl, hookspec
from graphstage.plugins.manager import StageManager

__all__ = [
    # Base
    "BaseStage",
    # Config
    "ElementStageConfig",
    "ExtractorSpec",
    "StageConfig",
    "StageConfigError",
    # Context
    "TaskContext",
    # Hooks
    "hookimpl",
    "hookspec",
    # Manager
    "StageManager",
]
