# src/graphstage/plugins/manager.py
"""Stage manager for registration and lookup.

Uses pluggy for hook-based registration of stages and extractors.
"""

from typing import Any

import pluggy

from graphstage.contracts.errors import UnknownStageError
from graphstage.engine.extractors import Extractor, ExtractorRegistry
from graphstage.plugins.base import BaseStage
from graphstage.plugins.hookspecs import (
    PROJECT_NAME,
    GraphstageExtractorSpec,
    GraphstageStageSpec,
    hookimpl,
)


class _BuiltinStages:
    """Hook implementation contributing the built-in stages."""

    @hookimpl
    def graphstage_get_stages(self) -> list[type[BaseStage]]:
        from graphstage.plugins.stages import BUILTIN_STAGES

        return list(BUILTIN_STAGES)


class StageManager:
    """Manages stage and extractor registration and lookup.

    Usage:
        manager = StageManager()
        manager.register_builtin_stages()
        manager.register(MyPlugin())

        stage_cls = manager.get_stage_by_name("group_count")
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(GraphstageStageSpec)
        self._pm.add_hookspecs(GraphstageExtractorSpec)

        # Caches - map name to class/function for duplicate detection
        self._stages: dict[str, type[BaseStage]] = {}
        self._extractors = ExtractorRegistry()

    def register_builtin_stages(self) -> None:
        """Register the stages shipped with graphstage.

        Call once at startup.
        """
        self.register(_BuiltinStages())

    def register(self, plugin: Any) -> None:
        """Register a plugin object implementing one or more hooks.

        Raises:
            ValueError: On duplicate stage or extractor names
            TypeError: If a contributed stage is not a BaseStage subclass
        """
        self._pm.register(plugin)
        try:
            self._refresh_caches()
        except (ValueError, TypeError):
            self._pm.unregister(plugin)
            raise

    def _refresh_caches(self) -> None:
        new_stages: dict[str, type[BaseStage]] = {}
        for stages in self._pm.hook.graphstage_get_stages():
            for cls in stages:
                if not (isinstance(cls, type) and issubclass(cls, BaseStage)):
                    raise TypeError(f"Stage plugins must subclass BaseStage, got {cls!r}")
                name = cls.name
                if name in new_stages:
                    raise ValueError(f"Duplicate stage plugin name: '{name}'. Already registered by {new_stages[name].__name__}")
                new_stages[name] = cls

        new_extractors = ExtractorRegistry()
        for extractors in self._pm.hook.graphstage_get_extractors():
            for name, func in extractors.items():
                new_extractors.register(name, func)

        self._stages = new_stages
        self._extractors = new_extractors

    def get_stages(self) -> list[type[BaseStage]]:
        return list(self._stages.values())

    def get_stage_by_name(self, name: str) -> type[BaseStage]:
        """Look up a stage class.

        Raises:
            UnknownStageError: If no stage has this name
        """
        try:
            return self._stages[name]
        except KeyError:
            raise UnknownStageError(name, list(self._stages)) from None

    def get_extractor(self, name: str) -> Extractor:
        return self._extractors.get(name)

    @property
    def extractors(self) -> ExtractorRegistry:
        return self._extractors
