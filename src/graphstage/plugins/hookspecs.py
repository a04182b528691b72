# src/graphstage/plugins/hookspecs.py
"""pluggy hook specifications for graphstage plugins.

Plugins implement these hooks to contribute stages and named extractors.

Usage (implementing a plugin):
    from graphstage.plugins.hookspecs import hookimpl

    class MyPlugin:
        @hookimpl
        def graphstage_get_stages(self):
            return [MyStage]

        @hookimpl
        def graphstage_get_extractors(self):
            return {"edge_weight": lambda e: e.properties.get("weight", 1)}
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import pluggy

if TYPE_CHECKING:
    from graphstage.plugins.base import BaseStage

PROJECT_NAME = "graphstage"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class GraphstageStageSpec:
    """Hook specifications for stage plugins."""

    @hookspec
    def graphstage_get_stages(self) -> list[type["BaseStage"]]:  # type: ignore[empty-body]
        """Return stage classes (not instances)."""


class GraphstageExtractorSpec:
    """Hook specifications for extractor functions."""

    @hookspec
    def graphstage_get_extractors(self) -> dict[str, Callable[[Any], Any]]:  # type: ignore[empty-body]
        """Return a mapping of extractor name to callable(element) -> value."""
