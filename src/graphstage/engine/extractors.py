"""Element extractors: named functions and compiled expressions.

An extractor maps one vertex or edge to a value (a group key, a weight, a
transformed result). Stages never hold raw user code. Their configuration
carries an ``ExtractorSpec`` naming either a restricted expression or a
function registered through the ``graphstage_get_extractors`` hook, and each
stage compiles its own ``ElementEvaluator`` at setup.

Compile problems are configuration errors. Evaluation problems propagate to
the task that asked for the value.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

from graphstage.contracts.errors import StageConfigError
from graphstage.contracts.graph import GraphElement
from graphstage.engine.expression_parser import (
    ExpressionParser,
    ExpressionSecurityError,
    ExpressionSyntaxError,
)

if TYPE_CHECKING:
    from graphstage.plugins.config_base import ExtractorSpec

Extractor = Callable[[GraphElement], Any]


class ExtractorRegistry:
    """Name to extractor function mapping.

    Populated by the StageManager from ``graphstage_get_extractors`` hooks.
    """

    def __init__(self, extractors: dict[str, Extractor] | None = None) -> None:
        self._extractors: dict[str, Extractor] = {}
        for name, func in (extractors or {}).items():
            self.register(name, func)

    def register(self, name: str, func: Extractor) -> None:
        """Add an extractor.

        Raises:
            ValueError: If the name is already taken or func is not callable
        """
        if not callable(func):
            raise ValueError(f"Extractor '{name}' must be callable, got {type(func).__name__}")
        if name in self._extractors:
            raise ValueError(f"Duplicate extractor name: '{name}'")
        self._extractors[name] = func

    def get(self, name: str) -> Extractor:
        """Look up an extractor.

        Raises:
            StageConfigError: If no extractor has this name
        """
        try:
            return self._extractors[name]
        except KeyError:
            raise StageConfigError(f"Unknown extractor '{name}'. Available: {sorted(self._extractors)}") from None

    def names(self) -> list[str]:
        return sorted(self._extractors)

    def __contains__(self, name: object) -> bool:
        return name in self._extractors

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._extractors)


class ElementEvaluator:
    """A compiled extractor owned by one stage instance.

    Example:
        weight = ElementEvaluator(config.value, registry, option="value")
        weight(vertex)  # -> value or None when no spec was given
    """

    def __init__(
        self,
        spec: ExtractorSpec | None,
        registry: ExtractorRegistry | None = None,
        *,
        option: str = "extractor",
    ) -> None:
        """Compile a spec.

        Args:
            spec: What to evaluate; None means the option was not configured
            registry: Source of named extractors
            option: Config option name, used in error messages

        Raises:
            StageConfigError: On malformed expressions or unknown names
        """
        self._option = option
        self._func: Extractor | None = None
        self._description = "<unset>"
        if spec is None:
            return
        if spec.expression is not None:
            try:
                self._func = ExpressionParser(spec.expression)
            except (ExpressionSyntaxError, ExpressionSecurityError) as e:
                raise StageConfigError(f"Invalid expression for '{option}': {spec.expression!r}: {e}") from e
            self._description = spec.expression
        elif spec.extractor is not None:
            if registry is None:
                raise StageConfigError(f"Option '{option}' names extractor '{spec.extractor}' but no extractors are registered")
            self._func = registry.get(spec.extractor)
            self._description = f"@{spec.extractor}"

    @property
    def configured(self) -> bool:
        return self._func is not None

    @property
    def description(self) -> str:
        return self._description

    def __call__(self, element: GraphElement) -> Any:
        """Evaluate against an element; None if no extractor is configured."""
        if self._func is None:
            return None
        return self._func(element)

    def __repr__(self) -> str:
        return f"ElementEvaluator({self._option}={self._description})"
