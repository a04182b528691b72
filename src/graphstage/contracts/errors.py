"""Error contracts for stage configuration and execution.

``StageConfigError`` covers everything detected before the first record is
processed (it is re-exported by ``graphstage.plugins.config_base`` next to
the config base classes). The remaining exceptions cover what can go wrong
once a task is running.

None of these are caught and suppressed by stages. They abort the owning
task; re-execution is the substrate's business.
"""

from typing import Any


class StageConfigError(Exception):
    """Raised when stage configuration is invalid.

    Covers unknown or malformed options, bounds that do not match the
    declared value type, malformed extractor expressions and unknown
    extractor names.
    """


class ValueTypeMismatchError(TypeError):
    """Raised when a runtime value does not match its declared type.

    Stages fail fast rather than coerce. Example: an order stage declared
    ``long`` meets a string property value.
    """

    def __init__(self, expected: str, value: Any, *, key: str | None = None) -> None:
        self.expected = expected
        self.value = value
        self.key = key
        where = f" for property '{key}'" if key is not None else ""
        super().__init__(f"Expected {expected} value{where}, got {type(value).__name__}: {value!r}")


class StageTaskError(Exception):
    """A map or reduce task failed while processing one record.

    Wraps the original exception (chained via ``__cause__``) with enough
    context to identify the triggering record without reading task logs.

    Attributes:
        stage: Stage plugin name
        task_id: Task identifier (e.g. "map-0003", "reduce-0000")
        element_id: Vertex id of the failing record (map tasks only)
        key: Shuffle key of the failing group (reduce tasks only)
    """

    def __init__(
        self,
        stage: str,
        task_id: str,
        *,
        element_id: int | None = None,
        key: Any = None,
        cause: BaseException | None = None,
    ) -> None:
        self.stage = stage
        self.task_id = task_id
        self.element_id = element_id
        self.key = key
        parts = [f"Stage '{stage}' task {task_id} failed"]
        if element_id is not None:
            parts.append(f"on element {element_id}")
        if key is not None:
            parts.append(f"on key {key!r}")
        message = " ".join(parts)
        if cause is not None:
            message = f"{message}: {type(cause).__name__}: {cause}"
        super().__init__(message)


class UnknownStageError(LookupError):
    """Raised when a stage name is not registered with the StageManager."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = available
        super().__init__(f"Unknown stage plugin '{name}'. Available: {sorted(available)}")
