# src/graphstage/plugins/config_base.py
"""Base classes for typed stage configurations.

Stage configs are frozen pydantic models that:
- Reject unknown fields
- Build from plain dicts with clear error messages (``from_dict``)
- Serialize to canonical JSON for distribution to tasks (``to_wire``)

Example usage:
    class GroupCountConfig(ElementStageConfig):
        key: ExtractorSpec | None = None

    cfg = GroupCountConfig.from_dict({"element_class": "edge"})
    payload = cfg.to_wire()               # shipped once per job
    task_cfg = GroupCountConfig.from_wire(payload)  # private copy per task
"""

from typing import Any, Self

from pydantic import BaseModel, Field, ValidationError, model_validator

from graphstage.contracts.enums import ElementClass
from graphstage.contracts.errors import StageConfigError
from graphstage.core.canonical import canonical_bytes, parse_canonical

__all__ = [
    "ElementStageConfig",
    "ExtractorSpec",
    "StageConfig",
    "StageConfigError",
]


class StageConfig(BaseModel):
    """Base class for typed stage configurations."""

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> Self:
        """Create config from dict with clear error on validation failure.

        Raises:
            StageConfigError: If configuration is invalid.
        """
        if not isinstance(config, dict):
            raise StageConfigError(f"Invalid configuration for {cls.__name__}: config must be a dict, got {type(config).__name__}.")
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise StageConfigError(f"Invalid configuration for {cls.__name__}: {e}") from e
        except ValueError as e:
            raise StageConfigError(f"Invalid configuration for {cls.__name__}: {e}") from e

    def to_wire(self) -> bytes:
        """Serialize to canonical JSON bytes."""
        return canonical_bytes(self.model_dump(mode="json", exclude_none=True))

    @classmethod
    def from_wire(cls, payload: bytes | str) -> Self:
        """Decode a config produced by to_wire().

        Raises:
            StageConfigError: If the payload is not a valid config.
        """
        try:
            data = parse_canonical(payload)
        except ValueError as e:
            raise StageConfigError(f"Invalid wire configuration for {cls.__name__}: {e}") from e
        return cls.from_dict(data)


class ElementStageConfig(StageConfig):
    """Config for stages that act on either vertices or their edges."""

    element_class: ElementClass = Field(
        default=ElementClass.VERTEX,
        description="Process the vertex itself or its incident edges",
    )


class ExtractorSpec(BaseModel):
    """Reference to a value extractor.

    Exactly one of ``expression`` or ``extractor`` must be set. A bare
    string is shorthand for an expression.

    Example YAML:
        key: "element['age'] // 10"
        value:
          extractor: edge_weight
    """

    model_config = {"extra": "forbid", "frozen": True}

    expression: str | None = Field(default=None, description="Restricted expression over 'element'")
    extractor: str | None = Field(default=None, description="Name of a registered extractor function")

    @model_validator(mode="before")
    @classmethod
    def _expand_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"expression": data}
        return data

    @model_validator(mode="after")
    def _exactly_one(self) -> Self:
        if (self.expression is None) == (self.extractor is None):
            raise ValueError("exactly one of 'expression' or 'extractor' must be set")
        if self.expression is not None and not self.expression.strip():
            raise ValueError("expression cannot be empty")
        return self
