# src/graphstage/core/config.py
"""
Configuration schema and loading for graphstage pipelines.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction: every task of a job
reads the same settings and none of them may change it.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

# Default ceiling on distinct group keys held in memory by one map task
DEFAULT_SPILL_THRESHOLD = 5000


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", description="Root log level")
    json_output: bool = Field(default=False, description="Emit JSON lines instead of console output")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        """Accept level names in any case."""
        if isinstance(v, str):
            return v.upper()
        return v


class StageSettings(BaseModel):
    """One stage in a pipeline definition.

    Example YAML:
        stages:
          - plugin: interval_filter
            options:
              element_class: vertex
              key: age
              start_value: 18
              end_value: 65
          - plugin: count
            options:
              element_class: vertex
    """

    model_config = {"frozen": True}

    plugin: str = Field(description="Stage plugin name")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Stage-specific configuration options",
    )


class PipelineSettings(BaseModel):
    """Top-level graphstage configuration.

    This is the single source of truth for pipeline-wide tunables.
    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True}

    spill_threshold: int = Field(
        default=DEFAULT_SPILL_THRESHOLD,
        gt=0,
        description="Distinct keys a group-count map task may hold before flushing",
    )
    reduce_tasks: int = Field(
        default=1,
        gt=0,
        description="Number of reduce partitions the reference substrate shuffles into",
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings,
        description="Logging configuration",
    )
    stages: list[StageSettings] = Field(
        default_factory=list,
        description="Ordered stage chain; each stage consumes the previous stage's GRAPH output",
    )


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)  # None if no default specified
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default - keep original (will likely cause error)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _plain(value: Any) -> Any:
    """Convert Dynaconf containers into plain dicts and lists."""
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def load_settings(config_path: Path) -> PipelineSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (GRAPHSTAGE_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: GRAPHSTAGE_LOGGING__LEVEL for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated PipelineSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="GRAPHSTAGE",
        settings_files=[str(config_path)],
        environments=False,  # No [default]/[production] sections
        load_dotenv=False,  # Don't auto-load .env
        merge_enabled=True,  # Deep merge nested dicts
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    # Also filter out internal Dynaconf settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _plain(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    if "logging" in raw_config and isinstance(raw_config["logging"], dict):
        raw_config["logging"] = {k.lower(): v for k, v in raw_config["logging"].items()}

    raw_config = _expand_env_vars(raw_config)

    return PipelineSettings(**raw_config)
