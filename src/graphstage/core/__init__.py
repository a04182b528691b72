"""Core infrastructure: Canonical JSON, record codec, Configuration, Logging."""

from graphstage.core.canonical import (
    CANONICAL_VERSION,
    canonical_json,
    stable_hash,
)
from graphstage.core.codec import (
    RecordDecodeError,
    copy_vertex,
    decode_vertex,
    encode_vertex,
)
from graphstage.core.config import (
    DEFAULT_SPILL_THRESHOLD,
    LoggingSettings,
    PipelineSettings,
    StageSettings,
    load_settings,
)
from graphstage.core.logging import (
    configure_logging,
    get_logger,
)

__all__ = [
    "CANONICAL_VERSION",
    "DEFAULT_SPILL_THRESHOLD",
    "LoggingSettings",
    "PipelineSettings",
    "RecordDecodeError",
    "StageSettings",
    "canonical_json",
    "configure_logging",
    "copy_vertex",
    "decode_vertex",
    "encode_vertex",
    "get_logger",
    "load_settings",
    "stable_hash",
]
