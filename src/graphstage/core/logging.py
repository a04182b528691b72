# src/graphstage/core/logging.py
"""Log output for stage jobs.

Stages and the substrate log through structlog; a few dependencies
(dynaconf, pluggy) log through stdlib ``logging``. configure_logging()
sends both through a single ProcessorFormatter on the root logger, so a job
produces one stream of events in one format.

Task loggers carry ``stage`` and ``task_id`` (bound by TaskContext), which
is enough to follow one map or reduce task through an interleaved log.

Pipeline.from_settings() applies the ``logging`` section of the pipeline
settings; embedding code may call configure_logging() directly instead.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.stdlib import ProcessorFormatter

# Dependencies that log per call at DEBUG level
_QUIET_DEPENDENCIES: tuple[str, ...] = (
    "dynaconf",
    "pluggy",
)


def _strip_formatter_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    # ProcessorFormatter bookkeeping, never part of an event
    event_dict.pop("_record", None)
    event_dict.pop("_from_structlog", None)
    return event_dict


def _render_chain(json_output: bool) -> list[Any]:
    if json_output:
        return [
            _strip_formatter_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [
        _strip_formatter_fields,
        structlog.dev.ConsoleRenderer(colors=False),
    ]


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: TextIO | None = None,
) -> None:
    """Route structlog and stdlib logging to one handler.

    Replaces any handlers already on the root logger, so calling it again
    reconfigures rather than duplicates output.

    Args:
        json_output: Emit one JSON object per event instead of console lines
        level: Root level name (DEBUG, INFO, WARNING, ERROR), any case
        stream: Destination; defaults to stdout
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*pre_chain, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Module loggers are created at import; they must follow reconfiguration
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(ProcessorFormatter(processors=_render_chain(json_output), foreign_pre_chain=pre_chain))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    # DEBUG for graphstage never turns on DEBUG for dependencies
    for name in _QUIET_DEPENDENCIES:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module logger, e.g. ``get_logger(__name__)``."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
