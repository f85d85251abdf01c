"""Structured logging setup for the key-provider."""
from __future__ import annotations

import logging
import sys
from typing import TextIO

import structlog

_DEFAULT_LEVEL = "info"


def configure_logging(level: str | None = None, stream: TextIO | None = None) -> None:
    """Configure structlog for the application.

    Records are emitted as JSON lines with the keys ``level``, ``ts``, ``msg`` and
    ``component``. They go to stderr by default because the one-shot transport
    owns stdout for protocol responses.
    """

    log_level = (level or _DEFAULT_LEVEL).lower()
    numeric_level = _level_from_str(log_level)

    logging.basicConfig(
        level=numeric_level,
        handlers=[logging.StreamHandler(stream or sys.stderr)],
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.stdlib.add_log_level,
            _component_processor,
            _rename_event_to_msg,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def _component_processor(
    logger: structlog.BoundLoggerBase, _name: str, event_dict: dict[str, object]
) -> dict[str, object]:
    """Ensure every log record carries a ``component`` field."""

    component = event_dict.get("component")
    if component is None:
        logger_name = getattr(logger, "name", None) or "kms_keyprovider"
        event_dict["component"] = logger_name
    return event_dict


def _rename_event_to_msg(
    _logger: structlog.BoundLoggerBase, _name: str, event_dict: dict[str, object]
) -> dict[str, object]:
    if "msg" not in event_dict:
        event = event_dict.pop("event", "")
        event_dict["msg"] = event
    return event_dict


def _level_from_str(level: str) -> int:
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.INFO


__all__ = ["configure_logging"]
