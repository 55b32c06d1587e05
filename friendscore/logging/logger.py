"""
Structured logging for the scoring engine.

Every record is one JSON object (or one console line when LOG_FORMAT=console)
with event_type, level, ISO timestamp, logger name and whatever keyword context
the caller passed: viewer_id, item_id, dimension, counts, durations.

Level and format come from LOG_LEVEL / LOG_FORMAT, read through
friendscore.config.env so a project .env applies. That module imports nothing
from friendscore, so config, database and consensus code can all log freely.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

from friendscore.config import env as _env

_RENDERERS = ("json", "console")


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """UTC ISO 8601 timestamp unless the caller supplied one."""
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type; message mirrors it."""
    event = event_dict.pop("event", None)
    if event is not None:
        event_dict.setdefault("event_type", event)
    if "event_type" in event_dict:
        event_dict.setdefault("message", str(event_dict["event_type"]))
    return event_dict


def _resolve_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    name = (level or _env.get_log_settings()[0]).upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.INFO


def _renderer(log_format: str | None) -> Any:
    fmt = (log_format or _env.get_log_settings()[1]).strip().lower()
    if fmt not in _RENDERERS:
        fmt = "json"
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def configure_structlog(log_format: str | None = None, level: int | str | None = None) -> None:
    """
    (Re)configure structlog for the process.

    log_format: "json" or "console"; default from LOG_FORMAT.
    level: logging level name or number; default from LOG_LEVEL.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _add_timestamp,
            _normalize_event,
            _renderer(log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger with its name bound:

        logger = get_logger(__name__)
        logger.info("consensus_viewer_recalculated", viewer_id=v, total=12, failed=0)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_viewer(viewer_id: str) -> structlog.BoundLogger:
    """Logger with viewer_id attached to every record."""
    return get_logger("friendscore").bind(viewer_id=viewer_id)
