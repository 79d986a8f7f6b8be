"""
Structured logging for pantry-alerts.

Every record carries timestamp, level, logger name and event_type, plus the
alert fields passed by the caller (user_id, alert_id, inventory_item_id,
alert_type, risk_score). JSON by default (LOG_FORMAT=json), console otherwise.

Depends only on structlog and the stdlib so that any pantry_alerts module can
import it without cycles.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _rename_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type; message mirrors it unless given."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    event_dict.setdefault("message", str(event_dict.get("event_type", "")))
    return event_dict


def configure_structlog(level: int = LOG_LEVEL_VALUE, fmt: str = LOG_FORMAT) -> None:
    """(Re)configure structlog with the given level and renderer ("json" or "console")."""
    renderer: Any
    if fmt == "json":
        # Item names are user text; keep them readable in the output
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            _rename_event,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Structured logger for a module; the first positional argument is the event type.

        logger = get_logger(__name__)
        logger.info("alert_created", user_id=7, alert_id=12, alert_type="consume_now")

    JSON: {"user_id": 7, "alert_id": 12, "alert_type": "consume_now", "logger": "...",
    "level": "info", "timestamp": "...", "event_type": "alert_created", "message": "alert_created"}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_user(user_id: int) -> structlog.BoundLogger:
    """Logger with user_id bound to every call."""
    return get_logger("pantry_alerts").bind(user_id=user_id)
