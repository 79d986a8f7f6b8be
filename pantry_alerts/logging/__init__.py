"""
Structured logging for pantry-alerts.

JSON logs with timestamp, user_id, event_type.
Use get_logger() in all modules for aggregation-friendly output.
"""

from pantry_alerts.logging.logger import bind_user, configure_structlog, get_logger

__all__ = ["bind_user", "configure_structlog", "get_logger"]
