"""
Alert engine: risk thresholds, score-to-type classification, storage with dedup.

Turns inventory risk scores into expiration alerts; one active alert per item;
dismissal by owner; retention-based cleanup.
"""

from pantry_alerts.alerts.engine import (
    AlertConfig,
    AlertEngine,
    classify_alert_type,
    compose_alert_message,
)

__all__ = [
    "AlertConfig",
    "AlertEngine",
    "classify_alert_type",
    "compose_alert_message",
]
