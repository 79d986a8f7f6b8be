"""
Expiration alert engine: risk thresholds, score-to-alert-type classification, dedup.

Turns per-item waste-risk scores into user alerts. An item gets a new alert
only when its risk score is above the threshold and it has no active alert;
the alert type and message are a snapshot of the score at creation time.
Alerts are dismissed by their owner (one or all) and purged by a periodic
cleanup once they have been dismissed for longer than the retention window.

Generation, listing and dismissal propagate store errors to the caller.
Cleanup and count are fail-soft: they log and report 0.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from pantry_alerts.core import fail_soft
from pantry_alerts.database.models import Alert, AlertType
from pantry_alerts.logging import get_logger

logger = get_logger(__name__)

# Items with a risk score strictly above this get an alert
DEFAULT_RISK_THRESHOLD = 70.0
# Classification bands, checked from the top down
DEFAULT_CONSUME_NOW_MIN_SCORE = 90.0
DEFAULT_EXPIRING_SOON_MIN_SCORE = 80.0
# Dismissed alerts older than this are deleted by cleanup
DEFAULT_RETENTION_DAYS = 30
SECONDS_PER_DAY = 86400

MESSAGE_TEMPLATES: dict[AlertType, str] = {
    AlertType.CONSUME_NOW: "⚠️ URGENT: {name} needs to be consumed NOW to avoid waste!",
    AlertType.EXPIRING_SOON: "⏰ {name} is expiring soon. Plan to use it in the next 1-2 days.",
    AlertType.HIGH_RISK: "⚡ {name} has high waste risk. Consider using it soon.",
}
FALLBACK_MESSAGE_TEMPLATE = "Alert for {name}"


@dataclass
class AlertConfig:
    """Configurable thresholds and retention for the alert engine."""

    risk_threshold: float = DEFAULT_RISK_THRESHOLD
    """Only items with risk_score > this are alerted."""
    consume_now_min_score: float = DEFAULT_CONSUME_NOW_MIN_SCORE
    expiring_soon_min_score: float = DEFAULT_EXPIRING_SOON_MIN_SCORE
    retention_days: int = DEFAULT_RETENTION_DAYS
    """Dismissed alerts are kept this many days before cleanup deletes them."""

    @classmethod
    def from_settings(cls, settings: Any) -> "AlertConfig":
        return cls(
            risk_threshold=settings.risk_threshold,
            retention_days=settings.retention_days,
        )


def classify_alert_type(risk_score: float, config: AlertConfig | None = None) -> AlertType:
    """Map a risk score to its alert type; the higher band wins."""
    cfg = config or AlertConfig()
    if risk_score >= cfg.consume_now_min_score:
        return AlertType.CONSUME_NOW
    if risk_score >= cfg.expiring_soon_min_score:
        return AlertType.EXPIRING_SOON
    return AlertType.HIGH_RISK


def compose_alert_message(item_name: str, alert_type: AlertType | str) -> str:
    """Render the message for an alert type; unknown types get the generic text."""
    if not isinstance(alert_type, AlertType):
        try:
            alert_type = AlertType(alert_type)
        except ValueError:
            return FALLBACK_MESSAGE_TEMPLATE.format(name=item_name)
    template = MESSAGE_TEMPLATES.get(alert_type, FALLBACK_MESSAGE_TEMPLATE)
    return template.format(name=item_name)


def retention_cutoff(now_ts: int, retention_days: int) -> int:
    return now_ts - retention_days * SECONDS_PER_DAY


class AlertEngine:
    """
    Alert lifecycle over an AlertDatabase (or anything with the same store methods).

    No in-memory state is kept between calls; every operation is a short
    sequence of store reads/writes.
    """

    def __init__(self, db: Any, config: AlertConfig | None = None) -> None:
        self._db = db
        self.config = config or AlertConfig()

    @property
    def db(self) -> Any:
        return self._db

    def generate_alerts(self, user_id: int, *, now_ts: int | None = None) -> list[Alert]:
        """
        Create alerts for the user's items whose risk score is above the threshold
        and that have no active alert yet. Returns only the alerts created by this
        call, highest risk first.

        Store errors propagate. Alerts inserted before the failure stay committed.
        """
        created: list[Alert] = []
        try:
            signals = self._db.select_risk_signals(user_id, self.config.risk_threshold)
            for signal in signals:
                if self._db.select_active_alert_exists(signal.inventory_item_id):
                    logger.debug(
                        "alert_skipped_existing",
                        user_id=user_id,
                        inventory_item_id=signal.inventory_item_id,
                        risk_score=signal.risk_score,
                    )
                    continue
                alert_type = classify_alert_type(signal.risk_score, self.config)
                message = compose_alert_message(signal.item_name, alert_type)
                alert = self._db.insert_alert(
                    user_id,
                    signal.inventory_item_id,
                    alert_type,
                    signal.risk_score,
                    message,
                    created_at=now_ts,
                )
                if alert is None:
                    # Unique index on active rows rejected it: a concurrent call got there first
                    logger.info(
                        "alert_skipped_concurrent",
                        user_id=user_id,
                        inventory_item_id=signal.inventory_item_id,
                    )
                    continue
                alert.item_name = signal.item_name
                alert.category = signal.category
                created.append(alert)
                logger.info(
                    "alert_created",
                    user_id=user_id,
                    alert_id=alert.id,
                    inventory_item_id=alert.inventory_item_id,
                    alert_type=alert_type.value,
                    risk_score=alert.risk_score,
                )
        except Exception as e:
            logger.error(
                "alerts_generate_failed",
                user_id=user_id,
                created_before_failure=len(created),
                error=str(e),
            )
            raise
        logger.info(
            "alerts_generated",
            user_id=user_id,
            signals=len(signals),
            created=len(created),
        )
        return created

    def get_active_alerts(self, user_id: int) -> list[Alert]:
        """Non-dismissed alerts with item name/category, by risk then recency. Store errors propagate."""
        try:
            return self._db.select_active_alerts(user_id)
        except Exception as e:
            logger.error("alerts_fetch_failed", user_id=user_id, error=str(e))
            raise

    def dismiss_alert(self, alert_id: int, user_id: int, *, now_ts: int | None = None) -> bool:
        """
        Dismiss one active alert owned by user_id. False when nothing matched
        (unknown id, other owner, already dismissed). Store errors propagate.
        """
        dismissed_at = now_ts if now_ts is not None else int(time.time())
        try:
            affected = self._db.update_dismiss(alert_id, user_id, dismissed_at)
        except Exception as e:
            logger.error("alert_dismiss_failed", user_id=user_id, alert_id=alert_id, error=str(e))
            raise
        if affected:
            logger.info("alert_dismissed", user_id=user_id, alert_id=alert_id)
        else:
            logger.debug("alert_dismiss_no_match", user_id=user_id, alert_id=alert_id)
        return affected > 0

    def dismiss_all_alerts(self, user_id: int, *, now_ts: int | None = None) -> int:
        """Dismiss every active alert of the user; returns how many. Store errors propagate."""
        dismissed_at = now_ts if now_ts is not None else int(time.time())
        try:
            affected = self._db.update_dismiss_all(user_id, dismissed_at)
        except Exception as e:
            logger.error("alerts_dismiss_all_failed", user_id=user_id, error=str(e))
            raise
        logger.info("alerts_dismissed_all", user_id=user_id, dismissed=affected)
        return affected

    @fail_soft(default=0, event="alerts_cleanup_failed")
    def cleanup_old_alerts(self, *, now_ts: int | None = None) -> int:
        """Delete alerts dismissed more than retention_days ago (all users). 0 on failure."""
        now_ts = now_ts if now_ts is not None else int(time.time())
        cutoff = retention_cutoff(now_ts, self.config.retention_days)
        deleted = self._db.delete_dismissed_older_than(cutoff)
        logger.info(
            "alerts_cleanup_done",
            deleted=deleted,
            cutoff=cutoff,
            retention_days=self.config.retention_days,
        )
        return deleted

    @fail_soft(default=0, event="alert_count_failed")
    def get_alert_count(self, user_id: int) -> int:
        """Active alert count for badges. 0 on failure."""
        return self._db.count_active_alerts(user_id)
