"""
Domain models for database entities.

Risk signals (read-only, produced by the external scorer) and expiration
alerts (owned by the alert engine). Used by the store backends; no ORM
coupling so backends stay swappable.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class AlertType(str, Enum):
    """Alert severity classes, fixed at creation time."""

    HIGH_RISK = "high_risk"
    EXPIRING_SOON = "expiring_soon"
    CONSUME_NOW = "consume_now"


@dataclass(frozen=True)
class RiskSignal:
    """One scored inventory item as read from expiration_risk_scores + user_inventory."""

    inventory_item_id: int
    user_id: int
    risk_score: float
    """0-100; higher means more likely to be wasted."""
    item_name: str
    category: str | None = None
    expiration_date: str | None = None
    """ISO date (YYYY-MM-DD) or None when the item has no expiry."""
    explanation: str | None = None


@dataclass
class Alert:
    """Single expiration alert row."""

    id: int
    user_id: int
    inventory_item_id: int
    alert_type: AlertType
    risk_score: float
    """Score snapshot at creation; never live-updated."""
    message: str
    is_dismissed: bool = False
    created_at: int | None = None
    """Unix timestamp (seconds, UTC) set by the store on insert."""
    dismissed_at: int | None = None
    """Unix timestamp (seconds, UTC); null until dismissed."""
    item_name: str | None = None
    category: str | None = None

    @property
    def is_active(self) -> bool:
        return not self.is_dismissed

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["alert_type"] = self.alert_type.value
        return data

    @classmethod
    def from_mapping(cls, row: Any) -> "Alert":
        """Build from a sqlite3.Row or SQLAlchemy RowMapping with expiration_alerts columns."""
        keys = row.keys()
        return cls(
            id=int(row["id"]),
            user_id=int(row["user_id"]),
            inventory_item_id=int(row["inventory_item_id"]),
            alert_type=AlertType(row["alert_type"]),
            risk_score=float(row["risk_score"]),
            message=row["message"],
            is_dismissed=bool(row["is_dismissed"]),
            created_at=row["created_at"],
            dismissed_at=row["dismissed_at"],
            item_name=row["item_name"] if "item_name" in keys else None,
            category=row["category"] if "category" in keys else None,
        )
