"""
API route definitions: expiration alert endpoints.

Validate request params, delegate to AlertEngine, and return consistent JSON.
The caller is trusted for user_id; authentication happens upstream.
"""

from __future__ import annotations

import functools

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from pantry_alerts.alerts import AlertConfig, AlertEngine
from pantry_alerts.config import get_settings
from pantry_alerts.database import Alert, get_database
from pantry_alerts.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/alerts", tags=["alerts"])


@functools.lru_cache(maxsize=1)
def _build_engine() -> AlertEngine:
    settings = get_settings()
    return AlertEngine(get_database(), AlertConfig.from_settings(settings))


def get_engine() -> AlertEngine:
    """Dependency: app-scoped AlertEngine over the configured store."""
    return _build_engine()


# -----------------------------------------------------------------------------
# Request / response models
# -----------------------------------------------------------------------------


class AlertModel(BaseModel):
    """Single alert as returned to clients."""

    id: int
    user_id: int
    inventory_item_id: int
    alert_type: str = Field(..., description="high_risk | expiring_soon | consume_now")
    risk_score: float = Field(..., ge=0, le=100)
    message: str
    is_dismissed: bool
    created_at: int | None = Field(None, description="Unix timestamp (seconds)")
    dismissed_at: int | None = None
    item_name: str | None = None
    category: str | None = None

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertModel":
        return cls(**alert.to_dict())


class AlertListResponse(BaseModel):
    alerts: list[AlertModel] = Field(default_factory=list)


class GenerateAlertsResponse(BaseModel):
    message: str
    count: int = Field(..., description="Number of alerts created by this call")
    alerts: list[AlertModel] = Field(default_factory=list)


class DismissAlertRequest(BaseModel):
    """POST /alerts/{alert_id}/dismiss body: the owner of the alert."""

    user_id: int = Field(..., ge=1)


class MessageResponse(BaseModel):
    message: str


class DismissAllResponse(BaseModel):
    dismissed: int


class AlertCountResponse(BaseModel):
    count: int


class CleanupResponse(BaseModel):
    deleted: int


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------


@router.get("/{user_id}", response_model=AlertListResponse)
def get_active_alerts(user_id: int, engine: AlertEngine = Depends(get_engine)) -> AlertListResponse:
    """Active alerts for the user, most urgent first."""
    try:
        alerts = engine.get_active_alerts(user_id)
    except Exception as e:
        logger.exception("api_get_alerts_failed", user_id=user_id, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to get alerts") from e
    return AlertListResponse(alerts=[AlertModel.from_alert(a) for a in alerts])


@router.get("/{user_id}/count", response_model=AlertCountResponse)
def get_alert_count(user_id: int, engine: AlertEngine = Depends(get_engine)) -> AlertCountResponse:
    """Active alert count for the notification badge; 0 when the store is unavailable."""
    return AlertCountResponse(count=engine.get_alert_count(user_id))


@router.post("/generate/{user_id}", response_model=GenerateAlertsResponse)
def generate_alerts(user_id: int, engine: AlertEngine = Depends(get_engine)) -> GenerateAlertsResponse:
    """Create alerts for the user's high-risk items that are not alerted yet."""
    try:
        alerts = engine.generate_alerts(user_id)
    except Exception as e:
        logger.exception("api_generate_alerts_failed", user_id=user_id, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to generate alerts") from e
    return GenerateAlertsResponse(
        message="Alerts generated successfully",
        count=len(alerts),
        alerts=[AlertModel.from_alert(a) for a in alerts],
    )


@router.post("/{alert_id}/dismiss", response_model=MessageResponse)
def dismiss_alert(
    alert_id: int,
    body: DismissAlertRequest,
    engine: AlertEngine = Depends(get_engine),
) -> MessageResponse:
    """Dismiss one alert owned by body.user_id. 404 when there is no matching active alert."""
    try:
        dismissed = engine.dismiss_alert(alert_id, body.user_id)
    except Exception as e:
        logger.exception("api_dismiss_alert_failed", alert_id=alert_id, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to dismiss alert") from e
    if not dismissed:
        raise HTTPException(status_code=404, detail="Alert not found or already dismissed")
    return MessageResponse(message="Alert dismissed successfully")


@router.post("/dismiss-all/{user_id}", response_model=DismissAllResponse)
def dismiss_all_alerts(user_id: int, engine: AlertEngine = Depends(get_engine)) -> DismissAllResponse:
    """Dismiss every active alert of the user."""
    try:
        dismissed = engine.dismiss_all_alerts(user_id)
    except Exception as e:
        logger.exception("api_dismiss_all_failed", user_id=user_id, error=str(e))
        raise HTTPException(status_code=500, detail="Failed to dismiss alerts") from e
    return DismissAllResponse(dismissed=dismissed)


@router.post("/cleanup", response_model=CleanupResponse)
def cleanup_alerts(engine: AlertEngine = Depends(get_engine)) -> CleanupResponse:
    """Purge alerts dismissed longer than the retention window (maintenance hook)."""
    return CleanupResponse(deleted=engine.cleanup_old_alerts())
