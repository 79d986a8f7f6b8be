"""
FastAPI server: expiration alert API over the alert store.

Mounts the alert routes under /api and runs the periodic maintenance runner
(retention cleanup, optional generation sweep) in a background thread for the
lifetime of the app. Config via env (see pantry_alerts.config.settings).
"""

from __future__ import annotations

import threading
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from pantry_alerts import __version__
from pantry_alerts.api_server.routes import router as alerts_router
from pantry_alerts.config import get_settings
from pantry_alerts.logging import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Lifespan: alert maintenance runner in a daemon thread
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the periodic runner in a background thread; signal stop on shutdown."""
    from pantry_alerts.scheduler.runner import (
        PeriodicRunnerConfig,
        run_periodic_runner,
        SHUTDOWN_JOIN_TIMEOUT_SEC,
    )

    settings = get_settings()
    if not settings.periodic_runner_enabled:
        logger.info("alert_runner_thread_disabled")
        yield
        return

    stop_event = threading.Event()
    config = PeriodicRunnerConfig.from_settings(settings)
    thread = threading.Thread(
        target=run_periodic_runner,
        args=(config, stop_event),
        name="periodic-runner",
        daemon=True,
    )
    thread.start()
    logger.info("alert_runner_thread_started", interval_sec=config.interval_sec)

    yield

    stop_event.set()
    thread.join(timeout=SHUTDOWN_JOIN_TIMEOUT_SEC)
    if thread.is_alive():
        logger.warning(
            "alert_runner_thread_join_timeout",
            timeout_sec=SHUTDOWN_JOIN_TIMEOUT_SEC,
        )
    else:
        logger.info("alert_runner_thread_stopped")


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="Pantry Alerts API",
    description="Expiration alerts for inventory items with high waste risk.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(alerts_router, prefix="/api")


@app.get("/health")
def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.exception_handler(HTTPException)
def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
    """Render every HTTPException as {"detail": ...}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )
