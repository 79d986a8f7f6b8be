"""
Periodic alert maintenance runner.

- run_tick_once(): one pass: purge long-dismissed alerts and, when enabled,
  generate alerts for every user with qualifying risk signals.
- run_periodic_runner(): loop calling run_tick_once() every interval_sec until
  stop_event is set. Started by the FastAPI lifespan in a background thread;
  never blocks the API. A failing user or tick is logged and the loop continues.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pantry_alerts.alerts.engine import AlertConfig, AlertEngine
from pantry_alerts.logging import get_logger

logger = get_logger(__name__)

DEFAULT_INTERVAL_SEC = 3600.0
DEFAULT_MAX_USERS_PER_TICK = 5000
SHUTDOWN_JOIN_TIMEOUT_SEC = 15.0


@dataclass
class PeriodicRunnerConfig:
    """Config for the periodic background runner (cleanup, optional generation sweep)."""

    db_path: str | Path = Path("pantry_alerts.db")
    database_url: str | None = None
    interval_sec: float = DEFAULT_INTERVAL_SEC
    generate_on_tick: bool = False
    max_users_per_tick: int = DEFAULT_MAX_USERS_PER_TICK
    alert_config: AlertConfig | None = None

    @classmethod
    def from_settings(cls, settings: Any) -> "PeriodicRunnerConfig":
        return cls(
            db_path=settings.db_path,
            database_url=settings.database_url,
            interval_sec=settings.cleanup_interval_sec,
            generate_on_tick=settings.generate_on_tick,
            alert_config=AlertConfig.from_settings(settings),
        )


@dataclass
class TickSummary:
    """What a single tick did."""

    deleted: int = 0
    users: int = 0
    generated: int = 0
    errors: int = 0


def run_tick_once(
    engine: AlertEngine,
    config: PeriodicRunnerConfig,
    *,
    now_ts: int | None = None,
    stop_event: threading.Event | None = None,
) -> TickSummary:
    """Run one maintenance pass. Generation failures are counted per user, never raised."""
    summary = TickSummary()
    summary.deleted = engine.cleanup_old_alerts(now_ts=now_ts)
    if not config.generate_on_tick:
        return summary
    users = engine.db.select_users_with_risk_signals(engine.config.risk_threshold)
    for user_id in users[: config.max_users_per_tick]:
        if stop_event is not None and stop_event.is_set():
            break
        summary.users += 1
        try:
            summary.generated += len(engine.generate_alerts(user_id, now_ts=now_ts))
        except Exception as e:
            summary.errors += 1
            logger.warning("periodic_generate_failed", user_id=user_id, error=str(e))
    return summary


def run_periodic_runner(
    config: PeriodicRunnerConfig,
    stop_event: threading.Event,
    engine: AlertEngine | None = None,
) -> None:
    """
    Run the maintenance loop until stop_event is set. Crashes in a single tick
    are caught and logged; the loop continues. Intended for a daemon thread.
    """
    if engine is None:
        from pantry_alerts.database import get_database

        if config.database_url:
            db = get_database(url=config.database_url)
        else:
            db = get_database(config.db_path)
        engine = AlertEngine(db, config.alert_config)
    interval = max(1.0, config.interval_sec)
    logger.info(
        "periodic_runner_started",
        interval_sec=interval,
        generate_on_tick=config.generate_on_tick,
        retention_days=engine.config.retention_days,
    )
    tick_count = 0
    while not stop_event.is_set():
        tick_start = time.monotonic()
        tick_count += 1
        try:
            summary = run_tick_once(engine, config, stop_event=stop_event)
            logger.info(
                "periodic_tick_done",
                tick=tick_count,
                deleted=summary.deleted,
                users=summary.users,
                generated=summary.generated,
                errors=summary.errors,
            )
        except Exception as e:
            logger.exception("periodic_tick_failed", tick=tick_count, error=str(e))
        # Sleep until next tick; wake periodically to check stop_event
        deadline = tick_start + interval
        while not stop_event.is_set() and time.monotonic() < deadline:
            stop_event.wait(timeout=min(1.0, max(0, deadline - time.monotonic())))
    logger.info("periodic_runner_stopped", tick_count=tick_count)
