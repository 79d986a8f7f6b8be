"""
Periodic runner: single ticks (cleanup, optional generation sweep) and the
stop-event driven loop.
"""

from __future__ import annotations

import threading
import time

from pantry_alerts.alerts import AlertEngine
from pantry_alerts.config import load_settings
from pantry_alerts.scheduler import PeriodicRunnerConfig, run_periodic_runner, run_tick_once

NOW = 1_700_000_000
DAY = 86400


def test_tick_runs_cleanup_only_by_default(engine, seed_item):
    seed_item(1, "Milk", 92)
    seed_item(1, "Lettuce", 85)
    (alert, _) = engine.generate_alerts(1, now_ts=NOW - 40 * DAY)
    engine.dismiss_alert(alert.id, 1, now_ts=NOW - 35 * DAY)
    seed_item(2, "Cheese", 99)

    summary = run_tick_once(engine, PeriodicRunnerConfig(), now_ts=NOW)

    assert summary.deleted == 1
    assert summary.users == 0
    assert summary.generated == 0
    assert engine.get_alert_count(2) == 0


def test_tick_generates_for_every_user_with_signals(engine, seed_item):
    seed_item(1, "Milk", 92)
    seed_item(2, "Cheese", 99)
    seed_item(2, "Apples", 40)
    seed_item(3, "Rice", 5)
    config = PeriodicRunnerConfig(generate_on_tick=True)

    summary = run_tick_once(engine, config, now_ts=NOW)

    assert summary.users == 2
    assert summary.generated == 2
    assert summary.errors == 0
    assert engine.get_alert_count(1) == 1
    assert engine.get_alert_count(2) == 1

    again = run_tick_once(engine, config, now_ts=NOW + 60)
    assert again.generated == 0


def test_tick_continues_after_user_failure(engine, seed_item, monkeypatch):
    seed_item(1, "Milk", 92)
    seed_item(2, "Cheese", 99)
    real_generate = engine.generate_alerts

    def generate(user_id, *, now_ts=None):
        if user_id == 1:
            raise RuntimeError("boom")
        return real_generate(user_id, now_ts=now_ts)

    monkeypatch.setattr(engine, "generate_alerts", generate)

    summary = run_tick_once(engine, PeriodicRunnerConfig(generate_on_tick=True), now_ts=NOW)

    assert summary.errors == 1
    assert summary.generated == 1


def test_tick_respects_max_users(engine, seed_item):
    for user_id in (1, 2, 3):
        seed_item(user_id, "Milk", 92)

    summary = run_tick_once(
        engine,
        PeriodicRunnerConfig(generate_on_tick=True, max_users_per_tick=2),
        now_ts=NOW,
    )

    assert summary.users == 2
    assert engine.get_alert_count(3) == 0


def test_runner_loop_stops_on_event(sqlite_db):
    engine = AlertEngine(sqlite_db)
    item_id = sqlite_db.upsert_inventory_item(1, "Milk", "Dairy")
    sqlite_db.upsert_risk_score(1, item_id, 92)
    (alert,) = engine.generate_alerts(1, now_ts=int(time.time()) - 60 * DAY)
    engine.dismiss_alert(alert.id, 1, now_ts=int(time.time()) - 45 * DAY)

    stop_event = threading.Event()
    thread = threading.Thread(
        target=run_periodic_runner,
        args=(PeriodicRunnerConfig(interval_sec=3600), stop_event, engine),
        daemon=True,
    )
    thread.start()
    deadline = time.monotonic() + 5
    while sqlite_db.select_alert(alert.id) is not None and time.monotonic() < deadline:
        time.sleep(0.05)
    stop_event.set()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert sqlite_db.select_alert(alert.id) is None


def test_config_from_settings(monkeypatch):
    monkeypatch.setenv("CLEANUP_INTERVAL_SEC", "120")
    monkeypatch.setenv("GENERATE_ON_TICK", "true")
    monkeypatch.setenv("ALERT_RETENTION_DAYS", "14")

    config = PeriodicRunnerConfig.from_settings(load_settings())

    assert config.interval_sec == 120
    assert config.generate_on_tick is True
    assert config.alert_config.retention_days == 14
