"""
Alert lifecycle tests: generation with dedup, listing order, dismissal,
retention cleanup. Each test runs against both store backends.
"""

from __future__ import annotations

import sqlite3

import pytest

from pantry_alerts.alerts import AlertEngine
from pantry_alerts.database import AlertType

NOW = 1_700_000_000
DAY = 86400


def test_generate_classifies_by_score(engine, seed_item):
    """95 -> consume_now, 85 -> expiring_soon, 72 -> high_risk, 70 and below -> nothing."""
    seed_item(1, "Strawberries", 95)
    seed_item(1, "Lettuce", 85)
    seed_item(1, "Tomatoes", 72)
    seed_item(1, "Yogurt", 70)
    seed_item(1, "Rice", 12)

    alerts = engine.generate_alerts(1, now_ts=NOW)

    assert [a.risk_score for a in alerts] == [95, 85, 72]
    assert [a.alert_type for a in alerts] == [
        AlertType.CONSUME_NOW,
        AlertType.EXPIRING_SOON,
        AlertType.HIGH_RISK,
    ]
    assert [a.item_name for a in alerts] == ["Strawberries", "Lettuce", "Tomatoes"]
    assert all(a.created_at == NOW and not a.is_dismissed for a in alerts)
    assert alerts[1].message == "⏰ Lettuce is expiring soon. Plan to use it in the next 1-2 days."
    assert alerts[2].message == "⚡ Tomatoes has high waste risk. Consider using it soon."


def test_generate_is_idempotent(engine, seed_item):
    seed_item(1, "Milk", 92)
    seed_item(1, "Chicken Breast", 76, category="Meat")

    first = engine.generate_alerts(1, now_ts=NOW)
    second = engine.generate_alerts(1, now_ts=NOW + 60)

    assert len(first) == 2
    assert second == []
    assert engine.get_alert_count(1) == 2


def test_alert_keeps_snapshot_when_score_rises(engine, db, seed_item):
    """An existing active alert suppresses new ones even after escalation; type is not upgraded."""
    item_id = seed_item(1, "Chicken Breast", 75, category="Meat")
    (alert,) = engine.generate_alerts(1, now_ts=NOW)
    assert alert.alert_type is AlertType.HIGH_RISK

    db.upsert_risk_score(1, item_id, 96, calculated_at=NOW + DAY)
    assert engine.generate_alerts(1, now_ts=NOW + DAY) == []

    (active,) = engine.get_active_alerts(1)
    assert active.id == alert.id
    assert active.alert_type is AlertType.HIGH_RISK
    assert active.risk_score == 75


def test_dismissed_item_gets_a_new_alert(engine, seed_item):
    seed_item(1, "Milk", 92)
    (old,) = engine.generate_alerts(1, now_ts=NOW)
    assert engine.dismiss_alert(old.id, 1, now_ts=NOW + 10) is True

    (new,) = engine.generate_alerts(1, now_ts=NOW + 20)

    assert new.id != old.id
    assert new.inventory_item_id == old.inventory_item_id
    assert [a.id for a in engine.get_active_alerts(1)] == [new.id]


def test_generate_only_uses_own_items(engine, seed_item):
    seed_item(2, "Cheese", 99)
    assert engine.generate_alerts(1, now_ts=NOW) == []
    assert len(engine.generate_alerts(2, now_ts=NOW)) == 1
    assert engine.get_active_alerts(1) == []


def test_active_alerts_ordered_by_risk(engine, seed_item):
    """Scores [72, 95, 85] created at the same instant list as [95, 85, 72]."""
    seed_item(1, "Tomatoes", 72)
    seed_item(1, "Strawberries", 95)
    seed_item(1, "Lettuce", 85, category="Vegetables")
    engine.generate_alerts(1, now_ts=NOW)

    active = engine.get_active_alerts(1)

    assert [a.risk_score for a in active] == [95, 85, 72]
    assert active[1].category == "Vegetables"
    assert {a.item_name for a in active} == {"Tomatoes", "Strawberries", "Lettuce"}


def test_same_score_newest_first(engine, db, seed_item):
    first = seed_item(1, "Apples", 80)
    engine.generate_alerts(1, now_ts=NOW)
    seed_item(1, "Bananas", 80)
    engine.generate_alerts(1, now_ts=NOW + 100)

    active = engine.get_active_alerts(1)

    assert [a.item_name for a in active] == ["Bananas", "Apples"]
    assert active[1].inventory_item_id == first


def test_dismiss_other_users_alert_is_refused(engine, seed_item):
    seed_item(1, "Milk", 92)
    (alert,) = engine.generate_alerts(1, now_ts=NOW)

    assert engine.dismiss_alert(alert.id, 2, now_ts=NOW) is False
    assert [a.id for a in engine.get_active_alerts(1)] == [alert.id]


def test_dismiss_twice_and_unknown(engine, db, seed_item):
    seed_item(1, "Milk", 92)
    (alert,) = engine.generate_alerts(1, now_ts=NOW)

    assert engine.dismiss_alert(alert.id, 1, now_ts=NOW + 5) is True
    assert engine.dismiss_alert(alert.id, 1, now_ts=NOW + 9) is False
    assert engine.dismiss_alert(999_999, 1) is False

    stored = db.select_alert(alert.id)
    assert stored.is_dismissed is True
    assert stored.dismissed_at == NOW + 5


def test_dismiss_all(engine, seed_item):
    assert engine.dismiss_all_alerts(1, now_ts=NOW) == 0

    seed_item(1, "Milk", 92)
    seed_item(1, "Lettuce", 81)
    seed_item(2, "Cheese", 99)
    engine.generate_alerts(1, now_ts=NOW)
    engine.generate_alerts(2, now_ts=NOW)

    assert engine.dismiss_all_alerts(1, now_ts=NOW + 1) == 2
    assert engine.dismiss_all_alerts(1, now_ts=NOW + 2) == 0
    assert engine.get_alert_count(1) == 0
    assert engine.get_alert_count(2) == 1


def test_cleanup_respects_retention(engine, db, seed_item):
    """Dismissed 31 days ago is deleted; dismissed 29 days ago and active alerts are kept."""
    seed_item(1, "Milk", 92)
    seed_item(1, "Lettuce", 85)
    seed_item(1, "Tomatoes", 72)
    old, recent, active = engine.generate_alerts(1, now_ts=NOW - 40 * DAY)
    engine.dismiss_alert(old.id, 1, now_ts=NOW - 31 * DAY)
    engine.dismiss_alert(recent.id, 1, now_ts=NOW - 29 * DAY)

    assert engine.cleanup_old_alerts(now_ts=NOW) == 1

    assert db.select_alert(old.id) is None
    assert db.select_alert(recent.id) is not None
    assert db.select_alert(active.id).is_active
    assert engine.cleanup_old_alerts(now_ts=NOW) == 0


def test_milk_lifecycle(engine, db, seed_item):
    seed_item(1, "Milk", 92)

    (alert,) = engine.generate_alerts(1, now_ts=NOW)
    assert alert.alert_type is AlertType.CONSUME_NOW
    assert "Milk" in alert.message
    assert "URGENT" in alert.message

    assert engine.generate_alerts(1, now_ts=NOW + 60) == []

    assert engine.dismiss_alert(alert.id, 1, now_ts=NOW + 120) is True
    assert engine.get_active_alerts(1) == []

    assert engine.cleanup_old_alerts(now_ts=NOW + 120 + 31 * DAY) == 1
    assert db.select_alert(alert.id) is None


def test_concurrent_insert_is_rejected_by_store(db, seed_item):
    """The active-row unique index turns a duplicate insert into None."""
    item_id = seed_item(1, "Milk", 92)
    first = db.insert_alert(1, item_id, AlertType.CONSUME_NOW, 92, "m", created_at=NOW)
    second = db.insert_alert(1, item_id, AlertType.CONSUME_NOW, 92, "m", created_at=NOW)

    assert first is not None
    assert second is None
    assert db.count_active_alerts(1) == 1


def test_generate_skips_item_lost_to_concurrent_call(engine, db, seed_item, monkeypatch):
    """When the existence check misses a concurrent insert, the item is skipped, not duplicated."""
    seed_item(1, "Milk", 92)
    engine.generate_alerts(1, now_ts=NOW)
    monkeypatch.setattr(db, "select_active_alert_exists", lambda inventory_item_id: False)

    assert engine.generate_alerts(1, now_ts=NOW + 1) == []
    assert db.count_active_alerts(1) == 1


def test_generate_failure_keeps_earlier_inserts(engine, db, seed_item, monkeypatch):
    seed_item(1, "Strawberries", 95)
    seed_item(1, "Milk", 92)
    real_insert = db.insert_alert
    calls = []

    def flaky_insert(*args, **kwargs):
        calls.append(args)
        if len(calls) == 2:
            raise sqlite3.OperationalError("database is locked")
        return real_insert(*args, **kwargs)

    monkeypatch.setattr(db, "insert_alert", flaky_insert)

    with pytest.raises(sqlite3.OperationalError):
        engine.generate_alerts(1, now_ts=NOW)

    (kept,) = engine.get_active_alerts(1)
    assert kept.item_name == "Strawberries"


def test_threshold_is_configurable(db, seed_item):
    from pantry_alerts.alerts import AlertConfig

    seed_item(1, "Apples", 55)
    strict = AlertEngine(db)
    loose = AlertEngine(db, AlertConfig(risk_threshold=50))

    assert strict.generate_alerts(1, now_ts=NOW) == []
    (alert,) = loose.generate_alerts(1, now_ts=NOW)
    assert alert.alert_type is AlertType.HIGH_RISK
