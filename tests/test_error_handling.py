"""
Failure behaviour: generation, listing and dismissal propagate store errors;
cleanup and count log and report 0.
"""

from __future__ import annotations

import sqlite3
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from pantry_alerts.alerts import AlertEngine
from pantry_alerts.core import fail_soft, is_fail_soft


@pytest.fixture
def broken_engine():
    """Engine over a store whose every call raises."""
    db = MagicMock()
    error = sqlite3.OperationalError("unable to open database file")
    for name in (
        "select_risk_signals",
        "select_active_alerts",
        "update_dismiss",
        "update_dismiss_all",
        "delete_dismissed_older_than",
        "count_active_alerts",
    ):
        getattr(db, name).side_effect = error
    return AlertEngine(db)


def test_generate_propagates(broken_engine):
    with pytest.raises(sqlite3.OperationalError):
        broken_engine.generate_alerts(1)


def test_list_propagates(broken_engine):
    with pytest.raises(sqlite3.OperationalError):
        broken_engine.get_active_alerts(1)


def test_dismiss_propagates(broken_engine):
    with pytest.raises(sqlite3.OperationalError):
        broken_engine.dismiss_alert(5, 1)
    with pytest.raises(sqlite3.OperationalError):
        broken_engine.dismiss_all_alerts(1)


def test_cleanup_and_count_fail_soft(broken_engine):
    assert broken_engine.cleanup_old_alerts() == 0
    assert broken_engine.get_alert_count(1) == 0


def test_sqlalchemy_errors_are_not_translated():
    db = MagicMock()
    db.select_risk_signals.side_effect = OperationalError("SELECT 1", {}, Exception("gone"))
    engine = AlertEngine(db)
    with pytest.raises(OperationalError):
        engine.generate_alerts(1)
    db.count_active_alerts.side_effect = OperationalError("SELECT 1", {}, Exception("gone"))
    assert engine.get_alert_count(1) == 0


def test_fail_soft_marks_only_maintenance_operations():
    assert is_fail_soft(AlertEngine.cleanup_old_alerts)
    assert is_fail_soft(AlertEngine.get_alert_count)
    assert not is_fail_soft(AlertEngine.generate_alerts)
    assert not is_fail_soft(AlertEngine.get_active_alerts)
    assert not is_fail_soft(AlertEngine.dismiss_alert)
    assert not is_fail_soft(AlertEngine.dismiss_all_alerts)


def test_fail_soft_passes_through_results():
    @fail_soft(default=-1, event="test_failed")
    def divide(a, b):
        return a // b

    assert divide(7, 2) == 3
    assert divide(1, 0) == -1
    assert divide.__name__ == "divide"
