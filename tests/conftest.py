"""
Pytest fixtures for pantry-alerts tests. Every test gets a temporary SQLite DB
and a clean settings cache; `db` runs against both store backends.
"""

from __future__ import annotations

import pytest

from pantry_alerts.alerts import AlertEngine
from pantry_alerts.config import get_settings
from pantry_alerts.database import get_database

# Fixed "now" so timestamps in assertions are deterministic
NOW = 1_700_000_000
DAY = 86400


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point DB_PATH at a temp file, unset DATABASE_URL, disable the runner, reset cached settings."""
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DB_PATH", str(tmp_path / "settings.db"))
    monkeypatch.setenv("PERIODIC_RUNNER_ENABLED", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sqlite_db(tmp_path):
    return get_database(tmp_path / "alerts.db")


@pytest.fixture
def sqlalchemy_db(tmp_path):
    db = get_database(url=f"sqlite:///{tmp_path / 'alerts_sa.db'}")
    yield db
    db.backend.dispose()


@pytest.fixture(params=["sqlite", "sqlalchemy"])
def db(request):
    """The same store contract over SQLiteBackend and SQLAlchemyBackend."""
    return request.getfixturevalue(f"{request.param}_db")


@pytest.fixture
def engine(db):
    return AlertEngine(db)


@pytest.fixture
def seed_item(db):
    """
    Factory: add one inventory item with a risk score and return its id.

        item_id = seed_item(user_id=1, name="Milk", score=92)
    """

    def _seed(user_id: int, name: str, score: float, category: str = "Dairy") -> int:
        item_id = db.upsert_inventory_item(
            user_id, name, category, expiration_date="2026-01-12", now_ts=NOW
        )
        db.upsert_risk_score(user_id, item_id, score, explanation="test", calculated_at=NOW)
        return item_id

    return _seed


@pytest.fixture
def client(sqlite_db):
    """FastAPI TestClient with the engine dependency bound to the temp SQLite DB."""
    from fastapi.testclient import TestClient

    from pantry_alerts.api_server.routes import get_engine
    from pantry_alerts.api_server.server import app

    api_engine = AlertEngine(sqlite_db)
    app.dependency_overrides[get_engine] = lambda: api_engine
    yield TestClient(app)
    app.dependency_overrides.clear()
