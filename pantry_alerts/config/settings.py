"""
Application settings and environment configuration.

Loads configuration from environment variables and the optional .env file,
provides defaults, and exposes a single typed Settings object for the store,
the alert engine, the periodic runner and the API server.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from pathlib import Path

from pantry_alerts.config.env import env_bool, env_float, env_int, env_str, load_env

DEFAULT_DB_PATH = "pantry_alerts.db"
DEFAULT_RISK_THRESHOLD = 70.0
DEFAULT_RETENTION_DAYS = 30
DEFAULT_CLEANUP_INTERVAL_SEC = 3600.0


@dataclass(frozen=True)
class Settings:
    """Resolved service configuration."""

    db_path: Path = Path(DEFAULT_DB_PATH)
    database_url: str | None = None
    """SQLAlchemy URL; when set it takes precedence over db_path."""
    risk_threshold: float = DEFAULT_RISK_THRESHOLD
    """Items with risk_score strictly above this get an alert."""
    retention_days: int = DEFAULT_RETENTION_DAYS
    cleanup_interval_sec: float = DEFAULT_CLEANUP_INTERVAL_SEC
    generate_on_tick: bool = False
    periodic_runner_enabled: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build Settings from the environment (after loading .env)."""
    load_env()
    retention_days = env_int("ALERT_RETENTION_DAYS", DEFAULT_RETENTION_DAYS)
    if retention_days < 1:
        raise ValueError("ALERT_RETENTION_DAYS must be >= 1")
    return Settings(
        db_path=Path(env_str("DB_PATH", DEFAULT_DB_PATH)),
        database_url=env_str("DATABASE_URL", "") or None,
        risk_threshold=env_float("ALERT_RISK_THRESHOLD", DEFAULT_RISK_THRESHOLD),
        retention_days=retention_days,
        cleanup_interval_sec=env_float("CLEANUP_INTERVAL_SEC", DEFAULT_CLEANUP_INTERVAL_SEC),
        generate_on_tick=env_bool("GENERATE_ON_TICK", False),
        periodic_runner_enabled=env_bool("PERIODIC_RUNNER_ENABLED", True),
        api_host=env_str("API_HOST", "0.0.0.0"),
        api_port=env_int("API_PORT", 8000),
        log_level=env_str("LOG_LEVEL", "INFO").upper(),
    )


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the current application settings (cached; clear with get_settings.cache_clear())."""
    return load_settings()
