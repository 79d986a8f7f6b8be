"""
Database abstraction layer: inventory risk signals and expiration alerts.

SQLite via SQLiteBackend by default; SQLAlchemyBackend when DATABASE_URL is set.
"""

from pantry_alerts.database.database import (
    AlertDatabase,
    AlertStoreBackend,
    SQLiteBackend,
    get_database,
)
from pantry_alerts.database.models import Alert, AlertType, RiskSignal
from pantry_alerts.database.sqlalchemy_backend import SQLAlchemyBackend

__all__ = [
    "AlertDatabase",
    "AlertStoreBackend",
    "SQLiteBackend",
    "SQLAlchemyBackend",
    "get_database",
    "Alert",
    "AlertType",
    "RiskSignal",
]
