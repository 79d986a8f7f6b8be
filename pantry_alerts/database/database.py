"""
Database abstraction layer for inventory risk signals and expiration alerts.

The default backend is SQLite; PostgreSQL (or any SQLAlchemy URL) is served by
SQLAlchemyBackend. All access goes through the abstract interface; SQL and
placeholders are backend-specific.

The inventory and risk-score tables belong to the upstream inventory/scoring
subsystem. They are created here so a standalone deployment (and the tests)
have something to read from; the alert engine itself only reads them.
"""

from __future__ import annotations

import sqlite3
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from pantry_alerts.database.models import Alert, AlertType, RiskSignal
from pantry_alerts.logging import get_logger

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# Schema (SQLite). Timestamps are Unix seconds (UTC).
# -----------------------------------------------------------------------------

SCHEMA_USER_INVENTORY = """
CREATE TABLE IF NOT EXISTS user_inventory (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    item_name TEXT NOT NULL,
    quantity REAL NOT NULL DEFAULT 1,
    category TEXT NOT NULL,
    purchase_date TEXT,
    expiration_date TEXT,
    notes TEXT,
    created_at INTEGER,
    updated_at INTEGER
);
CREATE INDEX IF NOT EXISTS idx_user_inventory_user_id ON user_inventory(user_id);
"""

SCHEMA_RISK_SCORES = """
CREATE TABLE IF NOT EXISTS expiration_risk_scores (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    inventory_item_id INTEGER NOT NULL UNIQUE REFERENCES user_inventory(id) ON DELETE CASCADE,
    risk_score REAL NOT NULL,
    explanation TEXT,
    calculated_at INTEGER
);
CREATE INDEX IF NOT EXISTS idx_risk_scores_user_score ON expiration_risk_scores(user_id, risk_score);
"""

# ux_expiration_alerts_active_item: at most one non-dismissed alert per item.
SCHEMA_EXPIRATION_ALERTS = """
CREATE TABLE IF NOT EXISTS expiration_alerts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    inventory_item_id INTEGER NOT NULL REFERENCES user_inventory(id) ON DELETE CASCADE,
    alert_type TEXT NOT NULL CHECK (alert_type IN ('high_risk', 'expiring_soon', 'consume_now')),
    risk_score REAL NOT NULL,
    message TEXT NOT NULL,
    is_dismissed INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL,
    dismissed_at INTEGER
);
CREATE INDEX IF NOT EXISTS idx_expiration_alerts_user ON expiration_alerts(user_id, is_dismissed);
CREATE INDEX IF NOT EXISTS idx_expiration_alerts_dismissed_at ON expiration_alerts(is_dismissed, dismissed_at);
CREATE UNIQUE INDEX IF NOT EXISTS ux_expiration_alerts_active_item
    ON expiration_alerts(inventory_item_id) WHERE is_dismissed = 0;
"""

_ALERT_COLUMNS = (
    "ea.id, ea.user_id, ea.inventory_item_id, ea.alert_type, ea.risk_score, "
    "ea.message, ea.is_dismissed, ea.created_at, ea.dismissed_at"
)


# -----------------------------------------------------------------------------
# Abstract backend
# -----------------------------------------------------------------------------


class AlertStoreBackend(ABC):
    """Relational contract the alert engine depends on; implement per driver."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        ...

    # --- Upstream inventory / scorer tables ---

    @abstractmethod
    def upsert_inventory_item(
        self,
        user_id: int,
        item_name: str,
        category: str,
        *,
        quantity: float = 1.0,
        expiration_date: str | None = None,
        purchase_date: str | None = None,
        item_id: int | None = None,
        now_ts: int,
    ) -> int:
        """Insert an inventory item (or update it when item_id exists). Returns the item id."""
        ...

    @abstractmethod
    def upsert_risk_score(
        self,
        user_id: int,
        inventory_item_id: int,
        risk_score: float,
        explanation: str | None,
        calculated_at: int,
    ) -> None:
        """Store the latest risk score for an item (one row per item)."""
        ...

    # --- Alert engine contract ---

    @abstractmethod
    def select_risk_signals(self, user_id: int, min_score: float) -> list[RiskSignal]:
        """Risk signals for the user's items with risk_score > min_score, highest first."""
        ...

    @abstractmethod
    def select_users_with_risk_signals(self, min_score: float) -> list[int]:
        """Distinct user ids owning at least one item with risk_score > min_score."""
        ...

    @abstractmethod
    def select_active_alert_exists(self, inventory_item_id: int) -> bool:
        """True if a non-dismissed alert exists for the item."""
        ...

    @abstractmethod
    def insert_alert(
        self,
        user_id: int,
        inventory_item_id: int,
        alert_type: AlertType,
        risk_score: float,
        message: str,
        created_at: int,
    ) -> Alert | None:
        """
        Insert an active alert and return it with its store-assigned id.
        Returns None when the active-item unique index already holds a row.
        """
        ...

    @abstractmethod
    def select_alert(self, alert_id: int) -> Alert | None:
        """Return a single alert by id (any state), or None."""
        ...

    @abstractmethod
    def select_active_alerts(self, user_id: int) -> list[Alert]:
        """Non-dismissed alerts joined with item name/category, most urgent and newest first."""
        ...

    @abstractmethod
    def update_dismiss(self, alert_id: int, user_id: int, dismissed_at: int) -> int:
        """Dismiss one active alert owned by user_id. Returns affected rows (0 or 1)."""
        ...

    @abstractmethod
    def update_dismiss_all(self, user_id: int, dismissed_at: int) -> int:
        """Dismiss every active alert of user_id. Returns affected rows."""
        ...

    @abstractmethod
    def delete_dismissed_older_than(self, cutoff: int) -> int:
        """Delete dismissed alerts with dismissed_at < cutoff. Returns affected rows."""
        ...

    @abstractmethod
    def count_active_alerts(self, user_id: int) -> int:
        """Number of non-dismissed alerts of user_id."""
        ...


# -----------------------------------------------------------------------------
# SQLite backend
# -----------------------------------------------------------------------------


class SQLiteBackend(AlertStoreBackend):
    """SQLite implementation; single file, one connection per operation."""

    def __init__(self, path: str | Path, *, timeout_sec: float = 5.0) -> None:
        self._path = Path(path)
        self._timeout_sec = timeout_sec

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._path), timeout=self._timeout_sec)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        conn = self._connect()
        try:
            cur = conn.cursor()
            yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        with self._cursor() as cur:
            for stmt in (SCHEMA_USER_INVENTORY, SCHEMA_RISK_SCORES, SCHEMA_EXPIRATION_ALERTS):
                cur.executescript(stmt)

    def upsert_inventory_item(
        self,
        user_id: int,
        item_name: str,
        category: str,
        *,
        quantity: float = 1.0,
        expiration_date: str | None = None,
        purchase_date: str | None = None,
        item_id: int | None = None,
        now_ts: int,
    ) -> int:
        with self._cursor() as cur:
            if item_id is None:
                cur.execute(
                    """
                    INSERT INTO user_inventory
                        (user_id, item_name, quantity, category, purchase_date, expiration_date, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (user_id, item_name, quantity, category, purchase_date, expiration_date, now_ts, now_ts),
                )
                return int(cur.lastrowid)
            cur.execute(
                """
                INSERT INTO user_inventory
                    (id, user_id, item_name, quantity, category, purchase_date, expiration_date, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    item_name = excluded.item_name,
                    quantity = excluded.quantity,
                    category = excluded.category,
                    purchase_date = excluded.purchase_date,
                    expiration_date = excluded.expiration_date,
                    updated_at = excluded.updated_at
                """,
                (item_id, user_id, item_name, quantity, category, purchase_date, expiration_date, now_ts, now_ts),
            )
            return item_id

    def upsert_risk_score(
        self,
        user_id: int,
        inventory_item_id: int,
        risk_score: float,
        explanation: str | None,
        calculated_at: int,
    ) -> None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO expiration_risk_scores
                    (user_id, inventory_item_id, risk_score, explanation, calculated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(inventory_item_id) DO UPDATE SET
                    risk_score = excluded.risk_score,
                    explanation = excluded.explanation,
                    calculated_at = excluded.calculated_at
                """,
                (user_id, inventory_item_id, risk_score, explanation, calculated_at),
            )

    def select_risk_signals(self, user_id: int, min_score: float) -> list[RiskSignal]:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT ers.inventory_item_id, ers.user_id, ers.risk_score, ers.explanation,
                       ui.item_name, ui.category, ui.expiration_date
                FROM expiration_risk_scores ers
                JOIN user_inventory ui ON ers.inventory_item_id = ui.id
                WHERE ers.user_id = ?
                  AND ers.risk_score > ?
                  AND ui.user_id = ?
                ORDER BY ers.risk_score DESC, ers.inventory_item_id ASC
                """,
                (user_id, min_score, user_id),
            )
            rows = cur.fetchall()
        return [
            RiskSignal(
                inventory_item_id=row["inventory_item_id"],
                user_id=row["user_id"],
                risk_score=float(row["risk_score"]),
                item_name=row["item_name"],
                category=row["category"],
                expiration_date=row["expiration_date"],
                explanation=row["explanation"],
            )
            for row in rows
        ]

    def select_users_with_risk_signals(self, min_score: float) -> list[int]:
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT DISTINCT ers.user_id
                FROM expiration_risk_scores ers
                JOIN user_inventory ui ON ers.inventory_item_id = ui.id AND ui.user_id = ers.user_id
                WHERE ers.risk_score > ?
                ORDER BY ers.user_id
                """,
                (min_score,),
            )
            return [int(row["user_id"]) for row in cur.fetchall()]

    def select_active_alert_exists(self, inventory_item_id: int) -> bool:
        with self._cursor() as cur:
            cur.execute(
                "SELECT 1 FROM expiration_alerts WHERE inventory_item_id = ? AND is_dismissed = 0 LIMIT 1",
                (inventory_item_id,),
            )
            return cur.fetchone() is not None

    def insert_alert(
        self,
        user_id: int,
        inventory_item_id: int,
        alert_type: AlertType,
        risk_score: float,
        message: str,
        created_at: int,
    ) -> Alert | None:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO expiration_alerts
                    (user_id, inventory_item_id, alert_type, risk_score, message, is_dismissed, created_at)
                VALUES (?, ?, ?, ?, ?, 0, ?)
                ON CONFLICT DO NOTHING
                """,
                (user_id, inventory_item_id, alert_type.value, risk_score, message, created_at),
            )
            if cur.rowcount == 0:
                return None
            alert_id = int(cur.lastrowid)
        return Alert(
            id=alert_id,
            user_id=user_id,
            inventory_item_id=inventory_item_id,
            alert_type=alert_type,
            risk_score=risk_score,
            message=message,
            is_dismissed=False,
            created_at=created_at,
            dismissed_at=None,
        )

    def select_alert(self, alert_id: int) -> Alert | None:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT {_ALERT_COLUMNS}, ui.item_name, ui.category
                FROM expiration_alerts ea
                LEFT JOIN user_inventory ui ON ea.inventory_item_id = ui.id
                WHERE ea.id = ?
                """,
                (alert_id,),
            )
            row = cur.fetchone()
        return Alert.from_mapping(row) if row is not None else None

    def select_active_alerts(self, user_id: int) -> list[Alert]:
        with self._cursor() as cur:
            cur.execute(
                f"""
                SELECT {_ALERT_COLUMNS}, ui.item_name, ui.category
                FROM expiration_alerts ea
                JOIN user_inventory ui ON ea.inventory_item_id = ui.id
                WHERE ea.user_id = ?
                  AND ea.is_dismissed = 0
                ORDER BY ea.risk_score DESC, ea.created_at DESC, ea.id DESC
                """,
                (user_id,),
            )
            rows = cur.fetchall()
        return [Alert.from_mapping(row) for row in rows]

    def update_dismiss(self, alert_id: int, user_id: int, dismissed_at: int) -> int:
        with self._cursor() as cur:
            cur.execute(
                """
                UPDATE expiration_alerts
                SET is_dismissed = 1, dismissed_at = ?
                WHERE id = ? AND user_id = ? AND is_dismissed = 0
                """,
                (dismissed_at, alert_id, user_id),
            )
            return cur.rowcount

    def update_dismiss_all(self, user_id: int, dismissed_at: int) -> int:
        with self._cursor() as cur:
            cur.execute(
                """
                UPDATE expiration_alerts
                SET is_dismissed = 1, dismissed_at = ?
                WHERE user_id = ? AND is_dismissed = 0
                """,
                (dismissed_at, user_id),
            )
            return cur.rowcount

    def delete_dismissed_older_than(self, cutoff: int) -> int:
        with self._cursor() as cur:
            cur.execute(
                """
                DELETE FROM expiration_alerts
                WHERE is_dismissed = 1
                  AND dismissed_at IS NOT NULL
                  AND dismissed_at < ?
                """,
                (cutoff,),
            )
            return cur.rowcount

    def count_active_alerts(self, user_id: int) -> int:
        with self._cursor() as cur:
            cur.execute(
                "SELECT COUNT(*) AS count FROM expiration_alerts WHERE user_id = ? AND is_dismissed = 0",
                (user_id,),
            )
            row = cur.fetchone()
        return int(row["count"]) if row is not None else 0


# -----------------------------------------------------------------------------
# Database facade: single entrypoint; backend is swappable.
# -----------------------------------------------------------------------------


class AlertDatabase:
    """
    Store facade used by the alert engine, runner, API and tools.

    Fills in timestamps (now) where callers omit them and logs write volumes;
    everything else is delegated to the backend unchanged, including errors.
    """

    def __init__(self, backend: AlertStoreBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> AlertStoreBackend:
        return self._backend

    def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        self._backend.ensure_schema()

    # --- Upstream inventory / risk scores ---

    def upsert_inventory_item(
        self,
        user_id: int,
        item_name: str,
        category: str,
        *,
        quantity: float = 1.0,
        expiration_date: str | None = None,
        purchase_date: str | None = None,
        item_id: int | None = None,
        now_ts: int | None = None,
    ) -> int:
        return self._backend.upsert_inventory_item(
            user_id,
            item_name,
            category,
            quantity=quantity,
            expiration_date=expiration_date,
            purchase_date=purchase_date,
            item_id=item_id,
            now_ts=now_ts if now_ts is not None else int(time.time()),
        )

    def upsert_risk_score(
        self,
        user_id: int,
        inventory_item_id: int,
        risk_score: float,
        explanation: str | None = None,
        calculated_at: int | None = None,
    ) -> None:
        """Store the latest score for an item; risk_score must be within 0-100."""
        if not 0 <= risk_score <= 100:
            raise ValueError(f"risk_score must be within 0-100, got {risk_score}")
        calculated_at = calculated_at if calculated_at is not None else int(time.time())
        self._backend.upsert_risk_score(user_id, inventory_item_id, risk_score, explanation, calculated_at)

    # --- Alert engine contract ---

    def select_risk_signals(self, user_id: int, min_score: float) -> list[RiskSignal]:
        return self._backend.select_risk_signals(user_id, min_score)

    def select_users_with_risk_signals(self, min_score: float) -> list[int]:
        return self._backend.select_users_with_risk_signals(min_score)

    def select_active_alert_exists(self, inventory_item_id: int) -> bool:
        return self._backend.select_active_alert_exists(inventory_item_id)

    def insert_alert(
        self,
        user_id: int,
        inventory_item_id: int,
        alert_type: AlertType,
        risk_score: float,
        message: str,
        created_at: int | None = None,
    ) -> Alert | None:
        created_at = created_at if created_at is not None else int(time.time())
        return self._backend.insert_alert(
            user_id, inventory_item_id, alert_type, risk_score, message, created_at
        )

    def select_alert(self, alert_id: int) -> Alert | None:
        return self._backend.select_alert(alert_id)

    def select_active_alerts(self, user_id: int) -> list[Alert]:
        return self._backend.select_active_alerts(user_id)

    def update_dismiss(self, alert_id: int, user_id: int, dismissed_at: int | None = None) -> int:
        dismissed_at = dismissed_at if dismissed_at is not None else int(time.time())
        return self._backend.update_dismiss(alert_id, user_id, dismissed_at)

    def update_dismiss_all(self, user_id: int, dismissed_at: int | None = None) -> int:
        dismissed_at = dismissed_at if dismissed_at is not None else int(time.time())
        return self._backend.update_dismiss_all(user_id, dismissed_at)

    def delete_dismissed_older_than(self, cutoff: int) -> int:
        deleted = self._backend.delete_dismissed_older_than(cutoff)
        if deleted:
            logger.debug("dismissed_alerts_deleted", cutoff=cutoff, deleted=deleted)
        return deleted

    def count_active_alerts(self, user_id: int) -> int:
        return self._backend.count_active_alerts(user_id)


def get_database(path: str | Path | None = None, *, url: str | None = None) -> AlertDatabase:
    """
    Return an AlertDatabase with its schema ensured.

    url: SQLAlchemy URL (e.g. postgresql+psycopg://...); selects SQLAlchemyBackend.
    path: SQLite file path; selects SQLiteBackend.
    With neither, DATABASE_URL / DB_PATH from settings decide.
    """
    if url is None and path is None:
        from pantry_alerts.config import get_settings

        settings = get_settings()
        url = settings.database_url
        path = settings.db_path
    if url:
        from pantry_alerts.database.sqlalchemy_backend import SQLAlchemyBackend

        backend: AlertStoreBackend = SQLAlchemyBackend(url)
    else:
        backend = SQLiteBackend(path if path is not None else Path("pantry_alerts.db"))
    db = AlertDatabase(backend)
    db.ensure_schema()
    return db
