"""
SQLAlchemy-backed alert store for DATABASE_URL deployments (PostgreSQL in production).

Same contract as SQLiteBackend, expressed with SQLAlchemy Core tables so the
SQL is portable. Works with sqlite:/// URLs too, which the tests use.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    false,
    func,
    insert,
    select,
    true,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from pantry_alerts.database.database import AlertStoreBackend
from pantry_alerts.database.models import Alert, AlertType, RiskSignal
from pantry_alerts.logging import get_logger

logger = get_logger(__name__)

metadata = MetaData()

# -----------------------------------------------------------------------------
# Tables
# -----------------------------------------------------------------------------

user_inventory = Table(
    "user_inventory",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("item_name", String(100), nullable=False),
    Column("quantity", Float, nullable=False, default=1.0),
    Column("category", String(50), nullable=False),
    Column("purchase_date", String(10), nullable=True),
    Column("expiration_date", String(10), nullable=True),
    Column("notes", Text, nullable=True),
    Column("created_at", BigInteger, nullable=True),
    Column("updated_at", BigInteger, nullable=True),
)

expiration_risk_scores = Table(
    "expiration_risk_scores",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False),
    Column(
        "inventory_item_id",
        Integer,
        ForeignKey("user_inventory.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    ),
    Column("risk_score", Float, nullable=False),
    Column("explanation", Text, nullable=True),
    Column("calculated_at", BigInteger, nullable=True),
    Index("idx_risk_scores_user_score", "user_id", "risk_score"),
)

expiration_alerts = Table(
    "expiration_alerts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False),
    Column(
        "inventory_item_id",
        Integer,
        ForeignKey("user_inventory.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("alert_type", String(32), nullable=False),
    Column("risk_score", Float, nullable=False),
    Column("message", Text, nullable=False),
    Column("is_dismissed", Boolean, nullable=False, default=False),
    Column("created_at", BigInteger, nullable=False),
    Column("dismissed_at", BigInteger, nullable=True),
    CheckConstraint(
        "alert_type IN ('high_risk', 'expiring_soon', 'consume_now')",
        name="ck_expiration_alerts_type",
    ),
    Index("idx_expiration_alerts_user", "user_id", "is_dismissed"),
    Index("idx_expiration_alerts_dismissed_at", "is_dismissed", "dismissed_at"),
)

# At most one non-dismissed alert per inventory item.
Index(
    "ux_expiration_alerts_active_item",
    expiration_alerts.c.inventory_item_id,
    unique=True,
    sqlite_where=expiration_alerts.c.is_dismissed == false(),
    postgresql_where=expiration_alerts.c.is_dismissed == false(),
)


def _create_engine(url: str, **engine_kwargs: Any) -> Engine:
    connect_args: dict[str, Any] = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True, **engine_kwargs)


class SQLAlchemyBackend(AlertStoreBackend):
    """SQLAlchemy Core implementation; one short transaction per operation."""

    def __init__(self, url: str, **engine_kwargs: Any) -> None:
        self._url = url
        self._engine = _create_engine(url, **engine_kwargs)

    @property
    def engine(self) -> Engine:
        return self._engine

    def dispose(self) -> None:
        self._engine.dispose()

    def ensure_schema(self) -> None:
        metadata.create_all(self._engine)

    def _active_alert_columns(self) -> list[Any]:
        return [
            expiration_alerts.c.id,
            expiration_alerts.c.user_id,
            expiration_alerts.c.inventory_item_id,
            expiration_alerts.c.alert_type,
            expiration_alerts.c.risk_score,
            expiration_alerts.c.message,
            expiration_alerts.c.is_dismissed,
            expiration_alerts.c.created_at,
            expiration_alerts.c.dismissed_at,
            user_inventory.c.item_name,
            user_inventory.c.category,
        ]

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
        values = {
            "user_id": user_id,
            "item_name": item_name,
            "quantity": quantity,
            "category": category,
            "purchase_date": purchase_date,
            "expiration_date": expiration_date,
            "updated_at": now_ts,
        }
        with self._engine.begin() as conn:
            if item_id is not None:
                result = conn.execute(
                    update(user_inventory).where(user_inventory.c.id == item_id).values(**values)
                )
                if result.rowcount:
                    return item_id
                values["id"] = item_id
            result = conn.execute(insert(user_inventory).values(created_at=now_ts, **values))
            return int(result.inserted_primary_key[0])

    def upsert_risk_score(
        self,
        user_id: int,
        inventory_item_id: int,
        risk_score: float,
        explanation: str | None,
        calculated_at: int,
    ) -> None:
        values = {
            "user_id": user_id,
            "risk_score": risk_score,
            "explanation": explanation,
            "calculated_at": calculated_at,
        }
        with self._engine.begin() as conn:
            result = conn.execute(
                update(expiration_risk_scores)
                .where(expiration_risk_scores.c.inventory_item_id == inventory_item_id)
                .values(**values)
            )
            if not result.rowcount:
                conn.execute(
                    insert(expiration_risk_scores).values(inventory_item_id=inventory_item_id, **values)
                )

    def select_risk_signals(self, user_id: int, min_score: float) -> list[RiskSignal]:
        ers = expiration_risk_scores
        ui = user_inventory
        stmt = (
            select(
                ers.c.inventory_item_id,
                ers.c.user_id,
                ers.c.risk_score,
                ers.c.explanation,
                ui.c.item_name,
                ui.c.category,
                ui.c.expiration_date,
            )
            .join(ui, ers.c.inventory_item_id == ui.c.id)
            .where(ers.c.user_id == user_id, ers.c.risk_score > min_score, ui.c.user_id == user_id)
            .order_by(ers.c.risk_score.desc(), ers.c.inventory_item_id.asc())
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
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
        ers = expiration_risk_scores
        ui = user_inventory
        stmt = (
            select(ers.c.user_id)
            .distinct()
            .join(ui, (ers.c.inventory_item_id == ui.c.id) & (ui.c.user_id == ers.c.user_id))
            .where(ers.c.risk_score > min_score)
            .order_by(ers.c.user_id)
        )
        with self._engine.connect() as conn:
            return [int(uid) for uid in conn.execute(stmt).scalars().all()]

    def select_active_alert_exists(self, inventory_item_id: int) -> bool:
        stmt = (
            select(expiration_alerts.c.id)
            .where(
                expiration_alerts.c.inventory_item_id == inventory_item_id,
                expiration_alerts.c.is_dismissed == false(),
            )
            .limit(1)
        )
        with self._engine.connect() as conn:
            return conn.execute(stmt).first() is not None

    def insert_alert(
        self,
        user_id: int,
        inventory_item_id: int,
        alert_type: AlertType,
        risk_score: float,
        message: str,
        created_at: int,
    ) -> Alert | None:
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    insert(expiration_alerts).values(
                        user_id=user_id,
                        inventory_item_id=inventory_item_id,
                        alert_type=alert_type.value,
                        risk_score=risk_score,
                        message=message,
                        is_dismissed=False,
                        created_at=created_at,
                    )
                )
                alert_id = int(result.inserted_primary_key[0])
        except IntegrityError:
            # Lost a race against a concurrent generation: the partial unique index
            # already holds an active row for this item. Anything else is re-raised.
            if self.select_active_alert_exists(inventory_item_id):
                logger.info(
                    "alert_insert_conflict",
                    user_id=user_id,
                    inventory_item_id=inventory_item_id,
                )
                return None
            raise
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
        stmt = (
            select(*self._active_alert_columns())
            .select_from(
                expiration_alerts.outerjoin(
                    user_inventory, expiration_alerts.c.inventory_item_id == user_inventory.c.id
                )
            )
            .where(expiration_alerts.c.id == alert_id)
        )
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return Alert.from_mapping(row) if row is not None else None

    def select_active_alerts(self, user_id: int) -> list[Alert]:
        ea = expiration_alerts
        stmt = (
            select(*self._active_alert_columns())
            .select_from(ea.join(user_inventory, ea.c.inventory_item_id == user_inventory.c.id))
            .where(ea.c.user_id == user_id, ea.c.is_dismissed == false())
            .order_by(ea.c.risk_score.desc(), ea.c.created_at.desc(), ea.c.id.desc())
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [Alert.from_mapping(row) for row in rows]

    def update_dismiss(self, alert_id: int, user_id: int, dismissed_at: int) -> int:
        ea = expiration_alerts
        stmt = (
            update(ea)
            .where(ea.c.id == alert_id, ea.c.user_id == user_id, ea.c.is_dismissed == false())
            .values(is_dismissed=True, dismissed_at=dismissed_at)
        )
        with self._engine.begin() as conn:
            return conn.execute(stmt).rowcount

    def update_dismiss_all(self, user_id: int, dismissed_at: int) -> int:
        ea = expiration_alerts
        stmt = (
            update(ea)
            .where(ea.c.user_id == user_id, ea.c.is_dismissed == false())
            .values(is_dismissed=True, dismissed_at=dismissed_at)
        )
        with self._engine.begin() as conn:
            return conn.execute(stmt).rowcount

    def delete_dismissed_older_than(self, cutoff: int) -> int:
        ea = expiration_alerts
        stmt = delete(ea).where(
            ea.c.is_dismissed == true(),
            ea.c.dismissed_at.is_not(None),
            ea.c.dismissed_at < cutoff,
        )
        with self._engine.begin() as conn:
            return conn.execute(stmt).rowcount

    def count_active_alerts(self, user_id: int) -> int:
        ea = expiration_alerts
        stmt = select(func.count()).select_from(ea).where(
            ea.c.user_id == user_id, ea.c.is_dismissed == false()
        )
        with self._engine.connect() as conn:
            return int(conn.execute(stmt).scalar_one())
