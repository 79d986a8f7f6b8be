#!/usr/bin/env python3
"""
Seed demo inventory items and waste-risk scores for one user.

Items span short, medium and long shelf lives so that a following
`alerts_cli generate` produces alerts of every type and skips the low-risk items.
Each run adds new inventory rows; use a fresh DB_PATH for a clean demo.

Usage:
  python -m pantry_alerts.tools.seed_inventory --user-id 1
  python -m pantry_alerts.tools.seed_inventory --user-id 1 --generate
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from datetime import date, timedelta

from pantry_alerts.alerts import AlertConfig, AlertEngine
from pantry_alerts.config import get_settings
from pantry_alerts.database import AlertDatabase, get_database
from pantry_alerts.logging import get_logger

logger = get_logger(__name__)

# (name, quantity, category, purchased days ago, expires in days, risk score)
DEMO_ITEMS: list[tuple[str, float, str, int, int, float]] = [
    ("Milk", 2, "Dairy", 5, 2, 92.0),
    ("Strawberries", 1, "Fruits", 3, 1, 95.0),
    ("Lettuce", 1, "Vegetables", 4, 3, 84.0),
    ("Chicken Breast", 1.5, "Meat", 2, 5, 76.0),
    ("Yogurt", 3, "Dairy", 1, 7, 62.0),
    ("Tomatoes", 5, "Vegetables", 2, 6, 71.0),
    ("Rice", 2, "Grains", 10, 90, 8.0),
    ("Canned Beans", 4, "Grains", 5, 365, 3.0),
    ("Apples", 6, "Fruits", 3, 14, 35.0),
    ("Cheese", 1, "Dairy", 0, 30, 22.0),
]


def seed_inventory(db: AlertDatabase, user_id: int, *, today: date | None = None, now_ts: int | None = None) -> list[int]:
    """Insert DEMO_ITEMS with their risk scores for user_id; returns the new item ids."""
    today = today or date.today()
    now_ts = now_ts if now_ts is not None else int(time.time())
    item_ids: list[int] = []
    for name, quantity, category, bought_ago, expires_in, score in DEMO_ITEMS:
        item_id = db.upsert_inventory_item(
            user_id,
            name,
            category,
            quantity=quantity,
            purchase_date=(today - timedelta(days=bought_ago)).isoformat(),
            expiration_date=(today + timedelta(days=expires_in)).isoformat(),
            now_ts=now_ts,
        )
        db.upsert_risk_score(
            user_id,
            item_id,
            score,
            explanation=f"Expires in {expires_in} day(s)",
            calculated_at=now_ts,
        )
        item_ids.append(item_id)
    logger.info("inventory_seeded", user_id=user_id, items=len(item_ids))
    return item_ids


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed demo inventory and risk scores for a user.")
    parser.add_argument("--user-id", type=int, required=True, help="User to seed")
    parser.add_argument("--db-path", default=None, help="SQLite file (default: DB_PATH)")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (default: DATABASE_URL)")
    parser.add_argument("--generate", action="store_true", help="Generate alerts right after seeding")
    args = parser.parse_args(argv)

    if args.database_url:
        db = get_database(url=args.database_url)
    elif args.db_path:
        db = get_database(args.db_path)
    else:
        db = get_database()

    item_ids = seed_inventory(db, args.user_id)
    result: dict[str, object] = {"user_id": args.user_id, "items": len(item_ids)}
    if args.generate:
        engine = AlertEngine(db, AlertConfig.from_settings(get_settings()))
        result["alerts"] = len(engine.generate_alerts(args.user_id))
    print(json.dumps(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
