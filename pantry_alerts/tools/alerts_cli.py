#!/usr/bin/env python3
"""
Expiration alerts from the command line. Prints JSON to stdout.

Usage:
  python -m pantry_alerts.tools.alerts_cli generate 1
  python -m pantry_alerts.tools.alerts_cli list 1
  python -m pantry_alerts.tools.alerts_cli dismiss 42 --user-id 1
  python -m pantry_alerts.tools.alerts_cli dismiss-all 1
  python -m pantry_alerts.tools.alerts_cli count 1
  python -m pantry_alerts.tools.alerts_cli cleanup

--db-path / --database-url override DB_PATH / DATABASE_URL.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from pantry_alerts.alerts import AlertConfig, AlertEngine
from pantry_alerts.config import get_settings
from pantry_alerts.database import get_database
from pantry_alerts.logging import get_logger

logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="alerts_cli",
        description="Generate, list, dismiss and clean up expiration alerts.",
    )
    parser.add_argument("--db-path", default=None, help="SQLite file (default: DB_PATH)")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (default: DATABASE_URL)")
    parser.add_argument("--now", type=int, default=None, help="Unix timestamp to use as 'now'")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("generate", help="Create alerts for the user's high-risk items")
    p.add_argument("user_id", type=int)
    p = sub.add_parser("list", help="Active alerts, most urgent first")
    p.add_argument("user_id", type=int)
    p = sub.add_parser("dismiss", help="Dismiss one alert")
    p.add_argument("alert_id", type=int)
    p.add_argument("--user-id", type=int, required=True, help="Owner of the alert")
    p = sub.add_parser("dismiss-all", help="Dismiss every active alert of the user")
    p.add_argument("user_id", type=int)
    p = sub.add_parser("count", help="Active alert count")
    p.add_argument("user_id", type=int)
    sub.add_parser("cleanup", help="Delete alerts dismissed longer than the retention window")
    return parser


def _engine_from_args(args: argparse.Namespace) -> AlertEngine:
    settings = get_settings()
    if args.database_url:
        db = get_database(url=args.database_url)
    elif args.db_path:
        db = get_database(args.db_path)
    else:
        db = get_database()
    return AlertEngine(db, AlertConfig.from_settings(settings))


def run_command(engine: AlertEngine, args: argparse.Namespace) -> tuple[dict[str, Any], int]:
    """Execute one subcommand; returns (JSON payload, exit code)."""
    now_ts = args.now
    if args.command == "generate":
        alerts = engine.generate_alerts(args.user_id, now_ts=now_ts)
        return {"count": len(alerts), "alerts": [a.to_dict() for a in alerts]}, 0
    if args.command == "list":
        alerts = engine.get_active_alerts(args.user_id)
        return {"alerts": [a.to_dict() for a in alerts]}, 0
    if args.command == "dismiss":
        dismissed = engine.dismiss_alert(args.alert_id, args.user_id, now_ts=now_ts)
        if not dismissed:
            return {"dismissed": False, "error": "Alert not found or already dismissed"}, 1
        return {"dismissed": True}, 0
    if args.command == "dismiss-all":
        return {"dismissed": engine.dismiss_all_alerts(args.user_id, now_ts=now_ts)}, 0
    if args.command == "count":
        return {"count": engine.get_alert_count(args.user_id)}, 0
    if args.command == "cleanup":
        return {"deleted": engine.cleanup_old_alerts(now_ts=now_ts)}, 0
    raise ValueError(f"unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    engine = _engine_from_args(args)
    try:
        payload, code = run_command(engine, args)
    except Exception as e:
        logger.exception("alerts_cli_failed", command=args.command, error=str(e))
        print(json.dumps({"error": str(e)}), file=sys.stderr)
        return 2
    print(json.dumps(payload, ensure_ascii=False))
    return code


if __name__ == "__main__":
    sys.exit(main())
