#!/usr/bin/env python3
from __future__ import annotations

import argparse
import getpass
import os
import subprocess
import sys

# to make scripts/pixelockctl.py behave as if ran from root of repo, set path before importing pixelock
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from pixelock.auth import hash_dashboard_pin
from pixelock.db import SessionLocal, init_db
from pixelock.logging_config import configure_logging
from pixelock.services.blob_store import get_blob_store
from pixelock.services.ticket_service import purge_expired

def run(cmd: list[str]) -> int:
    print("+", " ".join(cmd))
    return subprocess.call(cmd)

def cmd_db(args: argparse.Namespace) -> int:
    if args.action == "create":
        init_db()
        print("Tables created.")
        return 0

    if args.action == "revision":
        return run(["alembic", "-c", "alembic.ini", "revision", "--autogenerate", "-m", args.message])

    if args.action == "upgrade":
        return run(["alembic", "-c", "alembic.ini", "upgrade", "head"])

    if args.action == "downgrade":
        return run(["alembic", "-c", "alembic.ini", "downgrade", args.revision])

    print("Unknown db action")
    return 2

def cmd_hash_pin(args: argparse.Namespace) -> int:
    pin = args.pin or getpass.getpass("Dashboard PIN: ")
    if not pin:
        print("PIN must not be empty.")
        return 1
    print(f"DASHBOARD_PIN_HASH={hash_dashboard_pin(pin)}")
    return 0

def cmd_purge(args: argparse.Namespace) -> int:
    db = SessionLocal()
    try:
        result = purge_expired(db, get_blob_store(), grace_hours=args.grace_hours)
        print(f"Expired {result.expired} ticket(s), deleted {result.deleted} row(s).")
        return 0
    finally:
        db.close()

def main() -> int:
    configure_logging()
    parser = argparse.ArgumentParser(prog="pixelockctl")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_db = sub.add_parser("db")
    p_db.add_argument("action", choices=["create", "revision", "upgrade", "downgrade"])
    p_db.add_argument("--message", default="init")
    p_db.add_argument("--revision", default="-1")
    p_db.set_defaults(func=cmd_db)

    p_hash = sub.add_parser("hash-dashboard-pin")
    p_hash.add_argument("--pin", help="prompted for when omitted")
    p_hash.set_defaults(func=cmd_hash_pin)

    p_purge = sub.add_parser("purge-expired")
    p_purge.add_argument("--grace-hours", type=float, default=None)
    p_purge.set_defaults(func=cmd_purge)

    args = parser.parse_args()
    return args.func(args)

if __name__ == "__main__":
    raise SystemExit(main())
