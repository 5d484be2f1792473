# scripts/setup/import_vehicles.py
"""
Import vehicles and recipients from JSON exports of the old document store.
Usage:
  python scripts/setup/import_vehicles.py --vehicles vehicles.json \
      [--accounts auth_export.json] [--user-settings users.json]
"""

import argparse
import json
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from app.database import SessionLocal, create_tables
from app.services.import_service import (
    import_auth_accounts,
    import_user_settings,
    import_vehicle_documents,
)


def _load(path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def main():
    parser = argparse.ArgumentParser(description="Import DeadlineMind document exports")
    parser.add_argument("--vehicles", required=True, help="JSON map of vehicle id → document")
    parser.add_argument("--accounts", help="Auth provider user export ({'users': [...]})")
    parser.add_argument("--user-settings", help="JSON map of user id → {phoneNumber}")
    args = parser.parse_args()

    create_tables()
    db = SessionLocal()
    try:
        if args.accounts:
            print(f"👤 Accounts imported: {import_auth_accounts(db, _load(args.accounts))}")
        if args.user_settings:
            print(f"📱 User settings imported: {import_user_settings(db, _load(args.user_settings))}")

        imported, rejected = import_vehicle_documents(db, _load(args.vehicles))
        print(f"🚗 Vehicles imported: {imported}")
        if rejected:
            print(f"⚠️  Rejected {len(rejected)} malformed vehicle documents:")
            for doc_id, reason in rejected:
                print(f"   ✗ {doc_id}: {reason}")
            sys.exit(2)
    finally:
        db.close()


if __name__ == "__main__":
    main()
