#!/usr/bin/env python
"""
Primary address audit.

The API keeps at most one primary address per customer, but rows written
around it (bulk imports, manual SQL) can leave several. This lists the
offending customers and can demote all but the highest-id primary address.

Usage:
    # List violations (dry run)
    python scripts/repair_primary_addresses.py --list

    # Fix them
    python scripts/repair_primary_addresses.py --repair --confirm

Environment:
    DATABASE_URL or DB_PATH (same resolution as the app)
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dotenv import load_dotenv  # noqa: E402

from app.crm.config import load_settings  # noqa: E402
from app.crm.modules.addresses.service import find_primary_conflicts, repair_primary  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402


def list_conflicts(db_url: str) -> None:
    with script_session(db_url) as s:
        conflicts = find_primary_conflicts(s)
        if not conflicts:
            print("No customers with more than one primary address.")
            return
        print(f"Found {len(conflicts)} customer(s) with several primary addresses:\n")
        for customer_id, address_ids in conflicts.items():
            print(f"  customer {customer_id}: primary addresses {', '.join(str(i) for i in address_ids)}")


def repair_all(db_url: str, confirm: bool = False) -> None:
    with script_session(db_url) as s:
        conflicts = find_primary_conflicts(s)
        if not conflicts:
            print("Nothing to repair.")
            return
        if not confirm:
            print(f"{len(conflicts)} customer(s) need repair. Run with --confirm to apply.")
            return
        for customer_id in conflicts:
            kept = repair_primary(s, customer_id)
            print(f"  customer {customer_id}: kept primary address {kept}")
    print(f"Repaired {len(conflicts)} customer(s).")


def main():
    parser = argparse.ArgumentParser(description="Primary address audit tool")
    parser.add_argument("--list", action="store_true", help="List customers with several primary addresses")
    parser.add_argument("--repair", action="store_true", help="Keep only the highest-id primary address")
    parser.add_argument("--confirm", action="store_true", help="Confirm repair")

    args = parser.parse_args()
    load_dotenv()
    db_url = load_settings().database_url

    if args.list:
        list_conflicts(db_url)
    elif args.repair:
        repair_all(db_url, confirm=args.confirm)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
