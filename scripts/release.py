"""
Release-phase helper.

Goal:
- Resolve the database URL the app will use (DATABASE_URL, else DB_PATH sqlite file).
- Run alembic migrations (idempotent; tables that already exist are left alone).

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def run_release() -> None:
    from dotenv import load_dotenv

    from app.crm.config import load_settings
    from app.crm.db import create_db_engine

    load_dotenv()
    settings = load_settings()
    db_url = settings.database_url

    print("=== customer-address release start ===", flush=True)
    print(f"ENV={settings.env or '(unset)'}", flush=True)

    # Creates the sqlite directory when needed before alembic connects.
    create_db_engine(db_url).dispose()

    print("Running Alembic migrations...", flush=True)
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")
    print("Migrations complete.", flush=True)
    print("=== customer-address release done ===", flush=True)


def main() -> None:
    run_release()


if __name__ == "__main__":
    main()
