"""
scripts/init_db.py — Create the CRM schema from app/db/schema.sql.

Safe to re-run: statements for objects that already exist are skipped.

Usage:
    python scripts/init_db.py
"""

import sys
import os
import argparse
import logging

# Ensure the project root is on the path so we can import `app`
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.config import settings
from app.db.schema import apply_schema
from app.db.session import Database
from app.logging_config import setup_logging

logger = logging.getLogger("init_db")


def init_db(database_url: str | None = None) -> int:
    print("🔌 Connecting to database...")
    print(f"   URL: {(database_url or settings.database_url)[:40]}...")

    try:
        with Database(database_url) as database:
            now = database.test_connection()
            print(f"✅ Connection successful (server time {now}).")

            print("\n📦 Applying schema...")
            result = apply_schema(database, tolerate_existing=True)
    except Exception as e:
        logger.exception("Schema initialisation failed")
        print(f"\n❌ Error initializing database: {e}", file=sys.stderr)
        return 1

    print(f"✅ {result.executed} statements executed, {len(result.skipped)} skipped (already exist).")
    print("\n🎉 Database setup complete!")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the CRM schema (idempotent).")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    args = parser.parse_args()

    setup_logging()
    sys.exit(init_db(args.database_url))
