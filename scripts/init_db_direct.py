"""
scripts/init_db_direct.py — Drop and recreate the whole CRM schema.

DESTRUCTIVE: every CRM table and enum type is dropped first. Intended for
local development resets only.

Usage:
    python scripts/init_db_direct.py --yes
"""

import sys
import os
import argparse
import logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.db.schema import reset_schema
from app.db.session import Database
from app.logging_config import setup_logging

logger = logging.getLogger("init_db_direct")


def reset_db(database_url: str | None = None) -> int:
    print("⚠️  Resetting database: all CRM tables will be dropped.")

    try:
        with Database(database_url) as database:
            database.test_connection()
            print("🗑️  Dropping tables and types, then recreating...")
            result = reset_schema(database)
    except Exception as e:
        logger.exception("Schema reset failed")
        print(f"\n❌ Error resetting database: {e}", file=sys.stderr)
        return 1

    print(f"✅ Schema recreated ({result.executed} statements).")
    print("\n🎉 Database reset complete!")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Drop and recreate the CRM schema.")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    parser.add_argument("--yes", action="store_true", help="Confirm the destructive reset")
    args = parser.parse_args()

    if not args.yes:
        print("Refusing to drop tables without --yes.", file=sys.stderr)
        sys.exit(1)

    setup_logging()
    sys.exit(reset_db(args.database_url))
