"""
scripts/seed_db.py — Replace all data with a Faker-generated demo set.

Usage:
    python scripts/seed_db.py
    python scripts/seed_db.py --seed 42   # reproducible data
"""

import sys
import os
import argparse
import logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.db.session import get_session
from app.logging_config import setup_logging
from app.services.seed_service import seed_database

logger = logging.getLogger("seed_db")


def run(seed: int | None) -> int:
    print("🌱 Seeding database with demo data...")

    try:
        with get_session() as db:
            summary = seed_database(db, seed=seed)
    except Exception as e:
        logger.exception("Seeding failed")
        print(f"❌ Error seeding database: {e}", file=sys.stderr)
        return 1

    print("\n🎉 Database seeded successfully!")
    print("📊 Summary:")
    print(f"   - {summary.companies} companies")
    print(f"   - {summary.contacts} contacts")
    print(f"   - {summary.deals} deals")
    print(f"   - {summary.jobs} jobs")
    print(f"   - {summary.candidates} candidates")
    print(f"   - {summary.submissions} submissions ({summary.duplicate_submissions} duplicates skipped)")
    print(f"   - {summary.templates} email templates")
    print(f"   - {summary.sequences} sequence")
    print(f"   - {summary.icps} ICP profile")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the CRM with demo data.")
    parser.add_argument("--seed", type=int, default=None, help="Faker seed for reproducible data")
    args = parser.parse_args()

    setup_logging()
    sys.exit(run(args.seed))
