"""
Script to prepare the metering tables and insert the missing default plans and credit packages.
Run: python -m scripts.seed_catalog [--migrate] [--reset]

Without --migrate the tables are created straight from the models (local
development); with it the Alembic migrations are applied first. Existing catalog rows
keep their admin edits unless --reset is given.
"""
import argparse
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from jobgate.db.init_db import init_db
from jobgate.db.migrate import run_migrations
from jobgate.db.session import SessionLocal
from jobgate.services.plan_service import seed_catalog
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def migrate_and_seed(reset: bool = False) -> dict:
    run_migrations()
    db = SessionLocal()
    try:
        return seed_catalog(db, reset=reset)
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the plan catalog")
    parser.add_argument("--migrate", action="store_true", help="Apply Alembic migrations instead of create_all")
    parser.add_argument("--reset", action="store_true", help="Overwrite existing plans and packages with the defaults")
    args = parser.parse_args()

    counts = migrate_and_seed(args.reset) if args.migrate else init_db(reset=args.reset)
    print(
        f"\n[SUCCESS] Catalog seeded: {counts['plans']} plans, {counts['packages']} packages created, "
        f"{counts['reset']} reset"
    )
