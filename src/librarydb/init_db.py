"""
Initialize the LibraryDB database.

This script:
1. Creates all database tables
2. Optionally loads sample data
3. Verifies the tables and the ledger invariant before the server uses them

Usage:
    librarydb-init [--database-url URL] [--drop-existing] [--sample-data]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from .config import get_config
from .database.schema import Base
from .database.seed import seed_sample_data
from .database.session import DatabaseManager
from .services.inventory import InventoryLedger

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Initialize the LibraryDB database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample data after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override the configured database URL",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for database initialization."""
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    args = build_parser().parse_args(argv)

    config = get_config()
    if args.database_url:
        config = config.model_copy(update={"database_url": args.database_url})

    db = DatabaseManager(config)
    try:
        logger.info("Creating database schema...")
        db.init_database(drop_existing=args.drop_existing)

        if not db.verify_connection():
            logger.error("Failed to connect to database")
            return 1

        tables = set(inspect(db.engine).get_table_names())
        missing = set(Base.metadata.tables) - tables
        if missing:
            logger.error("Missing expected tables: %s", ", ".join(sorted(missing)))
            return 1
        logger.info("Created tables: %s", ", ".join(sorted(tables)))

        if args.sample_data:
            logger.info("Loading sample data...")
            counts = seed_sample_data(db, loan_period_days=config.loan_period_days)
            logger.info(
                "Loaded %d books, %d members and %d borrowings",
                counts["books"],
                counts["members"],
                counts["borrowings"],
            )

        discrepancies = InventoryLedger(db).audit()
        if discrepancies:
            logger.error("Inventory ledger is inconsistent for %d book(s)", len(discrepancies))
            return 1

        logger.info("Database initialization complete")
        return 0
    except Exception:
        logger.exception("Database initialization failed")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
