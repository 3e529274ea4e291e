#!/usr/bin/env python3
"""Migration script to seed document number counters.

Older databases numbered journal entries, vouchers and statement uploads by
counting existing rows, which hands out duplicate numbers under concurrent
posting. Numbers are now allocated from the sequence_counters table. This
migration creates that table if needed and raises every counter to the
highest ordinal already in use, so new numbers continue after existing ones:

- JE-20240115-0007 → counter (JE, 20240115) = 7
- PCV-2401-0042    → counter (PCV, 2401) = 42

Running it again is harmless: counters are only ever raised.

Usage:
    python migrations/migrate_seed_sequence_counters.py [--db-path PATH]
"""

import sys
from pathlib import Path

# Add src to path so we can import ledgerkit modules
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import inspect
from ledgerkit.database.factories import create_sqlite_database
from ledgerkit.database.models import SequenceCounter
from ledgerkit.domain.sequence import SequenceService


def migrate_database(database_path: str | None = None) -> None:
    """Seed sequence counters from existing document numbers.

    Args:
        database_path: Path to database file. If None, uses default location.

    Raises:
        Exception: If migration fails
    """
    # Creating the database instance creates missing tables, sequence_counters included
    db = create_sqlite_database(database_path=database_path)
    db.connect()

    try:
        session = db.session_factory()
        try:
            engine = session.bind
            if engine is None:
                raise Exception("Could not get database engine from session")
        finally:
            session.close()

        if SequenceCounter.__tablename__ not in inspect(engine).get_table_names():
            raise Exception(f"Table '{SequenceCounter.__tablename__}' could not be created")

        print("Starting migration: seeding sequence counters...")

        highest = SequenceService(db).rebuild_counters()
        for (prefix, period_key), ordinal in sorted(highest.items()):
            print(f"  {prefix}-{period_key}: {ordinal}")

        if not highest:
            print("  No numbered documents found; counters start at 1")

        print("Migration completed successfully!")

    except Exception as e:
        print(f"Migration failed: {e}")
        raise
    finally:
        db.disconnect()


def main():
    """Main entry point for migration script."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Seed document number counters from existing numbers"
    )
    parser.add_argument(
        "--db-path",
        type=str,
        help="Path to database file (overrides LEDGERKIT_DB_PATH environment variable)",
    )
    args = parser.parse_args()

    try:
        migrate_database(database_path=args.db_path)
        return 0
    except Exception as e:
        print(f"\nMigration failed: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
