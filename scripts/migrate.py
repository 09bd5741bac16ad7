#!/usr/bin/env python3
"""
Record store migration utility.
Opens the store (applying any pending migrations) and reports its schema version.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.db import RecordStore, SCHEMA_VERSION
from src.core.errors import MigrationError, StoreError


async def run(db_path: str = None):
    store = RecordStore(db_path)
    try:
        await store.open()
        version = await store.get_schema_version()
        healthy = await store.health_check()
        return store.applied_migrations, version, healthy
    finally:
        store.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Apply pending record store migrations")
    parser.add_argument(
        "--db",
        help="Record store path (default: DB_PATH)"
    )
    args = parser.parse_args(argv)

    try:
        applied, version, healthy = asyncio.run(run(args.db))
    except MigrationError as e:
        print(f"ERROR: {e}")
        print("The store was left at its previous version.")
        return 1
    except StoreError as e:
        print(f"ERROR: Record store unavailable: {e}")
        return 1

    if applied:
        print(f"✓ Applied migrations: {', '.join(str(v) for v in applied)}")
    else:
        print("✓ No pending migrations")
    print(f"Schema version: {version} (latest {SCHEMA_VERSION})")
    print(f"Health check: {'ok' if healthy else 'FAILED'}")
    return 0 if healthy else 1


if __name__ == "__main__":
    sys.exit(main())
