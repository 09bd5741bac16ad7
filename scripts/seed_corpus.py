#!/usr/bin/env python3
"""
Corpus seeding utility.
Fetches a legal reference source and upserts it into the corpus index by citation.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.corpus import CorpusIndex
from src.core.db import RecordStore
from src.core.errors import StoreError
from src.core.feeds import ConstitutionFeed, FrcpFeed, JsonFileFeed, seed_corpus

FEEDS = {
    "frcp": FrcpFeed,
    "constitution": ConstitutionFeed,
}


def build_feed(source: str):
    if source in FEEDS:
        return FEEDS[source]()
    return JsonFileFeed(source)


async def run(source: str, db_path: str = None, quiet: bool = False):
    store = RecordStore(db_path)
    try:
        await store.open()
        index = CorpusIndex(store)
        result = await seed_corpus(index, build_feed(source), None if quiet else print)
        total = await index.count()
    finally:
        store.close()
    return result, total


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Seed the legal corpus from a web source or a JSON file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s frcp                      # Federal Rules of Civil Procedure (law.cornell.edu)
  %(prog)s constitution              # U.S. Constitution and amendments (archives.gov)
  %(prog)s ./statutes.json           # Local JSON list of corpus items

Seeding is idempotent: items are keyed by citation, so re-running updates rows in place.

Environment variables:
- DB_PATH=./data/verobrix.db
- FEED_REQUEST_TIMEOUT_SEC=30
        """
    )

    parser.add_argument(
        "source",
        help="'frcp', 'constitution' or a path to a JSON file"
    )

    parser.add_argument(
        "--db",
        help="Record store path (default: DB_PATH)"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only print the summary"
    )

    args = parser.parse_args(argv)

    try:
        result, total = asyncio.run(run(args.source, args.db, args.quiet))
    except StoreError as e:
        print(f"ERROR: Record store unavailable: {e}")
        return 1

    if not result.success:
        print(f"ERROR: Seeding failed: {result.error}")
        return 1

    print(f"✓ Seeded {result.count} items ({result.report.added} added, {result.report.updated} updated)")
    if result.report.failures:
        print(f"WARNING: {len(result.report.failures)} items rejected")
    print(f"Corpus now holds {total} items")
    return 0


if __name__ == "__main__":
    sys.exit(main())
