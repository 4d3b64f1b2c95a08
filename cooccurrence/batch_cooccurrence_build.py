"""
Batch Co-occurrence Builder

CLI script to recompute the entity co-occurrence table from remiss
participation data. Every run is a full recompute: existing rows are deleted
and the fresh set is inserted in batches.

Usage:
    # Full recompute (delete + insert)
    python -m cooccurrence.batch_cooccurrence_build

    # Dry run (compute stats, do not touch the table)
    python -m cooccurrence.batch_cooccurrence_build --dry-run

    # Smaller insert batches
    python -m cooccurrence.batch_cooccurrence_build --batch-size 200

Cron example (daily at 4:15 AM UTC):
    15 4 * * * cd /srv/remissnet && python3 -m cooccurrence.batch_cooccurrence_build >> /var/log/remissnet/cooccurrence.log 2>&1
"""

import os
import sys
import json
import logging
import asyncio
import argparse
from typing import Any, Dict

import asyncpg
from dotenv import load_dotenv

from cooccurrence.engine import BATCH_SIZE, CooccurrenceEngine
from cooccurrence.errors import CooccurrenceError
from cooccurrence.evidence import MAX_SHARED_CASES
from cooccurrence.storage import CooccurrenceStore

logger = logging.getLogger(__name__)


async def run_batch(
    dry_run: bool = False,
    batch_size: int = BATCH_SIZE,
    max_shared_cases: int = MAX_SHARED_CASES,
) -> Dict[str, Any]:
    """
    Run one co-occurrence recompute against DATABASE_URL.

    Args:
        dry_run: If True, compute stats but do not write to DB
        batch_size: Rows per insert batch
        max_shared_cases: Evidence cap per pair

    Returns:
        Dict with the run result or an "error" key
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        logger.error("DATABASE_URL not set. Export it or set in environment.")
        return {"error": "DATABASE_URL not set"}

    dsn = database_url.replace("postgresql+asyncpg://", "postgresql://")
    pool = await asyncpg.create_pool(dsn, min_size=1, max_size=3, command_timeout=300)
    logger.info("Database pool created")

    try:
        store = CooccurrenceStore(pool)
        if not dry_run:
            await store.ensure_tables_exist()

        engine = CooccurrenceEngine(store, batch_size=batch_size, max_shared_cases=max_shared_cases)
        try:
            result = await engine.run(dry_run=dry_run)
        except CooccurrenceError as e:
            return {"error": str(e), **engine.summary()}

        return {**result.to_dict(), **engine.summary()}

    finally:
        await pool.close()
        logger.info("Database pool closed")


def main():
    """CLI entry point."""
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    parser = argparse.ArgumentParser(
        description="Recompute the entity co-occurrence table from remiss participation."
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute statistics but do not write to database",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=BATCH_SIZE,
        help=f"Rows per insert batch (default: {BATCH_SIZE})",
    )
    parser.add_argument(
        "--max-shared-cases",
        type=int,
        default=MAX_SHARED_CASES,
        help=f"Case ids kept per pair (default: {MAX_SHARED_CASES})",
    )

    args = parser.parse_args()

    result = asyncio.run(run_batch(
        dry_run=args.dry_run,
        batch_size=args.batch_size,
        max_shared_cases=args.max_shared_cases,
    ))

    print(json.dumps(result, indent=2, default=str))

    if "error" in result:
        sys.exit(1)


if __name__ == "__main__":
    main()
