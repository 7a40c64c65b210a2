#!/usr/bin/env python3
"""Drain a project's extraction queue from the command line.

Usage:
    python scripts/drain_queue.py <project_id>
    python scripts/drain_queue.py proj-123 --retry-failed

Options:
    --db PATH         SQLite database path (default: ALOA_DB_PATH or
                      ~/.local/share/aloa_knowledge/knowledge.db).
                      Ignored when ALOA_DATABASE_URL is set.
    --retry-failed    Return failed entries under the attempt cap to pending first
    --batch-size N    Entries to attempt (default: ALOA_QUEUE_BATCH_SIZE or 10)
    --dry-run         Show the queue without processing it

Useful from cron when no request has triggered a drain for a while.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from aloa_knowledge.config import get_db_path, get_log_level
from aloa_knowledge.db.connection import create_connection
from aloa_knowledge.extract.extractor import KnowledgeExtractor
from aloa_knowledge.tools.formatters import (
    format_drain_report,
    format_queue_entry,
    format_queue_stats,
)


async def main() -> int:
    """Run one drain pass."""
    parser = argparse.ArgumentParser(description="Drain an aloa-knowledge extraction queue")
    parser.add_argument("project_id", help="Project whose queue to drain")
    parser.add_argument("--db", default=None, help="SQLite database path")
    parser.add_argument(
        "--retry-failed", action="store_true", help="Requeue failed entries before draining"
    )
    parser.add_argument("--batch-size", type=int, default=None, help="Entries to attempt")
    parser.add_argument("--dry-run", action="store_true", help="List the queue without draining")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, get_log_level(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    db_path = Path(args.db).expanduser() if args.db else get_db_path()
    db = await create_connection(db_path)
    extractor = KnowledgeExtractor(db, batch_size=args.batch_size)
    try:
        if args.dry_run:
            entries = await extractor.queue.list_for_project(args.project_id)
            print(format_queue_stats(await extractor.queue.stats(args.project_id)))
            for entry in entries:
                print(format_queue_entry(entry))
            return 0

        report = await extractor.process_queue(args.project_id, retry_failed=args.retry_failed)
        print(format_drain_report(report))
        if report.processed:
            invalidated = await extractor.invalidate_cache(args.project_id)
            if not invalidated:
                print("Warning: context cache was not invalidated")
        return 1 if report.failed else 0
    finally:
        await extractor.close()
        await db.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
