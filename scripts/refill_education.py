"""Fill in education levels for postings stored without one.

One-off maintenance job; uses a small worker pool instead of the sequential
crawl loop because it only touches the rows that are missing the field.
"""

from __future__ import annotations

import argparse
import logging
import os

from zigsync.config import CrawlConfig
from zigsync.db.session import make_session_factory
from zigsync.maintenance import refill_education

DEFAULT_LIMIT = 30000


def main() -> None:
    parser = argparse.ArgumentParser(description="Re-fetch postings whose education is NULL")
    parser.add_argument(
        "--limit",
        type=int,
        default=int(os.getenv("ZIGSYNC_REFILL_LIMIT", DEFAULT_LIMIT)),
        help="Maximum postings to check (default: env ZIGSYNC_REFILL_LIMIT or 30000)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Report without updating the database")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    config = CrawlConfig.from_env()
    summary = refill_education(config, make_session_factory(config.database_url), limit=args.limit, dry_run=args.dry_run)
    print(summary.to_dict())


if __name__ == "__main__":
    main()
