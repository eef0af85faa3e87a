"""Re-split stored posting descriptions into sections.

Replays the section classifier over each row's ``raw_content`` (or, for rows
crawled before raw_content existed, over a main_tasks blob that swallowed the
whole description). Runs entirely against the database.
"""

from __future__ import annotations

import argparse
import logging
import os

from zigsync.config import CrawlConfig
from zigsync.db.session import make_session_factory
from zigsync.maintenance import reclassify_sections


def _parse_bool(value):
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def main() -> None:
    parser = argparse.ArgumentParser(description="Re-run section classification over stored postings")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=_parse_bool(os.getenv("ZIGSYNC_BACKFILL_DRY_RUN")),
        help="Report how many rows would change without modifying the database",
    )
    parser.add_argument("--page-size", type=int, default=500, help="Rows read per page")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    config = CrawlConfig.from_env()
    summary = reclassify_sections(make_session_factory(config.database_url), dry_run=args.dry_run, page_size=args.page_size)
    print(summary.to_dict())


if __name__ == "__main__":
    main()
