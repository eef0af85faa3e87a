# zigsync/cli.py
from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, date

from zigsync.config import CrawlConfig
from zigsync.core.models import is_deactivation_marker
from zigsync.crawler import build_orchestrator
from zigsync.db.models import Base
from zigsync.db.session import make_engine, make_session_factory
from zigsync.maintenance import reclassify_sections, refill_education
from zigsync.sync import run_sync

LOGGER = logging.getLogger("zigsync")


# --- JSON helpers ---
def _json_default(o):
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    return str(o)


def _print(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=_json_default))


class SampleComplete(Exception):
    """Raised from the batch callback to stop a sample crawl early."""


def cmd_crawl(args, config: CrawlConfig) -> int:
    factory = make_session_factory(config.database_url, create_schema=True)
    summary = run_sync(config, factory, full=args.full, resume=args.resume)
    _print(summary.to_dict())
    return 0


def cmd_refill_education(args, config: CrawlConfig) -> int:
    factory = make_session_factory(config.database_url, create_schema=True)
    summary = refill_education(config, factory, limit=args.limit, dry_run=args.dry_run)
    _print(summary.to_dict())
    return 0


def cmd_resection(args, config: CrawlConfig) -> int:
    factory = make_session_factory(config.database_url, create_schema=True)
    summary = reclassify_sections(factory, dry_run=args.dry_run)
    _print(summary.to_dict())
    return 0


def cmd_init_db(args, config: CrawlConfig) -> int:
    LOGGER.info("Initializing database schema url=%s", config.database_url)
    Base.metadata.create_all(bind=make_engine(config.database_url))
    LOGGER.info("Database schema initialized successfully.")
    return 0


def cmd_sample(args, config: CrawlConfig) -> int:
    """Crawl the first few postings and print them; nothing is stored."""
    config = config.with_overrides(batch_size=1)
    orchestrator = build_orchestrator(config)
    collected: list[dict] = []

    def _collect(batch: list[dict]) -> None:
        collected.extend(r for r in batch if not is_deactivation_marker(r))
        if len(collected) >= args.limit:
            raise SampleComplete()

    try:
        orchestrator.run(on_batch=_collect)
    except SampleComplete:
        LOGGER.info("sample-complete records=%s", len(collected))

    for rec in collected[: args.limit]:
        detail = rec.get("detail") or {}
        _print({
            "id": rec.get("id"),
            "company": rec.get("company"),
            "title": rec.get("title"),
            "location": rec.get("location"),
            "depth_ones": rec.get("depth_ones"),
            "employee_types": rec.get("employee_types"),
            "education": rec.get("education"),
            "original_created_at": rec.get("original_created_at"),
            "is_active": rec.get("is_active"),
            "main_tasks": (detail.get("main_tasks") or "")[:100],
        })
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="zigsync", description="Mirror job postings from the source sitemap into a local store")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    crawl = sub.add_parser("crawl", help="Run one sync (incremental unless --full)")
    crawl.add_argument("--full", action="store_true", help="Fetch every posting regardless of lastmod")
    crawl.add_argument("--resume", action="store_true", help="Skip postings already stored (resume an interrupted run)")
    crawl.set_defaults(func=cmd_crawl)

    refill = sub.add_parser("refill-education", help="Re-fetch postings with no education level")
    refill.add_argument("--limit", type=int, default=None, help="Maximum postings to check")
    refill.add_argument("--dry-run", action="store_true", help="Report without updating the database")
    refill.set_defaults(func=cmd_refill_education)

    resection = sub.add_parser("resection", help="Re-run section classification over stored rows")
    resection.add_argument("--dry-run", action="store_true", help="Report without updating the database")
    resection.set_defaults(func=cmd_resection)

    init_db = sub.add_parser("init-db", help="Create the database schema")
    init_db.set_defaults(func=cmd_init_db)

    sample = sub.add_parser("sample", help="Crawl a few postings and print them")
    sample.add_argument("--limit", type=int, default=10, help="Number of postings to print")
    sample.set_defaults(func=cmd_sample)
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args, CrawlConfig.from_env())


if __name__ == "__main__":
    # When executed as `python -m zigsync.cli ...`
    raise SystemExit(main())
