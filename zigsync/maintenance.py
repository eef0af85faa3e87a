"""Maintenance jobs that run outside the scheduled sync."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from zigsync.config import CrawlConfig
from zigsync.core.sections import classify_sections
from zigsync.crawler import DetailPageParser, Fetcher
from zigsync.db import crud
from zigsync.db.session import get_session

LOGGER = logging.getLogger(__name__)

# A legacy main_tasks blob shorter than this is not worth re-splitting.
LEGACY_BLOB_MIN_CHARS = 50


@dataclass
class RefillSummary:
    checked: int
    found: int
    missing: int
    failed: int
    updated: int
    dry_run: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ResectionSummary:
    checked: int
    updated: int
    dry_run: bool

    def to_dict(self) -> dict:
        return asdict(self)


def _education_for(parser: DetailPageParser, job_id: str) -> tuple[str, Optional[str], bool]:
    """(id, education or None, fetched ok)."""
    result = parser.parse(job_id)
    if result.status != "posting" or result.posting is None:
        return job_id, None, False
    return job_id, result.posting.education, True


class _ThreadParsers:
    """One parser per worker thread; requests sessions are not shared across threads."""

    def __init__(self, factory: Callable[[], DetailPageParser]):
        self.factory = factory
        self.local = threading.local()
        self.lock = threading.Lock()
        self.created: list[DetailPageParser] = []

    def get(self) -> DetailPageParser:
        parser = getattr(self.local, "parser", None)
        if parser is None:
            parser = self.local.parser = self.factory()
            with self.lock:
                self.created.append(parser)
        return parser

    def close(self) -> None:
        for parser in self.created:
            parser.fetcher.close()


def refill_education(
    config: CrawlConfig,
    factory: sessionmaker,
    *,
    parser_factory: Optional[Callable[[], DetailPageParser]] = None,
    limit: Optional[int] = None,
    dry_run: bool = False,
) -> RefillSummary:
    """Re-fetch postings with no education level and store what is found.

    Fetches run on a small thread pool, each worker with its own parser and
    HTTP session; results are merged only after every task has finished, then
    written in batches.
    """
    parsers = _ThreadParsers(parser_factory or (lambda: DetailPageParser(config, Fetcher(config))))
    with get_session(factory) as session:
        ids = crud.jobs_missing_education(session, limit=limit)
    LOGGER.info("refill-education candidates=%s concurrency=%s", len(ids), config.refill_concurrency)
    if not ids:
        return RefillSummary(0, 0, 0, 0, 0, dry_run)

    try:
        with ThreadPoolExecutor(max_workers=max(1, config.refill_concurrency)) as pool:
            outcomes = list(pool.map(lambda job_id: _education_for(parsers.get(), job_id), ids))
    finally:
        parsers.close()

    found = {job_id: edu for job_id, edu, _ in outcomes if edu}
    failed = sum(1 for _, _, ok in outcomes if not ok)
    missing = len(ids) - len(found) - failed

    updated = 0
    if found and not dry_run:
        items = sorted(found.items())
        size = max(1, config.batch_size)
        for i in range(0, len(items), size):
            with get_session(factory) as session:
                updated += crud.update_education(session, dict(items[i:i + size]))
            LOGGER.info("refill-education batch=%s written=%s", i // size + 1, updated)

    summary = RefillSummary(
        checked=len(ids),
        found=len(found),
        missing=missing,
        failed=failed,
        updated=updated,
        dry_run=dry_run,
    )
    LOGGER.info("refill-education done %s", summary.to_dict())
    return summary


def reclassify_detail(detail: Optional[dict]) -> Optional[dict]:
    """New sections for a stored detail object, or None when nothing changes.

    Rows with ``raw_content`` are replayed from it. Older rows kept the whole
    description in ``main_tasks``; those are split only when the split finds a
    requirements section.
    """
    if not detail:
        return None
    raw = detail.get("raw_content")
    if raw:
        sections = classify_sections(raw).model_dump()
    else:
        blob = detail.get("main_tasks") or ""
        if len(blob) <= LEGACY_BLOB_MIN_CHARS or detail.get("requirements"):
            return None
        sections = classify_sections(blob).model_dump()
        if not sections["requirements"]:
            return None
    if all(detail.get(k) == v for k, v in sections.items()):
        return None
    return sections


def reclassify_sections(factory: sessionmaker, *, dry_run: bool = False, page_size: int = 500) -> ResectionSummary:
    """Replay the section classifier over stored rows; no network access."""
    checked = 0
    pending: dict[str, dict] = {}
    with get_session(factory) as session:
        for job_id, detail in crud.iter_job_details(session, page_size=page_size):
            checked += 1
            sections = reclassify_detail(detail)
            if sections is not None:
                pending[job_id] = sections

    updated = 0
    if pending and not dry_run:
        with get_session(factory) as session:
            updated = crud.update_details(session, pending)

    summary = ResectionSummary(checked=checked, updated=updated if not dry_run else len(pending), dry_run=dry_run)
    LOGGER.info("resection done %s", summary.to_dict())
    return summary
