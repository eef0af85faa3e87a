"""Scheduled sync: crawl the source and reconcile the store with it.

1. Pick the incremental window (last successful crawl) unless a full pass is
   requested or no previous crawl is recorded.
2. Crawl; every batch goes straight to the store.
3. Deactivate postings past their deadline, then postings that vanished from
   the sitemap. The second step needs a complete walk with no failed sitemaps.
4. Record crawl metadata.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from zigsync.config import CrawlConfig
from zigsync.core.dates import utcnow
from zigsync.crawler import CrawlOrchestrator, CrawlProgress, CrawlRunResult, build_orchestrator
from zigsync.db import crud
from zigsync.db.session import get_session

LOGGER = logging.getLogger(__name__)


@dataclass
class SyncSummary:
    mode: str
    since: Optional[str]
    crawl: dict
    expired: int = 0
    removed_from_source: int = 0
    batch_upserts: int = 0
    batch_deactivations: int = 0
    finished_at: str = field(default_factory=lambda: utcnow().isoformat())

    def to_dict(self) -> dict:
        return asdict(self)


def reconcile(
    factory: sessionmaker,
    result: CrawlRunResult,
    *,
    today: Optional[date] = None,
) -> tuple[int, int]:
    """Return (expired, removed_from_source) deactivation counts."""
    with get_session(factory) as session:
        expired = crud.deactivate_expired(session, today)
        LOGGER.info("reconcile-expired deactivated=%s", expired)

        removed = 0
        # Removed-from-source needs a complete, non-empty id set.
        if result.sitemap_failures:
            LOGGER.warning(
                "reconcile-missing skipped reason=sitemap-failures failed=%s sitemap_ids=%s",
                result.sitemap_failures, len(result.all_source_ids),
            )
        elif result.all_source_ids:
            removed = crud.deactivate_missing(session, result.all_source_ids)
            LOGGER.info("reconcile-missing deactivated=%s sitemap_ids=%s", removed, len(result.all_source_ids))
        else:
            LOGGER.warning("reconcile-missing skipped reason=empty-sitemap")
    return expired, removed


def run_sync(
    config: CrawlConfig,
    factory: sessionmaker,
    *,
    full: bool = False,
    resume: bool = False,
    orchestrator: Optional[CrawlOrchestrator] = None,
    on_progress: Optional[Callable[[CrawlProgress], object]] = None,
    today: Optional[date] = None,
) -> SyncSummary:
    orchestrator = orchestrator or build_orchestrator(config)

    since: Optional[datetime] = None
    existing_ids: Optional[set[str]] = None
    with get_session(factory) as session:
        if not full:
            since = crud.get_last_crawled_at(session)
            if since is None:
                LOGGER.info("sync-mode no previous crawl recorded, running a full pass")
        if resume:
            existing_ids = crud.existing_job_ids(session)

    started_at = utcnow()
    counts = {"upserted": 0, "deactivated": 0}

    def _save(batch: list[dict]) -> None:
        with get_session(factory) as session:
            upserted, deactivated = crud.save_batch(session, batch)
        counts["upserted"] += upserted
        counts["deactivated"] += deactivated
        LOGGER.info("sync-batch upserted=%s deactivated=%s", upserted, deactivated)

    result = orchestrator.run(
        since,
        existing_ids=existing_ids,
        on_batch=_save,
        on_progress=on_progress,
    )

    expired, removed = reconcile(factory, result, today=today)

    with get_session(factory) as session:
        crud.update_crawl_metadata(
            session,
            total_jobs=crud.count_jobs(session),
            active_jobs=crud.count_jobs(session, active_only=True),
            crawled_at=started_at,
        )

    summary = SyncSummary(
        mode="incremental" if since else "full",
        since=since.isoformat() if since else None,
        crawl=result.to_dict(),
        expired=expired,
        removed_from_source=removed,
        batch_upserts=counts["upserted"],
        batch_deactivations=counts["deactivated"],
    )
    LOGGER.info("sync-done %s", summary.to_dict())
    return summary
