"""Drive one crawl run: discover -> detail fetch loop -> final flush.

Extraction is a plain generator (``iter_results``) with no persistence
concerns; ``run`` layers batching, progress cadence and counting on top.
Callbacks are invoked synchronously and their exceptions propagate, which
aborts the run (batches flushed before that point stay written).
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Collection, Dict, Iterable, Iterator, List, Optional

from zigsync.config import CrawlConfig
from zigsync.core.models import SitemapEntry
from zigsync.crawler.detail import DetailPageParser, DetailResult
from zigsync.crawler.governor import DelayGovernor
from zigsync.crawler.sitemap import SitemapWalker, filter_since

LOGGER = logging.getLogger(__name__)

Record = Dict[str, Any]
BatchCallback = Callable[[List[Record]], Any]


@dataclass(frozen=True)
class CrawlProgress:
    processed: int
    total: int
    succeeded: int
    failed: int
    deleted: int


ProgressCallback = Callable[[CrawlProgress], Any]


@dataclass
class CrawlRunResult:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    deleted: int = 0
    skipped: int = 0
    # Sitemaps skipped on fetch errors; when non-zero all_source_ids is partial.
    sitemap_failures: int = 0
    all_source_ids: frozenset[str] = field(default_factory=frozenset)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["all_source_ids"] = len(self.all_source_ids)
        return data


class _BatchBuffer:
    """Accumulates one kind of record and flushes at a fixed size."""

    def __init__(self, size: int, on_batch: Optional[BatchCallback]):
        self.size = max(1, size)
        self.on_batch = on_batch
        self.items: List[Record] = []

    def add(self, record: Record) -> None:
        self.items.append(record)
        if len(self.items) >= self.size:
            self.flush()

    def flush(self) -> None:
        if not self.items:
            return
        batch, self.items = self.items, []
        if self.on_batch is not None:
            self.on_batch(batch)


class CrawlOrchestrator:
    def __init__(
        self,
        config: CrawlConfig,
        walker: SitemapWalker,
        parser: DetailPageParser,
        governor: DelayGovernor | None = None,
    ):
        self.config = config
        self.walker = walker
        self.parser = parser
        self.governor = governor or DelayGovernor(config.detail_delay)

    def discover(
        self,
        since: Optional[datetime] = None,
        existing_ids: Optional[Collection[str]] = None,
    ) -> tuple[List[SitemapEntry], frozenset[str], int, int]:
        """Return (entries to fetch, every id seen in the sitemap, resumed-skip
        count, failed sitemap count).

        The whole sitemap is always walked so the id set is complete; ``since``
        only narrows which entries get a detail fetch.
        """
        all_entries = self.walker.fetch_all(None)
        all_ids = frozenset(e.id for e in all_entries)
        failures = len(self.walker.failed_sitemaps)

        entries = all_entries
        if since is not None:
            entries = filter_since(all_entries, since)
            LOGGER.info("crawl-incremental since=%s entries=%s", since, len(entries))

        skipped = 0
        if existing_ids:
            before = len(entries)
            entries = [e for e in entries if e.id not in existing_ids]
            skipped = before - len(entries)
            LOGGER.info("crawl-resume skipped=%s remaining=%s", skipped, len(entries))
        return entries, all_ids, skipped, failures

    def iter_results(self, entries: Iterable[SitemapEntry]) -> Iterator[DetailResult]:
        """One DetailResult per entry, strictly sequential and rate governed."""
        for entry in entries:
            self.governor.wait()
            yield self.parser.parse(entry)

    def run(
        self,
        since: Optional[datetime] = None,
        *,
        existing_ids: Optional[Collection[str]] = None,
        on_batch: Optional[BatchCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CrawlRunResult:
        LOGGER.info("crawl-start mode=%s", "incremental" if since else "full")
        entries, all_ids, skipped, failures = self.discover(since, existing_ids)
        result = CrawlRunResult(
            total=len(entries),
            skipped=skipped,
            sitemap_failures=failures,
            all_source_ids=all_ids,
        )
        if not entries:
            LOGGER.info("crawl-empty sitemap_ids=%s", len(all_ids))
            return result

        postings = _BatchBuffer(self.config.batch_size, on_batch)
        deactivations = _BatchBuffer(self.config.batch_size, on_batch)
        every = max(1, self.config.progress_every)

        processed = 0
        for item in self.iter_results(entries):
            processed += 1
            if item.status == "posting" and item.posting is not None:
                result.succeeded += 1
                postings.add(item.posting.to_record())
            elif item.status == "tombstone":
                result.deleted += 1
                deactivations.add(item.tombstone.to_record())
            else:
                result.failed += 1

            if processed % every == 0 or processed == result.total:
                LOGGER.info(
                    "crawl-progress processed=%s total=%s succeeded=%s failed=%s deleted=%s",
                    processed, result.total, result.succeeded, result.failed, result.deleted,
                )
                if on_progress is not None:
                    on_progress(CrawlProgress(
                        processed=processed,
                        total=result.total,
                        succeeded=result.succeeded,
                        failed=result.failed,
                        deleted=result.deleted,
                    ))

        postings.flush()
        deactivations.flush()

        LOGGER.info(
            "crawl-done total=%s succeeded=%s failed=%s deleted=%s sitemap_ids=%s",
            result.total, result.succeeded, result.failed, result.deleted, len(all_ids),
        )
        return result
