import unittest
from datetime import date, datetime

from zigsync.config import CrawlConfig
from zigsync.core.models import JobPosting, deactivation_marker
from zigsync.crawler import build_orchestrator
from zigsync.crawler.fetch import Fetcher, NO_RESPONSE
from zigsync.crawler.orchestrator import CrawlRunResult
from zigsync.db import crud
from zigsync.db.models import Job
from zigsync.db.session import get_session, make_session_factory
from zigsync.sync import reconcile, run_sync

CONFIG = CrawlConfig(sitemap_delay=0, detail_delay=0)
SITEMAP_1 = "https://zighang.com/seo/sitemap/sitemap-recruitment-1.xml"
SITEMAP_2 = "https://zighang.com/seo/sitemap/sitemap-recruitment-2.xml"


def _index(*locs):
    items = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{items}</sitemapindex>'


def _urlset(*locs):
    items = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{items}</urlset>'


class SitemapFetcher(Fetcher):
    """Serves canned documents; anything else gets no response at all."""

    def __init__(self, pages):
        super().__init__(CONFIG)
        self.pages = pages

    def get(self, url, *, timeout=None, headers=None):
        if url in self.pages:
            return 200, self.pages[url], {}
        return NO_RESPONSE, "", {}


class StubOrchestrator:
    """Replays canned batches through the callback like a real run would."""

    def __init__(self, batches, source_ids, fail_after=None):
        self.batches = batches
        self.source_ids = frozenset(source_ids)
        self.fail_after = fail_after
        self.calls = []

    def run(self, since=None, *, existing_ids=None, on_batch=None, on_progress=None):
        self.calls.append({"since": since, "existing_ids": existing_ids})
        for i, batch in enumerate(self.batches):
            if self.fail_after is not None and i == self.fail_after:
                raise RuntimeError("network gone")
            on_batch(batch)
        succeeded = sum(1 for b in self.batches for r in b if len(r) > 2)
        return CrawlRunResult(total=succeeded, succeeded=succeeded, all_source_ids=self.source_ids)


def _record(job_id, **overrides):
    return JobPosting(id=job_id, title=job_id, **overrides).to_record()


class SyncTests(unittest.TestCase):
    def setUp(self):
        self.factory = make_session_factory("sqlite:///:memory:", create_schema=True)

    def _seed(self, *records):
        with get_session(self.factory) as session:
            crud.upsert_jobs(session, records)

    def _active(self, job_id):
        with get_session(self.factory) as session:
            return session.get(Job, job_id).is_active

    def test_first_run_is_full_and_records_metadata(self):
        orch = StubOrchestrator([[_record("a"), _record("b")]], {"a", "b"})
        summary = run_sync(CONFIG, self.factory, orchestrator=orch, today=date(2025, 1, 1))

        self.assertEqual(summary.mode, "full")
        self.assertIsNone(summary.since)
        self.assertEqual(orch.calls[0]["since"], None)
        self.assertEqual(summary.batch_upserts, 2)
        with get_session(self.factory) as session:
            self.assertIsNotNone(crud.get_last_crawled_at(session))
            self.assertEqual(crud.count_jobs(session), 2)

    def test_second_run_is_incremental(self):
        with get_session(self.factory) as session:
            crud.update_crawl_metadata(session, total_jobs=0, active_jobs=0, crawled_at=datetime(2025, 1, 1))
        orch = StubOrchestrator([], set())
        summary = run_sync(CONFIG, self.factory, orchestrator=orch)
        self.assertEqual(summary.mode, "incremental")
        self.assertEqual(orch.calls[0]["since"], datetime(2025, 1, 1))

        summary = run_sync(CONFIG, self.factory, full=True, orchestrator=orch)
        self.assertEqual(summary.mode, "full")
        self.assertIsNone(orch.calls[1]["since"])

    def test_resume_passes_stored_ids(self):
        self._seed(_record("a"))
        orch = StubOrchestrator([], {"a"})
        run_sync(CONFIG, self.factory, full=True, resume=True, orchestrator=orch)
        self.assertEqual(orch.calls[0]["existing_ids"], {"a"})

    def test_reconciles_expired_removed_and_tombstoned(self):
        self._seed(
            _record("old", end_date=date(2024, 12, 1)),
            _record("gone"),
            _record("dead"),
            _record("kept"),
        )
        orch = StubOrchestrator(
            [[_record("kept")], [deactivation_marker("dead")]],
            {"old", "dead", "kept"},
        )
        summary = run_sync(CONFIG, self.factory, full=True, orchestrator=orch, today=date(2025, 1, 1))

        self.assertEqual(summary.batch_deactivations, 1)
        self.assertEqual(summary.expired, 1)
        self.assertEqual(summary.removed_from_source, 1)
        self.assertTrue(self._active("kept"))
        self.assertFalse(self._active("old"))
        self.assertFalse(self._active("gone"))
        self.assertFalse(self._active("dead"))

    def test_empty_sitemap_never_mass_deactivates(self):
        self._seed(_record("a"), _record("b"))
        expired, removed = reconcile(self.factory, CrawlRunResult(), today=date(2025, 1, 1))
        self.assertEqual((expired, removed), (0, 0))
        self.assertTrue(self._active("a"))
        self.assertTrue(self._active("b"))

    def test_partial_sitemap_never_deactivates_missing(self):
        self._seed(_record("a"), _record("b"))
        result = CrawlRunResult(sitemap_failures=1, all_source_ids=frozenset({"a"}))
        _, removed = reconcile(self.factory, result, today=date(2025, 1, 1))
        self.assertEqual(removed, 0)
        self.assertTrue(self._active("b"))

    def test_timed_out_sitemap_keeps_its_postings_active(self):
        self._seed(_record("aaa"), _record("bbb"))
        fetcher = SitemapFetcher({
            CONFIG.sitemap_index_url: _index(SITEMAP_1, SITEMAP_2),
            SITEMAP_1: _urlset("https://zighang.com/recruitment/aaa"),
        })
        summary = run_sync(
            CONFIG,
            self.factory,
            full=True,
            orchestrator=build_orchestrator(CONFIG, fetcher),
            today=date(2025, 1, 1),
        )

        self.assertEqual(summary.crawl["sitemap_failures"], 1)
        self.assertEqual(summary.removed_from_source, 0)
        self.assertTrue(self._active("aaa"))
        self.assertTrue(self._active("bbb"))

    def test_crawl_error_keeps_flushed_batches_and_skips_metadata(self):
        orch = StubOrchestrator([[_record("a")], [_record("b")]], {"a", "b"}, fail_after=1)
        with self.assertRaises(RuntimeError):
            run_sync(CONFIG, self.factory, orchestrator=orch)
        with get_session(self.factory) as session:
            self.assertEqual(crud.existing_job_ids(session), {"a"})
            self.assertIsNone(crud.get_last_crawled_at(session))

    def test_summary_serialises(self):
        orch = StubOrchestrator([[_record("a")]], {"a"})
        data = run_sync(CONFIG, self.factory, orchestrator=orch).to_dict()
        self.assertEqual(data["crawl"]["all_source_ids"], 1)
        self.assertIn("finished_at", data)


if __name__ == "__main__":
    unittest.main()
