import unittest
from datetime import date, datetime

from zigsync.core.models import DetailSections, JobPosting, deactivation_marker
from zigsync.db import crud
from zigsync.db.models import Job
from zigsync.db.session import get_session, make_session_factory
from zigsync.db.session import test_connection as check_connection


def _record(job_id, **overrides):
    data = {"id": job_id, "title": f"title {job_id}", "company": "직항"}
    data.update(overrides)
    return JobPosting(**data).to_record()


class CrudTestCase(unittest.TestCase):
    def setUp(self):
        self.factory = make_session_factory("sqlite:///:memory:", create_schema=True)

    def _job(self, job_id):
        with get_session(self.factory) as session:
            return session.get(Job, job_id)


class UpsertTests(CrudTestCase):
    def test_insert_then_overwrite(self):
        with get_session(self.factory) as session:
            crud.upsert_jobs(session, [_record("a", views=1, keywords=["Go"])])
            crud.upsert_jobs(session, [_record("a", views=9, keywords=["Rust"], title="new")])

        job = self._job("a")
        self.assertEqual(job.views, 9)
        self.assertEqual(job.keywords, ["Rust"])
        self.assertEqual(job.title, "new")
        with get_session(self.factory) as session:
            self.assertEqual(crud.count_jobs(session), 1)

    def test_detail_and_dates_round_trip(self):
        detail = DetailSections(intro="소개", main_tasks="담당업무\nAPI", raw_content="소개\n담당업무\nAPI")
        with get_session(self.factory) as session:
            crud.upsert_jobs(session, [_record(
                "a",
                detail=detail,
                end_date=date(2025, 5, 1),
                original_created_at=datetime(2025, 4, 1, 12, 0),
            )])

        job = self._job("a")
        self.assertEqual(job.detail["main_tasks"], "담당업무\nAPI")
        self.assertEqual(job.detail["raw_content"], "소개\n담당업무\nAPI")
        self.assertEqual(job.end_date, date(2025, 5, 1))
        self.assertEqual(job.original_created_at, datetime(2025, 4, 1, 12, 0))

    def test_unknown_keys_are_ignored(self):
        record = _record("a") | {"not_a_column": 1}
        with get_session(self.factory) as session:
            self.assertEqual(crud.upsert_jobs(session, [record]), 1)

    def test_missing_id_is_rejected(self):
        with get_session(self.factory) as session:
            with self.assertRaises(ValueError):
                crud.upsert_jobs(session, [{"title": "no id"}])


class DeactivationTests(CrudTestCase):
    def setUp(self):
        super().setUp()
        with get_session(self.factory) as session:
            crud.upsert_jobs(session, [
                _record("a", end_date=date(2025, 1, 10)),
                _record("b", end_date=date(2025, 1, 20)),
                _record("c"),
                _record("d", is_active=False),
            ])

    def test_deactivate_jobs_counts_changes_only(self):
        with get_session(self.factory) as session:
            changed = crud.deactivate_jobs(session, ["a", "d", "zzz", "a"])
        self.assertEqual(changed, 1)
        self.assertFalse(self._job("a").is_active)

    def test_deactivate_expired_is_strict(self):
        with get_session(self.factory) as session:
            changed = crud.deactivate_expired(session, today=date(2025, 1, 20))
        self.assertEqual(changed, 1)
        self.assertFalse(self._job("a").is_active)
        self.assertTrue(self._job("b").is_active)
        self.assertTrue(self._job("c").is_active)

    def test_deactivate_missing(self):
        with get_session(self.factory) as session:
            changed = crud.deactivate_missing(session, {"a", "zzz"}, page_size=1)
        self.assertEqual(changed, 2)
        self.assertTrue(self._job("a").is_active)
        self.assertFalse(self._job("b").is_active)
        self.assertFalse(self._job("c").is_active)

    def test_active_ids_page_through_everything(self):
        with get_session(self.factory) as session:
            self.assertEqual(list(crud.active_job_ids(session, page_size=2)), ["a", "b", "c"])
            self.assertEqual(crud.count_jobs(session, active_only=True), 3)
            self.assertEqual(crud.existing_job_ids(session), {"a", "b", "c", "d"})

    def test_save_batch_splits_markers_from_rows(self):
        batch = [_record("e"), deactivation_marker("b")]
        with get_session(self.factory) as session:
            self.assertEqual(crud.save_batch(session, batch), (1, 1))
        self.assertTrue(self._job("e").is_active)
        self.assertFalse(self._job("b").is_active)
        # A marker never blanks out the stored row.
        self.assertEqual(self._job("b").title, "title b")

    def test_marker_for_unknown_id_is_harmless(self):
        with get_session(self.factory) as session:
            self.assertEqual(crud.save_batch(session, [deactivation_marker("nope")]), (0, 0))
            self.assertEqual(crud.count_jobs(session), 4)


class MetadataTests(CrudTestCase):
    def test_no_metadata_yet(self):
        with get_session(self.factory) as session:
            self.assertIsNone(crud.get_last_crawled_at(session))

    def test_update_is_single_row(self):
        with get_session(self.factory) as session:
            crud.update_crawl_metadata(session, total_jobs=3, active_jobs=2, crawled_at=datetime(2025, 1, 1))
            crud.update_crawl_metadata(session, total_jobs=5, active_jobs=4, crawled_at=datetime(2025, 1, 2))
            self.assertEqual(crud.get_last_crawled_at(session), datetime(2025, 1, 2))

    def test_connection_check(self):
        self.assertTrue(check_connection(self.factory))


class MaintenanceQueryTests(CrudTestCase):
    def test_education_queue_and_update(self):
        with get_session(self.factory) as session:
            crud.upsert_jobs(session, [_record("a"), _record("b", education="학사"), _record("c")])
            self.assertEqual(crud.jobs_missing_education(session), ["a", "c"])
            self.assertEqual(crud.jobs_missing_education(session, limit=1), ["a"])
            self.assertEqual(crud.update_education(session, {"a": "석사", "zzz": "박사", "c": ""}), 1)
        self.assertEqual(self._job("a").education, "석사")
        self.assertIsNone(self._job("c").education)

    def test_detail_iteration_and_update(self):
        with get_session(self.factory) as session:
            crud.upsert_jobs(session, [_record(f"j{i}") for i in range(3)])
            seen = [job_id for job_id, _ in crud.iter_job_details(session, page_size=2)]
            self.assertEqual(seen, ["j0", "j1", "j2"])
            self.assertEqual(crud.update_details(session, {"j1": {"intro": "x"}, "zzz": {}}), 1)
        self.assertEqual(self._job("j1").detail, {"intro": "x"})


if __name__ == "__main__":
    unittest.main()
