from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from zigsync.core.dates import utcnow
from zigsync.core.models import is_deactivation_marker
from zigsync.db.models import CrawlMetadata, Job, JOB_COLUMNS

METADATA_ID = "default"
ID_CHUNK = 500


def _chunks(items: Sequence[str], size: int = ID_CHUNK) -> Iterator[Sequence[str]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


def _row_values(record: Mapping[str, Any]) -> dict[str, Any]:
    values = {}
    for key, value in record.items():
        if key not in JOB_COLUMNS or key == "updated_at":
            continue
        if isinstance(value, BaseModel):
            value = value.model_dump()
        values[key] = value
    return values


def upsert_jobs(session: Session, records: Iterable[Mapping[str, Any]]) -> int:
    """Insert or overwrite jobs keyed by id. Returns the number of rows written.

    Every column present in a record replaces the stored value, so re-crawling
    a posting converges on the latest extraction.
    """
    written = 0
    for record in records:
        values = _row_values(record)
        job_id = values.get("id")
        if not job_id:
            raise ValueError("upsert_jobs requires 'id' in every record")
        job = session.get(Job, job_id)
        if job is None:
            session.add(Job(**values))
        else:
            for key, value in values.items():
                if key != "id":
                    setattr(job, key, value)
        written += 1
    session.commit()
    return written


def deactivate_jobs(session: Session, ids: Iterable[str]) -> int:
    """Flip is_active off for the given ids; returns rows actually changed."""
    unique = sorted({i for i in ids if i})
    changed = 0
    for chunk in _chunks(unique):
        res = session.execute(
            update(Job)
            .where(Job.id.in_(chunk), Job.is_active.is_(True))
            .values(is_active=False, updated_at=utcnow())
        )
        changed += res.rowcount or 0
    session.commit()
    return changed


def deactivate_expired(session: Session, today: Optional[date] = None) -> int:
    """Deactivate active postings whose end_date is before ``today``."""
    today = today or utcnow().date()
    res = session.execute(
        update(Job)
        .where(Job.is_active.is_(True), Job.end_date.isnot(None), Job.end_date < today)
        .values(is_active=False, updated_at=utcnow())
    )
    session.commit()
    return res.rowcount or 0


def active_job_ids(session: Session, page_size: int = 1000) -> Iterator[str]:
    """Yield active ids in id order, paging by keyset."""
    last: Optional[str] = None
    while True:
        stmt = select(Job.id).where(Job.is_active.is_(True)).order_by(Job.id).limit(page_size)
        if last is not None:
            stmt = stmt.where(Job.id > last)
        page = list(session.execute(stmt).scalars())
        if not page:
            return
        yield from page
        last = page[-1]


def deactivate_missing(session: Session, source_ids: Iterable[str], page_size: int = 1000) -> int:
    """Deactivate active postings that are absent from the source id set."""
    present = set(source_ids)
    missing = [i for i in active_job_ids(session, page_size) if i not in present]
    if not missing:
        return 0
    return deactivate_jobs(session, missing)


def save_batch(session: Session, records: Sequence[Mapping[str, Any]]) -> tuple[int, int]:
    """Batch callback target: upsert full records, deactivate markers.

    Returns (upserted, deactivated).
    """
    full = [r for r in records if not is_deactivation_marker(dict(r))]
    marker_ids = [r["id"] for r in records if is_deactivation_marker(dict(r))]
    upserted = upsert_jobs(session, full) if full else 0
    deactivated = deactivate_jobs(session, marker_ids) if marker_ids else 0
    return upserted, deactivated


def existing_job_ids(session: Session) -> set[str]:
    return set(session.execute(select(Job.id)).scalars())


def count_jobs(session: Session, *, active_only: bool = False) -> int:
    stmt = select(func.count()).select_from(Job)
    if active_only:
        stmt = stmt.where(Job.is_active.is_(True))
    return int(session.execute(stmt).scalar_one())


def get_last_crawled_at(session: Session) -> Optional[datetime]:
    meta = session.get(CrawlMetadata, METADATA_ID)
    return meta.last_crawled_at if meta else None


def update_crawl_metadata(
    session: Session,
    *,
    total_jobs: int,
    active_jobs: int,
    crawled_at: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> CrawlMetadata:
    now = crawled_at or utcnow()
    meta = session.get(CrawlMetadata, METADATA_ID)
    if meta is None:
        meta = CrawlMetadata(id=METADATA_ID)
        session.add(meta)
    meta.last_crawled_at = now
    meta.last_sitemap_check = now
    meta.total_jobs = total_jobs
    meta.active_jobs = active_jobs
    meta.notes = notes
    session.commit()
    return meta


def jobs_missing_education(session: Session, limit: Optional[int] = None) -> list[str]:
    stmt = select(Job.id).where(Job.education.is_(None)).order_by(Job.id)
    if limit:
        stmt = stmt.limit(limit)
    return list(session.execute(stmt).scalars())


def update_education(session: Session, updates: Mapping[str, str]) -> int:
    changed = 0
    for job_id, education in updates.items():
        job = session.get(Job, job_id)
        if job is None or not education:
            continue
        job.education = education
        changed += 1
    session.commit()
    return changed


def iter_job_details(session: Session, page_size: int = 500) -> Iterator[tuple[str, Optional[dict]]]:
    last: Optional[str] = None
    while True:
        stmt = select(Job.id, Job.detail).order_by(Job.id).limit(page_size)
        if last is not None:
            stmt = stmt.where(Job.id > last)
        page = list(session.execute(stmt))
        if not page:
            return
        for job_id, detail in page:
            yield job_id, detail
        last = page[-1][0]


def update_details(session: Session, details: Mapping[str, dict]) -> int:
    changed = 0
    for job_id, detail in details.items():
        job = session.get(Job, job_id)
        if job is None:
            continue
        job.detail = detail
        changed += 1
    session.commit()
    return changed
