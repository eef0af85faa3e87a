from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from zigsync.core.dates import utcnow

# --- SQLAlchemy base ---------------------------------------------------------

class Base(DeclarativeBase):
    """Declarative base for all models."""
    pass


# --- Models ------------------------------------------------------------------

class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_active_end_date", "is_active", "end_date"),
    )

    # Path segment of the posting URL; stable across crawls, the upsert key.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    source: Mapped[str] = mapped_column(String(40), nullable=False, default="zighang", index=True)

    company: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    company_image: Mapped[Optional[str]] = mapped_column(String(600))

    title: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    regions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    career_min: Mapped[Optional[int]] = mapped_column(Integer)
    career_max: Mapped[Optional[int]] = mapped_column(Integer)
    employee_types: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    deadline_type: Mapped[Optional[str]] = mapped_column(String(40))
    end_date: Mapped[Optional[date]] = mapped_column(Date)

    depth_ones: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    depth_twos: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    keywords: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    detail: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    education: Mapped[Optional[str]] = mapped_column(String(40), index=True)

    original_created_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    last_modified_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    crawled_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Soft delete only; the crawler never removes rows.
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Job id={self.id} company={self.company!r} title={self.title!r}>"


class CrawlMetadata(Base):
    """Single-row bookkeeping for the scheduled sync (row id 'default')."""

    __tablename__ = "crawl_metadata"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default="default")
    last_crawled_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    last_sitemap_check: Mapped[Optional[datetime]] = mapped_column(DateTime)
    total_jobs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    active_jobs: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<CrawlMetadata id={self.id} last_crawled_at={self.last_crawled_at}>"


JOB_COLUMNS = frozenset(c.name for c in Job.__table__.columns)

__all__ = ["Base", "Job", "CrawlMetadata", "JOB_COLUMNS"]
