"""Canonical records shared by the crawler, the store and the sync run."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

SECTION_FIELDS = (
    "intro",
    "main_tasks",
    "requirements",
    "preferred_points",
    "benefits",
    "work_conditions",
)


class SitemapEntry(BaseModel):
    """One ``<url>`` of a recruitment sitemap. Never persisted."""

    id: str
    url: str
    last_modified: datetime | None = None


class DetailSections(BaseModel):
    intro: str = ""
    main_tasks: str = ""
    requirements: str = ""
    preferred_points: str = ""
    benefits: str = ""
    work_conditions: str = ""
    # Full text the six fields were derived from; lets re-classification run offline.
    raw_content: str = ""

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in SECTION_FIELDS)


class JobPosting(BaseModel):
    id: str
    source: str = "zighang"

    company: str = ""
    company_image: str | None = None

    title: str = ""
    regions: list[str] = Field(default_factory=list)
    location: str = ""
    career_min: int | None = None
    career_max: int | None = None
    employee_types: list[str] = Field(default_factory=list)
    deadline_type: str | None = None
    end_date: date | None = None

    depth_ones: list[str] = Field(default_factory=list)
    depth_twos: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)

    views: int = 0
    detail: DetailSections = Field(default_factory=DetailSections)
    education: str | None = None

    original_created_at: datetime | None = None
    last_modified_at: datetime | None = None
    crawled_at: datetime | None = None

    is_active: bool = True

    def to_record(self) -> dict[str, Any]:
        """Row-shaped dict for the store (``detail`` stays a plain dict)."""
        return self.model_dump()


class Tombstone(BaseModel):
    """The posting 404s at the source: deactivate, never re-fetch this run."""

    id: str
    deleted: bool = True

    def to_record(self) -> dict[str, Any]:
        return deactivation_marker(self.id)


def deactivation_marker(posting_id: str) -> dict[str, Any]:
    return {"id": posting_id, "is_active": False}


def is_deactivation_marker(record: dict[str, Any]) -> bool:
    return record.get("is_active") is False and set(record) <= {"id", "is_active"}


__all__ = [
    "SECTION_FIELDS",
    "SitemapEntry",
    "DetailSections",
    "JobPosting",
    "Tombstone",
    "deactivation_marker",
    "is_deactivation_marker",
]
