from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from zigsync.config import CrawlConfig
from zigsync.core.dates import parse_date, parse_timestamp, utcnow
from zigsync.core.models import DetailSections, JobPosting, SitemapEntry, Tombstone
from zigsync.core.normalize import (
    as_int,
    as_str_list,
    education_from_text,
    extract_education,
    map_employment_types,
    normalize_education,
    rich_text_to_plain,
)
from zigsync.core.sections import classify_sections
from zigsync.crawler.embedded import extract_embedded_object
from zigsync.crawler.fetch import Fetcher, NO_RESPONSE

LOGGER = logging.getLogger(__name__)

JSONLD_TAG = "script"
JSONLD_TYPE = "application/ld+json"
# "[회사명] 직무 채용 | 직군" -> 직군
OG_TITLE_CATEGORY = re.compile(r"\[.+?\]\s*.+?\s*채용\s*\|\s*(.+)")

DetailStatus = Literal["posting", "tombstone", "failure"]


@dataclass(frozen=True)
class DetailResult:
    status: DetailStatus
    entry_id: str
    posting: JobPosting | None = None
    reason: str = ""

    @property
    def tombstone(self) -> Tombstone | None:
        return Tombstone(id=self.entry_id) if self.status == "tombstone" else None


def _soup(html: str) -> BeautifulSoup:
    """
    Parse HTML into a BeautifulSoup object, preferring 'html.parser' but falling back to 'lxml'.
    """
    try:
        return BeautifulSoup(html, "html.parser")
    except Exception:
        return BeautifulSoup(html, "lxml")


def _meta(soup: BeautifulSoup, prop: str) -> str:
    tag = soup.find("meta", attrs={"property": prop})
    if isinstance(tag, Tag):
        content = tag.get("content")
        if isinstance(content, str):
            return content.strip()
    return ""


def extract_jsonld_posting(soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
    """First linked-data block whose @type is JobPosting."""
    for tag in soup.find_all(JSONLD_TAG, type=JSONLD_TYPE):
        if not isinstance(tag, Tag):
            continue
        raw = tag.string or tag.get_text(strip=False) or ""
        try:
            data = json.loads(raw)
        except ValueError:
            continue
        candidates = data if isinstance(data, list) else [data]
        for node in candidates:
            if not isinstance(node, dict):
                continue
            typ = node.get("@type") or ""
            types = typ if isinstance(typ, list) else [typ]
            if any(isinstance(t, str) and t == "JobPosting" for t in types):
                return node
    return None


def _jsonld_localities(node: Dict[str, Any]) -> List[str]:
    locations = node.get("jobLocation") or []
    if isinstance(locations, dict):
        locations = [locations]
    out: List[str] = []
    for loc in locations:
        if not isinstance(loc, dict):
            continue
        address = loc.get("address") or {}
        locality = address.get("addressLocality") if isinstance(address, dict) else None
        if isinstance(locality, str) and locality.strip():
            out.append(locality.strip())
    return out


def _jsonld_education(node: Dict[str, Any], text: str) -> Optional[str]:
    req = node.get("educationRequirements")
    if isinstance(req, dict):
        req = req.get("credentialCategory") or req.get("name")
    if isinstance(req, str) and req.strip():
        return normalize_education(req)
    return education_from_text(text)


def _company(raw: Dict[str, Any]) -> Dict[str, Any]:
    company = raw.get("company")
    return company if isinstance(company, dict) else {}


class DetailPageParser:
    """Turn one detail page into a JobPosting.

    Primary path: the embedded page-data object. Fallback: the JobPosting
    linked-data block plus social-preview meta tags. No retries here.
    """

    def __init__(self, config: CrawlConfig, fetcher: Fetcher):
        self.config = config
        self.fetcher = fetcher

    def parse(self, entry: SitemapEntry | str) -> DetailResult:
        if isinstance(entry, str):
            entry = SitemapEntry(id=entry, url=self.config.detail_url(entry))

        status, html, _ = self.fetcher.get(
            entry.url,
            timeout=self.config.detail_timeout,
            headers={"Accept": "text/html"},
        )
        if status == 404:
            return DetailResult("tombstone", entry.id, reason="http 404")
        if status == NO_RESPONSE:
            return DetailResult("failure", entry.id, reason="no response")
        if status != 200:
            LOGGER.warning("detail-http id=%s status=%s", entry.id, status)
            return DetailResult("failure", entry.id, reason=f"http {status}")

        try:
            posting = self.parse_html(entry, html)
        except Exception as exc:
            LOGGER.warning("detail-parse-error id=%s error=%r", entry.id, exc)
            return DetailResult("failure", entry.id, reason=f"parse error: {exc!r}")
        if posting is None:
            LOGGER.warning("detail-empty id=%s", entry.id)
            return DetailResult("failure", entry.id, reason="no structured or linked data")
        return DetailResult("posting", entry.id, posting=posting)

    def parse_html(self, entry: SitemapEntry, html: str) -> Optional[JobPosting]:
        soup = _soup(html)
        embedded = extract_embedded_object(html, self.config.embedded_key)
        if embedded.ok and embedded.data is not None:
            return self.from_embedded(entry, embedded.data, soup)

        LOGGER.debug("detail-fallback id=%s status=%s", entry.id, embedded.status)
        node = extract_jsonld_posting(soup)
        if node is None:
            return None
        return self.from_linked_data(entry, node, soup)

    def from_embedded(self, entry: SitemapEntry, raw: Dict[str, Any], soup: BeautifulSoup) -> JobPosting:
        company = _company(raw)
        regions = as_str_list(raw.get("regions"))
        text = (
            rich_text_to_plain(raw.get("content"))
            or rich_text_to_plain(raw.get("summary"))
            or rich_text_to_plain(raw.get("description"))
            or _meta(soup, "og:description")
        )
        return JobPosting(
            id=entry.id,
            source=self.config.source,
            company=str(company.get("name") or ""),
            company_image=company.get("image") or None,
            title=str(raw.get("title") or ""),
            regions=regions,
            location=regions[0] if regions else "",
            career_min=as_int(raw.get("careerMin")),
            career_max=as_int(raw.get("careerMax")),
            employee_types=map_employment_types(raw.get("employeeTypes")),
            deadline_type=raw.get("deadlineType") or None,
            end_date=parse_date(raw.get("endDate")),
            depth_ones=as_str_list(raw.get("depthOnes")),
            depth_twos=as_str_list(raw.get("depthTwos")),
            keywords=as_str_list(raw.get("keywords")),
            views=as_int(raw.get("views")) or 0,
            detail=classify_sections(text),
            education=extract_education(raw, text),
            original_created_at=parse_timestamp(raw.get("createdAt")),
            last_modified_at=entry.last_modified,
            crawled_at=utcnow(),
            is_active=raw.get("status") == "ACTIVE",
        )

    def from_linked_data(self, entry: SitemapEntry, node: Dict[str, Any], soup: BeautifulSoup) -> JobPosting:
        org = node.get("hiringOrganization") or {}
        company = org.get("name") if isinstance(org, dict) else org
        og_title = _meta(soup, "og:title")
        og_desc = _meta(soup, "og:description")

        depth_ones: List[str] = []
        m = OG_TITLE_CATEGORY.search(og_title)
        if m:
            depth_ones = [m.group(1).strip()]

        regions = _jsonld_localities(node)
        return JobPosting(
            id=entry.id,
            source=self.config.source,
            company=str(company or ""),
            company_image=_meta(soup, "og:image") or None,
            title=str(node.get("title") or ""),
            regions=regions,
            location=regions[0] if regions else "",
            employee_types=map_employment_types(node.get("employmentType")),
            depth_ones=depth_ones,
            # Only the preview description survives on this path; no sectioning.
            detail=DetailSections(main_tasks=og_desc, raw_content=og_desc),
            education=_jsonld_education(node, og_desc),
            original_created_at=parse_timestamp(node.get("datePosted")),
            last_modified_at=entry.last_modified,
            crawled_at=utcnow(),
            is_active=True,
        )
