from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup

from zigsync.config import CrawlConfig
from zigsync.core.dates import parse_timestamp
from zigsync.core.models import SitemapEntry
from zigsync.crawler.fetch import Fetcher, FetchError
from zigsync.crawler.governor import DelayGovernor

LOGGER = logging.getLogger(__name__)

# Only posting detail pages; other content families share the sitemap files.
RECRUITMENT_URL = re.compile(r"/recruitment/([A-Za-z0-9-]+)/?$")


def _xml(text: str) -> BeautifulSoup:
    return BeautifulSoup(text, "xml")


def parse_sitemap_index(xml: str, marker: str) -> List[str]:
    soup = _xml(xml)
    urls: List[str] = []
    for node in soup.find_all("sitemap"):
        loc = node.find("loc")
        href = loc.get_text(strip=True) if loc else ""
        if href and marker in href:
            urls.append(href)
    return urls


def parse_sitemap_entries(xml: str) -> List[SitemapEntry]:
    soup = _xml(xml)
    entries: List[SitemapEntry] = []
    seen: set[str] = set()
    for node in soup.find_all("url"):
        loc = node.find("loc")
        href = loc.get_text(strip=True) if loc else ""
        m = RECRUITMENT_URL.search(href)
        if not m or m.group(1) in seen:
            continue
        seen.add(m.group(1))
        lastmod = node.find("lastmod")
        entries.append(SitemapEntry(
            id=m.group(1),
            url=href,
            last_modified=parse_timestamp(lastmod.get_text(strip=True)) if lastmod else None,
        ))
    return entries


def filter_since(entries: Iterable[SitemapEntry], since: Optional[datetime]) -> List[SitemapEntry]:
    """Entries modified strictly after ``since``.

    Without ``since`` everything passes. With it, entries lacking a lastmod
    are dropped: unknown means "skip on an incremental pass".
    """
    if since is None:
        return list(entries)
    cutoff = parse_timestamp(since)
    return [e for e in entries if e.last_modified is not None and e.last_modified > cutoff]


class SitemapWalker:
    def __init__(self, config: CrawlConfig, fetcher: Fetcher, governor: DelayGovernor | None = None):
        self.config = config
        self.fetcher = fetcher
        self.governor = governor or DelayGovernor(config.sitemap_delay)
        # Per-category sitemaps skipped by the last fetch_all() call.
        self.failed_sitemaps: List[str] = []

    def _get(self, url: str) -> str:
        self.governor.wait()
        return self.fetcher.get_document(url, timeout=self.config.sitemap_timeout)

    def fetch_index(self) -> List[str]:
        """Per-category recruitment sitemap URLs. Raises FetchError."""
        urls = parse_sitemap_index(self._get(self.config.sitemap_index_url), self.config.sitemap_marker)
        LOGGER.info("sitemap-index found=%s", len(urls))
        return urls

    def fetch_entries(self, sitemap_url: str) -> List[SitemapEntry]:
        return parse_sitemap_entries(self._get(sitemap_url))

    def fetch_all(self, since: Optional[datetime] = None) -> List[SitemapEntry]:
        """Entries from every recruitment sitemap, deduped across sitemaps.

        A sitemap that cannot be fetched is skipped and listed in
        ``failed_sitemaps``; the result is then not the complete id set.
        """
        self.failed_sitemaps = []
        entries: List[SitemapEntry] = []
        seen: set[str] = set()
        for sitemap_url in self.fetch_index():
            try:
                found = self.fetch_entries(sitemap_url)
            except FetchError as exc:
                LOGGER.error("sitemap-skip url=%s error=%s", sitemap_url, exc)
                self.failed_sitemaps.append(sitemap_url)
                continue
            fresh = [e for e in found if e.id not in seen]
            seen.update(e.id for e in fresh)
            entries.extend(fresh)
            LOGGER.info("sitemap url=%s entries=%s", sitemap_url.rsplit("/", 1)[-1], len(found))

        LOGGER.info("sitemap-total entries=%s failed=%s", len(entries), len(self.failed_sitemaps))
        if since is not None:
            filtered = filter_since(entries, since)
            LOGGER.info("sitemap-incremental since=%s entries=%s", since, len(filtered))
            return filtered
        return entries
