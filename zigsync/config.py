"""Runtime configuration for zigsync.

Every component takes a :class:`CrawlConfig` in its constructor; nothing reads
the environment after start-up. ``CrawlConfig.from_env()`` is the only place
environment variables are consulted.

Environment variables (all optional)
------------------------------------
ZIGSYNC_BASE_URL            source site root (default https://zighang.com)
ZIGSYNC_SITEMAP_DELAY       seconds between sitemap fetches (default 0.3)
ZIGSYNC_DETAIL_DELAY        seconds between detail fetches (default 0.2)
ZIGSYNC_SITEMAP_TIMEOUT     per-request timeout for sitemap documents (default 15)
ZIGSYNC_DETAIL_TIMEOUT      per-request timeout for detail pages (default 10)
ZIGSYNC_BATCH_SIZE          records per persistence batch (default 50)
ZIGSYNC_PROGRESS_EVERY      progress callback cadence (default 100)
ZIGSYNC_REFILL_CONCURRENCY  worker count for the education backfill (default 5)
ZIGSYNC_DATABASE_URL / DATABASE_URL
ZIGSYNC_DOTENV              path to a .env file (default ".env")
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Mapping

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def _default_headers() -> dict[str, str]:
    return {
        "User-Agent": DEFAULT_USER_AGENT,
        "Accept": "text/html,application/xml",
    }


@dataclass(frozen=True)
class CrawlConfig:
    base_url: str = "https://zighang.com"
    sitemap_index_path: str = "/seo/sitemap/sitemap-index.xml"
    sitemap_marker: str = "sitemap-recruitment"
    embedded_key: str = "recruitment"
    source: str = "zighang"
    headers: Mapping[str, str] = field(default_factory=_default_headers)

    sitemap_timeout: float = 15.0
    detail_timeout: float = 10.0
    sitemap_delay: float = 0.3
    detail_delay: float = 0.2

    batch_size: int = 50
    progress_every: int = 100
    refill_concurrency: int = 5

    database_url: str = "sqlite:///./zigsync.db"

    @property
    def sitemap_index_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.sitemap_index_path}"

    def detail_url(self, posting_id: str) -> str:
        return f"{self.base_url.rstrip('/')}/recruitment/{posting_id}"

    def with_overrides(self, **changes) -> "CrawlConfig":
        return replace(self, **changes)

    @classmethod
    def from_env(cls) -> "CrawlConfig":
        _load_dotenv()
        return cls(
            base_url=os.getenv("ZIGSYNC_BASE_URL", "https://zighang.com"),
            sitemap_timeout=float(os.getenv("ZIGSYNC_SITEMAP_TIMEOUT", "15")),
            detail_timeout=float(os.getenv("ZIGSYNC_DETAIL_TIMEOUT", "10")),
            sitemap_delay=float(os.getenv("ZIGSYNC_SITEMAP_DELAY", "0.3")),
            detail_delay=float(os.getenv("ZIGSYNC_DETAIL_DELAY", "0.2")),
            batch_size=int(os.getenv("ZIGSYNC_BATCH_SIZE", "50")),
            progress_every=int(os.getenv("ZIGSYNC_PROGRESS_EVERY", "100")),
            refill_concurrency=int(os.getenv("ZIGSYNC_REFILL_CONCURRENCY", "5")),
            database_url=coalesce_database_url(),
        )


def _load_dotenv() -> None:
    # Optional: load environment variables from a .env file if available
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:  # pragma: no cover - optional dependency
        return
    load_dotenv(dotenv_path=os.getenv("ZIGSYNC_DOTENV", ".env"))


def coalesce_database_url() -> str:
    url = (
        os.getenv("ZIGSYNC_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or "sqlite:///./zigsync.db"
    )
    # Normalize legacy PostgreSQL scheme if present
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg://", 1)
    # Prefer psycopg v3 driver if a bare postgresql:// URL is provided
    if url.startswith("postgresql://") and "+" not in url:
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


__all__ = ["CrawlConfig", "coalesce_database_url", "DEFAULT_USER_AGENT"]
