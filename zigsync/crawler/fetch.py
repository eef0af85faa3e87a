from __future__ import annotations

import logging
from typing import Mapping

import requests

from zigsync.config import CrawlConfig

LOGGER = logging.getLogger(__name__)

# Status reported when no HTTP response was received (timeout, reset, DNS...).
NO_RESPONSE = 0


class FetchError(Exception):
    """A document the run cannot do without could not be fetched."""

    def __init__(self, url: str, status: int, detail: str = ""):
        self.url = url
        self.status = status
        msg = f"fetch failed status={status} url={url}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class Fetcher:
    """Thin requests wrapper. ``get`` never raises for transport problems."""

    def __init__(self, config: CrawlConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update(dict(config.headers))

    def get(
        self,
        url: str,
        *,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> tuple[int, str, dict]:
        """Return (status, text, headers); status is 0 when no response arrived."""
        try:
            r = self.session.get(url, headers=headers, timeout=timeout or self.config.detail_timeout)
            return r.status_code, r.text or "", dict(r.headers or {})
        except requests.RequestException as exc:
            LOGGER.warning("fetch-error url=%s error=%r", url, exc)
            return NO_RESPONSE, "", {}

    def get_document(self, url: str, *, timeout: float | None = None) -> str:
        """GET a document that must exist; raise FetchError otherwise."""
        status, text, _ = self.get(url, timeout=timeout)
        if status != 200:
            raise FetchError(url, status)
        return text

    def close(self) -> None:
        self.session.close()
