from .fetch import Fetcher, FetchError
from .governor import DelayGovernor
from .embedded import EmbeddedResult, extract_embedded, extract_embedded_object
from .detail import DetailPageParser, DetailResult
from .sitemap import SitemapWalker, filter_since
from .orchestrator import CrawlOrchestrator, CrawlProgress, CrawlRunResult


def build_orchestrator(config, fetcher=None) -> CrawlOrchestrator:
    """Wire walker, parser and governors around one shared Fetcher."""
    fetcher = fetcher or Fetcher(config)
    walker = SitemapWalker(config, fetcher)
    parser = DetailPageParser(config, fetcher)
    return CrawlOrchestrator(config, walker, parser)


__all__ = [
    "Fetcher",
    "FetchError",
    "DelayGovernor",
    "EmbeddedResult",
    "extract_embedded",
    "extract_embedded_object",
    "DetailPageParser",
    "DetailResult",
    "SitemapWalker",
    "filter_since",
    "CrawlOrchestrator",
    "CrawlProgress",
    "CrawlRunResult",
    "build_orchestrator",
]
