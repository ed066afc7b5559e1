"""Scraper package: crawling engine client & page normalization."""

from sitecrawl.scraper.firecrawl import FirecrawlClient
from sitecrawl.scraper.models import CrawlJobResult, Heading, PageRecord, RawPageResult
from sitecrawl.scraper.normalizer import normalize

__all__ = [
    "FirecrawlClient",
    "normalize",
    "CrawlJobResult",
    "Heading",
    "PageRecord",
    "RawPageResult",
]
