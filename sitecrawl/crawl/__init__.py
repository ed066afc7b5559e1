"""Crawl orchestration: controller, status reporter and classifier."""

from sitecrawl.crawl.classifier import classify_site
from sitecrawl.crawl.controller import CrawlController, CrawlResult, PageOutcome
from sitecrawl.crawl.reporter import StatusReporter

__all__ = [
    "CrawlController",
    "CrawlResult",
    "PageOutcome",
    "StatusReporter",
    "classify_site",
]
