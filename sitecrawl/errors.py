"""Exception taxonomy for the crawl pipeline.

Only :class:`ConfigurationError` and :class:`EngineError` escape a crawl run.
Everything else is absorbed page by page by the controller.
"""

from __future__ import annotations


class SiteCrawlError(Exception):
    """Base class for every error raised by sitecrawl."""


class ConfigurationError(SiteCrawlError):
    """A required credential or key is missing when a client is first built."""


class EngineError(SiteCrawlError):
    """The crawling engine call failed or reported a non-success status."""


class NormalizationError(SiteCrawlError):
    """A raw page result could not be turned into a page record."""


class PersistenceError(SiteCrawlError):
    """A read or write against the persistence store failed."""
