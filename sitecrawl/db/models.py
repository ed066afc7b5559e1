"""Dataclass models representing persisted crawl state.

These are plain Python objects – not ORM models.  Each store backend
serialises / deserialises to and from these types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


class CrawlStatus:
    """Values of ``site_index.crawl_status``."""

    QUEUED = "queued"
    CRAWLING = "crawling"
    CLASSIFYING = "classifying"
    COMPLETE = "complete"
    ERROR = "error"

    ALL = (QUEUED, CRAWLING, CLASSIFYING, COMPLETE, ERROR)
    TERMINAL = (COMPLETE, ERROR)


@dataclass
class CrawlSession:
    """Per-site crawl state, one row of ``site_index``."""

    id: str
    domain: str
    seed_url: str
    page_limit: int
    exclude_paths: list[str] = field(default_factory=list)
    status: str = CrawlStatus.QUEUED
    pages_crawled: int = 0
    error_message: Optional[str] = None
    updated_at: str = ""

    @property
    def percent_complete(self) -> int:
        if self.page_limit <= 0:
            return 0
        return round(self.pages_crawled / self.page_limit * 100)

    @classmethod
    def from_row(cls, row: Any) -> "CrawlSession":
        """Build from a mapping with ``site_index`` column names.

        ``exclude_paths`` must already be decoded to a list.
        """
        return cls(
            id=str(row["id"]),
            domain=row["domain"],
            seed_url=row["url"],
            page_limit=row["page_limit"],
            exclude_paths=list(row["exclude_paths"] or []),
            status=row["crawl_status"],
            pages_crawled=row["pages_crawled"] or 0,
            error_message=row["error_message"],
            updated_at=row["updated_at"] or "",
        )


@dataclass
class StoredPage:
    """The slice of a ``page_index`` row the classifier works with."""

    url: str
    path: str
    title: str
    page_type: Optional[str] = None
