"""Persistence store interface shared by the SQLite and Supabase backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from urllib.parse import urlsplit

from sitecrawl.db.models import CrawlSession, StoredPage
from sitecrawl.scraper.models import PageRecord

# Columns of ``site_index`` that ``update_site`` may write.
SITE_UPDATE_FIELDS = frozenset(
    {"crawl_status", "pages_crawled", "page_limit", "error_message", "updated_at"}
)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def domain_of(url: str) -> str:
    """Return the lowercase hostname of *url*.

    Raises:
        ValueError: If *url* has no hostname.
    """
    hostname = urlsplit(url).hostname
    if not hostname:
        raise ValueError(f"Invalid URL format: {url!r}")
    return hostname


class PageStore(ABC):
    """Abstract persistence backend for sites and pages.

    Every method raises :class:`~sitecrawl.errors.PersistenceError` when the
    underlying store fails.
    """

    @abstractmethod
    def register_site(
        self,
        seed_url: str,
        page_limit: int,
        exclude_paths: Iterable[str] = (),
    ) -> CrawlSession:
        """Create the site for *seed_url*'s domain, or reset the existing one.

        The returned session is ``queued`` with ``pages_crawled = 0``.
        """

    @abstractmethod
    def get_site(self, site_id: str) -> Optional[CrawlSession]:
        """Return the session for *site_id*, or ``None`` if it does not exist."""

    @abstractmethod
    def list_sites(self, status: Optional[str] = None) -> list[CrawlSession]:
        """Return every site, newest first, optionally only those in *status*."""

    @abstractmethod
    def delete_site(self, site_id: str) -> None:
        """Delete the site and all of its pages.  No-op if it does not exist."""

    @abstractmethod
    def update_site(self, site_id: str, fields: dict[str, Any]) -> None:
        """Write only *fields* (``site_index`` column names) on the site row."""

    @abstractmethod
    def upsert_page(self, record: PageRecord) -> None:
        """Insert or replace the page keyed by ``(site_id, url)``.

        A ``page_type`` assigned by an earlier classification is kept.
        """

    @abstractmethod
    def list_pages(self, site_id: str) -> list[StoredPage]:
        """Return every stored page of *site_id*, ordered by path."""

    @abstractmethod
    def set_page_type(self, site_id: str, url: str, page_type: str) -> None:
        """Assign *page_type* to one page."""

    def close(self) -> None:
        """Release any held resources.  No-op by default."""
