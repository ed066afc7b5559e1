"""Status reporter: writes crawl progress and pages through a :class:`PageStore`.

Status writes are best-effort: a failed write is logged and dropped so the
crawl loop is never interrupted by it.  Page upserts raise, and the
controller decides what a failed page means.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sitecrawl.db.store import PageStore, utc_now
from sitecrawl.errors import PersistenceError
from sitecrawl.scraper.models import PageRecord

logger = logging.getLogger(__name__)


class StatusReporter:
    def __init__(self, store: PageStore) -> None:
        self.store = store

    def update_session_status(
        self,
        site_id: str,
        status: str,
        pages_processed: Optional[int] = None,
        page_limit: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Write *status* and whichever counters were supplied.

        ``updated_at`` is always refreshed.  Never raises on store failure.
        """
        update: dict[str, Any] = {"crawl_status": status, "updated_at": utc_now()}
        if pages_processed is not None:
            update["pages_crawled"] = pages_processed
        if page_limit is not None:
            update["page_limit"] = page_limit
        if error_message:
            update["error_message"] = error_message

        try:
            self.store.update_site(site_id, update)
        except PersistenceError as exc:
            logger.error("[store] Failed to update site status for %s: %s", site_id, exc)

    def upsert_page(self, record: PageRecord) -> None:
        """Insert or replace *record*.

        Raises:
            PersistenceError: If the store rejects the write.
        """
        self.store.upsert_page(record)
