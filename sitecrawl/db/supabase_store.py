"""Supabase backend for :class:`~sitecrawl.db.store.PageStore`.

Talks to the project's PostgREST endpoint (``{SUPABASE_URL}/rest/v1``) over
``httpx``.  Tables mirror the local schema: ``site_index`` and ``page_index``
(unique on ``site_id, url``).
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

import httpx

from sitecrawl.config import settings
from sitecrawl.db.models import CrawlSession, CrawlStatus, StoredPage
from sitecrawl.db.store import SITE_UPDATE_FIELDS, PageStore, domain_of, utc_now
from sitecrawl.errors import ConfigurationError, PersistenceError
from sitecrawl.scraper.models import PageRecord


class SupabaseStore(PageStore):
    """PostgREST client for the ``site_index`` and ``page_index`` tables."""

    def __init__(self, url: str, key: str, timeout: float = 30.0) -> None:
        if not url or not key:
            raise ConfigurationError(
                f"Missing Supabase credentials. URL: {bool(url)}, Key: {bool(key)}"
            )
        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.key = key
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "SupabaseStore":
        return cls(
            url=settings.supabase_url,
            key=settings.supabase_key,
            timeout=settings.request_timeout,
        )

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        try:
            with httpx.Client(headers=headers, timeout=self.timeout) as client:
                response = client.request(
                    method, f"{self.rest_url}/{table}", params=params, json=json
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text
            try:
                body = exc.response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                detail = body["message"]
            raise PersistenceError(
                f"{method} {table} failed (HTTP {exc.response.status_code}): {detail}"
            ) from exc
        except httpx.HTTPError as exc:
            raise PersistenceError(f"{method} {table} failed: {exc}") from exc

        if not response.content:
            return None
        return response.json()

    # ------------------------------------------------------------------
    # Sites
    # ------------------------------------------------------------------

    def register_site(
        self,
        seed_url: str,
        page_limit: int,
        exclude_paths: Iterable[str] = (),
    ) -> CrawlSession:
        domain = domain_of(seed_url)
        values = {
            "url": seed_url,
            "page_limit": page_limit,
            "exclude_paths": list(exclude_paths),
            "crawl_status": CrawlStatus.QUEUED,
            "pages_crawled": 0,
            "error_message": None,
            "updated_at": utc_now(),
        }
        existing = self._request(
            "GET", "site_index", params={"domain": f"eq.{domain}", "select": "id"}
        )
        if existing:
            rows = self._request(
                "PATCH",
                "site_index",
                params={"id": f"eq.{existing[0]['id']}"},
                json=values,
                prefer="return=representation",
            )
        else:
            rows = self._request(
                "POST",
                "site_index",
                json={**values, "domain": domain},
                prefer="return=representation",
            )
        if not rows:
            raise PersistenceError(f"Supabase returned no row for site {domain!r}")
        return CrawlSession.from_row(rows[0])

    def get_site(self, site_id: str) -> Optional[CrawlSession]:
        rows = self._request(
            "GET", "site_index", params={"id": f"eq.{site_id}", "select": "*"}
        )
        return CrawlSession.from_row(rows[0]) if rows else None

    def list_sites(self, status: Optional[str] = None) -> list[CrawlSession]:
        params = {"select": "*", "order": "created_at.desc"}
        if status:
            params["crawl_status"] = f"eq.{status}"
        rows = self._request("GET", "site_index", params=params)
        return [CrawlSession.from_row(r) for r in rows or []]

    def delete_site(self, site_id: str) -> None:
        # Pages first, so the delete works without a cascading foreign key.
        self._request(
            "DELETE", "page_index", params={"site_id": f"eq.{site_id}"}, prefer="return=minimal"
        )
        self._request(
            "DELETE", "site_index", params={"id": f"eq.{site_id}"}, prefer="return=minimal"
        )

    def update_site(self, site_id: str, fields: dict[str, Any]) -> None:
        unknown = set(fields) - SITE_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update site field(s) {sorted(unknown)!r}")
        if not fields:
            return
        self._request(
            "PATCH",
            "site_index",
            params={"id": f"eq.{site_id}"},
            json=fields,
            prefer="return=minimal",
        )

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def upsert_page(self, record: PageRecord) -> None:
        # merge-duplicates only writes the columns sent, so page_type survives.
        self._request(
            "POST",
            "page_index",
            params={"on_conflict": "site_id,url"},
            json=record.to_row(),
            prefer="resolution=merge-duplicates,return=minimal",
        )

    def list_pages(self, site_id: str) -> list[StoredPage]:
        rows = self._request(
            "GET",
            "page_index",
            params={
                "site_id": f"eq.{site_id}",
                "select": "url,path,title,page_type",
                "order": "path.asc,url.asc",
            },
        )
        return [
            StoredPage(
                url=r["url"],
                path=r["path"],
                title=r.get("title") or "",
                page_type=r.get("page_type"),
            )
            for r in rows or []
        ]

    def set_page_type(self, site_id: str, url: str, page_type: str) -> None:
        self._request(
            "PATCH",
            "page_index",
            params={"site_id": f"eq.{site_id}", "url": f"eq.{url}"},
            json={"page_type": page_type},
            prefer="return=minimal",
        )
