"""Local SQLite backend for :class:`~sitecrawl.db.store.PageStore`."""

from __future__ import annotations

import json
import sqlite3
import uuid
from typing import Any, Iterable, Optional

from sitecrawl.db.models import CrawlSession, CrawlStatus, StoredPage
from sitecrawl.db.store import SITE_UPDATE_FIELDS, PageStore, domain_of, utc_now
from sitecrawl.errors import PersistenceError
from sitecrawl.scraper.models import PageRecord

# JSON-encoded columns of ``page_index``.
_JSON_COLUMNS = ("headings", "meta_tags", "links_internal", "links_external")

_PAGE_COLUMNS = (
    "site_id",
    "url",
    "path",
    "title",
    "html_content",
    "cleaned_html",
    "main_content",
    "headings",
    "meta_tags",
    "links_internal",
    "links_external",
    "status_code",
    "crawled_at",
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_session(row: sqlite3.Row) -> CrawlSession:
    data = dict(row)
    data["exclude_paths"] = json.loads(data["exclude_paths"] or "[]")
    return CrawlSession.from_row(data)


def _page_params(record: PageRecord) -> dict[str, Any]:
    row = record.to_row()
    for column in _JSON_COLUMNS:
        row[column] = json.dumps(row[column])
    return {column: row[column] for column in _PAGE_COLUMNS}


class SQLiteStore(PageStore):
    """Stores sites and pages in the ``site_index`` / ``page_index`` tables.

    The connection must already be initialised with
    :func:`~sitecrawl.db.migrations.init_db`.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

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
        now = utc_now()
        excludes = json.dumps(list(exclude_paths))
        try:
            row = self.conn.execute(
                "SELECT id FROM site_index WHERE domain = ?", (domain,)
            ).fetchone()
            with self.conn:
                if row:
                    site_id = row["id"]
                    self.conn.execute(
                        """
                        UPDATE site_index
                        SET url = ?, page_limit = ?, exclude_paths = ?, crawl_status = ?,
                            pages_crawled = 0, error_message = NULL, updated_at = ?
                        WHERE id = ?
                        """,
                        (seed_url, page_limit, excludes, CrawlStatus.QUEUED, now, site_id),
                    )
                else:
                    site_id = str(uuid.uuid4())
                    self.conn.execute(
                        """
                        INSERT INTO site_index
                            (id, domain, url, page_limit, exclude_paths, crawl_status,
                             pages_crawled, created_at, updated_at)
                        VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)
                        """,
                        (site_id, domain, seed_url, page_limit, excludes,
                         CrawlStatus.QUEUED, now, now),
                    )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to register site {domain!r}: {exc}") from exc

        return self.get_site(site_id)  # type: ignore[return-value]

    def get_site(self, site_id: str) -> Optional[CrawlSession]:
        try:
            row = self.conn.execute(
                "SELECT * FROM site_index WHERE id = ?", (site_id,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to read site {site_id!r}: {exc}") from exc
        return _row_to_session(row) if row else None

    def list_sites(self, status: Optional[str] = None) -> list[CrawlSession]:
        query = "SELECT * FROM site_index"
        params: tuple[Any, ...] = ()
        if status:
            query += " WHERE crawl_status = ?"
            params = (status,)
        query += " ORDER BY created_at DESC, domain"
        try:
            rows = self.conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to list sites: {exc}") from exc
        return [_row_to_session(r) for r in rows]

    def delete_site(self, site_id: str) -> None:
        try:
            with self.conn:
                self.conn.execute("DELETE FROM page_index WHERE site_id = ?", (site_id,))
                self.conn.execute("DELETE FROM site_index WHERE id = ?", (site_id,))
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to delete site {site_id!r}: {exc}") from exc

    def update_site(self, site_id: str, fields: dict[str, Any]) -> None:
        unknown = set(fields) - SITE_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update site field(s) {sorted(unknown)!r}")
        if not fields:
            return

        set_clause = ", ".join(f"{col} = ?" for col in fields)
        values = list(fields.values()) + [site_id]
        try:
            with self.conn:
                self.conn.execute(
                    f"UPDATE site_index SET {set_clause} WHERE id = ?", values  # noqa: S608
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to update site status: {exc}") from exc

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def upsert_page(self, record: PageRecord) -> None:
        params = _page_params(record)
        columns = ", ".join(_PAGE_COLUMNS)
        placeholders = ", ".join(f":{col}" for col in _PAGE_COLUMNS)
        # page_type is not listed, so a previous classification survives.
        updates = ", ".join(
            f"{col} = excluded.{col}" for col in _PAGE_COLUMNS if col not in ("site_id", "url")
        )
        try:
            with self.conn:
                self.conn.execute(
                    f"""
                    INSERT INTO page_index ({columns}) VALUES ({placeholders})
                    ON CONFLICT(site_id, url) DO UPDATE SET {updates}
                    """,  # noqa: S608
                    params,
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to save page: {exc}") from exc

    def list_pages(self, site_id: str) -> list[StoredPage]:
        try:
            rows = self.conn.execute(
                "SELECT url, path, title, page_type FROM page_index "
                "WHERE site_id = ? ORDER BY path, url",
                (site_id,),
            ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to list pages: {exc}") from exc
        return [
            StoredPage(url=r["url"], path=r["path"], title=r["title"], page_type=r["page_type"])
            for r in rows
        ]

    def get_page(self, site_id: str, url: str) -> Optional[dict[str, Any]]:
        """Return the full ``page_index`` row for one page, JSON columns decoded."""
        row = self.conn.execute(
            "SELECT * FROM page_index WHERE site_id = ? AND url = ?", (site_id, url)
        ).fetchone()
        if row is None:
            return None
        data = dict(row)
        for column in _JSON_COLUMNS:
            data[column] = json.loads(data[column])
        return data

    def set_page_type(self, site_id: str, url: str, page_type: str) -> None:
        try:
            with self.conn:
                self.conn.execute(
                    "UPDATE page_index SET page_type = ? WHERE site_id = ? AND url = ?",
                    (page_type, site_id, url),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to set page type: {exc}") from exc

    def close(self) -> None:
        self.conn.close()
