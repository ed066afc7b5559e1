"""Tests for the /sites API endpoints.

The app runs against an in-memory SQLite store and a fake crawling engine,
assigned to ``app.state`` once the lifespan has started.  Background crawls
run inside the TestClient request cycle.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from sitecrawl.api.app import create_app
from sitecrawl.db import SQLiteStore, get_connection, init_db
from sitecrawl.db.models import CrawlStatus
from sitecrawl.errors import ConfigurationError, EngineError
from sitecrawl.scraper.models import CrawlJobResult, PageMetadata, RawPageResult


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _raw(url: str, markdown: str = "# Home\n\nWelcome") -> RawPageResult:
    return RawPageResult(
        markdown=markdown,
        html="<main></main>",
        raw_html="<html></html>",
        metadata=PageMetadata(source_url=url, title="Home", status_code=200),
        links=["/contact", "/about", "https://other.com/"],
    )


class FakeEngine:
    def __init__(self) -> None:
        self.pages: list[RawPageResult] = []
        self.error: Exception | None = None
        self.crawled: list[tuple[str, int, list[str]]] = []

    def crawl_site(self, seed_url, page_limit, exclude_paths=()):
        self.crawled.append((seed_url, page_limit, list(exclude_paths)))
        if self.error:
            raise self.error
        return CrawlJobResult(status="completed", pages=self.pages, total=len(self.pages))

    def scrape_page(self, url, only_main_content=True, exclude_tags=(), timeout_ms=30000):
        if self.error:
            raise self.error
        return _raw(url, markdown="# Updated\n\n## Section\nText")


@pytest.fixture()
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture()
def store():
    conn = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(conn)
    yield SQLiteStore(conn)
    conn.close()


@pytest.fixture()
def client(store, engine):
    app = create_app()
    with TestClient(app, raise_server_exceptions=True) as c:
        c.app.state.store = store
        c.app.state.engine = engine
        yield c
        # The lifespan closes whatever store is on app.state; keep ours open
        # for the store fixture to close.
        c.app.state.store = None


# ---------------------------------------------------------------------------
# POST /sites
# ---------------------------------------------------------------------------

class TestCreateSite:
    def test_registers_and_crawls(self, client, store, engine) -> None:
        engine.pages = [_raw("https://x.com/"), _raw("https://x.com/contact")]

        resp = client.post(
            "/sites",
            json={"url": "https://x.com/", "page_limit": 20, "exclude_paths": ["/tag/*"]},
        )

        assert resp.status_code == 201
        data = resp.json()
        assert data["domain"] == "x.com"
        assert data["status"] == CrawlStatus.QUEUED
        assert data["page_limit"] == 20
        assert data["percent_complete"] == 0
        assert engine.crawled == [("https://x.com/", 20, ["/tag/*"])]

        site = store.get_site(data["id"])
        assert site.status == CrawlStatus.COMPLETE
        assert site.pages_crawled == 2
        assert {p.page_type for p in store.list_pages(site.id)} == {"HOMEPAGE", "CONTACT"}

    def test_engine_failure_recorded_on_site(self, client, store, engine) -> None:
        engine.error = EngineError("Firecrawl crawl failed: blocked")

        resp = client.post("/sites", json={"url": "https://x.com/"})

        assert resp.status_code == 201
        site = store.get_site(resp.json()["id"])
        assert site.status == CrawlStatus.ERROR
        assert site.error_message == "Firecrawl crawl failed: blocked"

    def test_unexpected_engine_failure_recorded_on_site(self, client, store, engine) -> None:
        engine.error = RuntimeError("connection reset")

        resp = client.post("/sites", json={"url": "https://x.com/"})

        assert resp.status_code == 201
        site = store.get_site(resp.json()["id"])
        assert site.status == CrawlStatus.ERROR
        assert site.error_message == "connection reset"

    def test_without_classifier(self, client, store, engine) -> None:
        engine.pages = [_raw("https://x.com/")]
        resp = client.post("/sites", json={"url": "https://x.com/", "run_classifier": False})
        pages = store.list_pages(resp.json()["id"])
        assert pages[0].page_type is None

    def test_same_domain_reuses_site(self, client) -> None:
        first = client.post("/sites", json={"url": "https://x.com/"}).json()
        second = client.post("/sites", json={"url": "https://x.com/other"}).json()
        assert first["id"] == second["id"]

    @pytest.mark.parametrize(
        "body",
        [
            {"url": "not a url"},
            {"url": "https://x.com/", "page_limit": 0},
            {},
        ],
    )
    def test_invalid_body(self, client, body) -> None:
        assert client.post("/sites", json=body).status_code == 422

    def test_missing_engine_credentials(self, client, monkeypatch) -> None:
        def _no_engine():
            raise ConfigurationError("FIRECRAWL_API_KEY is not set")

        client.app.state.engine = None
        monkeypatch.setattr("sitecrawl.api.routers.sites.get_engine", _no_engine)
        resp = client.post("/sites", json={"url": "https://x.com/"})
        assert resp.status_code == 503
        assert "FIRECRAWL_API_KEY" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# GET /sites/{id}/status
# ---------------------------------------------------------------------------

class TestSiteStatus:
    def test_reports_progress(self, client, store) -> None:
        site = store.register_site("https://x.com/", 40)
        store.update_site(site.id, {"crawl_status": CrawlStatus.CRAWLING, "pages_crawled": 10})

        resp = client.get(f"/sites/{site.id}/status")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == CrawlStatus.CRAWLING
        assert data["pages_crawled"] == 10
        assert data["percent_complete"] == 25
        assert data["url"] == "https://x.com/"

    def test_unknown_site(self, client) -> None:
        assert client.get("/sites/nope/status").status_code == 404


# ---------------------------------------------------------------------------
# POST /sites/{id}/recrawl
# ---------------------------------------------------------------------------

class TestRecrawl:
    def test_overwrites_page(self, client, store) -> None:
        site = store.register_site("https://x.com/", 10)

        resp = client.post(f"/sites/{site.id}/recrawl", json={"url": "https://x.com/about"})

        assert resp.status_code == 200
        data = resp.json()
        assert data["path"] == "/about"
        assert data["headings"] == 2
        assert data["links_internal"] == 2
        assert data["links_external"] == 1
        assert store.get_page(site.id, "https://x.com/about")["main_content"].startswith("# Updated")

    def test_unknown_site(self, client) -> None:
        resp = client.post("/sites/nope/recrawl", json={"url": "https://x.com/about"})
        assert resp.status_code == 404

    def test_engine_error_is_bad_gateway(self, client, store, engine) -> None:
        site = store.register_site("https://x.com/", 10)
        engine.error = EngineError("Firecrawl scrape failed - no content returned")
        resp = client.post(f"/sites/{site.id}/recrawl", json={"url": "https://x.com/about"})
        assert resp.status_code == 502
        assert "no content returned" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# GET /sites
# ---------------------------------------------------------------------------

class TestListSites:
    def test_lists_all_sites(self, client, store) -> None:
        store.register_site("https://a.com/", 10)
        store.register_site("https://b.com/", 10)

        resp = client.get("/sites")

        assert resp.status_code == 200
        assert {s["domain"] for s in resp.json()} == {"a.com", "b.com"}

    def test_status_filter(self, client, store) -> None:
        done = store.register_site("https://a.com/", 10)
        store.register_site("https://b.com/", 10)
        store.update_site(done.id, {"crawl_status": CrawlStatus.COMPLETE})

        resp = client.get("/sites", params={"status": "complete"})

        assert resp.status_code == 200
        assert [s["id"] for s in resp.json()] == [done.id]

    def test_empty(self, client) -> None:
        assert client.get("/sites").json() == []

    def test_unknown_status(self, client) -> None:
        resp = client.get("/sites", params={"status": "finished"})
        assert resp.status_code == 422
        assert "finished" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# DELETE /sites/{id}
# ---------------------------------------------------------------------------

class TestDeleteSite:
    def test_deletes_site_and_pages(self, client, store, engine) -> None:
        engine.pages = [_raw("https://x.com/")]
        site_id = client.post("/sites", json={"url": "https://x.com/"}).json()["id"]
        assert len(store.list_pages(site_id)) == 1

        resp = client.delete(f"/sites/{site_id}")

        assert resp.status_code == 204
        assert resp.content == b""
        assert store.get_site(site_id) is None
        assert store.list_pages(site_id) == []
        assert client.get(f"/sites/{site_id}/status").status_code == 404

    def test_unknown_site(self, client) -> None:
        assert client.delete("/sites/nope").status_code == 404
