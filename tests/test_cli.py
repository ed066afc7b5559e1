"""Tests for the sitecrawl CLI commands.

The crawling engine is a fake and the store is an in-memory SQLite store,
patched in wherever the CLI and the client factories look them up.
"""

from __future__ import annotations

from typing import Generator

import pytest
from typer.testing import CliRunner

from cli.main import app
from sitecrawl.db import SQLiteStore, get_connection, init_db
from sitecrawl.db.models import CrawlStatus
from sitecrawl.errors import ConfigurationError, EngineError
from sitecrawl.scraper.models import CrawlJobResult, PageMetadata, RawPageResult

runner = CliRunner()


def _raw(url: str) -> RawPageResult:
    return RawPageResult(
        markdown="# Welcome\n\nHello there",
        html="<main><h1>Welcome</h1></main>",
        raw_html="<html><main><h1>Welcome</h1></main></html>",
        metadata=PageMetadata(source_url=url, title="Welcome"),
        links=["/contact", "https://other.com/"],
    )


class FakeEngine:
    def __init__(self, pages=None, error=None) -> None:
        self.pages = pages or []
        self.error = error

    def crawl_site(self, seed_url, page_limit, exclude_paths=()):
        if self.error:
            raise self.error
        return CrawlJobResult(status="completed", pages=self.pages, total=len(self.pages))

    def scrape_page(self, url, only_main_content=True, exclude_tags=(), timeout_ms=30000):
        if self.error:
            raise self.error
        return _raw(url)


@pytest.fixture()
def store(monkeypatch) -> Generator[SQLiteStore, None, None]:
    conn = get_connection(db_path=":memory:")  # type: ignore[arg-type]
    init_db(conn)
    sqlite_store = SQLiteStore(conn)
    monkeypatch.setattr("cli.main.get_store", lambda: sqlite_store)
    monkeypatch.setattr("sitecrawl.clients.get_store", lambda: sqlite_store)
    yield sqlite_store
    conn.close()


def _use_engine(monkeypatch, engine: FakeEngine) -> None:
    monkeypatch.setattr("cli.main.get_engine", lambda: engine)
    monkeypatch.setattr("sitecrawl.clients.get_engine", lambda: engine)


class TestTestScrape:
    def test_prints_summary(self, monkeypatch) -> None:
        _use_engine(monkeypatch, FakeEngine())
        result = runner.invoke(app, ["test-scrape", "--url", "https://x.com/"])
        assert result.exit_code == 0
        assert "Scrape Result:" in result.stdout
        assert "Title: Welcome" in result.stdout
        assert "Links: 2" in result.stdout

    def test_engine_error_exits_nonzero(self, monkeypatch) -> None:
        _use_engine(monkeypatch, FakeEngine(error=EngineError("Firecrawl returned HTTP 401")))
        result = runner.invoke(app, ["test-scrape"])
        assert result.exit_code == 1
        assert "Error: Firecrawl returned HTTP 401" in result.stdout

    def test_missing_key_exits_nonzero(self, monkeypatch) -> None:
        def _no_engine():
            raise ConfigurationError("FIRECRAWL_API_KEY is not set")

        monkeypatch.setattr("cli.main.get_engine", _no_engine)
        result = runner.invoke(app, ["test-scrape"])
        assert result.exit_code == 1
        assert "FIRECRAWL_API_KEY" in result.stdout


class TestCrawl:
    def test_crawls_and_classifies(self, store, monkeypatch) -> None:
        _use_engine(monkeypatch, FakeEngine([_raw("https://x.com/"), _raw("https://x.com/contact")]))
        result = runner.invoke(app, ["crawl", "--url", "https://x.com/", "--limit", "5"])

        assert result.exit_code == 0, result.stdout
        assert "Complete: 2 page(s) saved." in result.stdout

        site_id = store.conn.execute("SELECT id FROM site_index").fetchone()["id"]
        pages = store.list_pages(site_id)
        assert {p.page_type for p in pages} == {"HOMEPAGE", "CONTACT"}

    def test_no_classify_leaves_types_empty(self, store, monkeypatch) -> None:
        _use_engine(monkeypatch, FakeEngine([_raw("https://x.com/")]))
        result = runner.invoke(
            app, ["crawl", "--url", "https://x.com/", "--no-classify", "--exclude", "/tag/*"]
        )
        assert result.exit_code == 0, result.stdout

        row = store.conn.execute("SELECT id, exclude_paths FROM site_index").fetchone()
        assert row["exclude_paths"] == '["/tag/*"]'
        assert store.list_pages(row["id"])[0].page_type is None

    def test_skipped_pages_are_listed(self, store, monkeypatch) -> None:
        _use_engine(monkeypatch, FakeEngine([_raw("https://x.com/"), _raw("")]))
        result = runner.invoke(app, ["crawl", "--url", "https://x.com/"])
        assert result.exit_code == 0, result.stdout
        assert "Complete: 1 page(s) saved." in result.stdout
        assert "Skipped (no url)" in result.stdout

    def test_engine_failure_marks_error(self, store, monkeypatch) -> None:
        _use_engine(monkeypatch, FakeEngine(error=EngineError("Firecrawl crawl failed: blocked")))
        result = runner.invoke(app, ["crawl", "--url", "https://x.com/"])

        assert result.exit_code == 1
        assert "Error: Firecrawl crawl failed: blocked" in result.stdout
        row = store.conn.execute("SELECT crawl_status FROM site_index").fetchone()
        assert row["crawl_status"] == CrawlStatus.ERROR

    def test_invalid_url_exits_nonzero(self, store, monkeypatch) -> None:
        _use_engine(monkeypatch, FakeEngine())
        result = runner.invoke(app, ["crawl", "--url", "not a url"])
        assert result.exit_code == 1


class TestStatus:
    def test_shows_progress(self, store) -> None:
        site = store.register_site("https://x.com/", 40)
        store.update_site(site.id, {"crawl_status": CrawlStatus.CRAWLING, "pages_crawled": 10})

        result = runner.invoke(app, ["status", "--site-id", site.id])

        assert result.exit_code == 0
        assert "x.com  [crawling]" in result.stdout
        assert "10/40 (25%)" in result.stdout

    def test_shows_error_message(self, store) -> None:
        site = store.register_site("https://x.com/", 40)
        store.update_site(site.id, {"crawl_status": CrawlStatus.ERROR, "error_message": "boom"})
        result = runner.invoke(app, ["status", "--site-id", site.id])
        assert "Error  : boom" in result.stdout

    def test_unknown_site(self, store) -> None:
        result = runner.invoke(app, ["status", "--site-id", "nope"])
        assert result.exit_code == 1
        assert "Site not found" in result.stdout


class TestRecrawl:
    def test_recrawl_prints_record(self, store, monkeypatch) -> None:
        _use_engine(monkeypatch, FakeEngine())
        site = store.register_site("https://x.com/", 10)

        result = runner.invoke(app, ["recrawl", "--site-id", site.id, "--url", "https://x.com/about"])

        assert result.exit_code == 0, result.stdout
        assert "[recrawl] https://x.com/about" in result.stdout
        assert "1 internal, 1 external" in result.stdout
        assert store.get_page(site.id, "https://x.com/about")["title"] == "Welcome"

    def test_recrawl_engine_error(self, store, monkeypatch) -> None:
        _use_engine(monkeypatch, FakeEngine(error=EngineError("no content returned")))
        result = runner.invoke(app, ["recrawl", "--site-id", "s", "--url", "https://x.com/a"])
        assert result.exit_code == 1
        assert "Error: no content returned" in result.stdout


class TestClassify:
    def test_nothing_to_classify(self, store) -> None:
        site = store.register_site("https://x.com/", 10)
        result = runner.invoke(app, ["classify", "--site-id", site.id])
        assert result.exit_code == 0
        assert "Nothing to classify." in result.stdout


class TestDbInit:
    def test_creates_database(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr("sitecrawl.config.settings.workspace_dir", tmp_path)
        result = runner.invoke(app, ["db", "init"])
        assert result.exit_code == 0
        assert (tmp_path / "sitecrawl.db").exists()
        assert "Database ready" in result.stdout


class TestUsage:
    def test_no_arguments_prints_usage(self) -> None:
        result = runner.invoke(app, [])
        assert "Usage" in result.output
        assert "crawl" in result.output

    def test_unknown_command_exits_nonzero(self) -> None:
        result = runner.invoke(app, ["bogus"])
        assert result.exit_code != 0
        assert "No such command" in result.output

    def test_db_without_subcommand_prints_usage(self) -> None:
        result = runner.invoke(app, ["db"])
        assert "Usage" in result.output
        assert "init" in result.output
