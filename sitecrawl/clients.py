"""Process-wide clients, built lazily on first use.

The controller never reaches for these itself; the CLI and the API build
them here and pass them in::

    controller = build_controller()
    controller.run_crawl(site_id, url)

Both factories raise :class:`~sitecrawl.errors.ConfigurationError` before any
network call when a required credential is missing.
"""

from __future__ import annotations

from functools import lru_cache, partial

from sitecrawl.config import settings
from sitecrawl.crawl.classifier import classify_site
from sitecrawl.crawl.controller import CrawlController
from sitecrawl.crawl.reporter import StatusReporter
from sitecrawl.db.connection import get_connection
from sitecrawl.db.migrations import init_db
from sitecrawl.db.sqlite_store import SQLiteStore
from sitecrawl.db.store import PageStore
from sitecrawl.db.supabase_store import SupabaseStore
from sitecrawl.errors import ConfigurationError
from sitecrawl.scraper.firecrawl import FirecrawlClient


@lru_cache(maxsize=None)
def get_engine() -> FirecrawlClient:
    """Return the shared Firecrawl client."""
    return FirecrawlClient.from_settings()


@lru_cache(maxsize=None)
def get_store() -> PageStore:
    """Return the shared store selected by ``settings.store_backend``."""
    backend = settings.store_backend.lower()
    if backend == "supabase":
        return SupabaseStore.from_settings()
    if backend == "sqlite":
        conn = get_connection()
        init_db(conn)
        return SQLiteStore(conn)
    raise ConfigurationError(
        f"Unknown STORE_BACKEND {settings.store_backend!r}. Use: supabase | sqlite"
    )


def build_controller(
    engine: FirecrawlClient | None = None,
    store: PageStore | None = None,
) -> CrawlController:
    """Wire a :class:`CrawlController` with the shared (or given) clients."""
    store = store or get_store()
    return CrawlController(
        engine=engine or get_engine(),
        reporter=StatusReporter(store),
        classifier=partial(classify_site, store),
    )
