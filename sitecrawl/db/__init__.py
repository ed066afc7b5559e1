"""Database layer package.

Public re-exports so callers can write::

    from sitecrawl.db import get_connection, init_db, SQLiteStore
"""

from sitecrawl.db.connection import get_connection
from sitecrawl.db.migrations import init_db
from sitecrawl.db.models import CrawlSession, CrawlStatus, StoredPage
from sitecrawl.db.sqlite_store import SQLiteStore
from sitecrawl.db.store import PageStore
from sitecrawl.db.supabase_store import SupabaseStore

__all__ = [
    "get_connection",
    "init_db",
    "CrawlSession",
    "CrawlStatus",
    "StoredPage",
    "PageStore",
    "SQLiteStore",
    "SupabaseStore",
]
