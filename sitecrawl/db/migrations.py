"""Database initialisation for the local SQLite store.

``init_db(conn)`` is idempotent and safe to call on an existing database.
"""

from __future__ import annotations

import sqlite3

from sitecrawl.config import settings


def init_db(conn: sqlite3.Connection) -> None:
    """Create the ``site_index`` and ``page_index`` tables if absent.

    Every DDL statement in ``schema.sql`` uses ``IF NOT EXISTS`` so calling
    this multiple times on the same database is safe.
    """
    sql = settings.schema_path.read_text(encoding="utf-8")
    # executescript() issues an implicit COMMIT first, fine for DDL-only scripts.
    conn.executescript(sql)
