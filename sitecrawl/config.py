"""Centralised settings for sitecrawl.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (one level up from the package)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _first_env(*names: str) -> str:
    """Return the first non-empty value among the environment variables *names*."""
    for name in names:
        value = os.environ.get(name, "")
        if value:
            return value
    return ""


def _env_list(name: str) -> list[str]:
    raw = os.environ.get(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Crawling engine (Firecrawl)
    # ------------------------------------------------------------------
    firecrawl_api_key: str = field(
        default_factory=lambda: os.environ.get("FIRECRAWL_API_KEY", "")
    )
    firecrawl_base_url: str = field(
        default_factory=lambda: os.environ.get(
            "FIRECRAWL_BASE_URL", "https://api.firecrawl.dev"
        )
    )
    firecrawl_poll_interval: float = field(
        default_factory=lambda: float(os.environ.get("FIRECRAWL_POLL_INTERVAL", "2.0"))
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    scrape_timeout_ms: int = field(
        default_factory=lambda: int(os.environ.get("SCRAPE_TIMEOUT_MS", "30000"))
    )
    scrape_exclude_tags: list[str] = field(
        default_factory=lambda: _env_list("SCRAPE_EXCLUDE_TAGS")
    )

    # ------------------------------------------------------------------
    # Crawl defaults
    # ------------------------------------------------------------------
    default_page_limit: int = field(
        default_factory=lambda: int(os.environ.get("DEFAULT_PAGE_LIMIT", "200"))
    )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    store_backend: str = field(
        default_factory=lambda: os.environ.get("STORE_BACKEND", "supabase")
    )
    supabase_url: str = field(
        default_factory=lambda: _first_env("SUPABASE_URL", "VITE_SUPABASE_URL")
    )
    # The service key is preferred; the anon key is a restricted fallback.
    supabase_key: str = field(
        default_factory=lambda: _first_env(
            "SUPABASE_SERVICE_KEY",
            "SUPABASE_ANON_KEY",
            "VITE_SUPABASE_SERVICE_KEY",
            "VITE_SUPABASE_ANON_KEY",
        )
    )
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("SITECRAWL_WORKSPACE", Path.home() / ".sitecrawl_data")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the local SQLite database file."""
        return self.workspace_dir / "sitecrawl.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton, import this everywhere:
#   from sitecrawl.config import settings
settings = Settings()
