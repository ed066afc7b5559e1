"""sitecrawl CLI: entry-point for crawl operations.

Usage:
    python cli/main.py --help

Commands:
    test-scrape  → scrape one URL through the crawling engine and summarise it
    crawl        → register a site and run a full crawl in the foreground
    recrawl      → re-crawl a single page of a known site
    status       → show a site's crawl progress
    classify     → (re)classify the stored pages of a site
    db init      → initialise the local SQLite store
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from sitecrawl.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import logging
from typing import List, Optional

import typer

from sitecrawl.clients import build_controller, get_engine, get_store
from sitecrawl.config import settings
from sitecrawl.crawl.classifier import classify_site
from sitecrawl.db import get_connection, init_db
from sitecrawl.errors import SiteCrawlError

app = typer.Typer(
    name="sitecrawl",
    help="Whole-site crawl orchestration and page normalization.",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress to stderr."),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
    )


# ---------------------------------------------------------------------------
# Single page
# ---------------------------------------------------------------------------
@app.command("test-scrape")
def test_scrape(
    url: str = typer.Option("https://example.com", help="URL to scrape."),
) -> None:
    """Scrape one URL through the crawling engine and print a summary."""
    try:
        result = get_engine().scrape_page(
            url,
            exclude_tags=settings.scrape_exclude_tags,
            timeout_ms=settings.scrape_timeout_ms,
        )
    except SiteCrawlError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1)

    typer.echo("Scrape Result:")
    typer.echo(f"Title: {result.metadata.title or '(none)'}")
    typer.echo(f"Markdown length: {len(result.markdown)}")
    typer.echo(f"HTML length: {len(result.html)}")
    typer.echo(f"Links: {len(result.links)}")


@app.command("recrawl")
def recrawl(
    site_id: str = typer.Option(..., "--site-id", help="Site the page belongs to."),
    url: str = typer.Option(..., help="Page URL to re-crawl."),
) -> None:
    """Re-crawl a single page and overwrite its stored record."""
    try:
        record = build_controller().recrawl_page(site_id, url)
    except SiteCrawlError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1)

    typer.echo(f"[recrawl] {record.url}")
    typer.echo(f"[recrawl] Title    : {record.title or '(none)'}")
    typer.echo(f"[recrawl] Content  : {len(record.main_content)} chars")
    typer.echo(f"[recrawl] Headings : {len(record.headings)}")
    typer.echo(
        f"[recrawl] Links    : {len(record.links_internal)} internal, "
        f"{len(record.links_external)} external"
    )


# ---------------------------------------------------------------------------
# Full-site crawl
# ---------------------------------------------------------------------------
@app.command("crawl")
def crawl(
    url: str = typer.Option(..., help="Seed URL of the site."),
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Maximum pages to crawl."),
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", help="Path pattern to skip (repeatable)."
    ),
    classify: bool = typer.Option(True, "--classify/--no-classify", help="Classify pages afterwards."),
) -> None:
    """Register the site for URL and crawl it in the foreground."""
    page_limit = limit or settings.default_page_limit
    exclude_paths = list(exclude or [])
    try:
        store = get_store()
        site = store.register_site(url, page_limit, exclude_paths)
        typer.echo(f"[crawl] Site {site.id} ({site.domain}), limit {page_limit}")
        result = build_controller(store=store).run_crawl(
            site.id,
            url,
            page_limit=page_limit,
            exclude_paths=exclude_paths,
            run_classifier=classify,
        )
    except (SiteCrawlError, ValueError) as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1)

    typer.echo(f"[crawl] Complete: {result.pages_processed} page(s) saved.")
    for failure in result.failures:
        typer.echo(f"[crawl] Skipped {failure.url or '(no url)'}: {failure.error}")


@app.command("status")
def status(
    site_id: str = typer.Option(..., "--site-id", help="Site to inspect."),
) -> None:
    """Show a site's crawl status and progress."""
    try:
        site = get_store().get_site(site_id)
    except SiteCrawlError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1)
    if site is None:
        typer.echo(f"[status] Site not found: {site_id}")
        raise typer.Exit(1)

    typer.echo(f"[status] {site.domain}  [{site.status}]")
    typer.echo(
        f"[status] Pages  : {site.pages_crawled}/{site.page_limit} ({site.percent_complete}%)"
    )
    if site.error_message:
        typer.echo(f"[status] Error  : {site.error_message}")


@app.command("classify")
def classify_cmd(
    site_id: str = typer.Option(..., "--site-id", help="Site to classify."),
    reclassify: bool = typer.Option(False, "--reclassify", help="Overwrite existing page types."),
) -> None:
    """Assign page types to the stored pages of a site."""
    try:
        counts = classify_site(get_store(), site_id, reclassify=reclassify)
    except SiteCrawlError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(1)

    if not counts:
        typer.echo("[classify] Nothing to classify.")
        return
    for page_type, count in sorted(counts.items()):
        typer.echo(f"  {page_type:<20} {count}")


# ---------------------------------------------------------------------------
# Local store
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Local SQLite store operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the local SQLite store (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
