"""Page normalization: turns a :class:`RawPageResult` into a :class:`PageRecord`.

Everything in this module is pure and deterministic.  The only input that
varies between two calls on the same page is the crawl timestamp, which can be
passed explicitly.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable, Optional
from urllib.parse import urljoin, urlsplit

from sitecrawl.errors import NormalizationError
from sitecrawl.scraper.models import Heading, PageRecord, RawPageResult


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_HEADING_START_RE = re.compile(r"^#{1,6}\s+")

# Evaluated in this order against each trailing line.
FOOTER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^©\s*\d{4}", re.IGNORECASE),
    re.compile(r"all\s*rights?\s*reserved", re.IGNORECASE),
    re.compile(r"powered\s*by\s*(shopify|wordpress|squarespace|wix)", re.IGNORECASE),
    re.compile(r"privacy\s*policy", re.IGNORECASE),
    re.compile(r"terms\s*(of\s*service|&\s*conditions|\s*of\s*use)", re.IGNORECASE),
    re.compile(r"^follow\s*us", re.IGNORECASE),
    re.compile(
        r"^\[?(facebook|instagram|twitter|linkedin|youtube|tiktok)\]?\s*$",
        re.IGNORECASE,
    ),
)

_IMAGE_LINE_RE = re.compile(r"^!\[.*?\]\(.*?\)\s*$")
_CALL_TO_ACTION_RE = re.compile(r"^\[(call|book|schedule|get\s+\d+%)", re.IGNORECASE)
_EXTRA_NEWLINES_RE = re.compile(r"\n{3,}")
_WHITESPACE_RE = re.compile(r"\s")


# ---------------------------------------------------------------------------
# Markdown helpers
# ---------------------------------------------------------------------------

def _is_footer(line: str) -> bool:
    return any(pattern.search(line) for pattern in FOOTER_PATTERNS)


def _is_noise(line: str) -> bool:
    """Image-only lines and bracketed call-to-action links."""
    return bool(_IMAGE_LINE_RE.match(line) or _CALL_TO_ACTION_RE.match(line))


def clean_markdown(markdown: Optional[str]) -> str:
    """Strip pre-heading junk, images, calls to action and footer noise.

    Content starts at the first heading line (or line 0 when there is none).
    Trailing footer lines are trimmed by scanning upwards: blank lines are
    skipped, footer lines move the end up, and the first ordinary line stops
    the scan for good.
    """
    if not markdown:
        return ""
    lines = markdown.split("\n")

    start = next(
        (i for i, line in enumerate(lines) if _HEADING_START_RE.match(line)), 0
    )

    end = len(lines) - 1
    for i in range(len(lines) - 1, start, -1):
        trimmed = lines[i].strip()
        if not trimmed:
            continue
        if _is_footer(trimmed):
            end = i - 1
        else:
            break

    kept = [line for line in lines[start : end + 1] if not _is_noise(line.strip())]
    return _EXTRA_NEWLINES_RE.sub("\n\n", "\n".join(kept)).strip()


def extract_headings(markdown: Optional[str]) -> list[Heading]:
    """Return every ATX heading in *markdown*, in document order."""
    if not markdown:
        return []
    headings: list[Heading] = []
    for line in markdown.split("\n"):
        match = _HEADING_RE.match(line)
        if match:
            headings.append(Heading(level=len(match.group(1)), text=match.group(2).strip()))
    return headings


# ---------------------------------------------------------------------------
# Link helpers
# ---------------------------------------------------------------------------

def _resolve(link: str, base: str) -> Optional[tuple[str, str]]:
    """Resolve *link* against *base* and return ``(hostname, path)``.

    Surrounding whitespace is ignored.  Returns ``None`` for entries that
    cannot be read as a URL reference.
    """
    link = link.strip()
    if not link or _WHITESPACE_RE.search(link):
        return None
    try:
        parts = urlsplit(urljoin(base, link))
        hostname = parts.hostname or ""
    except ValueError:
        return None
    return hostname, parts.path or "/"


def partition_links(
    links: Iterable[str], page_url: str, domain: str
) -> tuple[list[str], list[str]]:
    """Split *links* into internal paths and external raw links.

    Malformed entries are dropped without error.  Order and duplicates are
    preserved.

    Returns:
        ``(internal, external)`` where *internal* holds resolved paths and
        *external* holds the link strings exactly as given.
    """
    internal: list[str] = []
    external: list[str] = []
    domain = domain.lower()
    for link in links:
        resolved = _resolve(link, page_url)
        if resolved is None:
            continue
        hostname, path = resolved
        if hostname == domain:
            internal.append(path)
        else:
            external.append(link)
    return internal, external


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _parse_source_url(url: str) -> tuple[str, str]:
    """Return ``(hostname, path)`` for an absolute http(s) URL."""
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError as exc:
        raise NormalizationError(f"Malformed source URL {url!r}: {exc}") from exc
    if parts.scheme not in ("http", "https") or not hostname:
        raise NormalizationError(f"Malformed source URL {url!r}")
    return hostname, parts.path or "/"


def normalize(
    raw: RawPageResult,
    site_id: str,
    crawled_at: Optional[str] = None,
) -> PageRecord:
    """Build the canonical :class:`PageRecord` for one raw engine result.

    Args:
        raw: The engine result, already defaulted by ``RawPageResult.from_payload``.
        site_id: Owning site.
        crawled_at: ISO-8601 timestamp override; defaults to now (UTC).

    Raises:
        NormalizationError: If the source URL is missing or malformed.
    """
    meta = raw.metadata
    url = meta.source_url
    domain, path = _parse_source_url(url)
    internal, external = partition_links(raw.links, url, domain)

    return PageRecord(
        site_id=site_id,
        url=url,
        path=path,
        title=meta.title,
        html_content=raw.raw_html,
        cleaned_html=raw.html,
        main_content=clean_markdown(raw.markdown),
        headings=extract_headings(raw.markdown),
        meta_tags={
            "description": meta.description,
            "keywords": meta.keywords,
            "ogTitle": meta.og_title,
            "ogDescription": meta.og_description,
            "ogImage": meta.og_image,
        },
        links_internal=internal,
        links_external=external,
        status_code=meta.status_code or 200,
        crawled_at=crawled_at or datetime.now(timezone.utc).isoformat(),
    )
