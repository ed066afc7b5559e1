"""Data models for the scrape → normalize pipeline.

The crawling engine returns loosely-typed JSON.  :meth:`RawPageResult.from_payload`
is the single place where that JSON is defaulted into typed fields; nothing past
it sees optional keys or list-valued metadata.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from sitecrawl.errors import NormalizationError


def _as_text(value: Any) -> str:
    """Coerce an engine metadata value to a string.

    Some sites emit repeated meta tags, in which case the engine returns a list.
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value if v is not None)
    return str(value)


def _as_object(value: Any, what: str) -> dict[str, Any]:
    """Return *value* as a JSON object; ``None`` becomes ``{}``."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise NormalizationError(
            f"Expected {what} to be an object, got {type(value).__name__}"
        )
    return value


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass
class PageMetadata:
    """Page-level metadata reported by the crawling engine."""

    source_url: str = ""
    title: str = ""
    description: str = ""
    keywords: str = ""
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""
    status_code: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> "PageMetadata":
        data = _as_object(payload, "page metadata")
        return cls(
            source_url=_as_text(data.get("sourceURL") or data.get("url")),
            title=_as_text(data.get("title")),
            description=_as_text(data.get("description")),
            keywords=_as_text(data.get("keywords")),
            og_title=_as_text(data.get("ogTitle")),
            og_description=_as_text(data.get("ogDescription")),
            og_image=_as_text(data.get("ogImage")),
            status_code=_as_int(data.get("statusCode")),
        )


@dataclass
class RawPageResult:
    """One page as returned by the crawling engine, before normalization."""

    markdown: str = ""
    html: str = ""
    raw_html: str = ""
    metadata: PageMetadata = field(default_factory=PageMetadata)
    links: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        fallback_url: str = "",
    ) -> "RawPageResult":
        """Build a :class:`RawPageResult` from an engine JSON object.

        Args:
            payload: One page object from a crawl or scrape response.
            fallback_url: Used as the source URL when the engine omits it
                (single-page scrapes of a known URL).

        Raises:
            NormalizationError: If the page or its metadata is not a JSON
                object, or ``links`` is not a list.
        """
        data = _as_object(payload, "page")
        metadata = PageMetadata.from_payload(data.get("metadata"))
        if not metadata.source_url and fallback_url:
            metadata.source_url = fallback_url
        raw_links = data.get("links") or []
        if not isinstance(raw_links, list):
            raise NormalizationError(
                f"Expected page links to be a list, got {type(raw_links).__name__}"
            )
        links = [str(link) for link in raw_links if link is not None]
        return cls(
            markdown=_as_text(data.get("markdown")),
            html=_as_text(data.get("html")),
            raw_html=_as_text(data.get("rawHtml")),
            metadata=metadata,
            links=links,
        )


@dataclass(frozen=True)
class Heading:
    level: int
    text: str


@dataclass
class PageRecord:
    """Canonical, normalized representation of one crawled page.

    Uniqueness key is ``(site_id, url)``.
    """

    site_id: str
    url: str
    path: str
    title: str
    html_content: str
    cleaned_html: str
    main_content: str
    headings: list[Heading] = field(default_factory=list)
    meta_tags: dict[str, str] = field(default_factory=dict)
    links_internal: list[str] = field(default_factory=list)
    links_external: list[str] = field(default_factory=list)
    status_code: int = 200
    crawled_at: str = ""

    def to_row(self) -> dict[str, Any]:
        """Return the record as a plain dict keyed by ``page_index`` column names."""
        return asdict(self)


@dataclass
class CrawlJobResult:
    """Outcome of a full-site crawl as reported by the crawling engine."""

    status: str
    pages: list[RawPageResult] = field(default_factory=list)
    total: int = 0
    # Messages for page entries that could not be read at all.
    rejected: list[str] = field(default_factory=list)
