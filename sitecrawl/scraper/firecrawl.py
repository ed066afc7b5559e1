"""Firecrawl REST client: the crawling engine behind every crawl.

Two operations are exposed:

``crawl_site``
    Starts an asynchronous crawl job (``POST /v1/crawl``), polls it until it
    reaches a terminal status, and follows ``next`` links to collect every
    page of the result set.

``scrape_page``
    Scrapes a single URL (``POST /v1/scrape``); used when re-crawling one page.

Any transport failure, non-2xx response or non-success status is raised as
:class:`~sitecrawl.errors.EngineError`.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable, Optional

import httpx

from sitecrawl.config import settings
from sitecrawl.errors import ConfigurationError, EngineError, NormalizationError
from sitecrawl.scraper.models import CrawlJobResult, RawPageResult

logger = logging.getLogger(__name__)

CONTENT_FORMATS = ["markdown", "html", "rawHtml", "links"]

_TERMINAL_STATUSES = {"completed", "failed", "cancelled"}


def _page_entries(response: dict[str, Any]) -> list[Any]:
    """Return the ``data`` list of a crawl status response."""
    data = response.get("data")
    if data is None:
        return []
    if not isinstance(data, list):
        raise EngineError(
            f"Firecrawl returned crawl data as {type(data).__name__}, expected a list"
        )
    return list(data)


class FirecrawlClient:
    """Thin synchronous wrapper around the Firecrawl v1 API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.firecrawl.dev",
        poll_interval: float = 2.0,
        timeout: float = 30.0,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Missing FIRECRAWL_API_KEY environment variable")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "FirecrawlClient":
        return cls(
            api_key=settings.firecrawl_api_key,
            base_url=settings.firecrawl_base_url,
            poll_interval=settings.firecrawl_poll_interval,
            timeout=settings.request_timeout,
        )

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        url: str,
        json: Optional[dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        if not url.startswith("http"):
            url = f"{self.base_url}{url}"
        try:
            with httpx.Client(
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=timeout or self.timeout,
            ) as client:
                response = client.request(method, url, json=json)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise EngineError(
                f"Firecrawl returned HTTP {exc.response.status_code} for {method} {url}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise EngineError(f"Firecrawl request failed: {exc}") from exc

        if not isinstance(data, dict):
            raise EngineError("Firecrawl returned an empty response")
        if data.get("success") is False:
            raise EngineError(f"Firecrawl error: {data.get('error') or 'unknown error'}")
        return data

    # ------------------------------------------------------------------
    # Full-site crawl
    # ------------------------------------------------------------------

    def crawl_site(
        self,
        seed_url: str,
        page_limit: int,
        exclude_paths: Iterable[str] = (),
    ) -> CrawlJobResult:
        """Crawl *seed_url* and return every page the engine produced.

        Blocks until the crawl job reaches a terminal status.

        Raises:
            EngineError: If the job cannot be started, polling fails, or the
                job ends with any status other than ``completed``.
        """
        started = self._request(
            "POST",
            "/v1/crawl",
            json={
                "url": seed_url,
                "limit": page_limit,
                "excludePaths": list(exclude_paths),
                "scrapeOptions": {
                    "formats": CONTENT_FORMATS,
                    "onlyMainContent": True,
                },
            },
        )
        job_id = started.get("id")
        if not job_id:
            raise EngineError("Firecrawl did not return a crawl job id")
        logger.info("[firecrawl] Crawl job %s started for %s", job_id, seed_url)

        status_url = f"/v1/crawl/{job_id}"
        while True:
            job = self._request("GET", status_url)
            status = job.get("status") or ""
            if status in _TERMINAL_STATUSES:
                break
            logger.debug(
                "[firecrawl] Job %s: %s (%s/%s)",
                job_id, status, job.get("completed"), job.get("total"),
            )
            time.sleep(self.poll_interval)

        if status != "completed":
            raise EngineError(
                f"Firecrawl crawl {status or 'failed'}: {job.get('error') or seed_url}"
            )

        payloads = _page_entries(job)
        next_url = job.get("next")
        while next_url:
            page = self._request("GET", next_url)
            payloads.extend(_page_entries(page))
            next_url = page.get("next")

        result = CrawlJobResult(status=status)
        for position, payload in enumerate(payloads):
            try:
                result.pages.append(RawPageResult.from_payload(payload))
            except NormalizationError as exc:
                logger.warning("[firecrawl] Skipping page entry %d: %s", position, exc)
                result.rejected.append(f"page entry {position}: {exc}")
        try:
            result.total = int(job.get("total") or 0) or len(payloads)
        except (TypeError, ValueError):
            result.total = len(payloads)
        return result

    # ------------------------------------------------------------------
    # Single page
    # ------------------------------------------------------------------

    def scrape_page(
        self,
        url: str,
        only_main_content: bool = True,
        exclude_tags: Iterable[str] = (),
        timeout_ms: int = 30000,
    ) -> RawPageResult:
        """Scrape one URL.

        Raises:
            EngineError: If the request fails or no markdown comes back.
            NormalizationError: If the returned page has a malformed shape.
        """
        data = self._request(
            "POST",
            "/v1/scrape",
            json={
                "url": url,
                "formats": CONTENT_FORMATS,
                "onlyMainContent": only_main_content,
                "excludeTags": list(exclude_tags),
                "timeout": timeout_ms,
            },
            # Leave headroom over the engine-side timeout for the round trip.
            timeout=timeout_ms / 1000 + self.timeout,
        )
        payload = data.get("data") or {}
        if not isinstance(payload, dict) or not payload.get("markdown"):
            raise EngineError("Firecrawl scrape failed - no content returned")
        return RawPageResult.from_payload(payload, fallback_url=url)
