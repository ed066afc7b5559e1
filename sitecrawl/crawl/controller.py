"""Crawl session controller.

``CrawlController.run_crawl`` drives one whole-site crawl:

    crawling → engine crawl → normalize + upsert each page → complete
             → (classifying → complete)

Only the engine call is fatal.  Every page produces a :class:`PageOutcome`,
and the outcomes are folded into a :class:`CrawlResult`, so one bad page never
unwinds the loop.

Two crawls for the same site must not run concurrently; nothing here
serialises them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from sitecrawl.config import settings
from sitecrawl.crawl.reporter import StatusReporter
from sitecrawl.db.models import CrawlStatus
from sitecrawl.errors import EngineError, NormalizationError, PersistenceError, SiteCrawlError
from sitecrawl.scraper.firecrawl import FirecrawlClient
from sitecrawl.scraper.models import PageRecord, RawPageResult
from sitecrawl.scraper.normalizer import normalize

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 10


@dataclass
class PageOutcome:
    url: str
    ok: bool
    error: Optional[str] = None


@dataclass
class CrawlResult:
    success: bool
    pages_processed: int = 0
    failures: list[PageOutcome] = field(default_factory=list)


class CrawlController:
    """Runs crawls against *engine* and persists through *reporter*.

    Args:
        engine: Crawling engine client (``crawl_site`` / ``scrape_page``).
        reporter: Status reporter wrapping the persistence store.
        classifier: Called with the site id after a successful crawl.  Its
            return value is ignored and its failures are only logged.
    """

    def __init__(
        self,
        engine: FirecrawlClient,
        reporter: StatusReporter,
        classifier: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.engine = engine
        self.reporter = reporter
        self.classifier = classifier

    # ------------------------------------------------------------------
    # Per-page processing
    # ------------------------------------------------------------------

    def _process_page(self, raw: RawPageResult, site_id: str) -> PageOutcome:
        url = raw.metadata.source_url
        try:
            record = normalize(raw, site_id)
            self.reporter.upsert_page(record)
        except (NormalizationError, PersistenceError) as exc:
            logger.error("[crawl] Error saving page %s: %s", url or "(no url)", exc)
            return PageOutcome(url=url, ok=False, error=str(exc))
        return PageOutcome(url=url, ok=True)

    # ------------------------------------------------------------------
    # Full-site crawl
    # ------------------------------------------------------------------

    def run_crawl(
        self,
        site_id: str,
        seed_url: str,
        page_limit: int = 200,
        exclude_paths: Iterable[str] = (),
        run_classifier: bool = True,
    ) -> CrawlResult:
        """Crawl *seed_url* and persist every page for *site_id*.

        Returns:
            A :class:`CrawlResult` with the number of pages saved and the
            pages that were skipped.

        Raises:
            ValueError: If *page_limit* is not positive.
            EngineError: If the crawling engine call fails for any reason.  The
                session is left in ``error`` with the failure message.
        """
        if page_limit <= 0:
            raise ValueError(f"page_limit must be positive, got {page_limit}")

        logger.info("[crawl] Crawling %s (limit: %d)", seed_url, page_limit)
        report = self.reporter.update_session_status
        report(site_id, CrawlStatus.CRAWLING, 0, page_limit)

        try:
            job = self.engine.crawl_site(seed_url, page_limit, list(exclude_paths))
        except Exception as exc:  # noqa: BLE001
            logger.error("[crawl] Crawl failed for %s: %s", seed_url, exc)
            report(
                site_id, CrawlStatus.ERROR, page_limit=page_limit,
                error_message=str(exc) or type(exc).__name__,
            )
            if isinstance(exc, SiteCrawlError):
                raise
            raise EngineError(f"Crawling engine call failed: {exc}") from exc

        total = len(job.pages)
        logger.info("[crawl] Received %d page(s) from engine (status: %s)", total, job.status)

        result = CrawlResult(success=True)
        for reason in job.rejected:
            logger.error("[crawl] Error reading %s", reason)
            result.failures.append(PageOutcome(url="", ok=False, error=reason))
        for raw in job.pages:
            outcome = self._process_page(raw, site_id)
            if not outcome.ok:
                result.failures.append(outcome)
                continue
            result.pages_processed += 1
            if result.pages_processed % PROGRESS_EVERY == 0:
                report(site_id, CrawlStatus.CRAWLING, result.pages_processed, page_limit)
                logger.info("[crawl] Progress: %d/%d pages", result.pages_processed, total)

        processed = result.pages_processed
        report(site_id, CrawlStatus.COMPLETE, processed, page_limit)
        logger.info(
            "[crawl] Crawl complete: %d page(s) saved, %d skipped",
            processed, len(result.failures),
        )

        if run_classifier and self.classifier is not None:
            logger.info("[crawl] Starting classifier for site %s", site_id)
            report(site_id, CrawlStatus.CLASSIFYING, processed, page_limit)
            try:
                self.classifier(site_id)
            except Exception as exc:  # noqa: BLE001
                logger.error("[crawl] Classifier failed for site %s: %s", site_id, exc)
            report(site_id, CrawlStatus.COMPLETE, processed, page_limit)

        return result

    # ------------------------------------------------------------------
    # Single page
    # ------------------------------------------------------------------

    def recrawl_page(self, site_id: str, url: str) -> PageRecord:
        """Scrape *url* again and overwrite its stored record.

        Raises:
            EngineError: If the scrape fails or returns no markdown.
            NormalizationError: If the engine result has no usable URL.
            PersistenceError: If the upsert fails.
        """
        raw = self.engine.scrape_page(
            url,
            only_main_content=True,
            exclude_tags=settings.scrape_exclude_tags,
            timeout_ms=settings.scrape_timeout_ms,
        )
        record = normalize(raw, site_id)
        self.reporter.upsert_page(record)
        logger.info("[crawl] Re-crawled %s (%s)", url, record.title or "untitled")
        return record
