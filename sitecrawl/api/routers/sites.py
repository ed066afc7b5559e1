"""Site crawl endpoints.

Routes
------
GET    /sites                      List sites, optionally filtered by status
POST   /sites                      Register (or reset) a site and start a crawl
DELETE /sites/{site_id}            Delete a site and its pages
GET    /sites/{site_id}/status     Live crawl progress
POST   /sites/{site_id}/recrawl    Re-crawl one page of a site
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, Response
from pydantic import BaseModel, Field, HttpUrl

from sitecrawl.clients import build_controller, get_engine, get_store
from sitecrawl.crawl.controller import CrawlController
from sitecrawl.db.models import CrawlSession, CrawlStatus
from sitecrawl.db.store import PageStore
from sitecrawl.errors import (
    ConfigurationError,
    EngineError,
    NormalizationError,
    PersistenceError,
    SiteCrawlError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class SiteCreate(BaseModel):
    url: HttpUrl
    page_limit: int = Field(200, gt=0)
    exclude_paths: list[str] = Field(default_factory=list)
    run_classifier: bool = True


class SiteResponse(BaseModel):
    id: str
    domain: str
    url: str
    status: str
    pages_crawled: int
    page_limit: int
    exclude_paths: list[str]
    percent_complete: int
    error_message: Optional[str]
    updated_at: str


class RecrawlRequest(BaseModel):
    url: HttpUrl


class PageResponse(BaseModel):
    url: str
    path: str
    title: str
    status_code: int
    headings: int
    links_internal: int
    links_external: int
    crawled_at: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _site_response(site: CrawlSession) -> dict[str, Any]:
    return {
        "id": site.id,
        "domain": site.domain,
        "url": site.seed_url,
        "status": site.status,
        "pages_crawled": site.pages_crawled,
        "page_limit": site.page_limit,
        "exclude_paths": site.exclude_paths,
        "percent_complete": site.percent_complete,
        "error_message": site.error_message,
        "updated_at": site.updated_at,
    }


def _store(request: Request) -> PageStore:
    if request.app.state.store is None:
        try:
            request.app.state.store = get_store()
        except ConfigurationError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
    return request.app.state.store


def _controller(request: Request) -> CrawlController:
    store = _store(request)
    if request.app.state.engine is None:
        try:
            request.app.state.engine = get_engine()
        except ConfigurationError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
    return build_controller(engine=request.app.state.engine, store=store)


def _run_crawl_task(
    controller: CrawlController,
    site: CrawlSession,
    run_classifier: bool,
) -> None:
    """Background task body; the controller already recorded any failure."""
    try:
        result = controller.run_crawl(
            site.id,
            site.seed_url,
            page_limit=site.page_limit,
            exclude_paths=site.exclude_paths,
            run_classifier=run_classifier,
        )
    except SiteCrawlError as exc:
        logger.error("[api] Crawl failed for %s: %s", site.domain, exc)
        return
    logger.info("[api] Crawl complete for %s: %d page(s)", site.domain, result.pages_processed)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("", response_model=list[SiteResponse])
def list_sites(request: Request, status: Optional[str] = None) -> list[dict[str, Any]]:
    """Return every registered site, newest first, optionally only those in *status*."""
    if status is not None and status not in CrawlStatus.ALL:
        raise HTTPException(
            status_code=422,
            detail=f"Unknown status {status!r}. Use one of: {', '.join(CrawlStatus.ALL)}",
        )
    try:
        sites = _store(request).list_sites(status=status)
    except PersistenceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return [_site_response(s) for s in sites]


@router.post("", response_model=SiteResponse, status_code=201)
def create_site(
    body: SiteCreate, request: Request, background_tasks: BackgroundTasks
) -> dict[str, Any]:
    """Register the site for *url* (resetting it if known) and crawl it in the background."""
    controller = _controller(request)
    try:
        site = _store(request).register_site(
            str(body.url), body.page_limit, body.exclude_paths
        )
    except PersistenceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    background_tasks.add_task(_run_crawl_task, controller, site, body.run_classifier)
    logger.info("[api] Started crawler for site %s (%s)", site.id, site.domain)
    return _site_response(site)


@router.delete("/{site_id}", status_code=204, response_class=Response, response_model=None)
def delete_site(site_id: str, request: Request) -> Response:
    """Delete a site and every page stored for it."""
    store = _store(request)
    try:
        if store.get_site(site_id) is None:
            raise HTTPException(status_code=404, detail="Site not found")
        store.delete_site(site_id)
    except PersistenceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    logger.info("[api] Deleted site %s", site_id)
    return Response(status_code=204)


@router.get("/{site_id}/status", response_model=SiteResponse)
def site_status(site_id: str, request: Request) -> dict[str, Any]:
    """Return the current crawl status and progress of a site."""
    try:
        site = _store(request).get_site(site_id)
    except PersistenceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")
    return _site_response(site)


@router.post("/{site_id}/recrawl", response_model=PageResponse)
def recrawl_page(site_id: str, body: RecrawlRequest, request: Request) -> dict[str, Any]:
    """Scrape one page again and overwrite its stored record."""
    if _store(request).get_site(site_id) is None:
        raise HTTPException(status_code=404, detail="Site not found")

    controller = _controller(request)
    try:
        record = controller.recrawl_page(site_id, str(body.url))
    except EngineError as exc:
        raise HTTPException(status_code=502, detail=f"Scrape failed: {exc}") from exc
    except NormalizationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except PersistenceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return {
        "url": record.url,
        "path": record.path,
        "title": record.title,
        "status_code": record.status_code,
        "headings": len(record.headings),
        "links_internal": len(record.links_internal),
        "links_external": len(record.links_external),
        "crawled_at": record.crawled_at,
    }
