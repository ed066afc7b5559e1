"""FastAPI application factory.

Lifespan
--------
The store and crawling engine are not built at startup: missing credentials
must only fail the request that needs them.  Both slots on ``app.state`` start
as ``None`` and are filled on first use (tests assign fakes directly).

Routers
-------
    /sites  register sites, start crawls, poll progress, re-crawl pages
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitecrawl import __version__
from sitecrawl.api.routers import sites as sites_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Reset client slots on startup and close the store on shutdown."""
    app.state.store = None
    app.state.engine = None
    try:
        yield
    finally:
        if app.state.store is not None:
            app.state.store.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="sitecrawl API",
        description=(
            "Starts whole-site crawls through the crawling engine, reports live "
            "crawl progress, and re-crawls single pages."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Allow the dashboard frontend on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sites_router.router, prefix="/sites", tags=["sites"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn sitecrawl.api.app:app --reload
app = create_app()
