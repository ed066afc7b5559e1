"""Path-based page type classifier.

Runs after a crawl and tags every stored page with one of
:data:`PAGE_TYPES`.  Only URL path signals are used, so the result is
deterministic and needs no external service.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from sitecrawl.db.store import PageStore

logger = logging.getLogger(__name__)

PAGE_TYPES = (
    "HOMEPAGE",
    "PROCEDURE",
    "SERVICE_INDEX",
    "BODY_AREA",
    "CONDITION",
    "RESOURCE",
    "RESOURCE_INDEX",
    "TEAM_MEMBER",
    "ABOUT",
    "GALLERY",
    "CONTACT",
    "LOCATION",
    "PRODUCT",
    "PRODUCT_COLLECTION",
    "UTILITY",
    "MEMBERSHIP",
    "GENERIC",
)

_UTILITY_SIGNALS = (
    "cart", "checkout", "account", "login", "signin", "sign-in", "register",
    "signup", "sign-up", "search", "wishlist", "favorites", "privacy", "terms",
    "policy",
)
_CONTACT_SIGNALS = ("contact", "appointment", "book-now", "schedule")
_ABOUT_PATHS = ("/about", "/about-us", "/about/")
_TEAM_SIGNALS = ("/team", "/staff", "/providers", "/our-team")
_GALLERY_SIGNALS = ("gallery", "before-after", "results", "portfolio")
_MEMBERSHIP_SIGNALS = ("membership", "pricing", "specials", "financing")
_RESOURCE_SIGNALS = ("/blog/", "/news/", "/article/", "/post/")
_RESOURCE_INDEX_SIGNALS = ("/category/", "/tag/", "/tagged/", "/archive/")


def classify_path(path: str) -> Optional[str]:
    """Return the page type implied by *path*, or ``None`` if nothing matches.

    Checks run in a fixed order; the first hit wins.
    """
    path = path.lower()
    if path == "/":
        return "HOMEPAGE"
    if any(s in path for s in _UTILITY_SIGNALS):
        return "UTILITY"
    if any(s in path for s in _CONTACT_SIGNALS):
        return "CONTACT"
    if path in _ABOUT_PATHS or any(s in path for s in _TEAM_SIGNALS):
        return "ABOUT"
    if any(s in path for s in _GALLERY_SIGNALS):
        return "GALLERY"
    if any(s in path for s in _MEMBERSHIP_SIGNALS):
        return "MEMBERSHIP"
    if any(s in path for s in _RESOURCE_SIGNALS):
        return "RESOURCE"
    if any(s in path for s in _RESOURCE_INDEX_SIGNALS):
        return "RESOURCE_INDEX"
    return None


def classify_site(
    store: PageStore, site_id: str, reclassify: bool = False
) -> dict[str, int]:
    """Assign a page type to every unclassified page of *site_id*.

    Args:
        store: Backend holding the site's pages.
        site_id: Site to classify.
        reclassify: Also overwrite pages that already have a type.

    Returns:
        Number of pages assigned per page type.
    """
    counts: Counter[str] = Counter()
    pages = store.list_pages(site_id)
    for page in pages:
        if page.page_type and not reclassify:
            continue
        page_type = classify_path(page.path) or "GENERIC"
        store.set_page_type(site_id, page.url, page_type)
        counts[page_type] += 1

    logger.info(
        "[classify] Site %s: %d of %d page(s) classified",
        site_id, sum(counts.values()), len(pages),
    )
    return dict(counts)
