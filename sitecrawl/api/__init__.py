"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from sitecrawl.api import app

    uvicorn sitecrawl.api:app --reload
"""

from sitecrawl.api.app import app, create_app

__all__ = ["app", "create_app"]
