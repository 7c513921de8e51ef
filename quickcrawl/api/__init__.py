"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from quickcrawl.api import app

    uvicorn quickcrawl.api:app --reload
"""

from quickcrawl.api.app import app, create_app

__all__ = ["app", "create_app"]
