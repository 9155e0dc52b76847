"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from scout.api import app

    uvicorn scout.api:app --reload
"""

from scout.api.app import app

__all__ = ["app"]
