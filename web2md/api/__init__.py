"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from web2md.api import app

    uvicorn web2md.api:app --reload
"""

from web2md.api.app import app

__all__ = ["app"]
