"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from esi_preview.api import app

    uvicorn esi_preview.api:app --reload
"""

from esi_preview.api.app import app

__all__ = ["app"]
