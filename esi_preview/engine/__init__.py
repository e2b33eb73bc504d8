"""ESI resolution engine package.

Public API::

    from esi_preview.engine import ESIEngine, preview_url
    engine = await preview_url(storage, "http://localhost:8080/page")
    print(engine.document)
"""

from esi_preview.engine.engine import ESIEngine
from esi_preview.engine.runner import parse_document, preview_html, preview_url
from esi_preview.engine.urls import resolve_url

__all__ = ["ESIEngine", "parse_document", "preview_html", "preview_url", "resolve_url"]
