"""Preview endpoints.

Routes
------
GET  /preview?url=...     Fetch the page, resolve ESI, return HTML
GET  /stats?url=...       Stored stats for a page
POST /messages            Body: {"action": ..., "url": ..., "fragmentId": ...}

Each ``/preview`` call is a new page instance: it replaces the live engine
kept for that URL, so ``/messages`` always talks to the latest preview.
At most ``MAX_LIVE_PREVIEWS`` engines stay live; older ones are stopped.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from esi_preview.config import settings
from esi_preview.db.stats import load_stats
from esi_preview.engine.engine import ESIEngine
from esi_preview.engine.models import Stats
from esi_preview.engine.runner import preview_url

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class MessageRequest(BaseModel):
    action: str
    url: str
    fragmentId: Optional[int] = None


def _evict_stale(engines: dict[str, ESIEngine]) -> None:
    # Dicts keep insertion order and a re-preview re-inserts its URL,
    # so the first keys are the least recently previewed.
    while len(engines) > max(1, settings.max_live_previews):
        oldest = next(iter(engines))
        engines.pop(oldest).stop()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/preview", response_class=HTMLResponse)
async def preview_endpoint(
    request: Request,
    url: str = Query(..., description="Page to preview."),
) -> HTMLResponse:
    """Fetch *url*, resolve its ESI directives and return the resulting page."""
    storage = request.app.state.storage
    engines = request.app.state.engines
    cookies = dict(request.cookies)

    try:
        engine = await preview_url(storage, url, cookies=cookies)
    except httpx.HTTPStatusError as exc:
        raise HTTPException(
            status_code=502,
            detail=f"Page fetch failed: HTTP {exc.response.status_code}",
        ) from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise HTTPException(status_code=502, detail=f"Page fetch failed: {exc}") from exc

    previous = engines.pop(url, None)
    if previous is not None:
        previous.stop()
    engines[url] = engine
    _evict_stale(engines)

    return HTMLResponse(
        content=str(engine.document),
        headers={
            "X-ESI-Total": str(engine.stats.total),
            "X-ESI-Failed": str(engine.stats.failed),
        },
    )


@router.get("/stats", response_model=dict[str, Any])
def stats_endpoint(
    request: Request,
    url: str = Query(..., description="Page URL the stats are stored under."),
) -> dict[str, Any]:
    """Return the stored stats for *url* (all zeros if there are none)."""
    stored = load_stats(request.app.state.storage, url)
    return stored if stored is not None else Stats().to_dict()


@router.post("/messages", response_model=dict[str, Any])
async def messages_endpoint(body: MessageRequest, request: Request) -> dict[str, Any]:
    """Deliver an inbound message to the live engine of ``body.url``.

    Runs on the event loop so the engine is only ever touched from one thread.
    """
    engine = request.app.state.engines.get(body.url)
    if engine is None:
        raise HTTPException(status_code=404, detail=f"No live preview for {body.url!r}")
    return engine.handle_message(body.model_dump(exclude={"url"}))
