"""Settings endpoints.

Routes
------
GET  /settings     Current ESI settings flags
PUT  /settings     Update some of them; live previews pick the change up

Writes go through the app's shared storage, so every live engine is notified
the same way a settings change reaches an open page.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from esi_preview.engine.models import SETTING_KEYS

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class HeaderItem(BaseModel):
    name: str
    value: str


class SettingsUpdate(BaseModel):
    esiEnabled: Optional[bool] = None
    customHeaders: Optional[list[HeaderItem]] = None
    forwardHeaders: Optional[bool] = None
    forwardCookies: Optional[bool] = None
    executeScripts: Optional[bool] = None
    debugLogging: Optional[bool] = None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/settings", response_model=dict[str, Any])
def get_settings_endpoint(request: Request) -> dict[str, Any]:
    return request.app.state.storage.get(SETTING_KEYS)


@router.put("/settings", response_model=dict[str, Any])
async def put_settings_endpoint(body: SettingsUpdate, request: Request) -> dict[str, Any]:
    """Store the fields present in *body* and return the resulting settings.

    Runs on the event loop: enabling ESI schedules a new pass on every live
    engine from inside the storage notification.
    """
    storage = request.app.state.storage
    changes = body.model_dump(exclude_none=True)
    storage.set(changes)
    return storage.get(SETTING_KEYS)
