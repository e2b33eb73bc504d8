"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection, wraps it in a
:class:`~esi_preview.db.storage.Storage` (shared across requests via
``request.app.state.storage``) and writes the default settings.  On shutdown
it detaches the live engines and closes the connection.

Routes
------
    /preview   - fetch a page and return it with ESI resolved
    /stats     - stored fragment statistics of a page
    /messages  - ``clearStats`` / ``jumpToFragment`` for a previewed page
    /settings  - read / update the ESI settings flags
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from esi_preview.db import Storage, get_connection, init_db, install_defaults

from esi_preview.api.routers import preview as preview_router
from esi_preview.api.routers import settings as settings_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the storage on startup and close it on shutdown."""
    conn = get_connection()
    init_db(conn)
    storage = Storage(conn)
    install_defaults(storage)
    app.state.storage = storage
    app.state.engines = {}
    try:
        yield
    finally:
        for engine in app.state.engines.values():
            engine.stop()
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="ESI Preview",
        description=(
            "Development proxy that resolves Edge-Side-Include directives "
            "(esi:include, esi:try) in a page and serves the result."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(preview_router.router, tags=["preview"])
    app.include_router(settings_router.router, tags=["settings"])
    return app


# Module-level instance used by uvicorn:
#   uvicorn esi_preview.api.app:app --reload
app = create_app()
