"""High-level entry points used by the CLI and the API.

``preview_html`` is the single place where a page load turns into an engine
run: housekeeping of old stats, a fresh engine for the new page instance, one
pass, and waiting for deferred scripts.
"""

from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup

from esi_preview.config import settings
from esi_preview.db.stats import cleanup_old_stats
from esi_preview.db.storage import Storage
from esi_preview.engine.engine import ESIEngine
from esi_preview.scraper import fetch_page


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


async def preview_html(
    storage: Storage,
    html: str,
    page_url: str,
    cookies: Optional[dict[str, str]] = None,
) -> ESIEngine:
    """Resolve the ESI directives of *html* as served from *page_url*.

    Returns the engine, which keeps the resolved document (``engine.document``)
    and the page's stats (``engine.stats``).  The engine stays subscribed to
    settings changes; call ``engine.stop()`` when the page goes away.
    """
    cleanup_old_stats(storage, settings.stats_max_age)

    engine = ESIEngine(parse_document(html), page_url, storage, cookies=cookies)
    await engine.start()
    await engine.wait_idle()
    return engine


async def preview_url(
    storage: Storage,
    url: str,
    cookies: Optional[dict[str, str]] = None,
) -> ESIEngine:
    """Fetch *url* and resolve its ESI directives.

    Raises:
        httpx.HTTPError: If the page itself cannot be fetched.
    """
    raw = await fetch_page(url, cookies=cookies)
    return await preview_html(storage, raw.html, raw.url, cookies=raw.cookies)
