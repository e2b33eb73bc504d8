"""HTTP fetcher for the page whose ESI directives are resolved."""

from __future__ import annotations

from typing import Optional

import httpx

from esi_preview.config import settings
from esi_preview.scraper.models import RawPage


def _default_headers() -> dict[str, str]:
    return {
        "User-Agent": settings.client_user_agent,
        "Accept-Language": settings.client_accept_language,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }


async def fetch_page(url: str, cookies: Optional[dict[str, str]] = None) -> RawPage:
    """Fetch *url* and return a :class:`RawPage`.

    The returned page's cookies are the ones passed in merged with any the
    server set, so fragment fetches can forward them.  ``url`` on the result
    is the final URL after redirects; it is the page's canonical URL.

    Raises:
        httpx.HTTPStatusError: If the server returns a 4xx/5xx status code.
        httpx.HTTPError: On transport failures.
    """
    async with httpx.AsyncClient(
        headers=_default_headers(),
        cookies=cookies,
        timeout=settings.request_timeout,
        follow_redirects=True,
    ) as client:
        response = await client.get(url)
        response.raise_for_status()
        jar = {cookie.name: cookie.value or "" for cookie in client.cookies.jar}

    return RawPage(
        url=str(response.url),
        html=response.text,
        status_code=response.status_code,
        cookies=jar,
    )
