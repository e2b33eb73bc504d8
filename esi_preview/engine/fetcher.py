"""HTTP fetcher for ESI fragments.

:meth:`FragmentFetcher.fetch` never raises: a non-2xx response or a transport
failure comes back as a :class:`~esi_preview.engine.models.FetchError` whose
message is shown in the inline error panel.
"""

from __future__ import annotations

from typing import Callable, Optional
from urllib.parse import urlsplit

import httpx

from esi_preview.config import settings
from esi_preview.engine.models import EngineSettings, FetchError, FetchOutcome, FetchResult

_BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "X-Requested-With": "XMLHttpRequest",
}


def _same_origin(a: str, b: str) -> bool:
    pa, pb = urlsplit(a), urlsplit(b)
    return (pa.scheme, pa.netloc) == (pb.scheme, pb.netloc)


def build_headers(flags: EngineSettings) -> dict[str, str]:
    """Return the request headers for a fragment fetch.

    Base headers first, then the forwarded client headers (``forwardHeaders``),
    then custom headers in list order.  Later entries overwrite earlier ones
    with the same name; custom headers with an empty name or value are skipped.
    """
    headers = dict(_BASE_HEADERS)
    if flags.forward_headers:
        headers["User-Agent"] = settings.client_user_agent
        headers["Accept-Language"] = settings.client_accept_language
    for header in flags.custom_headers:
        if header.name and header.value:
            _set_header(headers, header.name, header.value)
    return headers


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    # HTTP header names are case-insensitive; keep one entry per name.
    for existing in list(headers):
        if existing.lower() == name.lower():
            del headers[existing]
    headers[name] = value


def credentials_mode(flags: EngineSettings) -> str:
    return "include" if flags.forward_cookies else "same-origin"


class FragmentFetcher:
    """Fetches fragment markup on behalf of one page.

    Args:
        page_url: URL of the page being previewed; decides same-origin.
        flags: Callable returning the engine's current settings, so header
            changes made while a pass is running apply to later fetches.
        cookies: Cookies of the page.  Sent to the page's own origin always,
            and to other origins only in ``include`` credentials mode.
        timeout: Request timeout override (defaults to ``settings.request_timeout``).
    """

    def __init__(
        self,
        page_url: str,
        flags: Callable[[], EngineSettings],
        cookies: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.page_url = page_url
        self._flags = flags
        self.cookies = dict(cookies or {})
        self.timeout = timeout if timeout is not None else settings.request_timeout

    def _cookie_header(self, url: str, mode: str) -> Optional[str]:
        if not self.cookies:
            return None
        if mode != "include" and not _same_origin(url, self.page_url):
            return None
        return "; ".join(f"{name}={value}" for name, value in self.cookies.items())

    def request_headers(self, url: str) -> dict[str, str]:
        flags = self._flags()
        headers = build_headers(flags)
        cookie = self._cookie_header(url, credentials_mode(flags))
        if cookie and not any(name.lower() == "cookie" for name in headers):
            headers["Cookie"] = cookie
        return headers

    async def fetch(self, url: str) -> FetchOutcome:
        """GET *url* (already resolved) and return its body or an error."""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
            ) as client:
                response = await client.get(url, headers=self.request_headers(url))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return FetchError(message=str(exc) or exc.__class__.__name__)
        except ValueError as exc:
            # Header values httpx cannot encode (non-ASCII custom headers or cookies).
            return FetchError(message=f"Invalid request: {exc}")

        if not response.is_success:
            return FetchError(
                message=f"HTTP {response.status_code}: {response.reason_phrase}"
            )
        return FetchResult(content=response.text, status_code=response.status_code)
