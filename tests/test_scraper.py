"""Tests for the page fetcher.

Mocking strategy:
- ``respx`` patches ``httpx`` at the transport layer so no real network calls
  are made during ``fetch_page`` tests.
"""

from __future__ import annotations

import pytest
import respx
import httpx

from esi_preview.config import settings
from esi_preview.scraper.models import RawPage
from esi_preview.scraper.fetcher import fetch_page


# ---------------------------------------------------------------------------
# Fixtures / constants
# ---------------------------------------------------------------------------

_SIMPLE_HTML = """\
<!DOCTYPE html>
<html>
<head><title>Test Page</title></head>
<body>
  <esi:include src="/header.html"></esi:include>
  <main><p>Main content.</p></main>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# fetch_page tests
# ---------------------------------------------------------------------------

class TestFetchPage:
    async def test_successful_fetch_returns_raw_page(self) -> None:
        """A 200 response is returned as a RawPage."""
        with respx.mock:
            respx.get("https://example.com/article").mock(
                return_value=httpx.Response(200, text=_SIMPLE_HTML)
            )
            raw = await fetch_page("https://example.com/article")

        assert isinstance(raw, RawPage)
        assert raw.url == "https://example.com/article"
        assert raw.status_code == 200
        assert '<esi:include src="/header.html">' in raw.html

    async def test_http_error_raises(self) -> None:
        """A 404 response raises ``httpx.HTTPStatusError``."""
        with respx.mock:
            respx.get("https://example.com/missing").mock(
                return_value=httpx.Response(404, text="Not Found")
            )
            with pytest.raises(httpx.HTTPStatusError):
                await fetch_page("https://example.com/missing")

    async def test_browser_headers_are_sent(self) -> None:
        with respx.mock:
            route = respx.get("https://example.com/").mock(
                return_value=httpx.Response(200, text=_SIMPLE_HTML)
            )
            await fetch_page("https://example.com/")

        headers = route.calls.last.request.headers
        assert headers["User-Agent"] == settings.client_user_agent
        assert headers["Accept"].startswith("text/html")

    async def test_redirect_sets_final_url(self) -> None:
        """``url`` is the page's canonical URL, i.e. after redirects."""
        with respx.mock:
            respx.get("https://example.com/old").mock(
                return_value=httpx.Response(302, headers={"Location": "/new/"})
            )
            respx.get("https://example.com/new/").mock(
                return_value=httpx.Response(200, text=_SIMPLE_HTML)
            )
            raw = await fetch_page("https://example.com/old")

        assert raw.url == "https://example.com/new/"

    async def test_cookies_sent_and_collected(self) -> None:
        """Passed-in cookies are sent; cookies the server sets are returned too."""
        with respx.mock:
            route = respx.get("https://example.com/").mock(
                return_value=httpx.Response(
                    200, text=_SIMPLE_HTML, headers={"Set-Cookie": "sid=xyz; Path=/"}
                )
            )
            raw = await fetch_page("https://example.com/", cookies={"theme": "dark"})

        assert "theme=dark" in route.calls.last.request.headers["Cookie"]
        assert raw.cookies == {"theme": "dark", "sid": "xyz"}
