"""Tests for script extraction and sequential re-execution."""

from __future__ import annotations

from bs4 import BeautifulSoup

from esi_preview.console import Console
from esi_preview.engine.models import FetchError, FetchOutcome, FetchResult, ScriptDescriptor
from esi_preview.engine.scripts import ScriptRunner, extract_and_prepare

PAGE = "https://h/page/"


class TestExtractAndPrepare:
    def test_strips_scripts_in_order(self) -> None:
        html = (
            "<p>one</p>"
            "<script>window.a = 1;</script>"
            '<div><script src="/lib.js" defer></script></div>'
            "<p>two</p>"
        )
        stripped, scripts = extract_and_prepare(html)

        assert "<script" not in stripped
        assert "<p>one</p>" in stripped
        assert "<p>two</p>" in stripped
        assert [s.src for s in scripts] == [None, "/lib.js"]
        assert scripts[0].text == "window.a = 1;"
        assert "defer" in scripts[1].attrs

    def test_no_scripts(self) -> None:
        stripped, scripts = extract_and_prepare("<p>plain</p>")
        assert stripped == "<p>plain</p>"
        assert scripts == []


class TestScriptRunner:
    def _runner(self, soup: BeautifulSoup, loader) -> ScriptRunner:
        return ScriptRunner(soup, PAGE, loader, Console(lambda: False), delay=0)

    async def test_runs_sequentially_in_order(self) -> None:
        soup = BeautifulSoup('<div id="c"></div>', "html.parser")
        container = soup.find(id="c")
        events: list[str] = []

        async def loader(url: str) -> FetchOutcome:
            # The external script is already in the tree when its load starts.
            events.append(f"load {url} after {len(container.find_all('script'))}")
            return FetchResult(content="/* js */")

        scripts = [
            ScriptDescriptor(attrs={}, text="first()"),
            ScriptDescriptor(attrs={"src": "lib.js"}),
            ScriptDescriptor(attrs={}, text="last()"),
        ]
        results = await self._runner(soup, loader).run(scripts, container)

        assert results == [True, True, True]
        assert events == ["load https://h/page/lib.js after 2"]
        appended = container.find_all("script")
        assert [s.get("src") for s in appended] == [None, "lib.js", None]
        assert appended[0].string == "first()"
        assert appended[2].string == "last()"

    async def test_failed_external_script_does_not_stop_the_rest(self) -> None:
        soup = BeautifulSoup('<div id="c"></div>', "html.parser")
        container = soup.find(id="c")

        async def loader(url: str) -> FetchOutcome:
            return FetchError(message="HTTP 500: Internal Server Error")

        scripts = [
            ScriptDescriptor(attrs={"src": "/broken.js"}),
            ScriptDescriptor(attrs={}, text="after()"),
        ]
        results = await self._runner(soup, loader).run(scripts, container)

        assert results == [False, True]
        assert len(container.find_all("script")) == 2

    async def test_empty_list(self) -> None:
        soup = BeautifulSoup("<div></div>", "html.parser")

        async def loader(url: str) -> FetchOutcome:
            raise AssertionError("not called")

        assert await self._runner(soup, loader).run([], soup.div) == []
