"""Script re-execution for fetched fragments.

Markup spliced into a live document does not run its ``<script>`` elements.
When the ``executeScripts`` flag is on, fragment markup goes through
:func:`extract_and_prepare` before insertion, and the removed scripts are
re-created afterwards by :class:`ScriptRunner`, one after the other:

* inline scripts are appended as fresh ``<script>`` elements right away;
* external scripts are appended and their source loaded, and the next script
  only starts once that load has settled (success or failure).

A failing script never fails the fragment.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from bs4 import BeautifulSoup, Tag

from esi_preview.console import Console
from esi_preview.engine.models import FetchError, FetchOutcome, ScriptDescriptor
from esi_preview.engine.urls import resolve_url

ScriptLoader = Callable[[str], Awaitable[FetchOutcome]]


def extract_and_prepare(html: str) -> tuple[str, list[ScriptDescriptor]]:
    """Strip every ``<script>`` from *html*.

    The markup is parsed into a detached soup, so nothing in it touches the
    page.  Returns the remaining markup and the removed scripts in document
    order.
    """
    fragment = BeautifulSoup(html, "html.parser")
    scripts: list[ScriptDescriptor] = []
    for script in fragment.find_all("script"):
        scripts.append(
            ScriptDescriptor(attrs=dict(script.attrs), text=script.string or "")
        )
        script.decompose()
    return str(fragment), scripts


class ScriptRunner:
    """Re-create deferred scripts inside a fragment container, in order."""

    def __init__(
        self,
        document: BeautifulSoup,
        page_url: str,
        loader: ScriptLoader,
        console: Console,
        delay: float = 0.0,
    ) -> None:
        self.document = document
        self.page_url = page_url
        self.loader = loader
        self.console = console
        self.delay = delay

    def _new_script(self, descriptor: ScriptDescriptor) -> Tag:
        script = self.document.new_tag("script", attrs=dict(descriptor.attrs))
        if descriptor.text and not descriptor.src:
            script.string = descriptor.text
        return script

    async def run(self, scripts: list[ScriptDescriptor], container: Tag) -> list[bool]:
        """Append *scripts* to *container* after the settle delay.

        Returns one flag per script: ``False`` where the script failed.
        """
        if not scripts:
            return []
        await asyncio.sleep(self.delay)

        results: list[bool] = []
        for descriptor in scripts:
            results.append(await self._run_one(descriptor, container))
        return results

    async def _run_one(self, descriptor: ScriptDescriptor, container: Tag) -> bool:
        try:
            container.append(self._new_script(descriptor))
        except ValueError as exc:
            self.console.error("SCRIPT", f"Could not insert script: {exc}")
            return False

        src: Optional[str] = descriptor.src
        if src is None:
            self.console.debug("SCRIPT", "Inline script appended")
            return True

        url = resolve_url(src, self.page_url)
        outcome = await self.loader(url)
        if isinstance(outcome, FetchError):
            self.console.error("SCRIPT", f"Failed to load {url}: {outcome.message}")
            return False
        self.console.debug("SCRIPT", f"External script loaded: {url}")
        return True
