"""The ESI resolution engine for one page instance.

A pass runs three discovery phases in order (try blocks, standalone
includes, comment directives).  Each phase snapshots its directives, then
resolves them concurrently: resolve URL, fetch, build the result node and
splice it in as soon as that directive's fetch settles.  A phase is drained
before the next one starts discovering.

Navigating to another page means creating another engine; an engine's
processed-node set and stats live exactly as long as its page.
"""

from __future__ import annotations

import asyncio
from time import time
from typing import Any, Callable, Optional

from bs4 import BeautifulSoup

from esi_preview.config import settings
from esi_preview.console import Console
from esi_preview.db.stats import load_stats, save_stats
from esi_preview.db.storage import Storage
from esi_preview.engine.fetcher import FragmentFetcher
from esi_preview.engine.models import (
    SETTING_KEYS,
    Directive,
    EngineSettings,
    FetchError,
    FetchOutcome,
    FetchResult,
    Fragment,
    ScriptDescriptor,
    Stats,
)
from esi_preview.engine.scanner import (
    scan_comments,
    scan_standalone_includes,
    scan_try_blocks,
)
from esi_preview.engine.scripts import ScriptRunner, extract_and_prepare
from esi_preview.engine.state import EngineState, ProcessedSet
from esi_preview.engine.surgeon import build_error_node, build_success_node, replace
from esi_preview.engine.urls import resolve_url

Scanner = Callable[[BeautifulSoup, ProcessedSet], list[Directive]]

PHASES: list[tuple[str, Scanner]] = [
    ("try blocks", scan_try_blocks),
    ("standalone includes", scan_standalone_includes),
    ("comments", scan_comments),
]


def _now_ms() -> int:
    return int(time() * 1000)


class ESIEngine:
    """Resolves the ESI directives of *document*, served from *page_url*.

    Args:
        document: Parsed page; modified in place.
        page_url: Canonical URL of the page.  Base for relative ``src``
            values and the key the stats are stored under.
        storage: Shared settings/stats storage.
        cookies: Page cookies, forwarded according to ``forwardCookies``.
        state: Pre-built state (mainly for tests); a fresh one by default.
    """

    def __init__(
        self,
        document: BeautifulSoup,
        page_url: str,
        storage: Storage,
        cookies: Optional[dict[str, str]] = None,
        state: Optional[EngineState] = None,
    ) -> None:
        self.document = document
        self.page_url = page_url
        self.storage = storage
        self.flags = EngineSettings()
        self.state = state or EngineState()
        self.state.registry.document = document
        self.console = Console(lambda: self.flags.debug_logging)
        self.fetcher = FragmentFetcher(page_url, lambda: self.flags, cookies=cookies)
        self._semaphore = asyncio.Semaphore(max(1, settings.max_concurrent_fetches))
        self._pending: set[asyncio.Task[Any]] = set()
        self._subscribed = False

    @property
    def stats(self) -> Stats:
        return self.state.registry.stats

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> Stats:
        """Load settings and stored stats, subscribe to changes, run a pass."""
        self.load_settings()
        self.load_stats()
        if not self._subscribed:
            self.storage.subscribe(self._on_storage_changed)
            self._subscribed = True

        if self.flags.enabled:
            await self.process()
        else:
            self.console.debug("ESI", "Processing disabled")
        return self.stats

    def stop(self) -> None:
        if self._subscribed:
            self.storage.unsubscribe(self._on_storage_changed)
            self._subscribed = False

    async def wait_idle(self) -> None:
        """Wait for scheduled passes and deferred scripts to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _schedule(self, coro: Any) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    # ------------------------------------------------------------------
    # Settings & stats
    # ------------------------------------------------------------------
    def load_settings(self) -> EngineSettings:
        self.flags = EngineSettings.from_storage(self.storage.get(SETTING_KEYS))
        self.console.debug(
            "ESI",
            f"Settings loaded - enabled: {self.flags.enabled}, "
            f"headers: {len(self.flags.custom_headers)}",
        )
        return self.flags

    def load_stats(self) -> None:
        stored = load_stats(self.storage, self.page_url)
        if stored is None:
            self.console.debug("ESI", "No existing stats found")
            return
        self.state.registry.restore(stored)
        self.console.debug(
            "ESI", f"Stats loaded, continuing from fragment {self.state.registry.counter}"
        )

    def save_stats(self) -> None:
        save_stats(self.storage, self.page_url, self.stats.to_dict())

    def clear_stats(self) -> None:
        self.console.debug("ESI", "Clearing stats")
        self.state.reset()
        self.save_stats()

    def _on_storage_changed(self, changes: dict[str, dict[str, Any]]) -> None:
        was_enabled = self.flags.enabled
        for key, change in changes.items():
            if self.flags.apply(key, change.get("newValue")):
                self.console.debug("ESI", f"Setting {key} changed")

        if self.flags.enabled and not was_enabled:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                self.console.debug("ESI", "Enabled outside an event loop; no pass scheduled")
                return
            self._schedule(self._delayed_pass(settings.pass_delay))

    async def _delayed_pass(self, delay: float) -> None:
        await asyncio.sleep(delay)
        await self.process()

    # ------------------------------------------------------------------
    # Inbound messages
    # ------------------------------------------------------------------
    def handle_message(self, request: dict[str, Any]) -> dict[str, Any]:
        """Handle a ``clearStats`` or ``jumpToFragment`` request."""
        action = request.get("action")
        if action == "clearStats":
            self.clear_stats()
            return {"success": True}
        if action == "jumpToFragment":
            try:
                fragment_id = int(request.get("fragmentId"))  # type: ignore[arg-type]
            except (TypeError, ValueError):
                return {"success": False, "error": "fragmentId must be an integer"}
            found = self.state.registry.jump_to_fragment(
                fragment_id, settings.highlight_duration
            )
            if not found:
                self.console.debug("ESI", f"Fragment element not found: {fragment_id}")
            return {"success": True, "found": found}
        return {"success": False, "error": f"Unknown action: {action!r}"}

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------
    async def process(self) -> Stats:
        """Run one full pass over the document."""
        if not self.flags.enabled:
            self.console.debug("ESI", "Processing disabled, skipping")
            return self.stats

        self.console.debug("ESI", f"Starting pass over {self.page_url}")
        for name, scanner in PHASES:
            directives = scanner(self.document, self.state.processed)
            self.console.debug("ESI", f"Found {len(directives)} {name}")
            # Ids are handed out before any fetch starts so they follow
            # discovery order, whatever order the fetches settle in.
            jobs = [(d, self.state.registry.next_id()) for d in directives]
            await asyncio.gather(*(self._resolve(d, fid) for d, fid in jobs))

        self.save_stats()
        self.console.debug(
            "ESI",
            f"Pass finished - total {self.stats.total}, "
            f"ok {self.stats.successful}, failed {self.stats.failed}",
        )
        return self.stats

    async def _fetch(self, fragment_id: int, url: str) -> FetchOutcome:
        try:
            async with self._semaphore:
                return await self.fetcher.fetch(url)
        except Exception as exc:
            # One directive must never abort the pass.
            self.console.error("FETCH", f"Fragment {fragment_id}: unexpected {exc!r}")
            return FetchError(message=f"{exc.__class__.__name__}: {exc}")

    async def _resolve(self, directive: Directive, fragment_id: int) -> Fragment:
        url = directive.source_url
        resolved = resolve_url(url, self.page_url)
        self.console.debug("FETCH", f"Fragment {fragment_id}: {url} -> {resolved}")

        outcome = await self._fetch(fragment_id, resolved)

        scripts: list[ScriptDescriptor] = []
        if isinstance(outcome, FetchResult):
            try:
                markup = outcome.content
                if self.flags.execute_scripts:
                    markup, scripts = extract_and_prepare(markup)
                node = build_success_node(
                    self.document, fragment_id, url, resolved, markup
                )
            except Exception as exc:
                scripts = []
                outcome = FetchError(message=f"Unparsable fragment: {exc}")

        if isinstance(outcome, FetchError):
            self.console.error("FETCH", f"Fragment {fragment_id} {url}: {outcome.message}")
            node = build_error_node(
                self.document, fragment_id, url, resolved, outcome.message
            )
            fragment = Fragment(
                id=fragment_id,
                url=url,
                resolved_url=resolved,
                success=False,
                error=outcome.message,
                timestamp=_now_ms(),
            )
        else:
            fragment = Fragment(
                id=fragment_id,
                url=url,
                resolved_url=resolved,
                success=True,
                timestamp=_now_ms(),
            )
            self.console.debug(
                "FETCH", f"✓ Fragment {fragment_id} ({len(outcome.content)} chars)"
            )

        if replace(directive, node):
            if scripts:
                runner = ScriptRunner(
                    self.document,
                    self.page_url,
                    self.fetcher.fetch,
                    self.console,
                    delay=settings.script_delay,
                )
                self._schedule(runner.run(scripts, node))
        else:
            self.console.debug("ESI", f"Fragment {fragment_id} anchor detached, skipped")

        self.state.registry.record_outcome(fragment)
        self.save_stats()
        return fragment
