"""Tests for fragment ids, stats bookkeeping and jump-to-fragment."""

from __future__ import annotations

import asyncio

from bs4 import BeautifulSoup

from esi_preview.engine.models import Fragment, Stats
from esi_preview.engine.registry import HIGHLIGHT_STYLE, FragmentRegistry


def _fragment(fid: int, success: bool = True) -> Fragment:
    return Fragment(
        id=fid,
        url=f"/f{fid}.html",
        resolved_url=f"https://h/f{fid}.html",
        success=success,
        timestamp=1_700_000_000_000,
        error=None if success else "HTTP 500: Internal Server Error",
    )


class TestIdsAndOutcomes:
    def test_next_id_starts_at_one(self) -> None:
        registry = FragmentRegistry()
        assert [registry.next_id() for _ in range(3)] == [1, 2, 3]

    def test_record_outcome_counts(self) -> None:
        registry = FragmentRegistry()
        registry.record_outcome(_fragment(1))
        registry.record_outcome(_fragment(2, success=False))
        registry.record_outcome(_fragment(3))

        stats = registry.stats
        assert (stats.total, stats.successful, stats.failed) == (3, 2, 1)
        assert stats.total == stats.successful + stats.failed
        assert [f.id for f in stats.fragments] == [1, 2, 3]

    def test_reset(self) -> None:
        registry = FragmentRegistry()
        registry.next_id()
        registry.record_outcome(_fragment(1))
        registry.reset()

        assert registry.stats == Stats()
        assert registry.next_id() == 1

    def test_restore_seeds_counter_from_max_id(self) -> None:
        stored = Stats(total=2, successful=2, fragments=[_fragment(4), _fragment(9)])
        registry = FragmentRegistry()
        registry.restore(stored.to_dict())

        assert registry.stats.total == 2
        assert registry.next_id() == 10

    def test_stats_serialisation_uses_stored_layout(self) -> None:
        data = Stats(total=1, failed=1, fragments=[_fragment(1, success=False)]).to_dict()
        assert data["fragments"][0]["resolvedUrl"] == "https://h/f1.html"
        assert data["fragments"][0]["error"].startswith("HTTP 500")
        assert Stats.from_dict(data).fragments[0].error == data["fragments"][0]["error"]


class TestLookupAndJump:
    _HTML = (
        '<div id="esi-fragment-1" style="display: contents">one</div>'
        '<div id="esi-fragment-2" class="esi-error">two</div>'
    )

    def test_lookup(self) -> None:
        soup = BeautifulSoup(self._HTML, "html.parser")
        registry = FragmentRegistry(soup)
        assert registry.lookup(1).get_text() == "one"
        assert registry.lookup(3) is None

    def test_lookup_without_document(self) -> None:
        assert FragmentRegistry().lookup(1) is None

    def test_jump_without_event_loop_keeps_highlight(self) -> None:
        soup = BeautifulSoup(self._HTML, "html.parser")
        registry = FragmentRegistry(soup)

        assert registry.jump_to_fragment(2, duration=0.01) is True
        element = registry.lookup(2)
        assert element["style"] == HIGHLIGHT_STYLE
        assert registry.focused_id == 2

        registry.clear_highlight(element)
        assert element.get("style") is None

    def test_jump_to_missing_fragment(self) -> None:
        registry = FragmentRegistry(BeautifulSoup(self._HTML, "html.parser"))
        assert registry.jump_to_fragment(42, duration=0.01) is False
        assert registry.focused_id is None

    async def test_highlight_reverts_after_duration(self) -> None:
        soup = BeautifulSoup(self._HTML, "html.parser")
        registry = FragmentRegistry(soup)

        registry.jump_to_fragment(1, duration=0.01)
        element = registry.lookup(1)
        assert "outline: 3px solid #ff6600" in element["style"]
        assert element["style"].startswith("display: contents")

        await asyncio.sleep(0.05)
        assert element["style"] == "display: contents"
