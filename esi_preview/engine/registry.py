"""Per-page fragment ids, outcome statistics and fragment lookup."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from bs4 import BeautifulSoup, Tag

from esi_preview.engine.models import Fragment, Stats

FRAGMENT_ID_PREFIX = "esi-fragment-"
HIGHLIGHT_STYLE = "outline: 3px solid #ff6600; outline-offset: 2px"


def fragment_element_id(fragment_id: int) -> str:
    return f"{FRAGMENT_ID_PREFIX}{fragment_id}"


class FragmentRegistry:
    """Allocates fragment ids and keeps the :class:`Stats` for one page.

    Ids are page-scoped and monotonic: after :meth:`restore` the counter
    continues from the highest id found in the restored history.
    """

    def __init__(self, document: Optional[BeautifulSoup] = None) -> None:
        self.document = document
        self.stats = Stats()
        self.counter = 0
        self.focused_id: Optional[int] = None
        self._saved_styles: dict[int, Optional[str]] = {}

    # ------------------------------------------------------------------
    # Ids & outcomes
    # ------------------------------------------------------------------
    def next_id(self) -> int:
        self.counter += 1
        return self.counter

    def record_outcome(self, fragment: Fragment) -> None:
        self.stats.fragments.append(fragment)
        self.stats.total += 1
        if fragment.success:
            self.stats.successful += 1
        else:
            self.stats.failed += 1

    def reset(self) -> None:
        self.stats = Stats()
        self.counter = 0
        self.focused_id = None

    def restore(self, data: dict[str, Any]) -> None:
        """Adopt previously persisted stats and seed the id counter from them."""
        self.stats = Stats.from_dict(data)
        self.counter = max((f.id for f in self.stats.fragments), default=0)

    # ------------------------------------------------------------------
    # Lookup & navigation
    # ------------------------------------------------------------------
    def lookup(self, fragment_id: int) -> Optional[Tag]:
        if self.document is None:
            return None
        return self.document.find(id=fragment_element_id(fragment_id))

    def jump_to_fragment(self, fragment_id: int, duration: float) -> bool:
        """Focus and highlight fragment *fragment_id*, reverting after *duration*.

        There is no viewport to scroll, so the focused fragment is recorded on
        :attr:`focused_id` instead.  The revert is scheduled on the running
        event loop; without one the highlight stays until
        :meth:`clear_highlight` is called.
        """
        element = self.lookup(fragment_id)
        if element is None:
            return False

        self.focused_id = fragment_id
        self._apply_highlight(element)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return True
        loop.call_later(duration, self.clear_highlight, element)
        return True

    def _apply_highlight(self, element: Tag) -> None:
        key = id(element)
        if key not in self._saved_styles:
            self._saved_styles[key] = element.get("style")
        base = self._saved_styles[key]
        element["style"] = f"{base}; {HIGHLIGHT_STYLE}" if base else HIGHLIGHT_STYLE

    def clear_highlight(self, element: Tag) -> None:
        key = id(element)
        if key not in self._saved_styles:
            return
        original = self._saved_styles.pop(key)
        if original is None:
            del element["style"]
        else:
            element["style"] = original
