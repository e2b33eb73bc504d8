"""Tree surgery: build fragment nodes and splice them over directives.

Every replacement first checks that the directive's anchor still has a
parent.  An anchor detached by an earlier replacement (or by anything else
touching the document) is skipped silently.
"""

from __future__ import annotations

from bs4 import BeautifulSoup, Comment, Tag
from bs4.element import PageElement

from esi_preview.engine.models import Directive, DirectiveKind
from esi_preview.engine.registry import fragment_element_id
from esi_preview.engine.scanner import find_closing_marker

ERROR_PANEL_STYLE = (
    "color: red; border: 1px solid red; padding: 10px; margin: 5px; background: #ffe6e6;"
)


# ---------------------------------------------------------------------------
# Result nodes
# ---------------------------------------------------------------------------

def _fragment_container(
    document: BeautifulSoup, fragment_id: int, url: str, resolved_url: str
) -> Tag:
    return document.new_tag(
        "div",
        attrs={
            "id": fragment_element_id(fragment_id),
            "data-esi-fragment": "true",
            "data-esi-url": url,
            "data-esi-resolved-url": resolved_url,
        },
    )


def build_success_node(
    document: BeautifulSoup,
    fragment_id: int,
    url: str,
    resolved_url: str,
    markup: str,
) -> Tag:
    """Wrap fetched *markup* in a layout-neutral container.

    Structure::

        <div id="esi-fragment-N" style="display: contents" data-esi-...>
          <!-- ESI Fragment N: url -->
          <div style="display: contents">...markup...</div>
        </div>
    """
    container = _fragment_container(document, fragment_id, url, resolved_url)
    container["style"] = "display: contents"
    container.append(Comment(f"ESI Fragment {fragment_id}: {url}"))

    wrapper = document.new_tag("div", attrs={"style": "display: contents"})
    parsed = BeautifulSoup(markup, "html.parser")
    for child in list(parsed.contents):
        wrapper.append(child.extract())
    container.append(wrapper)
    return container


def build_error_node(
    document: BeautifulSoup,
    fragment_id: int,
    url: str,
    resolved_url: str,
    message: str,
) -> Tag:
    """Return the inline error panel shown in place of a failed directive."""
    panel = _fragment_container(document, fragment_id, url, resolved_url)
    panel["class"] = ["esi-error"]
    panel["style"] = ERROR_PANEL_STYLE
    panel.append(Comment(f"ESI Fragment {fragment_id}: {url} (FAILED)"))

    strong = document.new_tag("strong")
    strong.string = "ESI Error:"
    panel.append(strong)
    panel.append(f" Failed to load {url}")
    panel.append(document.new_tag("br"))

    small = document.new_tag("small")
    small.string = message
    panel.append(small)
    return panel


# ---------------------------------------------------------------------------
# Replacement
# ---------------------------------------------------------------------------

def _ancestor_ids(node: PageElement) -> set[int]:
    ids: set[int] = set()
    parent = node.parent
    while parent is not None:
        ids.add(id(parent))
        parent = parent.parent
    return ids


def replace_range(start: Comment, end: Comment, replacement: Tag) -> None:
    """Remove everything from *start* to *end* (inclusive) and insert
    *replacement* where the range collapses.

    The markers may sit at different depths.  Nodes that contain either
    marker are kept (only the part of them inside the range is removed);
    every other node between the markers goes, with its whole subtree.  When
    *start* is nested deeper than the common ancestor, the replacement lands
    right after its outermost kept ancestor, otherwise where *start* was.
    """
    between: list[PageElement] = []
    for node in start.next_elements:
        if node is end:
            break
        between.append(node)

    keep = _ancestor_ids(end)
    removed: set[int] = set()
    doomed: list[PageElement] = [start]
    for node in between:
        if id(node) in keep:
            continue
        if node.parent is not None and id(node.parent) in removed:
            removed.add(id(node))
            continue
        removed.add(id(node))
        doomed.append(node)
    doomed.append(end)

    outermost: PageElement = start
    while outermost.parent is not None and id(outermost.parent) not in keep:
        outermost = outermost.parent

    if outermost is start:
        start.insert_before(replacement)
    else:
        outermost.insert_after(replacement)
    for node in doomed:
        node.extract()


def replace(directive: Directive, replacement: Tag) -> bool:
    """Splice *replacement* over *directive*.

    Returns ``False`` (and changes nothing) when the anchor is detached.
    """
    anchor = directive.anchor
    if anchor.parent is None:
        return False

    if directive.kind is DirectiveKind.TRY_BLOCK and isinstance(anchor, Comment):
        closing = find_closing_marker(anchor)
        if closing is not None and closing is not anchor:
            replace_range(anchor, closing, replacement)
            return True

    # Simple includes, element try blocks (the whole container goes) and
    # comment try blocks without a separate closing marker.
    anchor.replace_with(replacement)
    return True
