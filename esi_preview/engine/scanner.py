"""Directive discovery.

Discovery runs in three phases, each returning a snapshot list:

1. :func:`scan_try_blocks` - ``<esi:try>`` elements and their include.
2. :func:`scan_standalone_includes` - include elements outside try blocks.
3. :func:`scan_comments` - ``<!-- <esi:...> -->`` comment directives.

Try blocks must be claimed first or their nested include would be picked up
again as a standalone directive.  Every node a directive claims is added to
the :class:`~esi_preview.engine.state.ProcessedSet`.
"""

from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup, Comment, Tag
from bs4.element import PageElement

from esi_preview.engine.models import (
    TRY_CLOSE_MARKER,
    Directive,
    DirectiveKind,
    DirectiveSyntax,
    SyntaxForm,
    is_closing_marker,
)
from esi_preview.engine.state import ProcessedSet


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------

def is_inside_try_block(node: PageElement) -> bool:
    parent = node.parent
    while parent is not None:
        if DirectiveSyntax.TRY_TAG.matches(parent):
            return True
        parent = parent.parent
    return False


def iter_comments(document: BeautifulSoup) -> list[Comment]:
    """All comment nodes of *document*, in document order."""
    return [node for node in document.descendants if isinstance(node, Comment)]


def find_closing_marker(opening: Comment) -> Optional[Comment]:
    """Return the comment closing the try block opened by *opening*.

    A comment holding both markers closes itself.  Otherwise the nearest
    following comment containing ``</esi:try>`` wins; ``None`` if there is
    none before the end of the document.
    """
    if TRY_CLOSE_MARKER in opening:
        return opening
    for node in opening.next_elements:
        if is_closing_marker(node):
            return node  # type: ignore[return-value]
    return None


# ---------------------------------------------------------------------------
# Phase 1 - try blocks
# ---------------------------------------------------------------------------

def scan_try_blocks(document: BeautifulSoup, processed: ProcessedSet) -> list[Directive]:
    directives: list[Directive] = []
    containers = document.find_all(DirectiveSyntax.TRY_TAG.matches)

    for container in containers:
        if container in processed:
            continue
        include = container.find(DirectiveSyntax.INCLUDE_TAG.matches)
        if include is None:
            continue
        src = DirectiveSyntax.INCLUDE_TAG.extract_src(include)
        if not src:
            continue
        processed.add(container)
        processed.add(include)
        directives.append(
            Directive(
                syntax=SyntaxForm.ELEMENT_TAG,
                kind=DirectiveKind.TRY_BLOCK,
                source_url=src,
                anchor=container,
            )
        )
    return directives


# ---------------------------------------------------------------------------
# Phase 2 - standalone includes
# ---------------------------------------------------------------------------

def scan_standalone_includes(
    document: BeautifulSoup, processed: ProcessedSet
) -> list[Directive]:
    directives: list[Directive] = []
    tags: list[Tag] = document.find_all(DirectiveSyntax.INCLUDE_TAG.matches)

    for tag in tags:
        if tag in processed or is_inside_try_block(tag):
            continue
        src = DirectiveSyntax.INCLUDE_TAG.extract_src(tag)
        if not src:
            continue
        processed.add(tag)
        directives.append(
            Directive(
                syntax=SyntaxForm.ELEMENT_TAG,
                kind=DirectiveKind.SIMPLE_INCLUDE,
                source_url=src,
                anchor=tag,
            )
        )
    return directives


# ---------------------------------------------------------------------------
# Phase 3 - comment directives
# ---------------------------------------------------------------------------

def _claim_try_range(opening: Comment, processed: ProcessedSet) -> None:
    """Mark every comment up to and including the closing marker as processed."""
    closing = find_closing_marker(opening)
    if closing is None or closing is opening:
        return
    for node in opening.next_elements:
        if isinstance(node, Comment):
            processed.add(node)
        if node is closing:
            break


def scan_comments(document: BeautifulSoup, processed: ProcessedSet) -> list[Directive]:
    directives: list[Directive] = []

    for comment in iter_comments(document):
        if comment in processed:
            continue

        if DirectiveSyntax.TRY_COMMENT.matches(comment):
            processed.add(comment)
            _claim_try_range(comment, processed)
            src = DirectiveSyntax.TRY_COMMENT.extract_src(comment)
            kind = DirectiveKind.TRY_BLOCK
        elif DirectiveSyntax.INCLUDE_COMMENT.matches(comment):
            processed.add(comment)
            src = DirectiveSyntax.INCLUDE_COMMENT.extract_src(comment)
            kind = DirectiveKind.SIMPLE_INCLUDE
        else:
            continue

        if src:
            directives.append(
                Directive(
                    syntax=SyntaxForm.COMMENT_PAIR,
                    kind=kind,
                    source_url=src,
                    anchor=comment,
                )
            )
    return directives
