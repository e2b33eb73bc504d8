"""Mutable per-page engine state."""

from __future__ import annotations

from dataclasses import dataclass, field

from bs4.element import PageElement

from esi_preview.engine.registry import FragmentRegistry


class ProcessedSet:
    """Identity set of tree nodes already claimed by a directive.

    bs4 nodes compare (and hash) by markup, so two identical comments would
    collide in a plain ``set``.  Membership here is by object identity, and
    the nodes are held so their ids cannot be reused while tracked.
    """

    def __init__(self) -> None:
        self._nodes: dict[int, PageElement] = {}

    def add(self, node: PageElement) -> None:
        self._nodes[id(node)] = node

    def __contains__(self, node: object) -> bool:
        return id(node) in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def clear(self) -> None:
        self._nodes.clear()


@dataclass
class EngineState:
    """Everything a pass mutates, passed through scan -> fetch -> replace."""

    processed: ProcessedSet = field(default_factory=ProcessedSet)
    registry: FragmentRegistry = field(default_factory=FragmentRegistry)

    def reset(self) -> None:
        self.processed.clear()
        self.registry.reset()
