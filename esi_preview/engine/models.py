"""Data models for the ESI resolution engine."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from bs4 import Comment, Tag
from bs4.element import PageElement

# ---------------------------------------------------------------------------
# Directive syntax
# ---------------------------------------------------------------------------

TRY_OPEN_MARKER = "<esi:try>"
TRY_CLOSE_MARKER = "</esi:try>"
INCLUDE_MARKER = "<esi:include"

# ``html.parser`` lowercases tag names, so the upper-case variants collapse
# onto these; matching is done case-insensitively anyway.
INCLUDE_TAG_NAMES = ("esi:include", "esi-include")
TRY_TAG_NAMES = ("esi:try",)

_TRY_INCLUDE_SRC = re.compile(r"""<esi:include[^>]+src=["']([^"']+)["'][^>]*>""")
_BARE_SRC = re.compile(r"""src=["']([^"']+)["']""")


class DirectiveSyntax(enum.Enum):
    """The syntactic shapes an ESI directive can take in a document."""

    INCLUDE_TAG = "include-tag"
    TRY_TAG = "try-tag"
    INCLUDE_COMMENT = "include-comment"
    TRY_COMMENT = "try-comment"

    def matches(self, node: PageElement) -> bool:
        if self is DirectiveSyntax.INCLUDE_TAG:
            return _tag_named(node, INCLUDE_TAG_NAMES)
        if self is DirectiveSyntax.TRY_TAG:
            return _tag_named(node, TRY_TAG_NAMES)
        if self is DirectiveSyntax.TRY_COMMENT:
            return isinstance(node, Comment) and TRY_OPEN_MARKER in node
        # A comment holding a try opening is a try block, not a bare include.
        return (
            isinstance(node, Comment)
            and INCLUDE_MARKER in node
            and TRY_OPEN_MARKER not in node
        )

    def extract_src(self, node: PageElement) -> str:
        """Return the raw ``src`` of the directive, or ``""`` if it has none."""
        if self is DirectiveSyntax.INCLUDE_TAG:
            return (node.get("src") or "").strip()  # type: ignore[union-attr]
        if self is DirectiveSyntax.TRY_COMMENT:
            match = _TRY_INCLUDE_SRC.search(str(node))
            return match.group(1) if match else ""
        if self is DirectiveSyntax.INCLUDE_COMMENT:
            match = _BARE_SRC.search(str(node))
            return match.group(1) if match else ""
        return ""


def _tag_named(node: PageElement, names: tuple[str, ...]) -> bool:
    return isinstance(node, Tag) and (node.name or "").lower() in names


def is_closing_marker(node: PageElement) -> bool:
    return isinstance(node, Comment) and TRY_CLOSE_MARKER in node


class SyntaxForm(enum.Enum):
    ELEMENT_TAG = "element"
    COMMENT_PAIR = "comment"


class DirectiveKind(enum.Enum):
    SIMPLE_INCLUDE = "include"
    TRY_BLOCK = "try"


@dataclass
class Directive:
    """A located ESI instruction awaiting resolution."""

    syntax: SyntaxForm
    kind: DirectiveKind
    source_url: str
    anchor: PageElement


# ---------------------------------------------------------------------------
# Fetch outcomes
# ---------------------------------------------------------------------------

@dataclass
class FetchResult:
    content: str
    status_code: int = 200


@dataclass
class FetchError:
    message: str


FetchOutcome = Union[FetchResult, FetchError]


# ---------------------------------------------------------------------------
# Fragments & stats
# ---------------------------------------------------------------------------

@dataclass
class Fragment:
    """The recorded outcome of resolving one directive."""

    id: int
    url: str
    resolved_url: str
    success: bool
    timestamp: int
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "url": self.url,
            "resolvedUrl": self.resolved_url,
            "success": self.success,
            "timestamp": self.timestamp,
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Fragment:
        return cls(
            id=int(data.get("id") or 0),
            url=data.get("url", ""),
            resolved_url=data.get("resolvedUrl", ""),
            success=bool(data.get("success")),
            timestamp=int(data.get("timestamp") or 0),
            error=data.get("error"),
        )


@dataclass
class Stats:
    total: int = 0
    successful: int = 0
    failed: int = 0
    fragments: list[Fragment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "fragments": [f.to_dict() for f in self.fragments],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Stats:
        return cls(
            total=int(data.get("total") or 0),
            successful=int(data.get("successful") or 0),
            failed=int(data.get("failed") or 0),
            fragments=[Fragment.from_dict(f) for f in data.get("fragments") or []],
        )


# ---------------------------------------------------------------------------
# User-facing flags
# ---------------------------------------------------------------------------

# Storage key -> EngineSettings attribute
SETTING_KEYS: dict[str, str] = {
    "esiEnabled": "enabled",
    "customHeaders": "custom_headers",
    "forwardHeaders": "forward_headers",
    "forwardCookies": "forward_cookies",
    "executeScripts": "execute_scripts",
    "debugLogging": "debug_logging",
}


@dataclass
class CustomHeader:
    name: str
    value: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CustomHeader:
        return cls(name=str(data.get("name") or ""), value=str(data.get("value") or ""))

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}


@dataclass
class EngineSettings:
    """The flags the engine reads; owned and written by the settings store."""

    enabled: bool = True
    custom_headers: list[CustomHeader] = field(default_factory=list)
    forward_headers: bool = False
    forward_cookies: bool = False
    execute_scripts: bool = False
    debug_logging: bool = False

    @classmethod
    def from_storage(cls, values: dict[str, Any]) -> EngineSettings:
        current = cls()
        for key, value in values.items():
            current.apply(key, value)
        return current

    def apply(self, key: str, value: Any) -> bool:
        """Update the attribute mapped to storage *key*.

        Returns ``False`` for keys that are not engine settings.
        """
        attr = SETTING_KEYS.get(key)
        if attr is None:
            return False
        if attr == "enabled":
            # Only an explicit false disables the engine.
            self.enabled = value is not False
        elif attr == "custom_headers":
            self.custom_headers = [
                CustomHeader.from_dict(h) for h in (value or []) if isinstance(h, dict)
            ]
        else:
            setattr(self, attr, bool(value))
        return True


# ---------------------------------------------------------------------------
# Script re-execution
# ---------------------------------------------------------------------------

@dataclass
class ScriptDescriptor:
    """A ``<script>`` removed from fetched markup, to be re-run after insertion."""

    attrs: dict[str, Any]
    text: str = ""

    @property
    def src(self) -> Optional[str]:
        src = self.attrs.get("src")
        return src or None
