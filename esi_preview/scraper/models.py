"""Data models for page loading."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RawPage:
    """The raw HTTP response for the page being previewed."""

    url: str
    html: str
    status_code: int
    cookies: dict[str, str] = field(default_factory=dict)
