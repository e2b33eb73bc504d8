"""Resolve raw ``src`` values from ESI directives against the page URL."""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit

_ABSOLUTE = re.compile(r"^https?://")


def _origin(base_url: str) -> str:
    parts = urlsplit(base_url)
    return f"{parts.scheme}://{parts.netloc}"


def resolve_url(raw: str, base_url: str) -> str:
    """Return an absolute URL for *raw*, relative to *base_url*.

    Rules, in order:

    1. ``http(s)://...`` is returned unchanged.
    2. ``//host/path`` gets the base URL's scheme.
    3. Standard relative resolution against *base_url*.
    4. If that fails and *raw* starts with ``/``, the base origin is prefixed.
    5. Otherwise *raw* is appended to the base URL's directory.

    Never raises.
    """
    if _ABSOLUTE.match(raw):
        return raw

    if raw.startswith("//"):
        scheme = urlsplit(base_url).scheme or "http"
        return f"{scheme}:{raw}"

    try:
        return urljoin(base_url, raw)
    except ValueError:
        pass

    if raw.startswith("/"):
        try:
            return _origin(base_url) + raw
        except ValueError:
            pass

    return base_url[: base_url.rfind("/") + 1] + raw
