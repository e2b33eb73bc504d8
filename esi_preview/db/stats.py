"""Persistence helpers for per-page ESI statistics.

Stats are stored under ``esiStats_`` + the page's canonical URL, one entry
per page, in the shared :class:`~esi_preview.db.storage.Storage`.
"""

from __future__ import annotations

from time import time
from typing import Any, Optional

from esi_preview.db.storage import Storage

STATS_KEY_PREFIX = "esiStats_"


def stats_key(page_url: str) -> str:
    return f"{STATS_KEY_PREFIX}{page_url}"


def load_stats(storage: Storage, page_url: str) -> Optional[dict[str, Any]]:
    """Return the stored stats dict for *page_url*, or ``None``."""
    key = stats_key(page_url)
    value = storage.get([key]).get(key)
    return value if isinstance(value, dict) else None


def save_stats(storage: Storage, page_url: str, stats: dict[str, Any]) -> None:
    storage.set({stats_key(page_url): stats})


def remove_stats(storage: Storage, page_url: str) -> None:
    storage.remove(stats_key(page_url))


def cleanup_old_stats(
    storage: Storage,
    max_age: float,
    now: Optional[float] = None,
) -> list[str]:
    """Remove stats entries whose newest fragment is older than *max_age* seconds.

    Fragment timestamps are milliseconds since the epoch.  Entries without
    any fragments are kept.

    Returns:
        The storage keys that were removed.
    """
    current = time() if now is None else now
    cutoff_ms = (current - max_age) * 1000

    stale: list[str] = []
    for key, value in storage.get_all().items():
        if not key.startswith(STATS_KEY_PREFIX) or not isinstance(value, dict):
            continue
        fragments = value.get("fragments") or []
        if not fragments:
            continue
        latest = max(f.get("timestamp") or 0 for f in fragments)
        if latest < cutoff_ms:
            stale.append(key)

    if stale:
        storage.remove(stale)
    return stale
