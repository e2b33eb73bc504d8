"""Shared storage access for CLI commands.

Every command opens the workspace storage (``~/.esi_preview/storage.db`` by
default), makes sure the default settings exist, and closes it on exit.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from esi_preview.db import Storage, get_connection, init_db, install_defaults


@contextmanager
def open_storage() -> Iterator[Storage]:
    """Yield a ready-to-use :class:`Storage`; the connection is closed on exit."""
    conn = get_connection()
    init_db(conn)
    storage = Storage(conn)
    install_defaults(storage)
    try:
        yield storage
    finally:
        conn.close()


def parse_cookies(values: list[str]) -> dict[str, str]:
    """Turn ``["a=1", "b=2"]`` into ``{"a": "1", "b": "2"}``.

    Raises:
        ValueError: For an entry without ``=``.
    """
    cookies: dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Invalid cookie {item!r}, expected NAME=VALUE")
        cookies[name.strip()] = value.strip()
    return cookies
