"""SQLite connection factory.

Usage::

    from esi_preview.db.connection import get_connection

    conn = get_connection()
    storage = Storage(conn)
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from esi_preview.config import settings


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Open and configure a SQLite connection.

    Steps performed on every new connection:
    1. Create the workspace directory (skipped for ``:memory:``).
    2. Switch to WAL journal mode so the CLI and the API can share the file.

    Args:
        db_path: Override the DB path.  Defaults to ``settings.db_path``.

    Returns:
        A configured :class:`sqlite3.Connection` with ``row_factory`` set to
        :class:`sqlite3.Row` so columns can be accessed by name.
    """
    path = db_path or settings.db_path

    if str(path) != ":memory:":
        settings.ensure_workspace()

    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")

    return conn
