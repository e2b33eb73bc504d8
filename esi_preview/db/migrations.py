"""Database initialisation.

``init_db(conn)`` is idempotent - safe to call on an existing database.
"""

from __future__ import annotations

import sqlite3

from esi_preview.config import settings


def _read_schema() -> str:
    return settings.schema_path.read_text(encoding="utf-8")


def init_db(conn: sqlite3.Connection) -> None:
    """Create the key/value table.

    Every DDL statement uses ``IF NOT EXISTS`` so calling this multiple times
    on the same database is safe.
    """
    conn.executescript(_read_schema())
