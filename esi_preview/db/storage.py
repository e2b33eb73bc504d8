"""Key/value storage with change notifications.

Plays the role the browser's extension storage plays for an extension: the
settings flags (``esiEnabled``, ``customHeaders`` ...) and the per-page stats
(``esiStats_<url>``) all live in the same ``kv`` table as JSON documents.

Subscribers receive deltas shaped ``{key: {"newValue": ..., "oldValue": ...}}``;
a removed key is reported with ``newValue`` set to ``None``.
"""

from __future__ import annotations

import json
import sqlite3
from time import time
from typing import Any, Callable, Iterable

ChangeListener = Callable[[dict[str, dict[str, Any]]], None]

# Written on first use for keys that are not stored yet.
DEFAULT_VALUES: dict[str, Any] = {
    "esiEnabled": True,
    "customHeaders": [],
    "debugLogging": False,
    "executeScripts": False,
}


def _decode(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None


class Storage:
    """JSON key/value store backed by a single SQLite table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self._listeners: list[ChangeListener] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return ``{key: value}`` for every requested key that is stored.

        Missing keys and values that are not valid JSON are left out.
        """
        result: dict[str, Any] = {}
        for key in keys:
            row = self.conn.execute(
                "SELECT value FROM kv WHERE key = ?", (key,)
            ).fetchone()
            if row is None:
                continue
            value = _decode(row["value"])
            if value is not None:
                result[key] = value
        return result

    def get_all(self) -> dict[str, Any]:
        rows = self.conn.execute("SELECT key, value FROM kv ORDER BY key").fetchall()
        result: dict[str, Any] = {}
        for row in rows:
            value = _decode(row["value"])
            if value is not None:
                result[row["key"]] = value
        return result

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def set(self, items: dict[str, Any]) -> None:
        """Upsert every item and notify subscribers of the changed keys."""
        if not items:
            return
        old = self.get(items.keys())
        now = int(time())
        with self.conn:
            for key, value in items.items():
                self.conn.execute(
                    """
                    INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, json.dumps(value), now),
                )
        self._notify(
            {
                key: {"newValue": value, "oldValue": old.get(key)}
                for key, value in items.items()
            }
        )

    def remove(self, keys: str | Iterable[str]) -> None:
        if isinstance(keys, str):
            keys = [keys]
        keys = list(keys)
        old = self.get(keys)
        with self.conn:
            for key in keys:
                self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        changes = {
            key: {"newValue": None, "oldValue": value} for key, value in old.items()
        }
        if changes:
            self._notify(changes)

    # ------------------------------------------------------------------
    # Change subscription
    # ------------------------------------------------------------------
    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, changes: dict[str, dict[str, Any]]) -> None:
        for listener in list(self._listeners):
            listener(changes)


def install_defaults(storage: Storage) -> dict[str, Any]:
    """Write :data:`DEFAULT_VALUES` for keys not present yet.

    Returns the items that were actually written.
    """
    present = storage.get(DEFAULT_VALUES.keys())
    missing = {k: v for k, v in DEFAULT_VALUES.items() if k not in present}
    storage.set(missing)
    return missing
