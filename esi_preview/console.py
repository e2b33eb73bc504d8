"""Tagged console output shared by the engine, the CLI and the API.

Lines look like ``[FETCH] ✓ fragment 3 (1204 chars)``.  They go to stderr so
that rendered HTML written to stdout stays clean.  Progress lines are only
printed while the ``debugLogging`` flag is on; failures always are.
"""

from __future__ import annotations

import sys
from typing import Callable


class Console:
    """Print tagged lines, gated by a debug flag read at call time."""

    def __init__(self, debug_enabled: Callable[[], bool]) -> None:
        self._debug_enabled = debug_enabled

    def debug(self, tag: str, message: str) -> None:
        if self._debug_enabled():
            print(f"[{tag}] {message}", file=sys.stderr)

    def error(self, tag: str, message: str) -> None:
        print(f"[{tag}] ✗ {message}", file=sys.stderr)
