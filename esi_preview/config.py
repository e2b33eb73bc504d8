"""Centralised settings for the ESI preview tool.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

These are process-level knobs (timeouts, delays, storage location).  The
user-facing ESI flags (enabled, custom headers, ...) live in the key/value
storage instead, see :mod:`esi_preview.engine.models`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("ESI_WORKSPACE", Path.home() / ".esi_preview")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite storage file."""
        return self.workspace_dir / "storage.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("REQUEST_TIMEOUT", "30.0"))
    )
    max_concurrent_fetches: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CONCURRENT_FETCHES", "6"))
    )

    # Headers forwarded when the ``forwardHeaders`` flag is on.  They describe
    # the "browser" the preview pretends to be.
    client_user_agent: str = field(
        default_factory=lambda: os.environ.get(
            "CLIENT_USER_AGENT",
            "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
        )
    )
    client_accept_language: str = field(
        default_factory=lambda: os.environ.get("CLIENT_ACCEPT_LANGUAGE", "en-US,en;q=0.9")
    )

    # ------------------------------------------------------------------
    # Engine timings
    # ------------------------------------------------------------------
    pass_delay: float = field(
        default_factory=lambda: float(os.environ.get("PASS_DELAY", "0.1"))
    )
    script_delay: float = field(
        default_factory=lambda: float(os.environ.get("SCRIPT_DELAY", "0.05"))
    )
    highlight_duration: float = field(
        default_factory=lambda: float(os.environ.get("HIGHLIGHT_DURATION", "2.0"))
    )

    # ------------------------------------------------------------------
    # Stats housekeeping
    # ------------------------------------------------------------------
    stats_max_age: float = field(
        default_factory=lambda: float(os.environ.get("STATS_MAX_AGE", "3600"))
    )

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------
    # Live previews kept for /messages; the least recently previewed goes first.
    max_live_previews: int = field(
        default_factory=lambda: int(os.environ.get("MAX_LIVE_PREVIEWS", "8"))
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton - import this everywhere:
#   from esi_preview.config import settings
settings = Settings()
