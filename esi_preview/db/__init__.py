"""Storage layer package.

Public re-exports so callers can write::

    from esi_preview.db import get_connection, init_db, Storage
"""

from esi_preview.db.connection import get_connection
from esi_preview.db.migrations import init_db
from esi_preview.db.storage import Storage, install_defaults

__all__ = ["get_connection", "init_db", "Storage", "install_defaults"]
