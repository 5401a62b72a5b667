"""
Warden - Database Manager
=========================

Central SQLite database manager for moderation data.
"""

import threading
from typing import Optional

from src.core.database import base
from src.core.database.base import DatabaseBase
from src.core.database.schema import SchemaMixin
from src.core.database.settings import SettingsMixin
from src.core.database.stats import StatsMixin
from src.core.database.warnings import WarningsMixin
from src.core.logger import logger


# =============================================================================
# Database Manager (Singleton)
# =============================================================================

class DatabaseManager(
    DatabaseBase,
    SchemaMixin,
    WarningsMixin,
    SettingsMixin,
    StatsMixin,
):
    """
    Centralized database manager with thread-safe operations.

    DESIGN: Singleton pattern ensures single database connection.
    Uses WAL mode for better concurrency with multiple readers.
    All operations are thread-safe via internal locking.
    """

    _instance: Optional["DatabaseManager"] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls) -> "DatabaseManager":
        """Singleton pattern - only one instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        """Initialize database connection and tables."""
        if self._initialized:
            return

        self._init_base()
        self._init_tables()
        self._initialized = True

        logger.tree("Database Manager Initialized", [
            ("Path", str(base.DB_PATH)),
            ("WAL Mode", "Enabled"),
        ], emoji="🗄️")


def get_db() -> DatabaseManager:
    """Get the singleton DatabaseManager."""
    return DatabaseManager()


__all__ = ["DatabaseManager", "get_db"]
