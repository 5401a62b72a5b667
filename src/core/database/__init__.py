"""
Warden - Database Module
========================

Centralized SQLite storage for warnings, moderation settings and
moderation statistics.
"""

from src.core.database.base import DATA_DIR, DB_PATH, _safe_json_loads
from src.core.database.manager import DatabaseManager, get_db
from src.core.database.models import (
    UserActionRecord,
    WarnedUserRecord,
    WarningRecord,
    WarningSummaryRecord,
)

Database = DatabaseManager

__all__ = [
    # Main interface
    "DatabaseManager",
    "Database",
    "get_db",

    # Helpers
    "_safe_json_loads",
    "DATA_DIR",
    "DB_PATH",

    # Type definitions
    "WarningRecord",
    "WarnedUserRecord",
    "WarningSummaryRecord",
    "UserActionRecord",
]
