"""
Warden - Database Settings Operations Module
============================================

Per-guild moderation settings documents.
"""

import json
import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from src.core.database.base import _safe_json_loads

if TYPE_CHECKING:
    from src.core.database.manager import DatabaseManager


class SettingsMixin:
    """Mixin for moderation settings storage."""

    def get_moderation_settings(self: "DatabaseManager", guild_id: int) -> Optional[Dict[str, Any]]:
        """
        Get the stored settings document for a guild.

        Returns:
            The decoded document, or None when the guild has no row.
        """
        row = self.fetchone(
            "SELECT data FROM moderation_settings WHERE guild_id = ?",
            (guild_id,),
        )
        if not row:
            return None
        return _safe_json_loads(row["data"], default=None)

    def set_moderation_settings(self: "DatabaseManager", guild_id: int, data: Dict[str, Any]) -> None:
        """
        Replace the settings document for a guild.

        Args:
            guild_id: Guild ID.
            data: JSON-serializable settings document.
        """
        self.execute(
            "INSERT OR REPLACE INTO moderation_settings (guild_id, data, updated_at) VALUES (?, ?, ?)",
            (guild_id, json.dumps(data), time.time()),
        )


__all__ = ["SettingsMixin"]
