"""
Warden - Database Statistics Operations Module
==============================================

Per-guild moderation statistics rollup documents.
"""

import json
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from src.core.database.base import _safe_json_loads

if TYPE_CHECKING:
    from src.core.database.manager import DatabaseManager


class StatsMixin:
    """Mixin for moderation statistics storage."""

    def get_moderation_stats(self: "DatabaseManager", guild_id: int) -> Optional[Dict[str, Any]]:
        """
        Get the statistics document for a guild.

        Returns:
            The decoded document, or None when nothing was recorded yet.
        """
        row = self.fetchone(
            "SELECT data FROM moderation_stats WHERE guild_id = ?",
            (guild_id,),
        )
        if not row:
            return None
        return _safe_json_loads(row["data"], default=None)

    def save_moderation_stats(self: "DatabaseManager", guild_id: int, data: Dict[str, Any]) -> None:
        """Replace the statistics document for a guild."""
        self.execute(
            "INSERT OR REPLACE INTO moderation_stats (guild_id, data, updated_at) VALUES (?, ?, ?)",
            (guild_id, json.dumps(data), time.time()),
        )

    def get_stats_guild_ids(self: "DatabaseManager") -> List[int]:
        """Get every guild with a statistics document."""
        rows = self.fetchall("SELECT guild_id FROM moderation_stats")
        return [row["guild_id"] for row in rows]


__all__ = ["StatsMixin"]
