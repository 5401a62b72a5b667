"""
Warden - Database Warning Operations Module
===========================================

Warning ledger operations. All methods are synchronous and thread-safe;
async callers run them through asyncio.to_thread.
"""

import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from src.core.logger import logger

if TYPE_CHECKING:
    from src.core.database.manager import DatabaseManager


def _row_to_warning(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "guild_id": row["guild_id"],
        "user_id": row["user_id"],
        "reason": row["reason"],
        "moderator_id": row["moderator_id"],
        "timestamp": row["created_at"],
        "active": bool(row["active"]),
    }


class WarningsMixin:
    """Mixin for warning-related database operations."""

    def add_warning(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        reason: Optional[str],
        moderator_id: Optional[int] = None,
        created_at: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Add a warning to the ledger.

        DESIGN: The id is the creation time in milliseconds. When two
        warnings for the same user land in the same millisecond the id is
        bumped until it is free, inside one transaction.

        Args:
            guild_id: Guild where warning was issued.
            user_id: Discord user ID being warned.
            reason: Reason text.
            moderator_id: Moderator who issued warning, None if automatic.
            created_at: Creation timestamp, defaults to now.

        Returns:
            The stored warning record.
        """
        now = created_at if created_at is not None else time.time()
        candidate = int(now * 1000)

        with self.transaction() as tx:
            tx.execute(
                "SELECT id FROM warnings WHERE guild_id = ? AND user_id = ? AND CAST(id AS INTEGER) >= ?",
                (guild_id, user_id, candidate),
            )
            taken = {int(row["id"]) for row in tx.fetchall()}
            while candidate in taken:
                candidate += 1

            tx.execute(
                """INSERT INTO warnings
                   (guild_id, user_id, id, reason, moderator_id, created_at, active)
                   VALUES (?, ?, ?, ?, ?, ?, 1)""",
                (guild_id, user_id, str(candidate), reason, moderator_id, now),
            )

        logger.tree("Warning Added", [
            ("Guild ID", str(guild_id)),
            ("User ID", str(user_id)),
            ("Moderator ID", str(moderator_id) if moderator_id else "Automatic"),
            ("Reason", (reason or "None")[:50]),
        ], emoji="⚠️")

        return {
            "id": str(candidate),
            "guild_id": guild_id,
            "user_id": user_id,
            "reason": reason,
            "moderator_id": moderator_id,
            "timestamp": now,
            "active": True,
        }

    def remove_warning(self: "DatabaseManager", guild_id: int, user_id: int, warning_id: str) -> bool:
        """
        Delete one warning.

        Returns:
            True if a warning was removed.
        """
        cursor = self.execute(
            "DELETE FROM warnings WHERE guild_id = ? AND user_id = ? AND id = ?",
            (guild_id, user_id, str(warning_id)),
        )
        return cursor.rowcount > 0

    def clear_warnings(self: "DatabaseManager", guild_id: int, user_id: int) -> int:
        """
        Delete every warning for a user.

        Returns:
            Number of warnings removed.
        """
        cursor = self.execute(
            "DELETE FROM warnings WHERE guild_id = ? AND user_id = ?",
            (guild_id, user_id),
        )
        return cursor.rowcount

    def get_user_warnings(self: "DatabaseManager", guild_id: int, user_id: int) -> List[Dict[str, Any]]:
        """
        Get all active warnings for a user, oldest first.

        Args:
            guild_id: Guild ID.
            user_id: Discord user ID.

        Returns:
            List of warning records.
        """
        rows = self.fetchall(
            """SELECT guild_id, user_id, id, reason, moderator_id, created_at, active
               FROM warnings
               WHERE guild_id = ? AND user_id = ? AND active = 1
               ORDER BY created_at ASC, CAST(id AS INTEGER) ASC""",
            (guild_id, user_id),
        )
        return [_row_to_warning(row) for row in rows]

    def delete_expired_warnings(self: "DatabaseManager", guild_id: int, cutoff: float) -> int:
        """
        Purge warnings created at or before the cutoff.

        Args:
            guild_id: Guild ID.
            cutoff: Unix timestamp; warnings newer than this are kept.

        Returns:
            Number of warnings removed.
        """
        cursor = self.execute(
            "DELETE FROM warnings WHERE guild_id = ? AND created_at <= ?",
            (guild_id, cutoff),
        )
        return cursor.rowcount

    def get_guild_warning_summary(self: "DatabaseManager", guild_id: int, limit: int = 5) -> Dict[str, Any]:
        """
        Summarize warnings for a guild.

        Returns:
            Dict with total_warnings, users_with_warnings and top_warned
            (list of {"user_id", "count"}).
        """
        rows = self.fetchall(
            """SELECT user_id, COUNT(*) AS count FROM warnings
               WHERE guild_id = ? AND active = 1
               GROUP BY user_id
               ORDER BY count DESC, user_id ASC""",
            (guild_id,),
        )
        total = sum(row["count"] for row in rows)
        return {
            "total_warnings": total,
            "users_with_warnings": len(rows),
            "top_warned": [
                {"user_id": row["user_id"], "count": row["count"]}
                for row in rows[:limit]
            ],
        }

    def get_warning_guild_ids(self: "DatabaseManager") -> List[int]:
        """Get every guild that has at least one stored warning."""
        rows = self.fetchall("SELECT DISTINCT guild_id FROM warnings")
        return [row["guild_id"] for row in rows]


__all__ = ["WarningsMixin"]
