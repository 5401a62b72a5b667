"""
Warden - Database Schema Module
===============================

Table definitions for the moderation engine.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.core.database.manager import DatabaseManager


class SchemaMixin:
    """Mixin for database schema initialization."""

    def _init_tables(self: "DatabaseManager") -> None:
        """
        Initialize all database tables.

        DESIGN: Tables are created if not exist, allowing safe restarts.
        Indexes added for frequently queried columns.
        """
        with self._db_lock:
            conn = self._ensure_connection()
            cursor = conn.cursor()

            # -----------------------------------------------------------------
            # Warnings Table
            # DESIGN: Infraction ledger. id is a millisecond timestamp string,
            # unique per (guild, user). moderator_id is NULL for automatic
            # warnings issued by the engine.
            # -----------------------------------------------------------------
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS warnings (
                    guild_id INTEGER NOT NULL,
                    user_id INTEGER NOT NULL,
                    id TEXT NOT NULL,
                    reason TEXT,
                    moderator_id INTEGER,
                    created_at REAL NOT NULL,
                    active INTEGER NOT NULL DEFAULT 1,
                    PRIMARY KEY (guild_id, user_id, id)
                )
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_warnings_guild_created "
                "ON warnings(guild_id, created_at)"
            )

            # -----------------------------------------------------------------
            # Moderation Settings Table
            # DESIGN: One JSON document per guild; absent row means defaults.
            # -----------------------------------------------------------------
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS moderation_settings (
                    guild_id INTEGER PRIMARY KEY,
                    data TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
            """)

            # -----------------------------------------------------------------
            # Moderation Statistics Table
            # DESIGN: One JSON rollup document per guild, rewritten on each
            # recorded action under a per-guild lock.
            # -----------------------------------------------------------------
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS moderation_stats (
                    guild_id INTEGER PRIMARY KEY,
                    data TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
            """)

            conn.commit()


__all__ = ["SchemaMixin"]
