"""
Moderation Settings Store
=========================

Async facade over the per-guild settings documents.

Reads fall back to defaults when a guild has no document or the store
fails. Writes validate threshold ordering before anything is persisted.
"""

import asyncio
from typing import Any, Dict, Optional, TYPE_CHECKING

from src.core.logger import logger
from src.utils.keyed_lock import KeyedLock
from src.utils.metrics import record_failure

from .errors import SettingsValidationError
from .models import ModerationSettings

if TYPE_CHECKING:
    from src.core.database import DatabaseManager


class SettingsStore:
    """Loads and saves ModerationSettings, keeping a per-guild copy in memory."""

    def __init__(self, db: "DatabaseManager") -> None:
        self.db = db
        self._locks = KeyedLock()
        self._cache: Dict[int, ModerationSettings] = {}

    async def get(self, guild_id: int) -> ModerationSettings:
        """Get settings for a guild, defaults when absent or unreadable."""
        cached = self._cache.get(guild_id)
        if cached is not None:
            return cached

        try:
            data = await asyncio.to_thread(self.db.get_moderation_settings, guild_id)
        except Exception as e:
            logger.error("Settings Load Failed", [
                ("Guild ID", str(guild_id)),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            record_failure("store.settings", e)
            return ModerationSettings()

        try:
            settings = ModerationSettings.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.error("Stored Settings Unreadable", [
                ("Guild ID", str(guild_id)),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            record_failure("store.settings", e)
            return ModerationSettings()

        self._cache[guild_id] = settings
        return settings

    async def _save(self, guild_id: int, settings: ModerationSettings) -> bool:
        # Caller holds the guild lock
        try:
            await asyncio.to_thread(
                self.db.set_moderation_settings, guild_id, settings.to_dict(),
            )
        except Exception as e:
            logger.error("Settings Save Failed", [
                ("Guild ID", str(guild_id)),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            record_failure("store.settings", e)
            return False

        self._cache[guild_id] = settings
        logger.tree("Moderation Settings Saved", [
            ("Guild ID", str(guild_id)),
            ("Mute/Kick/Ban", (
                f"{settings.auto_mute_after_warnings}/"
                f"{settings.auto_kick_after_warnings}/"
                f"{settings.auto_ban_after_warnings}"
            )),
            ("Max Warnings", str(settings.max_warnings)),
        ], emoji="⚙️")
        return True

    async def set(self, guild_id: int, settings: ModerationSettings) -> bool:
        """
        Validate and persist settings for a guild.

        Raises:
            SettingsValidationError: If thresholds are contradictory.

        Returns:
            True when stored, False if the store failed.
        """
        settings.validate_thresholds()

        async with self._locks.hold(guild_id):
            return await self._save(guild_id, settings)

    async def update(self, guild_id: int, **changes: Any) -> ModerationSettings:
        """
        Apply field changes on top of the current settings and save.

        Raises:
            SettingsValidationError: On unknown fields or bad thresholds.
        """
        async with self._locks.hold(guild_id):
            current = await self.get(guild_id)
            data = current.to_dict()
            unknown = set(changes) - set(data)
            if unknown:
                field = sorted(unknown)[0]
                raise SettingsValidationError(f"unknown setting: {field}", field)

            data.update(changes)
            updated = ModerationSettings(**data)
            updated.validate_thresholds()
            await self._save(guild_id, updated)
        return updated

    async def set_mute_role(self, guild_id: int, role_id: int) -> None:
        """Remember a lazily created mute role id for the guild."""
        async with self._locks.hold(guild_id):
            current = await self.get(guild_id)
            data = current.to_dict()
            data["mute_role_id"] = role_id
            updated = ModerationSettings.from_dict(data)

            if not await self._save(guild_id, updated):
                # Cached even when the write fails
                self._cache[guild_id] = updated

    def invalidate(self, guild_id: Optional[int] = None) -> None:
        if guild_id is None:
            self._cache.clear()
        else:
            self._cache.pop(guild_id, None)


__all__ = ["SettingsStore"]
