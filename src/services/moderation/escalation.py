"""
Moderation Escalation Policy
============================

Maps an active warning count to a punishment and carries it out.

DESIGN:
    There is no per-user state machine object. The "state" is the number
    of active warnings, re-read from the WarningStore each time, and the
    bands are checked top-down (ban, kick, mute) so exactly one action,
    the most severe one reached, is applied per warning event.

    Platform failures are caught per action. A failed channel override is
    skipped and the remaining channels are still edited.
"""

from typing import Optional, TYPE_CHECKING

from src.core.logger import logger
from src.utils.async_utils import safe_async_operation
from src.utils.keyed_lock import KeyedLock

from .constants import MUTE_ROLE_NAME
from .models import (
    ACTION_BAN,
    ACTION_KICK,
    ACTION_MUTE,
    EscalationAction,
    ModerationSettings,
)

if TYPE_CHECKING:
    from .platform import ModerationPlatform
    from .scheduler import UnmuteScheduler
    from .settings import SettingsStore


NO_ACTION = EscalationAction()

_SENTINEL = object()


class EscalationPolicy:
    """Warning-count bands to mute, kick or ban."""

    def __init__(
        self,
        platform: "ModerationPlatform",
        settings_store: "SettingsStore",
        scheduler: "UnmuteScheduler",
    ) -> None:
        self.platform = platform
        self.settings_store = settings_store
        self.scheduler = scheduler
        self._role_locks = KeyedLock()

    @staticmethod
    def decide(count: int, settings: ModerationSettings) -> EscalationAction:
        """
        Pick the action for a warning count.

        Args:
            count: Active warnings for the user, including the new one.
            settings: Guild settings with the band thresholds.

        Returns:
            The most severe action whose threshold is met, or no action.
        """
        if count >= settings.auto_ban_after_warnings:
            return EscalationAction(ACTION_BAN)
        if count >= settings.auto_kick_after_warnings:
            return EscalationAction(ACTION_KICK)
        if count >= settings.auto_mute_after_warnings:
            return EscalationAction(ACTION_MUTE, duration=settings.mute_duration)
        return NO_ACTION

    async def apply(
        self,
        guild_id: int,
        user_id: int,
        count: int,
        settings: ModerationSettings,
    ) -> Optional[EscalationAction]:
        """
        Decide and execute the punishment for a warning count.

        Returns:
            The action that was applied, or None when no action was due or
            the platform rejected it.
        """
        action = self.decide(count, settings)
        if not action:
            return None

        reason = f"Automatic {action.action} after {count} warnings"

        if action.action == ACTION_BAN:
            applied = await safe_async_operation(
                "Auto Ban",
                self._call(self.platform.ban_member(guild_id, user_id, reason)),
                default=False,
                area="platform.ban",
            )
        elif action.action == ACTION_KICK:
            applied = await safe_async_operation(
                "Auto Kick",
                self._call(self.platform.kick_member(guild_id, user_id, reason)),
                default=False,
                area="platform.kick",
            )
        else:
            applied = await self._mute(guild_id, user_id, action, reason, settings)

        logger.tree("Escalation Applied" if applied else "Escalation Failed", [
            ("Guild ID", str(guild_id)),
            ("User ID", str(user_id)),
            ("Warnings", str(count)),
            ("Action", action.action.upper()),
        ], emoji="⚖️" if applied else "❌")

        return action if applied else None

    @staticmethod
    async def _call(coro) -> bool:
        await coro
        return True

    async def _mute(
        self,
        guild_id: int,
        user_id: int,
        action: EscalationAction,
        reason: str,
        settings: ModerationSettings,
    ) -> bool:
        role_id = await self.ensure_mute_role(guild_id, settings)
        if role_id is None:
            return False

        assigned = await safe_async_operation(
            "Assign Mute Role",
            self._call(self.platform.assign_role(guild_id, user_id, role_id, reason)),
            default=False,
            area="platform.mute",
        )
        if not assigned:
            return False

        if action.duration:
            self.scheduler.schedule(guild_id, user_id, role_id, action.duration)
        return True

    async def ensure_mute_role(self, guild_id: int, settings: ModerationSettings) -> Optional[int]:
        """
        Locate the guild's mute role, creating it on first use.

        Lookup order is the configured role id, then a role named "Muted".
        A newly created role gets deny overrides on every channel and its id
        is saved to the guild settings.

        Returns:
            The role id, or None if it could not be found or created.
        """
        async with self._role_locks.hold(guild_id):
            role_id = await safe_async_operation(
                "Find Mute Role",
                self.platform.find_role(guild_id, role_id=settings.mute_role_id, name=MUTE_ROLE_NAME),
                default=_SENTINEL,
                area="platform.find_role",
            )
            if role_id is _SENTINEL:
                return None
            if role_id is not None:
                return role_id

            role_id = await safe_async_operation(
                "Create Mute Role",
                self.platform.create_mute_role(guild_id, MUTE_ROLE_NAME),
                area="platform.create_role",
            )
            if role_id is None:
                return None

            channel_ids = await safe_async_operation(
                "List Channels",
                self.platform.list_channel_ids(guild_id),
                default=[],
                area="platform.channels",
            )
            edited = 0
            for channel_id in channel_ids:
                ok = await safe_async_operation(
                    "Mute Channel Override",
                    self._call(self.platform.apply_channel_override(guild_id, channel_id, role_id)),
                    default=False,
                    area="platform.channel_override",
                    log_level="debug",
                )
                edited += 1 if ok else 0

            await self.settings_store.set_mute_role(guild_id, role_id)

            logger.tree("Mute Role Created", [
                ("Guild ID", str(guild_id)),
                ("Role ID", str(role_id)),
                ("Channels", f"{edited}/{len(channel_ids)}"),
            ], emoji="🔇")
            return role_id


__all__ = ["EscalationPolicy", "NO_ACTION"]
