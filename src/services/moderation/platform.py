"""
Moderation Platform Adapter
===========================

The chat-platform operations the engine needs, behind one interface.

DESIGN:
    The orchestrator and escalation policy only talk to ModerationPlatform.
    DiscordPlatform implements it with discord.py; tests substitute an
    AsyncMock. Every DiscordPlatform method raises PlatformActionError on
    failure and leaves catching to the caller, which decides whether a
    failure is swallowed (automatic pipeline) or reported (commands).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

import discord

from src.core.config import EmbedColors
from src.core.logger import logger

from .constants import MUTE_ROLE_COLOR
from .errors import PlatformActionError

if TYPE_CHECKING:
    from discord.ext import commands


# =============================================================================
# Payloads
# =============================================================================

@dataclass
class LogPayload:
    """Structured audit/DM message, rendered by the platform."""
    title: str
    description: str = ""
    fields: List[Tuple[str, str, bool]] = field(default_factory=list)  # (name, value, inline)
    color: int = EmbedColors.GOLD
    footer: Optional[str] = None
    timestamp: Optional[float] = None

    def add_field(self, name: str, value: str, inline: bool = True) -> "LogPayload":
        self.fields.append((name, value, inline))
        return self

    def field_value(self, name: str) -> Optional[str]:
        for field_name, value, _ in self.fields:
            if field_name == name:
                return value
        return None


# =============================================================================
# Interface
# =============================================================================

class ModerationPlatform(ABC):
    """Operations the moderation engine performs on the chat platform."""

    @abstractmethod
    async def delete_message(self, guild_id: int, channel_id: int, message_id: int) -> None:
        ...

    @abstractmethod
    async def delete_recent_messages(
        self,
        guild_id: int,
        channel_id: int,
        message_ids: Iterable[int],
    ) -> int:
        """Delete several messages; returns how many were deleted."""

    @abstractmethod
    async def find_role(
        self,
        guild_id: int,
        role_id: Optional[int] = None,
        name: Optional[str] = None,
    ) -> Optional[int]:
        """Role id by id, then by case-insensitive name; None when missing."""

    @abstractmethod
    async def create_mute_role(self, guild_id: int, name: str) -> int:
        ...

    @abstractmethod
    async def list_channel_ids(self, guild_id: int) -> List[int]:
        ...

    @abstractmethod
    async def apply_channel_override(self, guild_id: int, channel_id: int, role_id: int) -> None:
        """Deny send, react and speak for the role in the channel."""

    @abstractmethod
    async def assign_role(self, guild_id: int, user_id: int, role_id: int, reason: str) -> None:
        ...

    @abstractmethod
    async def remove_role(self, guild_id: int, user_id: int, role_id: int, reason: str) -> None:
        ...

    @abstractmethod
    async def kick_member(self, guild_id: int, user_id: int, reason: str) -> None:
        ...

    @abstractmethod
    async def ban_member(self, guild_id: int, user_id: int, reason: str) -> None:
        ...

    @abstractmethod
    async def send_direct_message(self, user_id: int, payload: LogPayload) -> None:
        ...

    @abstractmethod
    async def send_log_message(self, guild_id: int, channel_id: int, payload: LogPayload) -> None:
        ...


# =============================================================================
# Discord Implementation
# =============================================================================

def build_embed(payload: LogPayload) -> discord.Embed:
    """Render a LogPayload as a discord.Embed."""
    timestamp = (
        datetime.fromtimestamp(payload.timestamp, tz=timezone.utc)
        if payload.timestamp is not None else None
    )
    embed = discord.Embed(
        title=payload.title,
        description=payload.description or None,
        color=payload.color,
        timestamp=timestamp,
    )
    for name, value, inline in payload.fields:
        embed.add_field(name=name, value=value[:1024] or "-", inline=inline)
    if payload.footer:
        embed.set_footer(text=payload.footer)
    return embed


class DiscordPlatform(ModerationPlatform):
    """ModerationPlatform over a discord.py client."""

    def __init__(self, bot: "commands.Bot") -> None:
        self.bot = bot

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _guild(self, guild_id: int, action: str) -> discord.Guild:
        guild = self.bot.get_guild(guild_id)
        if guild is None:
            raise PlatformActionError(action, f"guild {guild_id} not available")
        return guild

    def _role(self, guild: discord.Guild, role_id: int, action: str) -> discord.Role:
        role = guild.get_role(role_id)
        if role is None:
            raise PlatformActionError(action, f"role {role_id} not found")
        return role

    async def _member(self, guild: discord.Guild, user_id: int, action: str) -> discord.Member:
        member = guild.get_member(user_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id)
        except discord.HTTPException as e:
            raise PlatformActionError(action, f"member {user_id} not found: {e}") from e

    def _channel(self, guild: discord.Guild, channel_id: int, action: str):
        channel = guild.get_channel(channel_id)
        if channel is None:
            raise PlatformActionError(action, f"channel {channel_id} not found")
        return channel

    def _text_channel(self, guild: discord.Guild, channel_id: int, action: str) -> discord.abc.Messageable:
        channel = guild.get_channel_or_thread(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            raise PlatformActionError(action, f"channel {channel_id} is not a text channel")
        return channel

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    async def delete_message(self, guild_id: int, channel_id: int, message_id: int) -> None:
        guild = self._guild(guild_id, "delete_message")
        channel = self._text_channel(guild, channel_id, "delete_message")
        try:
            await channel.get_partial_message(message_id).delete()
        except discord.NotFound:
            pass
        except discord.HTTPException as e:
            raise PlatformActionError("delete_message", str(e)) from e

    async def delete_recent_messages(
        self,
        guild_id: int,
        channel_id: int,
        message_ids: Iterable[int],
    ) -> int:
        guild = self._guild(guild_id, "delete_recent_messages")
        channel = self._text_channel(guild, channel_id, "delete_recent_messages")
        deleted = 0
        for message_id in message_ids:
            try:
                await channel.get_partial_message(message_id).delete()
                deleted += 1
            except discord.HTTPException as e:
                logger.debug("Recent Message Delete Skipped", [
                    ("Message ID", str(message_id)),
                    ("Error", str(e)[:50]),
                ])
        return deleted

    # -------------------------------------------------------------------------
    # Roles / Channels
    # -------------------------------------------------------------------------

    async def find_role(
        self,
        guild_id: int,
        role_id: Optional[int] = None,
        name: Optional[str] = None,
    ) -> Optional[int]:
        guild = self._guild(guild_id, "find_role")
        if role_id is not None:
            role = guild.get_role(role_id)
            if role is not None:
                return role.id
        if name:
            lowered = name.lower()
            role = discord.utils.find(lambda r: r.name.lower() == lowered, guild.roles)
            if role is not None:
                return role.id
        return None

    async def create_mute_role(self, guild_id: int, name: str) -> int:
        guild = self._guild(guild_id, "create_mute_role")
        try:
            role = await guild.create_role(
                name=name,
                colour=discord.Colour(MUTE_ROLE_COLOR),
                permissions=discord.Permissions.none(),
                reason="Automatic mute role",
            )
        except discord.HTTPException as e:
            raise PlatformActionError("create_mute_role", str(e)) from e
        return role.id

    async def list_channel_ids(self, guild_id: int) -> List[int]:
        guild = self._guild(guild_id, "list_channel_ids")
        return [channel.id for channel in guild.channels]

    async def apply_channel_override(self, guild_id: int, channel_id: int, role_id: int) -> None:
        guild = self._guild(guild_id, "apply_channel_override")
        channel = self._channel(guild, channel_id, "apply_channel_override")
        role = self._role(guild, role_id, "apply_channel_override")
        try:
            await channel.set_permissions(
                role,
                send_messages=False,
                add_reactions=False,
                speak=False,
                reason="Mute role overrides",
            )
        except discord.HTTPException as e:
            raise PlatformActionError("apply_channel_override", str(e)) from e

    async def assign_role(self, guild_id: int, user_id: int, role_id: int, reason: str) -> None:
        guild = self._guild(guild_id, "assign_role")
        role = self._role(guild, role_id, "assign_role")
        member = await self._member(guild, user_id, "assign_role")
        try:
            await member.add_roles(role, reason=reason)
        except discord.HTTPException as e:
            raise PlatformActionError("assign_role", str(e)) from e

    async def remove_role(self, guild_id: int, user_id: int, role_id: int, reason: str) -> None:
        guild = self._guild(guild_id, "remove_role")
        role = self._role(guild, role_id, "remove_role")
        member = await self._member(guild, user_id, "remove_role")
        try:
            await member.remove_roles(role, reason=reason)
        except discord.HTTPException as e:
            raise PlatformActionError("remove_role", str(e)) from e

    # -------------------------------------------------------------------------
    # Kick / Ban
    # -------------------------------------------------------------------------

    async def kick_member(self, guild_id: int, user_id: int, reason: str) -> None:
        guild = self._guild(guild_id, "kick_member")
        try:
            await guild.kick(discord.Object(id=user_id), reason=reason)
        except discord.HTTPException as e:
            raise PlatformActionError("kick_member", str(e)) from e

    async def ban_member(self, guild_id: int, user_id: int, reason: str) -> None:
        guild = self._guild(guild_id, "ban_member")
        try:
            await guild.ban(
                discord.Object(id=user_id),
                reason=reason,
                delete_message_seconds=86400,
            )
        except discord.HTTPException as e:
            raise PlatformActionError("ban_member", str(e)) from e

    # -------------------------------------------------------------------------
    # Outbound Messages
    # -------------------------------------------------------------------------

    async def send_direct_message(self, user_id: int, payload: LogPayload) -> None:
        try:
            user = self.bot.get_user(user_id) or await self.bot.fetch_user(user_id)
            await user.send(embed=build_embed(payload))
        except discord.HTTPException as e:
            raise PlatformActionError("send_direct_message", str(e)) from e

    async def send_log_message(self, guild_id: int, channel_id: int, payload: LogPayload) -> None:
        guild = self._guild(guild_id, "send_log_message")
        channel = self._text_channel(guild, channel_id, "send_log_message")
        try:
            await channel.send(embed=build_embed(payload))
        except discord.HTTPException as e:
            raise PlatformActionError("send_log_message", str(e)) from e


__all__ = ["LogPayload", "ModerationPlatform", "DiscordPlatform", "build_embed"]
