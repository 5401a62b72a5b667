"""
Warden - Member Events
======================

Handles member joins for raid detection and mute role deletion.
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from src.core.logger import logger
from src.services.moderation import MemberJoinEvent

if TYPE_CHECKING:
    from src.bot import WardenBot


def to_join_event(member: discord.Member) -> MemberJoinEvent:
    return MemberJoinEvent(
        guild_id=member.guild.id,
        user_id=member.id,
        account_created_at=member.created_at.timestamp(),
        user_name=str(member),
        guild_name=member.guild.name,
    )


class MemberEvents(commands.Cog):
    """Member event handlers."""

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        """Feed the join into the guild's raid window."""
        if member.bot or self.bot.orchestrator is None:
            return

        await self.bot.orchestrator.handle_member_join(to_join_event(member))

    @commands.Cog.listener()
    async def on_guild_role_delete(self, role: discord.Role) -> None:
        """
        Forget a deleted mute role.

        DESIGN: Pending unmutes for the guild would only fail against the
        missing role, so they are cancelled and the next mute recreates it.
        """
        orchestrator = self.bot.orchestrator
        if orchestrator is None:
            return

        settings = await orchestrator.settings_store.get(role.guild.id)
        if settings.mute_role_id != role.id:
            return

        cancelled = orchestrator.scheduler.cancel_role(role.guild.id)

        logger.tree("Mute Role Deleted", [
            ("Guild", role.guild.name),
            ("Role ID", str(role.id)),
            ("Unmutes Cancelled", str(cancelled)),
        ], emoji="🗑️")


async def setup(bot: "WardenBot") -> None:
    """Add the member events cog to the bot."""
    await bot.add_cog(MemberEvents(bot))
    logger.debug("Member Events Loaded")
