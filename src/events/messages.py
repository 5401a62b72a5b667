"""
Warden - Message Events
=======================

Feeds guild messages into the moderation engine.
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from src.core.logger import logger
from src.services.moderation import Attachment, MessageEvent

if TYPE_CHECKING:
    from src.bot import WardenBot


def to_message_event(message: discord.Message) -> MessageEvent:
    """Translate a discord.py message into the engine's MessageEvent."""
    author = message.author
    is_member = isinstance(author, discord.Member)
    return MessageEvent(
        message_id=message.id,
        author_id=author.id,
        guild_id=message.guild.id,
        channel_id=message.channel.id,
        content=message.content or "",
        attachments=tuple(
            Attachment(name=a.filename, size=a.size, url=a.url)
            for a in message.attachments
        ),
        is_bot=author.bot,
        is_administrator=is_member and author.guild_permissions.administrator,
        role_ids=tuple(r.id for r in author.roles) if is_member else (),
        author_name=str(author),
        guild_name=message.guild.name,
    )


class MessageEvents(commands.Cog):
    """Message event handlers."""

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        """
        Moderate every guild message.

        DESIGN: DMs and bot messages return before any work. Detection runs
        inline; punishment is spawned by the orchestrator.
        """
        if message.guild is None or message.author.bot:
            return
        if self.bot.orchestrator is None:
            return

        await self.bot.orchestrator.handle_message(to_message_event(message))


async def setup(bot: "WardenBot") -> None:
    """Add the message events cog to the bot."""
    await bot.add_cog(MessageEvents(bot))
    logger.debug("Message Events Loaded")
