"""
Warden - Main Bot Class
=======================

Discord client that hosts the moderation engine.

Features:
- Rule-based moderation of every guild message
- Raid detection on member joins
- Warning ledger with decay and graduated mute/kick/ban escalation
- Per-guild moderation statistics
"""

import asyncio
import time
from datetime import datetime
from typing import Optional

import discord
from discord.ext import commands

from src.core.config import Config, get_config
from src.core.constants import SHUTDOWN_TIMEOUT
from src.core.database import get_db
from src.core.logger import logger
from src.services.moderation import (
    DiscordPlatform,
    ModerationOrchestrator,
    RaidTracker,
    RateWindowTracker,
    SettingsStore,
    StatisticsAggregator,
    WarningStore,
)
from src.utils.metrics import get_metrics_summary


# =============================================================================
# WardenBot Class
# =============================================================================

class WardenBot(commands.Bot):
    """
    Main Discord bot class for Warden.

    DESIGN: Thin host around ModerationOrchestrator that:
    - Wires the Discord platform adapter and database-backed stores
    - Loads the event cogs that feed the orchestrator
    - Runs the janitor and warning decay loops
    - Drains pending side effects on shutdown

    SERVICE INITIALIZATION ORDER:
    1. __init__: database, stores, orchestrator
    2. setup_hook (before on_ready): event cog loading, background loops
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(self, config: Optional[Config] = None) -> None:
        """Initialize the bot with the intents moderation needs."""
        self.config = config or get_config()

        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True

        super().__init__(
            command_prefix="!",
            intents=intents,
            help_command=None,
        )

        self.db = get_db()
        self.start_time: datetime = datetime.now()

        self.platform = DiscordPlatform(self)
        self.orchestrator: Optional[ModerationOrchestrator] = ModerationOrchestrator(
            platform=self.platform,
            settings_store=SettingsStore(self.db),
            warning_store=WarningStore(self.db),
            statistics=StatisticsAggregator(self.db, cache_ttl=self.config.stats_cache_ttl),
            rate_tracker=RateWindowTracker(rate_window=self.config.rate_window_seconds),
            raid_tracker=RaidTracker(
                window=self.config.raid_window_seconds,
                new_account_days=self.config.raid_new_account_days,
            ),
        )

        self._janitor_task: Optional[asyncio.Task] = None
        self._decay_task: Optional[asyncio.Task] = None
        self._closing: bool = False

        logger.info("Bot Instance Created")

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Load cogs and start background loops before on_ready."""
        from src.events import EVENT_COGS
        for cog in EVENT_COGS:
            try:
                await self.load_extension(cog)
                logger.debug(f"Event Cog Loaded: {cog.split('.')[-1]}")
            except Exception as e:
                logger.error("Failed to Load Event Cog", [("Cog", cog), ("Error", str(e))])

        self._janitor_task = asyncio.create_task(self._janitor_loop())
        self._decay_task = asyncio.create_task(self._decay_loop())

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        if not self.user:
            return

        logger.tree("WARDEN READY", [
            ("Name", self.user.name),
            ("ID", str(self.user.id)),
            ("Guilds", str(len(self.guilds))),
            ("Rate Window", f"{self.config.rate_window_seconds}s"),
            ("Raid Window", f"{self.config.raid_window_seconds}s"),
        ], emoji="🛡️")

    # =========================================================================
    # Background Loops
    # =========================================================================

    async def _janitor_loop(self) -> None:
        """
        Drop expired tracker state on an interval.

        DESIGN:
            Continues running even if a sweep fails.
        """
        await self.wait_until_ready()

        while not self.is_closed():
            try:
                await asyncio.sleep(self.config.janitor_interval)
                self.orchestrator.janitor_sweep(time.time())
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Janitor Sweep Error", [
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:100]),
                ])

    async def _decay_loop(self) -> None:
        """Purge decayed warnings in every guild on an interval."""
        await self.wait_until_ready()

        while not self.is_closed():
            try:
                await self.orchestrator.decay_all(time.time())
                await asyncio.sleep(self.config.decay_sweep_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Decay Sweep Error", [
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:100]),
                ])
                await asyncio.sleep(self.config.decay_sweep_interval)

    @staticmethod
    async def _stop_task(task: Optional[asyncio.Task]) -> None:
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def shutdown(self) -> None:
        """Graceful shutdown with proper cleanup."""
        logger.info("Initiating Graceful Shutdown")

        await self._stop_task(self._janitor_task)
        await self._stop_task(self._decay_task)

        if self.orchestrator:
            try:
                await asyncio.wait_for(self.orchestrator.shutdown(), timeout=SHUTDOWN_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("Orchestrator Shutdown Timed Out", [
                    ("Timeout", f"{SHUTDOWN_TIMEOUT}s"),
                ])

        summary = get_metrics_summary()
        failures = summary.get("failures", {})

        self.db.close()
        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now() - self.start_time)),
            ("Swallowed Failures", str(sum(failures.values()))),
        ], emoji="🛑")

    async def close(self) -> None:
        """Override close to ensure proper shutdown."""
        if self._closing:
            return
        self._closing = True
        await self.shutdown()


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["WardenBot"]
