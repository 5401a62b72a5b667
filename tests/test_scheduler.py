"""
Warden - Unmute Scheduler Tests
===============================

Tests for deferred mute removal.
"""

import asyncio

import pytest

from src.services.moderation import PlatformActionError
from src.utils.metrics import metrics

from tests.conftest import GUILD_ID, MUTE_ROLE_ID, USER_ID


async def settle(delay: float = 0.05) -> None:
    await asyncio.sleep(delay)


class TestUnmuteScheduler:
    """Tests for the cancellable delay queue."""

    @pytest.mark.asyncio
    async def test_fires_after_delay(self, scheduler, mock_platform):
        scheduler.schedule(GUILD_ID, USER_ID, MUTE_ROLE_ID, 0.01)
        assert scheduler.pending(GUILD_ID, USER_ID)

        await settle()

        mock_platform.remove_role.assert_awaited_once_with(
            GUILD_ID, USER_ID, MUTE_ROLE_ID, "Mute duration expired",
        )
        assert not scheduler.pending(GUILD_ID, USER_ID)
        assert len(scheduler) == 0

    @pytest.mark.asyncio
    async def test_reschedule_replaces_pending(self, scheduler, mock_platform):
        first = scheduler.schedule(GUILD_ID, USER_ID, MUTE_ROLE_ID, 10)
        scheduler.schedule(GUILD_ID, USER_ID, MUTE_ROLE_ID, 0.01)

        await settle()

        assert first.done()
        assert mock_platform.remove_role.await_count == 1

    @pytest.mark.asyncio
    async def test_cancel(self, scheduler, mock_platform):
        scheduler.schedule(GUILD_ID, USER_ID, MUTE_ROLE_ID, 0.01)

        assert scheduler.cancel(GUILD_ID, USER_ID) is True
        assert scheduler.cancel(GUILD_ID, USER_ID) is False

        await settle()
        mock_platform.remove_role.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_role_only_touches_guild(self, scheduler):
        scheduler.schedule(GUILD_ID, 1, MUTE_ROLE_ID, 10)
        scheduler.schedule(GUILD_ID, 2, MUTE_ROLE_ID, 10)
        scheduler.schedule(42, 1, MUTE_ROLE_ID, 10)

        assert scheduler.cancel_role(GUILD_ID) == 2
        assert scheduler.pending(42, 1)
        assert len(scheduler) == 1

    @pytest.mark.asyncio
    async def test_removal_failure_is_counted(self, scheduler, mock_platform):
        mock_platform.remove_role.side_effect = PlatformActionError("unmute", "Unknown Member")
        scheduler.schedule(GUILD_ID, USER_ID, MUTE_ROLE_ID, 0.01)

        await settle()

        assert metrics.get_failures() == {"platform.unmute": 1}

    @pytest.mark.asyncio
    async def test_shutdown_cancels_everything(self, scheduler, mock_platform):
        scheduler.schedule(GUILD_ID, 1, MUTE_ROLE_ID, 10)
        scheduler.schedule(GUILD_ID, 2, MUTE_ROLE_ID, 10)

        await scheduler.shutdown()

        assert len(scheduler) == 0
        mock_platform.remove_role.assert_not_awaited()
