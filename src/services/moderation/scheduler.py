"""
Moderation Unmute Scheduler
===========================

Cancellable delay queue for lifting mutes.

DESIGN:
    One asyncio task per (guild_id, user_id). Scheduling again for the
    same key replaces the pending task, and a manual unmute or a deleted
    mute role can cancel it. The task holds no lock while it sleeps. A
    failed role removal (member left, role gone) is logged and counted,
    never raised.
"""

import asyncio
from typing import Dict, Tuple, TYPE_CHECKING

from src.core.logger import logger
from src.utils.async_utils import create_safe_task, safe_async_operation

if TYPE_CHECKING:
    from .platform import ModerationPlatform


Key = Tuple[int, int]  # (guild_id, user_id)


class UnmuteScheduler:
    """Deferred mute-role removal keyed by guild and user."""

    def __init__(self, platform: "ModerationPlatform") -> None:
        self.platform = platform
        self._tasks: Dict[Key, asyncio.Task] = {}

    def schedule(self, guild_id: int, user_id: int, role_id: int, delay: float) -> asyncio.Task:
        """
        Remove `role_id` from the user after `delay` seconds.

        Replaces any unmute already pending for the same user.
        """
        key = (guild_id, user_id)
        previous = self._tasks.pop(key, None)
        if previous is not None and not previous.done():
            previous.cancel()

        task = create_safe_task(
            self._run(key, role_id, delay),
            name=f"unmute:{guild_id}:{user_id}",
        )
        self._tasks[key] = task

        logger.debug("Unmute Scheduled", [
            ("Guild ID", str(guild_id)),
            ("User ID", str(user_id)),
            ("Delay", f"{delay:g}s"),
            ("Replaced", "Yes" if previous is not None else "No"),
        ])
        return task

    async def _run(self, key: Key, role_id: int, delay: float) -> None:
        await asyncio.sleep(delay)

        current = asyncio.current_task()
        if self._tasks.get(key) is not None and self._tasks.get(key) is not current:
            return
        self._tasks.pop(key, None)

        guild_id, user_id = key
        await safe_async_operation(
            "Scheduled Unmute",
            self.platform.remove_role(guild_id, user_id, role_id, "Mute duration expired"),
            area="platform.unmute",
        )
        logger.tree("Scheduled Unmute Fired", [
            ("Guild ID", str(guild_id)),
            ("User ID", str(user_id)),
        ], emoji="🔊")

    def cancel(self, guild_id: int, user_id: int) -> bool:
        """Cancel a pending unmute. True if one was pending."""
        task = self._tasks.pop((guild_id, user_id), None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_role(self, guild_id: int) -> int:
        """Cancel every pending unmute in a guild, e.g. after its mute role was deleted."""
        keys = [key for key in self._tasks if key[0] == guild_id]
        return sum(1 for key in keys if self.cancel(*key))

    def pending(self, guild_id: int, user_id: int) -> bool:
        task = self._tasks.get((guild_id, user_id))
        return task is not None and not task.done()

    async def shutdown(self) -> None:
        """Cancel every pending unmute and wait for the tasks to finish."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Unmute scheduler stopped ({len(tasks)} pending cancelled)")

    def __len__(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())


__all__ = ["UnmuteScheduler"]
