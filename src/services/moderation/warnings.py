"""
Moderation Warning Store
========================

Durable per-guild, per-user infraction ledger with decay.

DESIGN:
    Every operation runs its SQLite work in a worker thread via
    asyncio.to_thread and holds the guild's KeyedLock while it does, so two
    infractions for one guild never race while other guilds proceed in
    parallel. Store failures are logged, counted and answered with a safe
    default instead of propagating into the pipeline.
"""

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar, TYPE_CHECKING

from src.core.constants import SECONDS_PER_DAY
from src.core.logger import logger
from src.utils.keyed_lock import KeyedLock
from src.utils.metrics import record_failure

from .models import WarningEntry

if TYPE_CHECKING:
    from src.core.database import DatabaseManager


T = TypeVar("T")


class WarningStore:
    """Async warning ledger on top of the database warnings mixin."""

    def __init__(self, db: "DatabaseManager") -> None:
        self.db = db
        self._locks = KeyedLock()

    async def _run(
        self,
        operation: str,
        guild_id: int,
        default: T,
        func: Callable[..., Any],
        *args: Any,
    ) -> T:
        async with self._locks.hold(guild_id):
            try:
                return await asyncio.to_thread(func, *args)
            except Exception as e:
                logger.error("Warning Store Failed", [
                    ("Operation", operation),
                    ("Guild ID", str(guild_id)),
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:100]),
                ])
                record_failure(f"store.warnings.{operation}", e)
                return default

    async def add(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: Optional[int] = None,
        now: Optional[float] = None,
    ) -> Optional[WarningEntry]:
        """
        Record a warning.

        Returns:
            The stored warning, or None if the store failed.
        """
        record = await self._run(
            "add", guild_id, None,
            self.db.add_warning, guild_id, user_id, reason, moderator_id, now,
        )
        return WarningEntry.from_record(record) if record else None

    async def add_and_count(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: Optional[int] = None,
        now: Optional[float] = None,
    ) -> Tuple[Optional[WarningEntry], int]:
        """
        Record a warning and read the user's active count under one lock.

        Concurrent warnings for one user each see a distinct count, so no
        escalation band is skipped or applied twice.

        Returns:
            (warning, active count), or (None, 0) if the store failed.
        """
        def insert_and_count() -> Tuple[Dict[str, Any], int]:
            record = self.db.add_warning(guild_id, user_id, reason, moderator_id, now)
            return record, len(self.db.get_user_warnings(guild_id, user_id))

        record, count = await self._run("add", guild_id, (None, 0), insert_and_count)
        if not record:
            return None, 0
        return WarningEntry.from_record(record), count

    async def remove(self, guild_id: int, user_id: int, warning_id: str) -> bool:
        """Delete one warning. False when missing or on store failure."""
        return await self._run(
            "remove", guild_id, False,
            self.db.remove_warning, guild_id, user_id, warning_id,
        )

    async def clear(self, guild_id: int, user_id: int) -> int:
        """Delete every warning for a user. Returns the number removed."""
        return await self._run(
            "clear", guild_id, 0,
            self.db.clear_warnings, guild_id, user_id,
        )

    async def list(self, guild_id: int, user_id: int) -> List[WarningEntry]:
        """Active warnings for a user, oldest first."""
        records = await self._run(
            "list", guild_id, [],
            self.db.get_user_warnings, guild_id, user_id,
        )
        return [WarningEntry.from_record(r) for r in records]

    async def count(self, guild_id: int, user_id: int) -> int:
        return len(await self.list(guild_id, user_id))

    async def decay(
        self,
        guild_id: int,
        decay_days: float,
        now: Optional[float] = None,
    ) -> int:
        """
        Purge warnings older than the decay window.

        Args:
            guild_id: Guild to sweep.
            decay_days: Window in days; older warnings are removed.
            now: Current time in epoch seconds.

        Returns:
            Number of warnings removed.
        """
        now = time.time() if now is None else now
        cutoff = now - decay_days * SECONDS_PER_DAY
        removed = await self._run(
            "decay", guild_id, 0,
            self.db.delete_expired_warnings, guild_id, cutoff,
        )
        if removed:
            logger.tree("Warnings Decayed", [
                ("Guild ID", str(guild_id)),
                ("Removed", str(removed)),
                ("Decay Days", f"{decay_days:g}"),
            ], emoji="🧹")
        return removed

    async def counts(self, guild_id: int, limit: int = 5) -> Dict[str, Any]:
        """Totals for the warning stats view: total, users, top warned."""
        return await self._run(
            "counts", guild_id,
            {"total_warnings": 0, "users_with_warnings": 0, "top_warned": []},
            self.db.get_guild_warning_summary, guild_id, limit,
        )

    async def guild_ids(self) -> List[int]:
        """Guilds that currently hold warnings."""
        try:
            return await asyncio.to_thread(self.db.get_warning_guild_ids)
        except Exception as e:
            logger.error("Warning Guild Lookup Failed", [
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            record_failure("store.warnings.guild_ids", e)
            return []


__all__ = ["WarningStore"]
