"""
Moderation Raid Tracker
=======================

Per-guild sliding window of member joins with new-account ratio analysis.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

from src.core.constants import SECONDS_PER_DAY
from src.core.logger import logger

from .constants import (
    Category,
    DEFAULT_RAID_JOIN_THRESHOLD,
    RAID_BASE_CONFIDENCE,
    RAID_MAX_CONFIDENCE,
    RAID_NEW_ACCOUNT_DAYS,
    RAID_TIME_WINDOW,
)
from .models import Violation


@dataclass(frozen=True)
class JoinRecord:
    """One member join inside the raid window."""
    user_id: int
    joined_at: float
    account_age: float  # seconds at join time


@dataclass
class RaidState:
    """Joins for one guild plus its configured threshold."""
    joins: Deque[JoinRecord] = field(default_factory=deque)
    threshold: int = DEFAULT_RAID_JOIN_THRESHOLD


class RaidTracker:
    """
    Mass-join detector.

    DESIGN:
        Like the rate tracker, `evaluate` is synchronous so appends and
        prunes for one guild never interleave. Every join is recorded,
        including the ones that trigger a detection.
    """

    def __init__(
        self,
        window: float = RAID_TIME_WINDOW,
        new_account_days: float = RAID_NEW_ACCOUNT_DAYS,
    ) -> None:
        self.window = window
        self.new_account_age = new_account_days * SECONDS_PER_DAY
        self._states: Dict[int, RaidState] = {}

    def set_threshold(self, guild_id: int, threshold: int) -> None:
        self._state(guild_id).threshold = threshold

    def _state(self, guild_id: int) -> RaidState:
        state = self._states.get(guild_id)
        if state is None:
            state = RaidState()
            self._states[guild_id] = state
        return state

    def _prune(self, state: RaidState, now: float) -> None:
        while state.joins and now - state.joins[0].joined_at >= self.window:
            state.joins.popleft()

    def evaluate(
        self,
        guild_id: int,
        user_id: int,
        account_created_at: float,
        now: float,
        threshold: Optional[int] = None,
    ) -> List[Violation]:
        """
        Record a join and check the guild's window.

        Args:
            guild_id: Guild joined.
            user_id: Joining user.
            account_created_at: Account creation time, epoch seconds.
            now: Current time, epoch seconds.
            threshold: Joins per window that count as a raid; overrides
                the stored per-guild threshold when given.

        Returns:
            A single raid_detected violation, or an empty list.
        """
        state = self._state(guild_id)
        if threshold is not None:
            state.threshold = threshold

        state.joins.append(JoinRecord(
            user_id=user_id,
            joined_at=now,
            account_age=now - account_created_at,
        ))
        self._prune(state, now)

        join_count = len(state.joins)
        if join_count < state.threshold:
            return []

        new_accounts = sum(1 for j in state.joins if j.account_age < self.new_account_age)
        ratio = new_accounts / join_count
        confidence = min(RAID_MAX_CONFIDENCE, RAID_BASE_CONFIDENCE + ratio * 0.5)

        logger.tree("RAID WINDOW EXCEEDED", [
            ("Guild", str(guild_id)),
            ("Joins", f"{join_count} in {self.window:g}s"),
            ("New Accounts", str(new_accounts)),
            ("Confidence", f"{confidence:.2f}"),
        ], emoji="🚨")

        return [Violation(
            type="raid_detected",
            confidence=confidence,
            reason=f"{join_count} joins in {self.window:g}s ({new_accounts} new accounts)",
            category=Category.RAID,
            extra={
                "join_count": join_count,
                "new_account_count": new_accounts,
                "suspicious_ratio": ratio,
                "threshold": state.threshold,
                "time_window": self.window,
            },
        )]

    def sweep(self, now: float) -> int:
        """Drop guilds with no joins left in the window. Returns the number removed."""
        removed = 0
        for guild_id in list(self._states):
            state = self._states[guild_id]
            self._prune(state, now)
            if not state.joins and state.threshold == DEFAULT_RAID_JOIN_THRESHOLD:
                del self._states[guild_id]
                removed += 1
        return removed

    def join_count(self, guild_id: int) -> int:
        state = self._states.get(guild_id)
        return len(state.joins) if state else 0

    def __len__(self) -> int:
        return len(self._states)


__all__ = ["RaidTracker", "RaidState", "JoinRecord"]
