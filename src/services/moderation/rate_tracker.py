"""
Moderation Rate Window Tracker
==============================

Per-user sliding windows for message rate and duplicate content.

DESIGN:
    State is sharded by (guild_id, user_id). `evaluate` never awaits, so a
    call runs to completion on the event loop and two messages for the same
    user cannot interleave. Unrelated users never share a structure.

    A rate verdict does not record the rejected message, so spam does not
    also eat into the user's future legitimate throughput.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Tuple

from src.core.logger import logger

from .constants import RATE_WINDOW, RECENT_MESSAGE_LIMIT
from .models import CLEAN, ModerationSettings, SpamVerdict


Entry = Tuple[float, int]  # (timestamp, message_id)
Key = Tuple[int, int]  # (guild_id, user_id)


@dataclass
class RateState:
    """Tracked messages for one user in one guild."""
    messages: Deque[Entry] = field(default_factory=deque)
    duplicates: Dict[str, Deque[Entry]] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.messages and not self.duplicates


def _prune(entries: Deque[Entry], now: float, window: float) -> None:
    while entries and now - entries[0][0] >= window:
        entries.popleft()


def normalize(text: str) -> str:
    return text.lower().strip()


class RateWindowTracker:
    """Message rate and duplicate-content counters keyed by guild and user."""

    def __init__(self, rate_window: float = RATE_WINDOW) -> None:
        self.rate_window = rate_window
        self._states: Dict[Key, RateState] = {}

    def evaluate(
        self,
        user_id: int,
        guild_id: int,
        text: str,
        message_id: int,
        now: float,
        settings: Optional[ModerationSettings] = None,
    ) -> SpamVerdict:
        """
        Check a message against the rate and duplicate windows.

        Args:
            user_id: Author id.
            guild_id: Guild id.
            text: Raw message content.
            message_id: Message id, remembered for later deletion.
            now: Current time in epoch seconds.
            settings: Guild settings; defaults when None.

        Returns:
            SpamVerdict with kind "rate", "duplicate" or clean.
        """
        settings = settings or ModerationSettings()
        key = (guild_id, user_id)
        state = self._states.get(key)
        if state is None:
            state = RateState()
            self._states[key] = state

        _prune(state.messages, now, self.rate_window)

        if len(state.messages) >= settings.max_messages_per_minute:
            return SpamVerdict(
                is_spam=True,
                kind="rate",
                detail=f"{len(state.messages)} messages in {self.rate_window:g}s",
            )

        content = normalize(text)
        if content:
            entries = state.duplicates.get(content)
            if entries is None:
                entries = deque()
                state.duplicates[content] = entries
            entries.append((now, message_id))
            _prune(entries, now, settings.duplicate_time_window)

            if len(entries) > settings.max_duplicate_messages:
                return SpamVerdict(
                    is_spam=True,
                    kind="duplicate",
                    detail=f"{len(entries)} identical messages in {settings.duplicate_time_window}s",
                )

        state.messages.append((now, message_id))
        return CLEAN

    def recent_message_ids(
        self,
        user_id: int,
        guild_id: int,
        limit: int = RECENT_MESSAGE_LIMIT,
    ) -> List[int]:
        """Ids of the user's last `limit` tracked messages, oldest first."""
        state = self._states.get((guild_id, user_id))
        if state is None or limit <= 0:
            return []
        return [message_id for _, message_id in list(state.messages)[-limit:]]

    def sweep(self, now: float, duplicate_window: Optional[float] = None) -> int:
        """
        Drop users whose entries have all expired.

        Args:
            now: Current time in epoch seconds.
            duplicate_window: Window for duplicate lists; rate window if None.

        Returns:
            Number of user states removed.
        """
        duplicate_window = self.rate_window if duplicate_window is None else duplicate_window
        removed = 0

        for key in list(self._states):
            state = self._states[key]
            _prune(state.messages, now, self.rate_window)
            for content in list(state.duplicates):
                entries = state.duplicates[content]
                _prune(entries, now, duplicate_window)
                if not entries:
                    del state.duplicates[content]
            if state.is_empty():
                del self._states[key]
                removed += 1

        if removed:
            logger.debug("Rate Tracker Swept", [
                ("Removed", str(removed)),
                ("Remaining", str(len(self._states))),
            ])
        return removed

    def reset(self, guild_id: int, user_id: int) -> None:
        self._states.pop((guild_id, user_id), None)

    def __len__(self) -> int:
        return len(self._states)


__all__ = ["RateWindowTracker", "RateState", "normalize"]
