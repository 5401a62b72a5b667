"""
Warden - Database Type Definitions
==================================

TypedDict definitions for database records.
"""

from typing import Dict, List, Optional, TypedDict


class WarningRecord(TypedDict, total=False):
    """Type for warning records returned from database."""
    id: str
    guild_id: int
    user_id: int
    reason: Optional[str]
    moderator_id: Optional[int]
    timestamp: float
    active: bool


class WarnedUserRecord(TypedDict):
    """Type for one entry of a guild warning summary."""
    user_id: int
    count: int


class WarningSummaryRecord(TypedDict):
    """Type for guild warning summaries."""
    total_warnings: int
    users_with_warnings: int
    top_warned: List[WarnedUserRecord]


class UserActionRecord(TypedDict, total=False):
    """Per-user counters inside a statistics document."""
    count: int
    violations: Dict[str, int]
    actions: Dict[str, int]
    first_action: str
    last_action: str


__all__ = [
    "WarningRecord",
    "WarnedUserRecord",
    "WarningSummaryRecord",
    "UserActionRecord",
]
