"""
Moderation Statistics Aggregator
================================

Rolls moderation actions into per-guild counters and derives trend,
top-offender and severity views for dashboards.

DESIGN:
    Each guild has one JSON document. Recording an action is a
    read-merge-write under the guild's KeyedLock, with the SQLite work in a
    worker thread, so concurrent actions for one guild never lose updates.
    Derived views are cached per guild (TTLCache, 60s by default) and the
    entry is dropped whenever the guild records a new action. Two readers
    missing the cache at once both recompute; that is acceptable.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

from src.core.logger import logger
from src.utils.cache import TTLCache
from src.utils.keyed_lock import KeyedLock
from src.utils.metrics import record_failure

from .constants import (
    ACTION_MESSAGE_MODERATION,
    ACTION_RAID_PROTECTION,
    Category,
    DAILY_TREND_DAYS,
    SEVERITY_LEVELS,
    SEVERITY_MAP,
    STATS_CACHE_TTL,
    TOP_LIST_LIMIT,
    TREND_DEADBAND_PERCENT,
    WEEKLY_TREND_WEEKS,
)

if TYPE_CHECKING:
    from src.core.database import DatabaseManager


# =============================================================================
# Helpers
# =============================================================================

@dataclass
class ModerationAction:
    """One punitive action to roll into the statistics."""
    type: str
    user_id: Optional[int] = None
    channel_id: Optional[int] = None
    violations: List[str] = field(default_factory=list)
    actions: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)
    confidence: float = 1.0


def day_key(ts: float) -> str:
    """UTC calendar date for an epoch timestamp, as YYYY-MM-DD."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).date().isoformat()


def iso_timestamp(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def empty_statistics() -> Dict[str, Any]:
    return {
        "total_actions": 0,
        "actions_by_type": {},
        "actions_by_day": {},
        "violations_by_type": {},
        "user_actions": {},
        "channel_actions": {},
        "last_updated": None,
    }


def anonymize_user_id(user_id: str) -> str:
    """Keep the first and last four characters: 1234****7890."""
    return f"{user_id[:4]}****{user_id[-4:]}"


def most_common(counts: Optional[Dict[str, int]]) -> Optional[str]:
    """Key with the highest count; on ties the later key wins."""
    if not counts:
        return None
    best_key, best_count = None, None
    for key, count in counts.items():
        if best_count is None or count >= best_count:
            best_key, best_count = key, count
    return best_key


def average_daily_actions(actions_by_day: Dict[str, int]) -> float:
    """Average over days that recorded at least one action."""
    if not actions_by_day:
        return 0
    return round(sum(actions_by_day.values()) / len(actions_by_day), 2)


def violation_trend(daily: Sequence[Dict[str, Any]]) -> str:
    """
    Compare the last 7 days with the 7 before.

    Returns:
        "increasing" or "decreasing" when the average moved by more than
        20%, else "stable".
    """
    if len(daily) < 2:
        return "stable"

    recent = daily[-7:]
    previous = daily[-14:-7]
    recent_avg = sum(d["actions"] for d in recent) / len(recent)
    previous_avg = sum(d["actions"] for d in previous) / len(previous) if previous else 0

    change = (recent_avg - previous_avg) / (previous_avg or 1) * 100

    if change > TREND_DEADBAND_PERCENT:
        return "increasing"
    if change < -TREND_DEADBAND_PERCENT:
        return "decreasing"
    return "stable"


def severity_distribution(violations_by_type: Dict[str, int]) -> Dict[str, int]:
    distribution = {level: 0 for level in SEVERITY_LEVELS}
    for violation, count in violations_by_type.items():
        distribution[SEVERITY_MAP.get(violation, "low")] += count
    return distribution


def daily_trend(actions_by_day: Dict[str, int], today: date) -> List[Dict[str, Any]]:
    trend = []
    for offset in range(DAILY_TREND_DAYS - 1, -1, -1):
        key = (today - timedelta(days=offset)).isoformat()
        trend.append({"date": key, "actions": actions_by_day.get(key, 0)})
    return trend


def weekly_trend(actions_by_day: Dict[str, int], today: date) -> List[Dict[str, Any]]:
    trend = []
    for week in range(WEEKLY_TREND_WEEKS - 1, -1, -1):
        start = today - timedelta(days=week * 7 + 6)
        end = today - timedelta(days=week * 7)
        total = sum(
            actions_by_day.get((start + timedelta(days=d)).isoformat(), 0)
            for d in range(7)
        )
        trend.append({
            "week_start": start.isoformat(),
            "week_end": end.isoformat(),
            "actions": total,
        })
    return trend


def enrich_statistics(stats: Dict[str, Any], now: float) -> Dict[str, Any]:
    """Add trends and analytics to a raw statistics document."""
    today = datetime.fromtimestamp(now, tz=timezone.utc).date()
    daily = daily_trend(stats["actions_by_day"], today)
    weekly = weekly_trend(stats["actions_by_day"], today)

    top_violators = sorted(
        (
            {
                "user_id": anonymize_user_id(user_id),
                "count": user_stats["count"],
                "most_common_violation": most_common(user_stats.get("violations")),
                "last_action": user_stats.get("last_action"),
            }
            for user_id, user_stats in stats["user_actions"].items()
        ),
        key=lambda entry: entry["count"],
        reverse=True,
    )[:TOP_LIST_LIMIT]

    top_channels = sorted(
        (
            {"channel_id": channel_id, "count": count}
            for channel_id, count in stats["channel_actions"].items()
        ),
        key=lambda entry: entry["count"],
        reverse=True,
    )[:TOP_LIST_LIMIT]

    return {
        **stats,
        "trends": {"daily": daily, "weekly": weekly},
        "analytics": {
            "top_violators": top_violators,
            "top_channels": top_channels,
            "severity_distribution": severity_distribution(stats["violations_by_type"]),
            "most_common_violation": most_common(stats["violations_by_type"]),
            "most_common_action": most_common(stats["actions_by_type"]),
            "average_daily_actions": average_daily_actions(stats["actions_by_day"]),
            "violation_trend": violation_trend(daily),
        },
    }


def merge_action(stats: Dict[str, Any], action: ModerationAction, now: float) -> Dict[str, Any]:
    """Increment every counter the action touches. Mutates and returns `stats`."""
    today = day_key(now)
    stamp = iso_timestamp(now)

    stats["total_actions"] += 1
    by_type = stats["actions_by_type"]
    by_type[action.type] = by_type.get(action.type, 0) + 1
    by_day = stats["actions_by_day"]
    by_day[today] = by_day.get(today, 0) + 1

    by_violation = stats["violations_by_type"]
    for violation in action.violations:
        by_violation[violation] = by_violation.get(violation, 0) + 1

    if action.user_id is not None:
        user_stats = stats["user_actions"].setdefault(str(action.user_id), {
            "count": 0,
            "violations": {},
            "actions": {},
            "first_action": stamp,
            "last_action": stamp,
        })
        user_stats["count"] += 1
        user_stats["last_action"] = stamp
        user_stats["actions"][action.type] = user_stats["actions"].get(action.type, 0) + 1
        for violation in action.violations:
            user_stats["violations"][violation] = user_stats["violations"].get(violation, 0) + 1

    if action.channel_id is not None:
        channels = stats["channel_actions"]
        key = str(action.channel_id)
        channels[key] = channels.get(key, 0) + 1

    stats["last_updated"] = stamp
    return stats


# =============================================================================
# Aggregator
# =============================================================================

class StatisticsAggregator:
    """Per-guild moderation statistics with cached derived views."""

    def __init__(self, db: "DatabaseManager", cache_ttl: float = STATS_CACHE_TTL) -> None:
        self.db = db
        self._locks = KeyedLock()
        self._cache: TTLCache[int, Dict[str, Any]] = TTLCache(ttl=cache_ttl, max_size=500)

    async def _load(self, guild_id: int) -> Dict[str, Any]:
        data = await asyncio.to_thread(self.db.get_moderation_stats, guild_id)
        stats = empty_statistics()
        if data:
            stats.update(data)
        return stats

    async def record_action(
        self,
        guild_id: int,
        action: ModerationAction,
        now: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Roll one action into the guild's statistics.

        Returns:
            The updated raw document, or None if the store failed.
        """
        now = time.time() if now is None else now

        async with self._locks.hold(guild_id):
            try:
                stats = merge_action(await self._load(guild_id), action, now)
                await asyncio.to_thread(self.db.save_moderation_stats, guild_id, stats)
            except Exception as e:
                logger.error("Statistics Record Failed", [
                    ("Guild ID", str(guild_id)),
                    ("Action", action.type),
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:100]),
                ])
                record_failure("store.statistics", e)
                return None
            finally:
                self._cache.delete(guild_id)

        logger.debug("Statistics Recorded", [
            ("Guild ID", str(guild_id)),
            ("Action", action.type),
            ("Total", str(stats["total_actions"])),
        ])
        return stats

    async def record_message_action(
        self,
        guild_id: int,
        user_id: int,
        channel_id: int,
        violations: List[str],
        actions: List[str],
        confidence: float,
        now: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]:
        return await self.record_action(guild_id, ModerationAction(
            type=ACTION_MESSAGE_MODERATION,
            user_id=user_id,
            channel_id=channel_id,
            violations=list(violations),
            actions=list(actions),
            confidence=confidence,
        ), now)

    async def record_raid_action(
        self,
        guild_id: int,
        user_id: int,
        reasons: List[str],
        actions: List[str],
        now: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]:
        return await self.record_action(guild_id, ModerationAction(
            type=ACTION_RAID_PROTECTION,
            user_id=user_id,
            violations=[Category.RAID],
            reasons=list(reasons),
            actions=list(actions),
            confidence=1.0,
        ), now)

    async def get_guild_statistics(self, guild_id: int, now: Optional[float] = None) -> Dict[str, Any]:
        """Raw counters plus trends and analytics, cached per guild."""
        now = time.time() if now is None else now

        cached = self._cache.get(guild_id, now=now)
        if cached is not None:
            return cached

        try:
            stats = await self._load(guild_id)
        except Exception as e:
            logger.error("Statistics Load Failed", [
                ("Guild ID", str(guild_id)),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:100]),
            ])
            record_failure("store.statistics", e)
            return enrich_statistics(empty_statistics(), now)

        enriched = enrich_statistics(stats, now)
        self._cache.set(guild_id, enriched, now=now)
        return enriched

    async def get_stats_summary(self, guild_id: int, now: Optional[float] = None) -> Dict[str, Any]:
        """Headline numbers for the dashboard overview."""
        now = time.time() if now is None else now
        stats = await self.get_guild_statistics(guild_id, now)
        analytics = stats["analytics"]
        return {
            "total_actions": stats["total_actions"],
            "today_actions": stats["actions_by_day"].get(day_key(now), 0),
            "most_common_violation": analytics["most_common_violation"],
            "violation_trend": analytics["violation_trend"],
            "top_violation_type": analytics["most_common_violation"],
            "average_daily_actions": analytics["average_daily_actions"],
        }

    async def get_real_time_stats(self, guild_id: int, now: Optional[float] = None) -> Dict[str, Any]:
        """Chart and top-list payload for live dashboard views."""
        now = time.time() if now is None else now
        stats = await self.get_guild_statistics(guild_id, now)
        analytics = stats["analytics"]
        return {
            "today": {
                "total_actions": stats["actions_by_day"].get(day_key(now), 0),
                "violation_types": stats["violations_by_type"],
                "action_types": stats["actions_by_type"],
            },
            "overall": {
                "total_actions": stats["total_actions"],
                "average_daily": analytics["average_daily_actions"],
                "trend": analytics["violation_trend"],
            },
            "charts": {
                "daily": stats["trends"]["daily"],
                "weekly": stats["trends"]["weekly"],
                "violations": [
                    {"name": name, "count": count}
                    for name, count in stats["violations_by_type"].items()
                ],
                "actions": [
                    {"name": name, "count": count}
                    for name, count in stats["actions_by_type"].items()
                ],
            },
            "top": {
                "violators": analytics["top_violators"],
                "channels": analytics["top_channels"],
                "violations": analytics["most_common_violation"],
            },
        }

    def invalidate(self, guild_id: int) -> None:
        self._cache.delete(guild_id)

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop expired cached views. Returns the number removed."""
        return self._cache.cleanup_expired(now)


__all__ = [
    "ModerationAction",
    "StatisticsAggregator",
    "anonymize_user_id",
    "average_daily_actions",
    "daily_trend",
    "day_key",
    "empty_statistics",
    "enrich_statistics",
    "merge_action",
    "most_common",
    "severity_distribution",
    "violation_trend",
    "weekly_trend",
]
