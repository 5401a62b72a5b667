"""
Warden - Moderation Engine
==========================

Detectors, trackers, warning ledger, escalation and statistics for
automatic guild moderation.

DESIGN:
    ModerationOrchestrator is the single entry point. It owns the
    in-memory trackers and delegates durable state to the stores, which
    wrap the SQLite DatabaseManager. Discord is reached only through
    ModerationPlatform, so the whole engine runs against a mock in tests.

    Wiring:
        platform = DiscordPlatform(bot)
        settings = SettingsStore(db)
        orchestrator = ModerationOrchestrator(
            platform, settings, WarningStore(db), StatisticsAggregator(db),
        )
"""

from .errors import ModerationError, PlatformActionError, SettingsValidationError
from .escalation import EscalationPolicy
from .models import (
    AnalysisResult,
    Attachment,
    AutomodResult,
    EscalationAction,
    MemberJoinEvent,
    MessageEvent,
    ModerationSettings,
    SpamVerdict,
    Violation,
    WarningEntry,
)
from .orchestrator import ModerationOrchestrator, WarnOutcome
from .platform import DiscordPlatform, LogPayload, ModerationPlatform
from .raid import RaidTracker
from .rate_tracker import RateWindowTracker
from .scheduler import UnmuteScheduler
from .scoring import MaxConfidenceStrategy, ScoringStrategy, SumClampStrategy, detect_spam
from .settings import SettingsStore
from .statistics import ModerationAction, StatisticsAggregator
from .warnings import WarningStore


__all__ = [
    # Errors
    "ModerationError",
    "PlatformActionError",
    "SettingsValidationError",
    # Models
    "AnalysisResult",
    "Attachment",
    "AutomodResult",
    "EscalationAction",
    "MemberJoinEvent",
    "MessageEvent",
    "ModerationSettings",
    "SpamVerdict",
    "Violation",
    "WarningEntry",
    # Components
    "EscalationPolicy",
    "ModerationOrchestrator",
    "WarnOutcome",
    "DiscordPlatform",
    "LogPayload",
    "ModerationPlatform",
    "RaidTracker",
    "RateWindowTracker",
    "UnmuteScheduler",
    "MaxConfidenceStrategy",
    "ScoringStrategy",
    "SumClampStrategy",
    "detect_spam",
    "SettingsStore",
    "ModerationAction",
    "StatisticsAggregator",
    "WarningStore",
]
