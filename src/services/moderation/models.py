"""
Moderation Data Models
======================

Dataclasses for inbound events, detector output, verdicts, per-guild
settings and warnings.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional, Tuple

from src.core.logger import logger

from .constants import (
    Category,
    DEFAULT_AUTO_BAN_AFTER,
    DEFAULT_AUTO_KICK_AFTER,
    DEFAULT_AUTO_MUTE_AFTER,
    DEFAULT_DUPLICATE_TIME_WINDOW,
    DEFAULT_MAX_DUPLICATE_MESSAGES,
    DEFAULT_MAX_MESSAGES_PER_MINUTE,
    DEFAULT_MAX_WARNINGS,
    DEFAULT_MUTE_DURATION,
    DEFAULT_RAID_JOIN_THRESHOLD,
    DEFAULT_TOXICITY_THRESHOLD,
    DEFAULT_WARNING_DECAY_DAYS,
)
from .errors import SettingsValidationError


# =============================================================================
# Inbound Events
# =============================================================================

@dataclass(frozen=True)
class Attachment:
    """File attached to a message."""
    name: str
    size: int
    url: str = ""


@dataclass(frozen=True)
class MessageEvent:
    """A message as seen by the engine. Never persisted."""
    message_id: int
    author_id: int
    guild_id: int
    channel_id: int
    content: str
    attachments: Tuple[Attachment, ...] = ()
    is_bot: bool = False
    is_administrator: bool = False
    role_ids: Tuple[int, ...] = ()
    author_name: str = ""
    guild_name: str = ""


@dataclass(frozen=True)
class MemberJoinEvent:
    """A member joining a guild."""
    guild_id: int
    user_id: int
    account_created_at: float  # epoch seconds
    user_name: str = ""
    guild_name: str = ""


# =============================================================================
# Detector Output
# =============================================================================

@dataclass(frozen=True)
class Violation:
    """One finding from one detector."""
    type: str
    confidence: float
    reason: str
    category: str
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class SpamVerdict:
    """Result of the rate/duplicate window check."""
    is_spam: bool
    kind: Optional[str] = None  # "rate" | "duplicate"
    detail: str = ""


CLEAN = SpamVerdict(is_spam=False)


@dataclass
class AutomodResult:
    """Sum-and-clamp automod verdict used by previews."""
    is_spam: bool
    confidence: float
    reasons: List[str] = field(default_factory=list)


@dataclass
class AnalysisResult:
    """Max-confidence verdict used by live moderation."""
    is_violation: bool = False
    confidence: float = 0.0
    violations: List[Violation] = field(default_factory=list)

    @property
    def categories(self) -> List[str]:
        """Distinct violation categories in first-seen order."""
        seen: List[str] = []
        for violation in self.violations:
            if violation.category not in seen:
                seen.append(violation.category)
        return seen


# =============================================================================
# Settings
# =============================================================================

CATEGORY_FLAGS: Dict[str, str] = {
    Category.SPAM: "anti_spam",
    Category.PHISHING: "phishing_protection",
    Category.SCAM: "scam_link_detection",
    Category.MALICIOUS_FILE: "malicious_file_detection",
    Category.EXPLICIT: "explicit_content_filter",
    Category.TOXICITY: "toxicity_detection",
    Category.RAID: "raid_protection",
}


@dataclass
class ModerationSettings:
    """Per-guild moderation configuration, stored as one JSON document."""

    # Detector categories
    anti_spam: bool = True
    phishing_protection: bool = True
    scam_link_detection: bool = True
    malicious_file_detection: bool = True
    explicit_content_filter: bool = True
    toxicity_detection: bool = True
    raid_protection: bool = True

    # Decision threshold (percent)
    toxicity_threshold: int = DEFAULT_TOXICITY_THRESHOLD

    # Warnings / escalation
    max_warnings: int = DEFAULT_MAX_WARNINGS
    warning_decay_days: int = DEFAULT_WARNING_DECAY_DAYS
    auto_mute_after_warnings: int = DEFAULT_AUTO_MUTE_AFTER
    auto_kick_after_warnings: int = DEFAULT_AUTO_KICK_AFTER
    auto_ban_after_warnings: int = DEFAULT_AUTO_BAN_AFTER
    mute_duration: int = DEFAULT_MUTE_DURATION

    # Anti-spam
    max_messages_per_minute: int = DEFAULT_MAX_MESSAGES_PER_MINUTE
    max_duplicate_messages: int = DEFAULT_MAX_DUPLICATE_MESSAGES
    duplicate_time_window: int = DEFAULT_DUPLICATE_TIME_WINDOW
    delete_messages: bool = True

    # Raid
    raid_join_threshold: int = DEFAULT_RAID_JOIN_THRESHOLD

    # Channels / roles
    warning_log_channel: Optional[int] = None
    punishment_log_channel: Optional[int] = None
    appeal_channel: Optional[int] = None
    mute_role_id: Optional[int] = None
    ignore_channels: List[int] = field(default_factory=list)
    ignore_roles: List[int] = field(default_factory=list)

    def is_enabled(self, category: str) -> bool:
        """Whether the detector category is switched on."""
        flag = CATEGORY_FLAGS.get(category)
        return True if flag is None else bool(getattr(self, flag))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ModerationSettings":
        """
        Build settings from a stored document.

        Unknown keys are ignored and missing keys take their defaults, so
        documents written by older versions still load.
        """
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        settings = cls(**{k: v for k, v in data.items() if k in known})

        try:
            settings.validate_thresholds()
        except SettingsValidationError as e:
            # Honored as stored; ban -> kick -> mute precedence applies
            logger.warning("Stored Settings Have Contradictory Thresholds", [
                ("Field", e.field or "-"),
                ("Error", str(e)),
            ])
        return settings

    def validate_thresholds(self) -> None:
        """
        Check threshold ordering and ranges.

        Raises:
            SettingsValidationError: If mute <= kick <= ban <= max_warnings
                does not hold or a value is out of range.
        """
        if not 0 <= self.toxicity_threshold <= 100:
            raise SettingsValidationError(
                "toxicity_threshold must be between 0 and 100", "toxicity_threshold",
            )

        for name in (
            "max_warnings", "warning_decay_days", "auto_mute_after_warnings",
            "auto_kick_after_warnings", "auto_ban_after_warnings",
            "max_messages_per_minute", "max_duplicate_messages",
            "duplicate_time_window", "raid_join_threshold",
        ):
            if getattr(self, name) < 1:
                raise SettingsValidationError(f"{name} must be at least 1", name)

        if self.mute_duration < 0:
            raise SettingsValidationError("mute_duration must not be negative", "mute_duration")

        ordered = [
            ("auto_mute_after_warnings", self.auto_mute_after_warnings),
            ("auto_kick_after_warnings", self.auto_kick_after_warnings),
            ("auto_ban_after_warnings", self.auto_ban_after_warnings),
            ("max_warnings", self.max_warnings),
        ]
        for (low_name, low), (high_name, high) in zip(ordered, ordered[1:]):
            if low > high:
                raise SettingsValidationError(
                    f"{low_name} ({low}) must not exceed {high_name} ({high})",
                    high_name,
                )


# =============================================================================
# Warnings / Escalation
# =============================================================================

@dataclass(frozen=True)
class WarningEntry:
    """A recorded infraction."""
    id: str
    guild_id: int
    user_id: int
    reason: str
    moderator_id: Optional[int]
    timestamp: float
    active: bool = True

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "WarningEntry":
        return cls(
            id=record["id"],
            guild_id=record["guild_id"],
            user_id=record["user_id"],
            reason=record["reason"],
            moderator_id=record["moderator_id"],
            timestamp=record["timestamp"],
            active=bool(record["active"]),
        )


ACTION_NONE = "none"
ACTION_MUTE = "mute"
ACTION_KICK = "kick"
ACTION_BAN = "ban"

ACTION_SEVERITY: Dict[str, int] = {
    ACTION_NONE: 0,
    ACTION_MUTE: 1,
    ACTION_KICK: 2,
    ACTION_BAN: 3,
}


@dataclass(frozen=True)
class EscalationAction:
    """Punishment selected for a warning count."""
    action: str = ACTION_NONE
    duration: Optional[int] = None  # seconds, mute only

    @property
    def severity(self) -> int:
        return ACTION_SEVERITY[self.action]

    def __bool__(self) -> bool:
        return self.action != ACTION_NONE


__all__ = [
    "Attachment",
    "MessageEvent",
    "MemberJoinEvent",
    "Violation",
    "SpamVerdict",
    "CLEAN",
    "AutomodResult",
    "AnalysisResult",
    "CATEGORY_FLAGS",
    "ModerationSettings",
    "WarningEntry",
    "EscalationAction",
    "ACTION_NONE",
    "ACTION_MUTE",
    "ACTION_KICK",
    "ACTION_BAN",
    "ACTION_SEVERITY",
]
