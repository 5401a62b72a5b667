"""
Moderation Orchestrator
=======================

Routes inbound message and join events through the detectors and drives
the warn -> escalate -> record pipeline.

DESIGN:
    Detection is synchronous and runs inline on the event. Everything that
    touches I/O (deleting, warning, escalating, statistics, DMs, logs) is
    spawned on a TaskGroupTracker, so a slow Discord call never blocks the
    next event and `drain()` can wait for all of it.

    Each side effect is wrapped individually: a blocked DM does not stop
    the mute, and a failed delete does not stop the warning.
"""

import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from src.core.config import EmbedColors
from src.core.constants import DRAIN_TIMEOUT, LOG_CONTENT_PREVIEW
from src.core.logger import logger
from src.utils.async_utils import TaskGroupTracker, gather_with_logging, safe_async_operation
from src.utils.metrics import increment_counter, metrics

from .constants import Category, RECENT_MESSAGE_LIMIT
from .detectors import (
    LIVE_SPAM_DETECTORS,
    detect_explicit_content,
    detect_malicious_file,
    detect_phishing,
    detect_scam_links,
    detect_toxicity,
    run_detector,
)
from .escalation import EscalationPolicy
from .models import (
    ACTION_MUTE,
    AnalysisResult,
    Attachment,
    AutomodResult,
    EscalationAction,
    MemberJoinEvent,
    MessageEvent,
    ModerationSettings,
    Violation,
    WarningEntry,
)
from .platform import LogPayload, ModerationPlatform
from .raid import RaidTracker
from .rate_tracker import RateWindowTracker
from .scheduler import UnmuteScheduler
from .scoring import MaxConfidenceStrategy, detect_spam, threshold_for
from .settings import SettingsStore
from .statistics import StatisticsAggregator
from .warnings import WarningStore


SPAM_CONFIDENCE = 1.0


@dataclass
class WarnOutcome:
    """A recorded warning and the escalation it triggered, if any."""
    warning: WarningEntry
    count: int
    escalation: Optional[EscalationAction] = None


class ModerationOrchestrator:
    """Entry point for every moderated event in every guild."""

    def __init__(
        self,
        platform: ModerationPlatform,
        settings_store: SettingsStore,
        warning_store: WarningStore,
        statistics: StatisticsAggregator,
        rate_tracker: Optional[RateWindowTracker] = None,
        raid_tracker: Optional[RaidTracker] = None,
        scheduler: Optional[UnmuteScheduler] = None,
        escalation: Optional[EscalationPolicy] = None,
        tasks: Optional[TaskGroupTracker] = None,
    ) -> None:
        self.platform = platform
        self.settings_store = settings_store
        self.warning_store = warning_store
        self.statistics = statistics
        self.rate_tracker = rate_tracker or RateWindowTracker()
        self.raid_tracker = raid_tracker or RaidTracker()
        self.scheduler = scheduler or UnmuteScheduler(platform)
        self.escalation = escalation or EscalationPolicy(platform, settings_store, self.scheduler)
        self.tasks = tasks or TaskGroupTracker()
        self.strategy = MaxConfidenceStrategy()

    # =========================================================================
    # Analysis
    # =========================================================================

    def analyze_message(
        self,
        event: MessageEvent,
        attachments: Optional[List[Attachment]] = None,
        settings: Optional[ModerationSettings] = None,
    ) -> AnalysisResult:
        """
        Run every enabled detector category and score with max-confidence.

        Args:
            event: Message to analyze.
            attachments: Attachments to scan; the event's own when None.
            settings: Guild settings; defaults when None.

        Returns:
            AnalysisResult. `is_violation` is set when the strongest
            violation reaches the guild's threshold.
        """
        settings = settings or ModerationSettings()
        attachments = list(event.attachments if attachments is None else attachments)
        text = event.content
        violations: List[Violation] = []

        if settings.is_enabled(Category.SPAM):
            for name, detector in LIVE_SPAM_DETECTORS:
                violations.extend(run_detector(name, detector, text))
        if settings.is_enabled(Category.PHISHING):
            violations.extend(run_detector("phishing", detect_phishing, text))
        if settings.is_enabled(Category.SCAM):
            violations.extend(run_detector("scam_links", detect_scam_links, text))
        if settings.is_enabled(Category.MALICIOUS_FILE):
            for attachment in attachments:
                violations.extend(run_detector("malicious_file", detect_malicious_file, attachment))
        if settings.is_enabled(Category.EXPLICIT):
            violations.extend(run_detector("explicit", detect_explicit_content, text, attachments))
        if settings.is_enabled(Category.TOXICITY):
            violations.extend(run_detector("toxicity", detect_toxicity, text))

        if not violations:
            return AnalysisResult()

        confidence = self.strategy.score(violations)
        return AnalysisResult(
            is_violation=self.strategy.is_violation(confidence, threshold_for(settings)),
            confidence=confidence,
            violations=violations,
        )

    def preview(self, text: str) -> AutomodResult:
        """Sum-and-clamp automod verdict for a piece of text."""
        return detect_spam(text)

    # =========================================================================
    # Message Intake
    # =========================================================================

    def _is_exempt(self, event: MessageEvent, settings: ModerationSettings) -> bool:
        if event.channel_id in settings.ignore_channels:
            return True
        return any(role_id in settings.ignore_roles for role_id in event.role_ids)

    async def handle_message(
        self,
        event: MessageEvent,
        now: Optional[float] = None,
    ) -> Optional[AnalysisResult]:
        """
        Moderate one inbound message.

        Returns:
            None when the message is exempt (bot, administrator, ignored
            channel or role), otherwise the verdict. Punishment runs in the
            background; await `drain()` to wait for it.
        """
        if event.is_bot or event.is_administrator:
            return None

        now = time.time() if now is None else now
        settings = await self.settings_store.get(event.guild_id)
        if self._is_exempt(event, settings):
            return None

        if settings.anti_spam:
            verdict = self.rate_tracker.evaluate(
                event.author_id, event.guild_id, event.content, event.message_id, now, settings,
            )
            if verdict.is_spam:
                result = AnalysisResult(
                    is_violation=True,
                    confidence=SPAM_CONFIDENCE,
                    violations=[Violation(
                        type=f"spam_{verdict.kind}",
                        confidence=SPAM_CONFIDENCE,
                        reason=verdict.detail,
                        category=Category.SPAM,
                    )],
                )
                recent = (
                    self.rate_tracker.recent_message_ids(event.author_id, event.guild_id, RECENT_MESSAGE_LIMIT)
                    if verdict.kind == "rate" else []
                )
                logger.tree("SPAM DETECTED", [
                    ("User", f"{event.author_name or event.author_id} ({event.author_id})"),
                    ("Guild", event.guild_name or str(event.guild_id)),
                    ("Kind", verdict.kind or "-"),
                    ("Detail", verdict.detail),
                ], emoji="🚫")
                increment_counter("moderation.violations.spam")
                self.tasks.spawn(
                    self._punish_message(event, result, settings, now, recent),
                    name=f"moderate:{event.guild_id}:{event.message_id}",
                )
                return result

        with metrics.timer("moderation.analyze_message"):
            result = self.analyze_message(event, settings=settings)
        if result.is_violation:
            logger.tree("VIOLATION DETECTED", [
                ("User", f"{event.author_name or event.author_id} ({event.author_id})"),
                ("Guild", event.guild_name or str(event.guild_id)),
                ("Categories", ", ".join(result.categories)),
                ("Confidence", f"{result.confidence:.2f}"),
                ("Content", event.content[:50]),
            ], emoji="🛡️")
            increment_counter("moderation.violations.analysis")
            self.tasks.spawn(
                self._punish_message(event, result, settings, now, []),
                name=f"moderate:{event.guild_id}:{event.message_id}",
            )
        return result

    async def _punish_message(
        self,
        event: MessageEvent,
        result: AnalysisResult,
        settings: ModerationSettings,
        now: float,
        recent_message_ids: List[int],
    ) -> None:
        actions: List[str] = []

        if settings.delete_messages:
            deleted = await safe_async_operation(
                "Delete Message",
                self._deleted(event.guild_id, event.channel_id, event.message_id),
                default=False,
                area="platform.delete",
            )
            if deleted:
                actions.append("delete")

            extra_ids = [m for m in recent_message_ids if m != event.message_id]
            if extra_ids:
                await safe_async_operation(
                    "Delete Recent Messages",
                    self.platform.delete_recent_messages(event.guild_id, event.channel_id, extra_ids),
                    default=0,
                    area="platform.delete_recent",
                )

        reason = "; ".join(v.reason for v in result.violations) or "Automatic moderation"
        outcome = await self._issue_warning(
            event.guild_id,
            event.author_id,
            f"Automatic moderation: {reason}",
            None,
            settings,
            now,
            guild_name=event.guild_name,
            channel_id=event.channel_id,
            content=event.content,
        )
        if outcome is not None:
            actions.append("warn")
            if outcome.escalation:
                actions.append(outcome.escalation.action)

        await self.statistics.record_message_action(
            event.guild_id,
            event.author_id,
            event.channel_id,
            result.categories,
            actions,
            result.confidence,
            now,
        )

    async def _deleted(self, guild_id: int, channel_id: int, message_id: int) -> bool:
        await self.platform.delete_message(guild_id, channel_id, message_id)
        return True

    # =========================================================================
    # Member Intake
    # =========================================================================

    async def handle_member_join(
        self,
        event: MemberJoinEvent,
        now: Optional[float] = None,
    ) -> List[Violation]:
        """
        Feed a join into raid detection.

        Returns:
            The raid violation when the guild's join window is exceeded,
            else an empty list.
        """
        now = time.time() if now is None else now
        settings = await self.settings_store.get(event.guild_id)
        if not settings.raid_protection:
            return []

        violations = self.raid_tracker.evaluate(
            event.guild_id,
            event.user_id,
            event.account_created_at,
            now,
            threshold=settings.raid_join_threshold,
        )
        if violations:
            self.tasks.spawn(
                self._punish_join(event, violations[0], settings, now),
                name=f"raid:{event.guild_id}:{event.user_id}",
            )
        return violations

    async def _punish_join(
        self,
        event: MemberJoinEvent,
        violation: Violation,
        settings: ModerationSettings,
        now: float,
    ) -> None:
        outcome = await self._issue_warning(
            event.guild_id,
            event.user_id,
            f"Raid protection: {violation.reason}",
            None,
            settings,
            now,
            guild_name=event.guild_name,
        )
        actions = []
        if outcome is not None:
            actions.append("warn")
            if outcome.escalation:
                actions.append(outcome.escalation.action)

        await self.statistics.record_raid_action(
            event.guild_id, event.user_id, [violation.reason], actions, now,
        )

        channel_id = settings.punishment_log_channel or settings.warning_log_channel
        if channel_id:
            payload = LogPayload(
                title="🚨 Raid Detected",
                description=f"Mass join detected in **{event.guild_name or event.guild_id}**.",
                color=EmbedColors.RED,
                timestamp=now,
            )
            payload.add_field("User", f"<@{event.user_id}>")
            payload.add_field("Joins", str(violation.extra.get("join_count", "-")))
            payload.add_field("New Accounts", str(violation.extra.get("new_account_count", "-")))
            payload.add_field("Confidence", f"{violation.confidence:.0%}")
            payload.add_field("Actions", ", ".join(actions) or "none", inline=False)
            await safe_async_operation(
                "Raid Alert Log",
                self.platform.send_log_message(event.guild_id, channel_id, payload),
                area="platform.log",
            )

    # =========================================================================
    # Warnings
    # =========================================================================

    async def warn(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: Optional[int] = None,
        now: Optional[float] = None,
        guild_name: str = "",
    ) -> Optional[WarningEntry]:
        """
        Record a manual warning, notify the user and escalate.

        Returns:
            The stored warning, or None if the store failed.
        """
        now = time.time() if now is None else now
        settings = await self.settings_store.get(guild_id)
        outcome = await self._issue_warning(
            guild_id, user_id, reason, moderator_id, settings, now, guild_name=guild_name,
        )
        return outcome.warning if outcome else None

    async def _issue_warning(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        moderator_id: Optional[int],
        settings: ModerationSettings,
        now: float,
        guild_name: str = "",
        channel_id: Optional[int] = None,
        content: Optional[str] = None,
    ) -> Optional[WarnOutcome]:
        warning, count = await self.warning_store.add_and_count(
            guild_id, user_id, reason, moderator_id, now,
        )
        if warning is None:
            return None

        await safe_async_operation(
            "Warning DM",
            self.platform.send_direct_message(
                user_id, self._warning_dm(guild_id, guild_name, reason, count, settings, now),
            ),
            area="platform.dm",
            log_level="debug",
        )

        escalation = await self.escalation.apply(guild_id, user_id, count, settings)

        if escalation and settings.punishment_log_channel:
            payload = self._punishment_log(user_id, escalation, count, now)
            await safe_async_operation(
                "Punishment Log",
                self.platform.send_log_message(guild_id, settings.punishment_log_channel, payload),
                area="platform.log",
            )

        if settings.warning_log_channel:
            payload = self._warning_log(
                warning, count, settings, now, channel_id=channel_id, content=content,
            )
            await safe_async_operation(
                "Warning Log",
                self.platform.send_log_message(guild_id, settings.warning_log_channel, payload),
                area="platform.log",
            )

        logger.tree("Warning Issued", [
            ("Guild ID", str(guild_id)),
            ("User ID", str(user_id)),
            ("Moderator", str(moderator_id) if moderator_id else "Automatic"),
            ("Warnings", f"{count}/{settings.max_warnings}"),
            ("Escalation", escalation.action.upper() if escalation else "None"),
        ], emoji="⚠️")

        return WarnOutcome(warning=warning, count=count, escalation=escalation)

    # =========================================================================
    # Payloads
    # =========================================================================

    @staticmethod
    def _warning_dm(
        guild_id: int,
        guild_name: str,
        reason: str,
        count: int,
        settings: ModerationSettings,
        now: float,
    ) -> LogPayload:
        payload = LogPayload(
            title="⚠️ You have received a warning",
            description=f"You were warned in **{guild_name or guild_id}**.",
            color=EmbedColors.WARNING,
            timestamp=now,
        )
        payload.add_field("Reason", reason, inline=False)
        payload.add_field("Warnings", f"{count}/{settings.max_warnings}")
        if settings.appeal_channel:
            payload.add_field("Appeal", f"<#{settings.appeal_channel}>")
        return payload

    @staticmethod
    def _punishment_log(
        user_id: int,
        escalation: EscalationAction,
        count: int,
        now: float,
    ) -> LogPayload:
        colors = {"ban": EmbedColors.BAN, "kick": EmbedColors.KICK, "mute": EmbedColors.MUTE}
        payload = LogPayload(
            title=f"⚖️ {escalation.action.upper()} Applied",
            color=colors.get(escalation.action, EmbedColors.RED),
            timestamp=now,
        )
        payload.add_field("User", f"<@{user_id}>")
        payload.add_field("Warnings", str(count))
        payload.add_field("Reason", f"Automatic {escalation.action} after {count} warnings", inline=False)
        if escalation.action == ACTION_MUTE and escalation.duration:
            payload.add_field("Duration", f"{escalation.duration // 60} minutes")
        return payload

    @staticmethod
    def _warning_log(
        warning: WarningEntry,
        count: int,
        settings: ModerationSettings,
        now: float,
        channel_id: Optional[int] = None,
        content: Optional[str] = None,
    ) -> LogPayload:
        payload = LogPayload(
            title="⚠️ Warning Issued",
            color=EmbedColors.WARNING,
            timestamp=now,
            footer=f"Warning ID: {warning.id}",
        )
        payload.add_field("User", f"<@{warning.user_id}>")
        payload.add_field(
            "Moderator",
            f"<@{warning.moderator_id}>" if warning.moderator_id else "Automatic",
        )
        payload.add_field("Warnings", f"{count}/{settings.max_warnings}")
        payload.add_field("Reason", warning.reason, inline=False)
        if channel_id is not None:
            payload.add_field("Channel", f"<#{channel_id}>")
        if content:
            payload.add_field("Content", content[:LOG_CONTENT_PREVIEW], inline=False)
        return payload

    # =========================================================================
    # Maintenance
    # =========================================================================

    def janitor_sweep(self, now: Optional[float] = None) -> Dict[str, int]:
        """Drop expired tracker state. Returns removed entries per tracker."""
        now = time.time() if now is None else now
        removed = {
            "rate": self.rate_tracker.sweep(now),
            "raid": self.raid_tracker.sweep(now),
            "stats": self.statistics.sweep(now),
        }
        if any(removed.values()):
            logger.debug("Janitor Sweep", [
                ("Rate States", str(removed["rate"])),
                ("Raid States", str(removed["raid"])),
                ("Stats Views", str(removed["stats"])),
            ])
        return removed

    async def decay(self, guild_id: int, now: Optional[float] = None) -> int:
        """Decay one guild's warnings using its configured window."""
        settings = await self.settings_store.get(guild_id)
        return await self.warning_store.decay(guild_id, settings.warning_decay_days, now)

    async def decay_all(self, now: Optional[float] = None) -> int:
        """Decay warnings in every guild that has any. Returns the total removed."""
        now = time.time() if now is None else now
        guild_ids = await self.warning_store.guild_ids()
        results = await gather_with_logging(
            *((f"Decay {guild_id}", self.decay(guild_id, now)) for guild_id in guild_ids),
            context="decay",
        )
        total = sum(r for r in results if isinstance(r, int))
        if total:
            logger.info(f"Warning decay removed {total} warnings")
        return total

    async def drain(self, timeout: Optional[float] = DRAIN_TIMEOUT) -> None:
        """Wait for outstanding side effects."""
        await self.tasks.drain(timeout)

    async def shutdown(self) -> None:
        """Finish side effects, then cancel stragglers and pending unmutes."""
        await self.drain()
        self.tasks.cancel_all()
        await self.scheduler.shutdown()
        logger.info("Moderation orchestrator stopped")


__all__ = ["ModerationOrchestrator", "WarnOutcome"]
