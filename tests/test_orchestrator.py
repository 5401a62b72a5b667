"""
Warden - Orchestrator Tests
===========================

End-to-end tests for message and join intake against a mock platform
and a real temporary database.
"""

import asyncio

import pytest

from src.services.moderation import ModerationSettings, PlatformActionError
from src.services.moderation.constants import Category
from src.utils.metrics import metrics

from tests.conftest import CHANNEL_ID, GUILD_ID, MODERATOR_ID, MUTE_ROLE_ID, NOW, USER_ID


WARNING_LOG = 777
APPEAL_CHANNEL = 888
PUNISHMENT_LOG = 999


# =============================================================================
# Exemptions
# =============================================================================

class TestExemptions:
    """Messages the engine never moderates."""

    @pytest.mark.asyncio
    async def test_bot_messages_skipped(self, orchestrator, make_message, mock_platform):
        assert await orchestrator.handle_message(make_message("free nitro", is_bot=True), now=NOW) is None
        await orchestrator.drain()
        mock_platform.delete_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_administrators_skipped(self, orchestrator, make_message):
        event = make_message("free nitro", is_administrator=True)
        assert await orchestrator.handle_message(event, now=NOW) is None

    @pytest.mark.asyncio
    async def test_ignored_channel(self, orchestrator, settings_store, make_message):
        await settings_store.update(GUILD_ID, ignore_channels=[CHANNEL_ID])
        assert await orchestrator.handle_message(make_message("free nitro"), now=NOW) is None

    @pytest.mark.asyncio
    async def test_ignored_role(self, orchestrator, settings_store, make_message):
        await settings_store.update(GUILD_ID, ignore_roles=[7])
        event = make_message("free nitro", role_ids=(3, 7))
        assert await orchestrator.handle_message(event, now=NOW) is None


# =============================================================================
# Analysis
# =============================================================================

class TestAnalyzeMessage:
    """Tests for live max-confidence analysis."""

    @pytest.mark.asyncio
    async def test_boost_scam(self, orchestrator, make_message):
        result = orchestrator.analyze_message(make_message("free discord nitro here"))

        assert result.is_violation is True
        assert result.confidence == pytest.approx(0.8)
        assert result.categories == [Category.SPAM]

    @pytest.mark.asyncio
    async def test_crack_executable(self, orchestrator, make_message, crack_attachment):
        result = orchestrator.analyze_message(make_message("check this out", attachments=(crack_attachment,)))

        assert result.is_violation is True
        assert result.confidence == pytest.approx(0.9)
        assert result.categories == [Category.MALICIOUS_FILE]

    @pytest.mark.asyncio
    async def test_explicit_attachment_list_overrides_event(self, orchestrator, make_message, crack_attachment):
        result = orchestrator.analyze_message(make_message("hello", attachments=(crack_attachment,)), attachments=[])
        assert result.violations == []

    @pytest.mark.asyncio
    async def test_clean_message(self, orchestrator, make_message):
        result = orchestrator.analyze_message(make_message("good morning"))
        assert result.is_violation is False
        assert result.violations == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["this game is stupid", "what the hell", "o carro preto"])
    async def test_single_mild_word_is_not_a_violation(self, orchestrator, make_message, text):
        result = orchestrator.analyze_message(make_message(text))
        assert result.is_violation is False

    @pytest.mark.asyncio
    async def test_caps_and_phrases_stay_in_preview(self, orchestrator, make_message):
        text = "CLICK HERE NOW"
        assert orchestrator.preview(text).is_spam is True
        assert orchestrator.analyze_message(make_message(text)).violations == []

    @pytest.mark.asyncio
    async def test_mild_word_is_not_warned(self, orchestrator, warning_store, make_message, mock_platform):
        result = await orchestrator.handle_message(make_message("this game is stupid"), now=NOW)
        await orchestrator.drain()

        assert result.is_violation is False
        assert await warning_store.list(GUILD_ID, USER_ID) == []
        mock_platform.delete_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_categories(self, orchestrator, make_message):
        settings = ModerationSettings(anti_spam=False, phishing_protection=False)
        result = orchestrator.analyze_message(make_message("visit https://discord-nitro.com"), settings=settings)
        assert result.violations == []

    @pytest.mark.asyncio
    async def test_guild_threshold(self, orchestrator, make_message):
        settings = ModerationSettings(toxicity_threshold=95)
        result = orchestrator.analyze_message(make_message("free nitro"), settings=settings)

        assert result.violations
        assert result.is_violation is False

    @pytest.mark.asyncio
    async def test_preview_uses_sum_clamp(self, orchestrator):
        assert orchestrator.preview("CLICK HERE NOW").is_spam is True


# =============================================================================
# Message Pipeline
# =============================================================================

class TestMessagePipeline:
    """Tests for delete, warn and record."""

    @pytest.mark.asyncio
    async def test_boost_scam_deleted_warned_recorded(
        self, orchestrator, make_message, mock_platform, warning_store, statistics,
    ):
        event = make_message("free discord nitro here")

        result = await orchestrator.handle_message(event, now=NOW)
        await orchestrator.drain()

        assert result.is_violation
        mock_platform.delete_message.assert_awaited_once_with(GUILD_ID, CHANNEL_ID, event.message_id)
        warnings = await warning_store.list(GUILD_ID, USER_ID)
        assert len(warnings) == 1
        assert warnings[0].reason.startswith("Automatic moderation: Fake Discord Nitro")
        assert warnings[0].moderator_id is None

        stats = await statistics.get_guild_statistics(GUILD_ID, now=NOW)
        assert stats["total_actions"] == 1
        assert stats["violations_by_type"] == {Category.SPAM: 1}
        assert stats["channel_actions"] == {str(CHANNEL_ID): 1}
        assert metrics.get_counter("moderation.violations.analysis") == 1

    @pytest.mark.asyncio
    async def test_unreadable_settings_use_defaults(self, orchestrator, test_db, make_message):
        test_db.set_moderation_settings(GUILD_ID, {"toxicity_threshold": "70"})

        result = await orchestrator.handle_message(make_message("free discord nitro here"), now=NOW)
        await orchestrator.drain()

        assert result.is_violation is True
        assert metrics.get_failures()["store.settings"] >= 1

    @pytest.mark.asyncio
    async def test_clean_message_spawns_nothing(self, orchestrator, make_message, mock_platform):
        result = await orchestrator.handle_message(make_message("good morning"), now=NOW)

        assert result.is_violation is False
        assert len(orchestrator.tasks) == 0
        mock_platform.send_direct_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_keep_messages_when_deletion_disabled(
        self, orchestrator, settings_store, make_message, mock_platform, warning_store,
    ):
        await settings_store.update(GUILD_ID, delete_messages=False)

        await orchestrator.handle_message(make_message("free nitro"), now=NOW)
        await orchestrator.drain()

        mock_platform.delete_message.assert_not_awaited()
        assert await warning_store.count(GUILD_ID, USER_ID) == 1

    @pytest.mark.asyncio
    async def test_delete_failure_does_not_stop_warning(
        self, orchestrator, make_message, mock_platform, warning_store,
    ):
        mock_platform.delete_message.side_effect = PlatformActionError("delete", "Unknown Message")

        await orchestrator.handle_message(make_message("free nitro"), now=NOW)
        await orchestrator.drain()

        assert await warning_store.count(GUILD_ID, USER_ID) == 1
        assert metrics.get_failures() == {"platform.delete": 1}

    @pytest.mark.asyncio
    async def test_rate_spam_deletes_recent_messages(
        self, orchestrator, settings_store, make_message, mock_platform,
    ):
        await settings_store.update(GUILD_ID, max_messages_per_minute=3)
        earlier = [make_message(f"message {i}") for i in range(3)]
        for i, event in enumerate(earlier):
            assert (await orchestrator.handle_message(event, now=NOW + i)).is_violation is False

        burst = make_message("one more")
        result = await orchestrator.handle_message(burst, now=NOW + 3)
        await orchestrator.drain()

        assert result.violations[0].type == "spam_rate"
        assert result.confidence == 1.0
        mock_platform.delete_message.assert_awaited_once_with(GUILD_ID, CHANNEL_ID, burst.message_id)
        mock_platform.delete_recent_messages.assert_awaited_once_with(
            GUILD_ID, CHANNEL_ID, [e.message_id for e in earlier],
        )

    @pytest.mark.asyncio
    async def test_duplicate_spam(self, orchestrator, settings_store, make_message, mock_platform):
        await settings_store.update(GUILD_ID, max_duplicate_messages=2)

        results = [await orchestrator.handle_message(make_message("same text"), now=NOW + i) for i in range(3)]
        await orchestrator.drain()

        assert results[2].violations[0].type == "spam_duplicate"
        mock_platform.delete_recent_messages.assert_not_awaited()
        assert metrics.get_counter("moderation.violations.spam") == 1


# =============================================================================
# Warnings and Escalation
# =============================================================================

class TestWarn:
    """Tests for manual warnings, notifications and logs."""

    @pytest.mark.asyncio
    async def test_warn_sends_dm_and_log(self, orchestrator, settings_store, mock_platform):
        await settings_store.update(GUILD_ID, warning_log_channel=WARNING_LOG, appeal_channel=APPEAL_CHANNEL)

        entry = await orchestrator.warn(GUILD_ID, USER_ID, "Be nice", MODERATOR_ID, now=NOW, guild_name="Test Guild")

        assert entry.reason == "Be nice"
        user_id, dm = mock_platform.send_direct_message.await_args.args
        assert user_id == USER_ID
        assert dm.field_value("Warnings") == "1/5"
        assert dm.field_value("Appeal") == f"<#{APPEAL_CHANNEL}>"

        guild_id, channel_id, log = mock_platform.send_log_message.await_args.args
        assert (guild_id, channel_id) == (GUILD_ID, WARNING_LOG)
        assert log.title == "⚠️ Warning Issued"
        assert log.field_value("Moderator") == f"<@{MODERATOR_ID}>"
        assert log.footer == f"Warning ID: {entry.id}"

    @pytest.mark.asyncio
    async def test_no_log_channels_configured(self, orchestrator, mock_platform):
        await orchestrator.warn(GUILD_ID, USER_ID, "x", now=NOW)
        mock_platform.send_log_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_kick_logged_to_punishment_channel(
        self, orchestrator, settings_store, warning_store, mock_platform,
    ):
        await settings_store.update(
            GUILD_ID, warning_log_channel=WARNING_LOG, punishment_log_channel=PUNISHMENT_LOG,
        )
        for i in range(3):
            await warning_store.add(GUILD_ID, USER_ID, f"earlier {i}", now=NOW - 100 + i)

        await orchestrator.warn(GUILD_ID, USER_ID, "fourth", now=NOW)

        mock_platform.kick_member.assert_awaited_once()
        calls = [c.args for c in mock_platform.send_log_message.await_args_list]
        assert [c[1] for c in calls] == [PUNISHMENT_LOG, WARNING_LOG]
        assert calls[0][2].title == "⚖️ KICK Applied"
        assert calls[0][2].field_value("Reason") == "Automatic kick after 4 warnings"

    @pytest.mark.asyncio
    async def test_dm_failure_does_not_stop_mute(self, orchestrator, mock_platform, scheduler):
        mock_platform.send_direct_message.side_effect = PlatformActionError("dm", "Cannot send messages to this user")

        for i in range(3):
            assert await orchestrator.warn(GUILD_ID, USER_ID, f"w{i}", now=NOW + i) is not None

        mock_platform.assign_role.assert_awaited_once_with(
            GUILD_ID, USER_ID, MUTE_ROLE_ID, "Automatic mute after 3 warnings",
        )
        assert scheduler.pending(GUILD_ID, USER_ID)
        assert metrics.get_failures() == {"platform.dm": 3}

    @pytest.mark.asyncio
    async def test_concurrent_warnings_escalate_one_band_each(self, orchestrator, settings_store, mock_platform):
        await settings_store.update(
            GUILD_ID,
            auto_mute_after_warnings=1,
            auto_kick_after_warnings=2,
            auto_ban_after_warnings=3,
            max_warnings=3,
        )

        entries = await asyncio.gather(
            orchestrator.warn(GUILD_ID, USER_ID, "first", now=NOW),
            orchestrator.warn(GUILD_ID, USER_ID, "second", now=NOW + 1),
        )

        assert all(entry is not None for entry in entries)
        mock_platform.assign_role.assert_awaited_once()
        mock_platform.kick_member.assert_awaited_once()
        mock_platform.ban_member.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_failure(self, orchestrator, warning_store, mock_platform, monkeypatch):
        def broken(*args):
            raise RuntimeError("database is locked")

        monkeypatch.setattr(warning_store.db, "add_warning", broken)

        assert await orchestrator.warn(GUILD_ID, USER_ID, "x", now=NOW) is None
        mock_platform.send_direct_message.assert_not_awaited()


# =============================================================================
# Raid Pipeline
# =============================================================================

class TestRaidPipeline:
    """Tests for join intake."""

    @pytest.mark.asyncio
    async def test_raid_join_warned_recorded_and_logged(
        self, orchestrator, settings_store, make_join, mock_platform, warning_store, statistics,
    ):
        await settings_store.update(GUILD_ID, raid_join_threshold=3, punishment_log_channel=PUNISHMENT_LOG)

        results = [await orchestrator.handle_member_join(make_join(uid, age_days=1), now=NOW + uid) for uid in range(1, 4)]
        await orchestrator.drain()

        assert results[0] == [] and results[1] == []
        assert results[2][0].type == "raid_detected"
        assert await warning_store.count(GUILD_ID, 3) == 1
        assert await warning_store.count(GUILD_ID, 1) == 0

        stats = await statistics.get_guild_statistics(GUILD_ID, now=NOW)
        assert stats["actions_by_type"] == {"raid_protection": 1}

        guild_id, channel_id, payload = mock_platform.send_log_message.await_args.args
        assert channel_id == PUNISHMENT_LOG
        assert payload.title == "🚨 Raid Detected"
        assert payload.field_value("Joins") == "3"

    @pytest.mark.asyncio
    async def test_raid_protection_disabled(self, orchestrator, settings_store, make_join):
        await settings_store.update(GUILD_ID, raid_protection=False, raid_join_threshold=1)
        assert await orchestrator.handle_member_join(make_join(1, age_days=1), now=NOW) == []


# =============================================================================
# Maintenance
# =============================================================================

class TestMaintenance:
    """Tests for decay and janitor sweeps."""

    @pytest.mark.asyncio
    async def test_decay_all(self, orchestrator, warning_store, settings_store):
        await settings_store.update(42, warning_decay_days=7)
        await warning_store.add(GUILD_ID, USER_ID, "old", now=NOW - 40 * 86400)
        await warning_store.add(GUILD_ID, USER_ID, "new", now=NOW)
        await warning_store.add(42, USER_ID, "week old", now=NOW - 8 * 86400)

        assert await orchestrator.decay_all(now=NOW) == 2
        assert await warning_store.count(GUILD_ID, USER_ID) == 1
        assert await warning_store.count(42, USER_ID) == 0

    @pytest.mark.asyncio
    async def test_decay_all_isolates_guild_failures(self, orchestrator, warning_store, monkeypatch):
        await warning_store.add(GUILD_ID, USER_ID, "old", now=NOW - 40 * 86400)
        await warning_store.add(42, USER_ID, "old", now=NOW - 40 * 86400)
        decay = orchestrator.decay

        async def flaky(guild_id, now=None):
            if guild_id == 42:
                raise RuntimeError("database is locked")
            return await decay(guild_id, now)

        monkeypatch.setattr(orchestrator, "decay", flaky)

        assert await orchestrator.decay_all(now=NOW) == 1
        assert metrics.get_failures() == {"decay": 1}

    @pytest.mark.asyncio
    async def test_janitor_sweep(self, orchestrator, statistics, make_message, make_join):
        await orchestrator.handle_message(make_message("hello"), now=NOW)
        await orchestrator.handle_member_join(make_join(1, age_days=30), now=NOW)
        await statistics.get_guild_statistics(GUILD_ID, now=NOW)

        assert orchestrator.janitor_sweep(NOW + 1) == {"rate": 0, "raid": 0, "stats": 0}
        assert orchestrator.janitor_sweep(NOW + 120) == {"rate": 1, "raid": 1, "stats": 1}

    @pytest.mark.asyncio
    async def test_shutdown_cancels_pending_unmutes(self, orchestrator, scheduler):
        scheduler.schedule(GUILD_ID, USER_ID, MUTE_ROLE_ID, 60)

        await orchestrator.shutdown()

        assert len(scheduler) == 0
