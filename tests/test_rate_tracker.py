"""
Warden - Rate Window Tracker Tests
==================================

Tests for per-user message rate and duplicate-content windows.
"""

from src.services.moderation import ModerationSettings, RateWindowTracker
from src.services.moderation.rate_tracker import normalize

from tests.conftest import GUILD_ID, NOW, USER_ID


def send(tracker, text, message_id, now, settings=None, user_id=USER_ID, guild_id=GUILD_ID):
    return tracker.evaluate(user_id, guild_id, text, message_id, now, settings)


class TestRateWindow:
    """Tests for the message rate window."""

    def test_flags_once_window_holds_max_messages(self):
        """The message arriving while max messages are in the window is rate spam."""
        tracker = RateWindowTracker()
        settings = ModerationSettings(max_messages_per_minute=5)

        verdicts = [send(tracker, f"message {i}", i, NOW + i, settings) for i in range(6)]

        assert all(not v.is_spam for v in verdicts[:5])
        assert verdicts[5].is_spam is True
        assert verdicts[5].kind == "rate"

    def test_rate_spam_is_not_recorded(self):
        """Messages flagged as rate spam do not count toward the window."""
        tracker = RateWindowTracker()
        settings = ModerationSettings(max_messages_per_minute=3)

        for i in range(3):
            send(tracker, f"m{i}", i, NOW + i, settings)
        for i in range(3, 8):
            assert send(tracker, f"m{i}", i, NOW + i, settings).kind == "rate"

        assert tracker.recent_message_ids(USER_ID, GUILD_ID) == [0, 1, 2]

    def test_window_slides(self):
        """Messages older than the window no longer count."""
        tracker = RateWindowTracker(rate_window=60)
        settings = ModerationSettings(max_messages_per_minute=3)

        for i in range(3):
            send(tracker, f"m{i}", i, NOW, settings)

        assert send(tracker, "later", 10, NOW + 60, settings).is_spam is False

    def test_users_are_independent(self):
        """One user's burst does not affect another user."""
        tracker = RateWindowTracker()
        settings = ModerationSettings(max_messages_per_minute=2)

        send(tracker, "a", 1, NOW, settings)
        send(tracker, "b", 2, NOW, settings)

        assert send(tracker, "c", 3, NOW, settings).kind == "rate"
        assert send(tracker, "c", 4, NOW, settings, user_id=999).is_spam is False

    def test_empty_messages_count_toward_rate(self):
        """Attachment-only messages count toward rate but never duplicates."""
        tracker = RateWindowTracker()
        settings = ModerationSettings(max_messages_per_minute=10, max_duplicate_messages=1)

        verdicts = [send(tracker, "   ", i, NOW, settings) for i in range(10)]
        assert not any(v.is_spam for v in verdicts)
        assert send(tracker, "", 99, NOW, settings).kind == "rate"


class TestDuplicateWindow:
    """Tests for duplicate-content detection."""

    def test_flags_on_max_plus_one(self):
        """The (max+1)th identical message is duplicate spam."""
        tracker = RateWindowTracker()
        settings = ModerationSettings(max_duplicate_messages=3)

        verdicts = [send(tracker, "buy my stuff", i, NOW + i, settings) for i in range(4)]

        assert [v.is_spam for v in verdicts] == [False, False, False, True]
        assert verdicts[3].kind == "duplicate"

    def test_normalization_ignores_case_and_whitespace(self):
        tracker = RateWindowTracker()
        settings = ModerationSettings(max_duplicate_messages=2)

        send(tracker, "Hello World", 1, NOW, settings)
        send(tracker, "  hello world", 2, NOW, settings)
        verdict = send(tracker, "HELLO WORLD  ", 3, NOW, settings)

        assert verdict.kind == "duplicate"

    def test_duplicates_expire(self):
        tracker = RateWindowTracker()
        settings = ModerationSettings(max_duplicate_messages=2, duplicate_time_window=30)

        send(tracker, "same", 1, NOW, settings)
        send(tracker, "same", 2, NOW + 1, settings)

        assert send(tracker, "same", 3, NOW + 40, settings).is_spam is False

    def test_normalize(self):
        assert normalize("  MiXeD Case \n") == "mixed case"


class TestSweep:
    """Tests for the janitor sweep."""

    def test_sweep_drops_expired_users(self):
        tracker = RateWindowTracker(rate_window=60)
        send(tracker, "hi", 1, NOW, user_id=1)
        send(tracker, "hi", 2, NOW + 50, user_id=2)

        removed = tracker.sweep(NOW + 70)

        assert removed == 1
        assert len(tracker) == 1

    def test_sweep_keeps_active_users(self):
        tracker = RateWindowTracker()
        send(tracker, "hi", 1, NOW)

        assert tracker.sweep(NOW + 1) == 0
        assert len(tracker) == 1

    def test_recent_message_ids_limit(self):
        tracker = RateWindowTracker()
        for i in range(8):
            send(tracker, f"m{i}", i, NOW)

        assert tracker.recent_message_ids(USER_ID, GUILD_ID, limit=3) == [5, 6, 7]
        assert tracker.recent_message_ids(USER_ID, 1) == []
