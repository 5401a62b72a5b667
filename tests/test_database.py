"""
Warden - Database Tests
=======================

Tests for the database layer to ensure data integrity.
"""

import pytest

from tests.conftest import GUILD_ID, MODERATOR_ID, NOW, USER_ID


class TestWarnings:
    """Tests for warning ledger operations."""

    def test_add_warning(self, test_db):
        """Test adding a warning returns the stored record."""
        record = test_db.add_warning(GUILD_ID, USER_ID, "spam", MODERATOR_ID, NOW)

        assert record["id"] == str(int(NOW * 1000))
        assert record["moderator_id"] == MODERATOR_ID
        assert record["timestamp"] == NOW
        assert record["active"] is True

    def test_same_millisecond_ids_are_bumped(self, test_db):
        """Test warnings created in the same millisecond get distinct ids."""
        ids = [test_db.add_warning(GUILD_ID, USER_ID, "x", None, NOW)["id"] for _ in range(3)]

        base_id = int(NOW * 1000)
        assert ids == [str(base_id), str(base_id + 1), str(base_id + 2)]

    def test_ids_are_per_user(self, test_db):
        """Test two users can hold the same millisecond id."""
        first = test_db.add_warning(GUILD_ID, 1, "x", None, NOW)
        second = test_db.add_warning(GUILD_ID, 2, "x", None, NOW)
        assert first["id"] == second["id"]

    def test_get_user_warnings_oldest_first(self, test_db):
        """Test warnings are returned in creation order."""
        test_db.add_warning(GUILD_ID, USER_ID, "second", None, NOW + 10)
        test_db.add_warning(GUILD_ID, USER_ID, "first", None, NOW)

        reasons = [w["reason"] for w in test_db.get_user_warnings(GUILD_ID, USER_ID)]
        assert reasons == ["first", "second"]

    def test_warnings_are_per_guild(self, test_db):
        """Test warnings in one guild do not show up in another."""
        test_db.add_warning(GUILD_ID, USER_ID, "x", None, NOW)
        assert test_db.get_user_warnings(1, USER_ID) == []

    def test_remove_warning(self, test_db):
        """Test removing a single warning."""
        record = test_db.add_warning(GUILD_ID, USER_ID, "x", None, NOW)

        assert test_db.remove_warning(GUILD_ID, USER_ID, record["id"]) is True
        assert test_db.remove_warning(GUILD_ID, USER_ID, record["id"]) is False

    def test_clear_warnings(self, test_db):
        """Test clearing every warning for a user."""
        for i in range(3):
            test_db.add_warning(GUILD_ID, USER_ID, "x", None, NOW + i)
        test_db.add_warning(GUILD_ID, 999, "x", None, NOW)

        assert test_db.clear_warnings(GUILD_ID, USER_ID) == 3
        assert len(test_db.get_user_warnings(GUILD_ID, 999)) == 1

    def test_delete_expired_includes_cutoff(self, test_db):
        """Test a warning exactly at the cutoff is purged."""
        test_db.add_warning(GUILD_ID, USER_ID, "old", None, NOW - 100)
        test_db.add_warning(GUILD_ID, USER_ID, "edge", None, NOW - 50)
        test_db.add_warning(GUILD_ID, USER_ID, "new", None, NOW)

        assert test_db.delete_expired_warnings(GUILD_ID, NOW - 50) == 2
        reasons = [w["reason"] for w in test_db.get_user_warnings(GUILD_ID, USER_ID)]
        assert reasons == ["new"]

    def test_guild_warning_summary(self, test_db):
        """Test totals and top warned users."""
        for i in range(3):
            test_db.add_warning(GUILD_ID, 1, "x", None, NOW + i)
        test_db.add_warning(GUILD_ID, 2, "x", None, NOW)

        summary = test_db.get_guild_warning_summary(GUILD_ID, limit=1)

        assert summary["total_warnings"] == 4
        assert summary["users_with_warnings"] == 2
        assert summary["top_warned"] == [{"user_id": 1, "count": 3}]

    def test_warning_guild_ids(self, test_db):
        """Test listing guilds with warnings."""
        test_db.add_warning(GUILD_ID, USER_ID, "x", None, NOW)
        test_db.add_warning(42, USER_ID, "x", None, NOW)

        assert sorted(test_db.get_warning_guild_ids()) == sorted([GUILD_ID, 42])


class TestModerationSettings:
    """Tests for settings documents."""

    def test_missing_settings(self, test_db):
        """Test a guild without a row returns None."""
        assert test_db.get_moderation_settings(GUILD_ID) is None

    def test_set_and_get_settings(self, test_db):
        """Test the document round-trips."""
        test_db.set_moderation_settings(GUILD_ID, {"max_warnings": 7, "ignore_roles": [1, 2]})
        assert test_db.get_moderation_settings(GUILD_ID) == {"max_warnings": 7, "ignore_roles": [1, 2]}

    def test_set_replaces_document(self, test_db):
        """Test a second write replaces the first."""
        test_db.set_moderation_settings(GUILD_ID, {"a": 1})
        test_db.set_moderation_settings(GUILD_ID, {"b": 2})
        assert test_db.get_moderation_settings(GUILD_ID) == {"b": 2}

    def test_corrupted_document(self, test_db):
        """Test corrupted JSON reads as None."""
        test_db.execute(
            "INSERT INTO moderation_settings (guild_id, data, updated_at) VALUES (?, ?, ?)",
            (GUILD_ID, "{not json", NOW),
        )
        assert test_db.get_moderation_settings(GUILD_ID) is None


class TestModerationStats:
    """Tests for statistics documents."""

    def test_missing_stats(self, test_db):
        """Test a guild without a row returns None."""
        assert test_db.get_moderation_stats(GUILD_ID) is None

    def test_save_and_get_stats(self, test_db):
        """Test the rollup document round-trips."""
        doc = {"total_actions": 3, "actions_by_type": {"spam": 3}}
        test_db.save_moderation_stats(GUILD_ID, doc)

        assert test_db.get_moderation_stats(GUILD_ID) == doc
        assert test_db.get_stats_guild_ids() == [GUILD_ID]


class TestTransactions:
    """Tests for transaction support."""

    def test_rollback_on_error(self, test_db):
        """Test a failed transaction leaves no rows behind."""
        with pytest.raises(RuntimeError):
            with test_db.transaction() as tx:
                tx.execute(
                    "INSERT INTO warnings (guild_id, user_id, id, reason, created_at) VALUES (?, ?, ?, ?, ?)",
                    (GUILD_ID, USER_ID, "1", "x", NOW),
                )
                raise RuntimeError("abort")

        assert test_db.get_user_warnings(GUILD_ID, USER_ID) == []
