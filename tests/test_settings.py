"""
Warden - Settings Tests
=======================

Tests for settings validation, document loading and the settings store.
"""

import asyncio

import pytest

from src.services.moderation import ModerationSettings, SettingsValidationError
from src.services.moderation.constants import Category
from src.utils.metrics import metrics

from tests.conftest import GUILD_ID


class TestValidation:
    """Tests for threshold ordering and ranges."""

    def test_defaults_are_valid(self):
        ModerationSettings().validate_thresholds()

    def test_equal_thresholds_allowed(self):
        ModerationSettings(
            auto_mute_after_warnings=3,
            auto_kick_after_warnings=3,
            auto_ban_after_warnings=3,
            max_warnings=3,
        ).validate_thresholds()

    def test_mute_above_kick_rejected(self):
        settings = ModerationSettings(auto_mute_after_warnings=5, auto_kick_after_warnings=4)
        with pytest.raises(SettingsValidationError) as exc_info:
            settings.validate_thresholds()
        assert exc_info.value.field == "auto_kick_after_warnings"

    def test_ban_above_max_rejected(self):
        settings = ModerationSettings(auto_ban_after_warnings=6, max_warnings=5)
        with pytest.raises(SettingsValidationError) as exc_info:
            settings.validate_thresholds()
        assert exc_info.value.field == "max_warnings"

    @pytest.mark.parametrize("field,value", [
        ("toxicity_threshold", 101),
        ("toxicity_threshold", -1),
        ("max_messages_per_minute", 0),
        ("raid_join_threshold", 0),
        ("mute_duration", -5),
    ])
    def test_out_of_range(self, field, value):
        settings = ModerationSettings(**{field: value})
        with pytest.raises(SettingsValidationError) as exc_info:
            settings.validate_thresholds()
        assert exc_info.value.field == field


class TestFromDict:
    """Tests for loading stored documents."""

    def test_empty_document_gives_defaults(self):
        assert ModerationSettings.from_dict(None) == ModerationSettings()
        assert ModerationSettings.from_dict({}) == ModerationSettings()

    def test_unknown_keys_ignored(self):
        settings = ModerationSettings.from_dict({"max_warnings": 8, "legacy_flag": True})
        assert settings.max_warnings == 8

    def test_contradictory_document_is_honored(self):
        settings = ModerationSettings.from_dict({
            "auto_mute_after_warnings": 5,
            "auto_kick_after_warnings": 2,
        })
        assert settings.auto_mute_after_warnings == 5
        assert settings.auto_kick_after_warnings == 2

    def test_is_enabled(self):
        settings = ModerationSettings(phishing_protection=False)
        assert settings.is_enabled(Category.PHISHING) is False
        assert settings.is_enabled(Category.SCAM) is True


class TestSettingsStore:
    """Tests for the async settings store."""

    @pytest.mark.asyncio
    async def test_defaults_when_absent(self, settings_store):
        assert await settings_store.get(GUILD_ID) == ModerationSettings()

    @pytest.mark.asyncio
    async def test_set_persists(self, settings_store, test_db):
        settings = ModerationSettings(max_warnings=8, ignore_channels=[1, 2])

        assert await settings_store.set(GUILD_ID, settings) is True

        settings_store.invalidate()
        loaded = await settings_store.get(GUILD_ID)
        assert loaded.max_warnings == 8
        assert loaded.ignore_channels == [1, 2]
        assert test_db.get_moderation_settings(GUILD_ID)["max_warnings"] == 8

    @pytest.mark.asyncio
    async def test_set_rejects_contradictions(self, settings_store, test_db):
        bad = ModerationSettings(auto_mute_after_warnings=4, auto_kick_after_warnings=3)

        with pytest.raises(SettingsValidationError):
            await settings_store.set(GUILD_ID, bad)
        assert test_db.get_moderation_settings(GUILD_ID) is None

    @pytest.mark.asyncio
    async def test_update(self, settings_store):
        updated = await settings_store.update(GUILD_ID, toxicity_threshold=85)

        assert updated.toxicity_threshold == 85
        assert (await settings_store.get(GUILD_ID)).toxicity_threshold == 85

    @pytest.mark.asyncio
    async def test_update_unknown_field(self, settings_store):
        with pytest.raises(SettingsValidationError) as exc_info:
            await settings_store.update(GUILD_ID, not_a_setting=1)
        assert exc_info.value.field == "not_a_setting"

    @pytest.mark.asyncio
    async def test_set_mute_role(self, settings_store, test_db):
        await settings_store.set_mute_role(GUILD_ID, 4242)

        assert (await settings_store.get(GUILD_ID)).mute_role_id == 4242
        assert test_db.get_moderation_settings(GUILD_ID)["mute_role_id"] == 4242

    @pytest.mark.asyncio
    async def test_load_failure_falls_back_to_defaults(self, settings_store, monkeypatch):
        def broken(guild_id):
            raise RuntimeError("database is locked")

        monkeypatch.setattr(settings_store.db, "get_moderation_settings", broken)

        assert await settings_store.get(GUILD_ID) == ModerationSettings()
        assert metrics.get_failures() == {"store.settings": 1}

    @pytest.mark.asyncio
    async def test_unreadable_document_falls_back_to_defaults(self, settings_store, test_db):
        test_db.set_moderation_settings(GUILD_ID, {"toxicity_threshold": "70"})

        assert await settings_store.get(GUILD_ID) == ModerationSettings()
        assert metrics.get_failures() == {"store.settings": 1}

    @pytest.mark.asyncio
    async def test_concurrent_update_and_mute_role_both_kept(self, settings_store, test_db):
        await asyncio.gather(
            settings_store.update(GUILD_ID, toxicity_threshold=85),
            settings_store.set_mute_role(GUILD_ID, 4242),
        )

        stored = test_db.get_moderation_settings(GUILD_ID)
        assert stored["toxicity_threshold"] == 85
        assert stored["mute_role_id"] == 4242
