"""
Warden - Warning Store Tests
============================

Tests for the async warning ledger and decay.
"""

import asyncio

import pytest

from src.core.constants import SECONDS_PER_DAY
from src.utils.metrics import metrics

from tests.conftest import GUILD_ID, MODERATOR_ID, NOW, USER_ID


class TestWarningStore:
    """Tests for add/list/remove/clear."""

    @pytest.mark.asyncio
    async def test_add_and_list(self, warning_store):
        entry = await warning_store.add(GUILD_ID, USER_ID, "spam", MODERATOR_ID, now=NOW)

        assert entry.reason == "spam"
        assert entry.moderator_id == MODERATOR_ID
        assert entry.active is True
        assert await warning_store.list(GUILD_ID, USER_ID) == [entry]

    @pytest.mark.asyncio
    async def test_count(self, warning_store):
        for i in range(3):
            await warning_store.add(GUILD_ID, USER_ID, f"w{i}", now=NOW + i)
        assert await warning_store.count(GUILD_ID, USER_ID) == 3
        assert await warning_store.count(GUILD_ID, 42) == 0

    @pytest.mark.asyncio
    async def test_concurrent_adds_keep_unique_ids(self, warning_store):
        entries = await asyncio.gather(*(
            warning_store.add(GUILD_ID, USER_ID, "burst", now=NOW) for _ in range(5)
        ))

        assert len({e.id for e in entries}) == 5
        assert await warning_store.count(GUILD_ID, USER_ID) == 5

    @pytest.mark.asyncio
    async def test_add_and_count_sees_distinct_counts(self, warning_store):
        results = await asyncio.gather(*(
            warning_store.add_and_count(GUILD_ID, USER_ID, f"burst {i}", now=NOW + i) for i in range(3)
        ))

        assert sorted(count for _, count in results) == [1, 2, 3]
        assert all(entry is not None for entry, _ in results)

    @pytest.mark.asyncio
    async def test_add_and_count_failure(self, warning_store, monkeypatch):
        def broken(*args):
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(warning_store.db, "add_warning", broken)

        assert await warning_store.add_and_count(GUILD_ID, USER_ID, "x", now=NOW) == (None, 0)
        assert metrics.get_failures() == {"store.warnings.add": 1}

    @pytest.mark.asyncio
    async def test_remove(self, warning_store):
        entry = await warning_store.add(GUILD_ID, USER_ID, "x", now=NOW)

        assert await warning_store.remove(GUILD_ID, USER_ID, entry.id) is True
        assert await warning_store.remove(GUILD_ID, USER_ID, entry.id) is False

    @pytest.mark.asyncio
    async def test_clear(self, warning_store):
        for i in range(2):
            await warning_store.add(GUILD_ID, USER_ID, "x", now=NOW + i)

        assert await warning_store.clear(GUILD_ID, USER_ID) == 2
        assert await warning_store.list(GUILD_ID, USER_ID) == []

    @pytest.mark.asyncio
    async def test_counts(self, warning_store):
        await warning_store.add(GUILD_ID, 1, "x", now=NOW)
        await warning_store.add(GUILD_ID, 1, "y", now=NOW + 1)
        await warning_store.add(GUILD_ID, 2, "z", now=NOW)

        summary = await warning_store.counts(GUILD_ID)

        assert summary["total_warnings"] == 3
        assert summary["users_with_warnings"] == 2
        assert summary["top_warned"][0] == {"user_id": 1, "count": 2}

    @pytest.mark.asyncio
    async def test_guild_ids(self, warning_store):
        await warning_store.add(GUILD_ID, USER_ID, "x", now=NOW)
        assert await warning_store.guild_ids() == [GUILD_ID]


class TestDecay:
    """Tests for warning decay."""

    @pytest.mark.asyncio
    async def test_decay_removes_only_expired(self, warning_store):
        await warning_store.add(GUILD_ID, USER_ID, "old", now=NOW - 31 * SECONDS_PER_DAY)
        await warning_store.add(GUILD_ID, USER_ID, "recent", now=NOW - 29 * SECONDS_PER_DAY)

        assert await warning_store.decay(GUILD_ID, 30, now=NOW) == 1
        assert [w.reason for w in await warning_store.list(GUILD_ID, USER_ID)] == ["recent"]

    @pytest.mark.asyncio
    async def test_decay_boundary(self, warning_store):
        """A warning exactly decay_days old is removed."""
        await warning_store.add(GUILD_ID, USER_ID, "edge", now=NOW - 30 * SECONDS_PER_DAY)

        assert await warning_store.decay(GUILD_ID, 30, now=NOW) == 1

    @pytest.mark.asyncio
    async def test_decay_other_guild_untouched(self, warning_store):
        await warning_store.add(42, USER_ID, "old", now=NOW - 90 * SECONDS_PER_DAY)

        assert await warning_store.decay(GUILD_ID, 30, now=NOW) == 0
        assert await warning_store.count(42, USER_ID) == 1


class TestStoreFailures:
    """Store errors are logged, counted and answered with defaults."""

    @pytest.mark.asyncio
    async def test_add_failure_returns_none(self, warning_store, monkeypatch):
        def broken(*args):
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(warning_store.db, "add_warning", broken)

        assert await warning_store.add(GUILD_ID, USER_ID, "x", now=NOW) is None
        assert metrics.get_failures() == {"store.warnings.add": 1}

    @pytest.mark.asyncio
    async def test_list_failure_returns_empty(self, warning_store, monkeypatch):
        def broken(*args):
            raise RuntimeError("database is locked")

        monkeypatch.setattr(warning_store.db, "get_user_warnings", broken)

        assert await warning_store.list(GUILD_ID, USER_ID) == []
        assert await warning_store.count(GUILD_ID, USER_ID) == 0
