"""
Warden - Test Fixtures
======================

Shared fixtures for all tests.
"""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from src.services.moderation import (
    Attachment,
    MemberJoinEvent,
    MessageEvent,
    ModerationOrchestrator,
    ModerationPlatform,
    ModerationSettings,
    RaidTracker,
    RateWindowTracker,
    SettingsStore,
    StatisticsAggregator,
    UnmuteScheduler,
    WarningStore,
)
from src.utils.async_utils import TaskGroupTracker
from src.utils.metrics import metrics


GUILD_ID = 987654321
CHANNEL_ID = 555666777
USER_ID = 123456789
MODERATOR_ID = 111222333
MUTE_ROLE_ID = 4242

# Fixed clock: 2024-03-15 12:00:00 UTC
NOW = 1710504000.0


@pytest.fixture(autouse=True)
def reset_metrics():
    """Every test starts with an empty failure channel."""
    metrics.clear()
    yield
    metrics.clear()


@pytest.fixture
def temp_db_path(tmp_path):
    """Create a temporary database path for testing."""
    return tmp_path / "test_warden.db"


@pytest.fixture
def test_db(temp_db_path, monkeypatch):
    """Create a fresh test database instance."""
    from src.core.database import base
    from src.core.database.manager import DatabaseManager

    # Reset singleton and patch the DB path
    DatabaseManager._instance = None
    monkeypatch.setattr(base, "DB_PATH", temp_db_path)
    monkeypatch.setattr(base, "DATA_DIR", temp_db_path.parent)

    db = DatabaseManager()
    yield db

    db.close()
    DatabaseManager._instance = None


@pytest.fixture
def mock_platform():
    """ModerationPlatform double; every operation succeeds."""
    platform = AsyncMock(spec=ModerationPlatform)
    platform.find_role.return_value = None
    platform.create_mute_role.return_value = MUTE_ROLE_ID
    platform.list_channel_ids.return_value = [1001, 1002, 1003]
    platform.delete_recent_messages.return_value = 0
    return platform


@pytest.fixture
def settings_store(test_db):
    return SettingsStore(test_db)


@pytest.fixture
def warning_store(test_db):
    return WarningStore(test_db)


@pytest.fixture
def statistics(test_db):
    return StatisticsAggregator(test_db)


@pytest_asyncio.fixture
async def scheduler(mock_platform):
    """Unmute scheduler; pending unmutes are cancelled after the test."""
    unmutes = UnmuteScheduler(mock_platform)
    yield unmutes
    await unmutes.shutdown()


@pytest_asyncio.fixture
async def orchestrator(mock_platform, settings_store, warning_store, statistics, scheduler):
    """Orchestrator over a real temp database and a mock platform."""
    orch = ModerationOrchestrator(
        platform=mock_platform,
        settings_store=settings_store,
        warning_store=warning_store,
        statistics=statistics,
        rate_tracker=RateWindowTracker(),
        raid_tracker=RaidTracker(),
        scheduler=scheduler,
        tasks=TaskGroupTracker(),
    )
    yield orch
    await orch.shutdown()


@pytest.fixture
def default_settings():
    return ModerationSettings()


@pytest.fixture
def make_message():
    """Factory for MessageEvents with sensible defaults."""
    counter = iter(range(1, 10_000))

    def _make(content: str = "hello there", **overrides) -> MessageEvent:
        values = dict(
            message_id=next(counter),
            author_id=USER_ID,
            guild_id=GUILD_ID,
            channel_id=CHANNEL_ID,
            content=content,
            author_name="testuser",
            guild_name="Test Guild",
        )
        values.update(overrides)
        return MessageEvent(**values)

    return _make


@pytest.fixture
def crack_attachment():
    return Attachment(name="setup_crack.exe", size=512, url="https://cdn.example.com/setup_crack.exe")


@pytest.fixture
def make_join():
    """Factory for MemberJoinEvents; `age_days` sets the account age."""

    def _make(user_id: int, age_days: float, now: float = NOW) -> MemberJoinEvent:
        return MemberJoinEvent(
            guild_id=GUILD_ID,
            user_id=user_id,
            account_created_at=now - age_days * 86400,
            user_name=f"user{user_id}",
            guild_name="Test Guild",
        )

    return _make


@pytest.fixture
def now():
    return NOW
