"""
Warden - Configuration Module
=============================

Centralized configuration management with environment variable validation.

DESIGN:
    This module provides a single source of truth for process-wide
    configuration, loaded from environment variables at startup. Per-community
    moderation settings live in the database (see ModerationSettings); only
    engine-wide windows and intervals are configured here.

    Key patterns:
    - Singleton pattern via get_config() ensures one Config instance
    - Validation happens once at load time, not on every access
    - Out-of-range values are clamped with a logged warning
"""

import os
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo


# =============================================================================
# Timezone Configuration
# =============================================================================

NY_TZ = ZoneInfo("America/New_York")
"""Eastern timezone used for log timestamps and embed timestamps."""


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Bot configuration loaded from environment variables.

    Attributes:
        discord_token: Discord bot authentication token (bot entry point only).
        error_webhook_url: Discord webhook receiving error trees.
        data_dir: Directory holding the SQLite database.
        rate_window_seconds: Sliding window for per-user message rate.
        raid_window_seconds: Sliding window for per-community joins.
        raid_new_account_days: Accounts younger than this count as new.
        stats_cache_ttl: Seconds a computed statistics view stays cached.
        janitor_interval: Seconds between tracker janitor sweeps.
        decay_sweep_interval: Seconds between warning decay sweeps.
    """

    # -------------------------------------------------------------------------
    # Discord
    # -------------------------------------------------------------------------

    discord_token: Optional[str] = None

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    error_webhook_url: Optional[str] = None

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    data_dir: str = "data"

    # -------------------------------------------------------------------------
    # Engine Windows (seconds)
    # -------------------------------------------------------------------------

    rate_window_seconds: int = 60
    raid_window_seconds: int = 60
    raid_new_account_days: int = 7

    # -------------------------------------------------------------------------
    # Scheduler Intervals (seconds)
    # -------------------------------------------------------------------------

    stats_cache_ttl: int = 60
    janitor_interval: int = 300
    decay_sweep_interval: int = 3600


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Color palette for log and DM payloads."""

    GREEN = 0x22C55E
    GOLD = 0xF59E0B
    RED = 0xEF4444
    PURPLE = 0x8B5CF6
    BLUE = 0x3B82F6
    ORANGE = 0xFFA500

    # Semantic aliases
    WARNING = GOLD
    BAN = RED
    KICK = GOLD
    MUTE = PURPLE
    INFO = BLUE
    DM = ORANGE


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


def _parse_int_with_default(
    value: Optional[str],
    default: int,
    name: str,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """
    Parse optional integer with default and range validation.

    Args:
        value: String value from environment variable.
        default: Default value if not set or invalid.
        name: Variable name for warning messages.
        min_val: Minimum allowed value (inclusive).
        max_val: Maximum allowed value (inclusive).

    Returns:
        Parsed integer within valid range, or default.
    """
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        from src.core.logger import logger
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if min_val is not None and parsed < min_val:
        from src.core.logger import logger
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        from src.core.logger import logger
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    """
    Validate URL format for webhooks.

    Returns:
        URL if valid, None if invalid or empty.
    """
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from src.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Returns:
        Validated Config object with all settings.
    """
    return Config(
        discord_token=os.getenv("DISCORD_TOKEN") or None,
        error_webhook_url=_validate_url(os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
        data_dir=os.getenv("DATA_DIR", "data"),
        rate_window_seconds=_parse_int_with_default(
            os.getenv("RATE_WINDOW_SECONDS"), 60, "RATE_WINDOW_SECONDS", min_val=1, max_val=3600
        ),
        raid_window_seconds=_parse_int_with_default(
            os.getenv("RAID_WINDOW_SECONDS"), 60, "RAID_WINDOW_SECONDS", min_val=1, max_val=3600
        ),
        raid_new_account_days=_parse_int_with_default(
            os.getenv("RAID_NEW_ACCOUNT_DAYS"), 7, "RAID_NEW_ACCOUNT_DAYS", min_val=0, max_val=365
        ),
        stats_cache_ttl=_parse_int_with_default(
            os.getenv("STATS_CACHE_TTL"), 60, "STATS_CACHE_TTL", min_val=0, max_val=3600
        ),
        janitor_interval=_parse_int_with_default(
            os.getenv("JANITOR_INTERVAL"), 300, "JANITOR_INTERVAL", min_val=10, max_val=86400
        ),
        decay_sweep_interval=_parse_int_with_default(
            os.getenv("DECAY_SWEEP_INTERVAL"), 3600, "DECAY_SWEEP_INTERVAL", min_val=60, max_val=604800
        ),
    )


_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global Config instance, loading it on first access.

    Returns:
        The singleton Config.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def require_token(config: Config) -> str:
    """
    Return the Discord token or raise if it is missing.

    Raises:
        ConfigValidationError: If DISCORD_TOKEN is not set.
    """
    if not config.discord_token:
        raise ConfigValidationError("Missing required environment variables: DISCORD_TOKEN")
    return config.discord_token


__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "NY_TZ",
    "get_config",
    "load_config",
    "require_token",
]
