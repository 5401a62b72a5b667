"""
Moderation Errors
=================

Exception hierarchy for the moderation engine.

Only direct callers (commands, settings writes) ever see these. The
automatic pipeline catches platform errors per action and reports them
through the metrics failure channel instead.
"""

from typing import Optional


class ModerationError(Exception):
    """Base class for moderation engine errors."""


class SettingsValidationError(ModerationError):
    """Raised when a settings document has contradictory thresholds."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class PlatformActionError(ModerationError):
    """Raised by a platform adapter when a chat-platform call fails."""

    def __init__(self, action: str, message: str) -> None:
        super().__init__(f"{action}: {message}")
        self.action = action


__all__ = ["ModerationError", "SettingsValidationError", "PlatformActionError"]
