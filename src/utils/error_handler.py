"""
Warden - Error Handler
======================

Categorized logging for errors that escape to the top of the process.

Features:
- Error categorization (Discord, Database, Config, Moderation)
- Recovery suggestions per category
- Full traceback logging for critical errors
"""

import sqlite3
import traceback
from typing import Any, Dict, Tuple, Type

import discord

from src.core.config import ConfigValidationError
from src.core.logger import logger
from src.services.moderation.errors import ModerationError


class ErrorHandler:
    """Top-level error reporting with context and recovery hints."""

    ERROR_CATEGORIES: Dict[str, Tuple[Type[BaseException], ...]] = {
        "config": (ConfigValidationError,),
        "discord": (discord.LoginFailure, discord.HTTPException, discord.GatewayNotFound),
        "database": (sqlite3.Error,),
        "moderation": (ModerationError,),
        "network": (ConnectionError, TimeoutError),
    }

    SUGGESTIONS: Dict[str, str] = {
        "config": "Check the .env file and required variables",
        "discord": "Check the bot token and its gateway intents",
        "database": "Check DATA_DIR permissions and the database file",
        "moderation": "Check the guild's moderation settings",
        "network": "Network issue - check connectivity to Discord",
    }

    @classmethod
    def categorize_error(cls, e: BaseException) -> str:
        for category, error_types in cls.ERROR_CATEGORIES.items():
            if isinstance(e, error_types):
                return category
        return "general"

    @classmethod
    def get_recovery_suggestion(cls, category: str) -> str:
        return cls.SUGGESTIONS.get(category, "Unexpected error - check logs for details")

    @classmethod
    def handle(cls, e: BaseException, location: str, critical: bool = False, **context: Any) -> str:
        """
        Log an error with its category, location and extra context.

        Args:
            e: The exception.
            location: Where the error occurred.
            critical: Whether this error stops execution.
            **context: Additional key/value context for the log tree.

        Returns:
            The error category.
        """
        category = cls.categorize_error(e)
        details = [
            ("Location", location),
            ("Category", category.upper()),
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:200]),
            ("Recovery", cls.get_recovery_suggestion(category)),
        ]
        details.extend((key.replace("_", " ").title(), str(value)) for key, value in context.items())

        if critical:
            logger.error("CRITICAL ERROR", details)
            logger.debug("Traceback", [
                ("Trace", "".join(traceback.format_exception(type(e), e, e.__traceback__))[-500:]),
            ])
        else:
            logger.warning("Error Handled", details)
        return category


__all__ = ["ErrorHandler"]
