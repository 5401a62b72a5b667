#!/usr/bin/env python3
"""
Warden - Discord Moderation Bot Entry Point
===========================================

Rule-based moderation with warnings, graduated escalation and statistics.

Features:
- Spam, phishing, scam link, malicious file, explicit and toxicity detection
- Raid detection on member joins
- Warning decay and automatic mute/kick/ban
- Graceful error handling
"""

import asyncio
import sys

from dotenv import load_dotenv

# DATA_DIR is resolved when the database module is imported
load_dotenv()

from src.bot import WardenBot  # noqa: E402
from src.core.config import get_config, require_token  # noqa: E402
from src.core.logger import logger  # noqa: E402
from src.utils.error_handler import ErrorHandler  # noqa: E402


async def main() -> None:
    """
    Main entry point for the Warden bot.

    Handles the complete bot lifecycle:
    1. Loads and validates configuration
    2. Creates the bot with its moderation engine
    3. Connects to the Discord API
    4. Shuts down gracefully on exit

    Raises:
        SystemExit: If the token is missing or the bot fails to start
    """
    config = get_config()

    try:
        token = require_token(config)
    except Exception as e:
        ErrorHandler.handle(e, location="main.main", critical=True)
        sys.exit(1)

    logger.set_webhook(config.error_webhook_url)

    logger.tree("WARDEN STARTING", [
        ("Data Dir", config.data_dir),
        ("Rate Window", f"{config.rate_window_seconds}s"),
        ("Raid Window", f"{config.raid_window_seconds}s"),
        ("Error Webhook", "Enabled" if config.error_webhook_url else "Disabled"),
    ], "🛡️")

    bot = WardenBot(config)
    try:
        async with bot:
            await bot.start(token)
    except Exception as e:
        ErrorHandler.handle(e, location="main.main", critical=True, token_present=bool(token))
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (Ctrl+C)")
