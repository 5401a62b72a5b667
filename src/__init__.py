"""
Warden - Source Package
=======================

Rule-based moderation and escalation engine for Discord guilds.

Package Structure:
- bot.py: Main Discord bot class and background loops
- core/: Configuration, logging, constants and the SQLite database
- events/: Cogs routing gateway events into the moderation engine
- services/moderation/: Detectors, trackers, warnings, escalation, statistics
- utils/: Async helpers, caches, keyed locks and metrics

Version: v1.0.0
"""
