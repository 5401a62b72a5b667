"""
Warden - Services Package
=========================

Service layer of the bot.

DESIGN:
    Services are standalone classes that own one concern. They should:
    - Be async-compatible for non-blocking I/O
    - Handle their own error cases gracefully
    - Reach Discord only through an injected platform adapter

Available Services:
    moderation: Message/join moderation, warnings, escalation, statistics
"""

from .moderation import ModerationOrchestrator


__all__ = [
    "ModerationOrchestrator",
]
