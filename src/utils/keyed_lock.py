"""
Warden - Keyed Locks
====================

One asyncio.Lock per key, so read-modify-write on one guild (or one
guild+user pair) never waits behind an unrelated one.

Usage:
    locks = KeyedLock()

    async with locks.hold(guild_id):
        doc = load(guild_id)
        doc["total"] += 1
        save(guild_id, doc)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable


class KeyedLock:
    """
    Lazily created per-key asyncio locks.

    DESIGN:
        A lock entry is created on first touch and dropped again once no
        coroutine holds or waits on it, so the map does not grow with every
        guild or user ever seen.
    """

    def __init__(self) -> None:
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """Acquire the lock for `key` for the duration of the block."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                del self._locks[key]

    def locked(self, key: Hashable) -> bool:
        """Whether the lock for `key` is currently held."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


__all__ = ["KeyedLock"]
