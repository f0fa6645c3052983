from __future__ import annotations

import asyncio
from collections import defaultdict


class GuildLockManager:
    """One lock per guild so join attribution never interleaves snapshot reads and writes."""

    def __init__(self) -> None:
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    def get(self, guild_id: int) -> asyncio.Lock:
        return self._locks[guild_id]

    def discard(self, guild_id: int) -> None:
        lock = self._locks.get(guild_id)
        if lock is not None and not lock.locked():
            del self._locks[guild_id]
