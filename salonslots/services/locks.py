"""
Per-day serialization of booking commits.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Dict

from ..domain.clock import as_date


class DayLockRegistry:
    """
    Hands out one ``asyncio.Lock`` per calendar day.

    Holding the lock for a day makes "read occupying appointments, check
    overlap, insert" atomic with respect to every other booking of that day
    going through the same registry. Different days never contend.

    A day's lock is dropped once nobody holds or waits for it, so the
    registry only keeps days that are being booked right now.
    """

    def __init__(self) -> None:
        self._locks: Dict[date, asyncio.Lock] = {}
        self._users: Dict[date, int] = {}

    def lock_for(self, day: date) -> asyncio.Lock:
        key = as_date(day)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, day: date) -> AsyncIterator[None]:
        key = as_date(day)
        lock = self.lock_for(key)
        # Counts the holder and every waiter.
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                self._locks.pop(key, None)

    def is_locked(self, day: date) -> bool:
        lock = self._locks.get(as_date(day))
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
