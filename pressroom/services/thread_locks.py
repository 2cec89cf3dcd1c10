from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ThreadLockRegistry:
    """One asyncio.Lock per conversation thread, dropped once nobody waits on it."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, thread_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(thread_id, asyncio.Lock())
        self._waiters[thread_id] = self._waiters.get(thread_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[thread_id] -= 1
            if self._waiters[thread_id] == 0:
                del self._waiters[thread_id]
                self._locks.pop(thread_id, None)

    def active_threads(self) -> list[str]:
        return list(self._locks)
