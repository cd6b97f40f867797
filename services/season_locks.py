# services/season_locks.py
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional


class _ReentrantLock:
    """
    asyncio.Lock that the owning task may re-acquire.
    Score submission holds the season lock and then calls seeding/progression,
    which take the same lock again.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._owner: Optional[asyncio.Task] = None
        self._depth = 0

    async def acquire(self) -> None:
        task = asyncio.current_task()
        if task is not None and self._owner is task:
            self._depth += 1
            return
        await self._lock.acquire()
        self._owner = task
        self._depth = 1

    def release(self) -> None:
        if self._depth <= 0:
            raise RuntimeError("Season lock released more times than acquired.")
        self._depth -= 1
        if self._depth == 0:
            self._owner = None
            self._lock.release()

    @property
    def locked(self) -> bool:
        return self._lock.locked()


class SeasonLocks:
    """
    One lock per season id: at most one mutating operation in flight per season.

    Process-local only. Across processes the repositories' compare-and-set
    writes (status transitions, match completion) are the remaining guard.
    """

    def __init__(self) -> None:
        self._locks: dict[int, _ReentrantLock] = {}

    def _get(self, season_id: int) -> _ReentrantLock:
        key = int(season_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = _ReentrantLock()
            self._locks[key] = lock
        return lock

    def is_locked(self, season_id: int) -> bool:
        lock = self._locks.get(int(season_id))
        return bool(lock and lock.locked)

    @asynccontextmanager
    async def hold(self, season_id: int) -> AsyncIterator[None]:
        lock = self._get(season_id)
        await lock.acquire()
        try:
            yield
        finally:
            lock.release()
