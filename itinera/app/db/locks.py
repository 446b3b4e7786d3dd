"""Per-itinerary locks serializing read-modify-write mutations."""

import asyncio
import uuid
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class LockRegistry:
    """Hands out one asyncio.Lock per key.

    Locks are held weakly: an entry disappears once no coroutine holds or
    waits on it, so the registry does not grow with the number of
    itineraries ever touched.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _get(self, key: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: uuid.UUID) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self._get(key)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
