"""In-process mutexes keyed by an identifier.

Used to serialise the availability check and interval claim per unit, and
callback application per payment. Locks for different keys never block each
other, and a key's lock is dropped once nobody holds or waits on it.
"""

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class KeyedLock:
    """A family of ``asyncio.Lock`` objects, one per key, created on demand."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


unit_locks = KeyedLock("unit")
payment_locks = KeyedLock("payment")
