"""
Keyed in-process locks.

Payment and invoice mutations read-then-write `paid_amount`, so they must be
serialized per customer; session start/end are serialized per resource.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict


class KeyedLocks:
    """
    One asyncio.Lock per key, created on first use.

    A key is forgotten once the last holder or waiter leaves `hold`.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self.get(key)
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


customer_locks = KeyedLocks()
resource_locks = KeyedLocks()
inventory_locks = KeyedLocks()
