"""
txlock/locks/multi_lock.py - Named lock registry

One Lock per name, created on first use. Operations under different names
run independently; operations under the same name are serialized in
submission order.
"""

from __future__ import annotations
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict
import logging

from ..errors import LockError
from .lock import Lock

logger = logging.getLogger("txlock.locks.multi_lock")


class MultiLock(Lock):
    """
    Registry of independent FIFO locks keyed by name.

    Usage:
        locks = MultiLock()
        await locks.execute(write_user, "users", user)
        await locks.execute(write_order, "orders", order)  # runs in parallel
    """

    def __init__(self):
        super().__init__()
        self._locks: Dict[str, Lock] = {}
        # guards lazy creation so concurrent first acquires share one Lock
        self._guard = Lock()

    def __contains__(self, name: str) -> bool:
        return name in self._locks

    async def lock_for(self, name: str) -> Lock:
        """Return the lock for ``name``, creating it if needed."""
        await self._guard.acquire()
        try:
            if name not in self._locks:
                logger.debug(f"Creating lock '{name}'")
                self._locks[name] = Lock()
            return self._locks[name]
        finally:
            self._guard.release()

    async def execute(self, func: Callable[..., Any], name: str, *args: Any) -> Any:
        """Run ``func(*args)`` holding the lock for ``name``."""
        lock = await self.lock_for(name)
        return await lock.execute(func, *args)

    async def acquire(self, name: str) -> None:
        """Wait for exclusive access to ``name``."""
        lock = await self.lock_for(name)
        await lock.acquire()

    def release(self, name: str) -> None:
        """
        Release the lock for ``name``.

        Raises:
            LockError: If no lock was ever created for ``name``
        """
        if name not in self._locks:
            raise LockError("Trying to release a non existing lock. should be impossible")
        self._locks[name].release()

    @asynccontextmanager
    async def exclusive_access(self, name: str) -> AsyncIterator["MultiLock"]:
        """
        Context manager holding the lock for ``name``.

        Usage:
            async with locks.exclusive_access("users"):
                ...
        """
        await self.acquire(name)
        try:
            yield self
        finally:
            self.release(name)
