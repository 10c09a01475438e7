"""
txlock/locks/lock.py - FIFO mutual exclusion for asyncio code

A minimal exclusive lock. Waiters are granted access strictly in arrival
order; a release never resumes the next waiter inline but schedules the
hand-off on the next loop iteration.
"""

from __future__ import annotations
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Union
import asyncio
import logging

from ..utils import resolve

logger = logging.getLogger("txlock.locks.lock")


class Lock:
    """
    Exclusive lock with a FIFO wait queue.

    Usage:
        lock = Lock()
        result = await lock.execute(critical_operation, arg)

        # or
        async with lock:
            ...
    """

    def __init__(self):
        self._queue: Deque[asyncio.Future] = deque()
        self._locked = False

    @property
    def locked(self) -> bool:
        """Check if the lock is currently held."""
        return self._locked

    @property
    def waiting(self) -> int:
        """Number of callers queued for the lock."""
        return len(self._queue)

    async def execute(self, func: Callable[..., Union[Any, Awaitable[Any]]], *args: Any) -> Any:
        """
        Run ``func(*args)`` with exclusive access.

        The lock is released on every exit path before the result or the
        error reaches the caller.
        """
        await self.acquire()
        try:
            return await resolve(func(*args))
        finally:
            self.release()

    async def acquire(self) -> None:
        """Wait until exclusive access is granted."""
        if not self._locked:
            self._locked = True
            return

        waiter = asyncio.get_running_loop().create_future()
        self._queue.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # granted right before the cancellation landed
                self.release()
            else:
                try:
                    self._queue.remove(waiter)
                except ValueError:
                    pass
            raise

    def release(self) -> None:
        """Hand the lock to the oldest waiter, or mark it free."""
        if self._queue:
            waiter = self._queue.popleft()
            waiter.get_loop().call_soon(self._grant, waiter)
        else:
            self._locked = False

    def _grant(self, waiter: asyncio.Future) -> None:
        if waiter.done():
            # waiter was cancelled while the hand-off was pending
            self.release()
            return
        waiter.set_result(None)

    async def __aenter__(self) -> "Lock":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
