"""
txlock/locks/synchronous.py - Reference TransactionLock

Admits up to ``counter`` transactions at once and queues the rest in
submission order. Every read or write of the bookkeeping (current
transaction, pending queue, free slots) happens under an internal Lock that
is never held across a hook call.
"""

from __future__ import annotations
from collections import deque
from functools import partial
from typing import Any, Awaitable, Callable, Deque, Optional, TYPE_CHECKING
import asyncio
import logging

from ..constants import DEFAULT_CAPACITY
from ..errors import TransactionalError
from ..interfaces import TransactionLock
from ..utils import resolve
from .lock import Lock

if TYPE_CHECKING:
    from ..transactions.transaction import Transaction

logger = logging.getLogger("txlock.locks.synchronous")

BeginHook = Callable[[], Awaitable[None]]
EndHook = Callable[[Optional[BaseException]], Awaitable[None]]


class SynchronousLock(TransactionLock):
    """
    Counter based admission control for transactions.

    Usage:
        Transaction.set_lock(SynchronousLock(2, on_begin=open_session, on_end=close_session))

    Args:
        counter: Number of simultaneous transactions allowed
        on_begin: Awaited before each admitted transaction fires
        on_end: Awaited with the release error (if any) after each transaction
    """

    def __init__(
        self,
        counter: int = DEFAULT_CAPACITY,
        on_begin: Optional[BeginHook] = None,
        on_end: Optional[EndHook] = None,
    ):
        if counter < 1:
            raise TransactionalError(f"SynchronousLock needs at least one slot, got {counter}")
        self.current_transaction: Optional["Transaction"] = None
        self._capacity = counter
        self._counter = counter
        self._pending: Deque["Transaction"] = deque()
        self._on_begin = on_begin
        self._on_end = on_end
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def available(self) -> int:
        """Free admission slots."""
        return self._counter

    @property
    def pending(self) -> int:
        """Transactions waiting for a slot."""
        return len(self._pending)

    async def submit(self, transaction: "Transaction") -> Any:
        """Fire ``transaction`` now if a slot is free, otherwise queue it."""
        await self._lock.acquire()

        if self.current_transaction is not None and self.current_transaction.id == transaction.id:
            # chained call of the transaction already holding the slot
            self._lock.release()
            return await transaction.fire()

        if self._counter > 0:
            self._counter -= 1
            self._lock.release()
            return await self._fire_transaction(transaction)

        self._pending.append(transaction)
        completion = transaction.wait()
        self._lock.release()
        logger.debug(f"Queued transaction {transaction.id}. {len(self._pending)} pending")
        return await completion

    async def _fire_transaction(self, transaction: "Transaction") -> Any:
        await self._lock.acquire()
        self.current_transaction = transaction
        self._lock.release()

        if self._on_begin is not None:
            try:
                await resolve(self._on_begin())
            except Exception as e:
                logger.error(f"on_begin failed for transaction {transaction.id}: {e}")
                transaction.abort(e)
                await transaction.release(e)
                raise

        logger.debug(f"Starting transaction {transaction.id}. {len(self._pending)} remaining...")
        return await transaction.fire()

    async def release(self, err: Optional[BaseException] = None) -> None:
        """Free the current slot and start the oldest pending transaction."""
        await self._lock.acquire()
        if self.current_transaction is None:
            logger.warning("Trying to release an unexisting transaction. should never happen...")
        else:
            logger.debug(f"Releasing transaction {self.current_transaction.describe(True, True)}")
        self.current_transaction = None
        self._lock.release()

        try:
            if self._on_end is not None:
                await resolve(self._on_end(err))
        except Exception as e:
            logger.error(f"on_end failed: {e}")
        finally:
            await self._lock.acquire()
            if self._pending:
                transaction = self._pending.popleft()
                logger.debug(f"Releasing transaction lock on transaction {transaction.id}")
                asyncio.get_running_loop().call_soon(self._dispatch, transaction)
            else:
                self._counter += 1
            self._lock.release()

    def _dispatch(self, transaction: "Transaction") -> None:
        task = asyncio.ensure_future(self._fire_transaction(transaction))
        task.add_done_callback(partial(self._log_failure, transaction))

    @staticmethod
    def _log_failure(transaction: "Transaction", task: "asyncio.Future") -> None:
        # the queued caller observes the outcome through transaction.wait()
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            logger.error(f"Queued transaction {transaction.id} failed: {err!r}")
