"""
txlock/transactions/transaction.py - Transaction lifecycle and propagation

A Transaction is one admitted unit of work. It is submitted to the
process-wide TransactionLock, fired when admitted, and released exactly
once. Transactional calls made while it runs are bound into it instead of
being submitted again.
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Union
import asyncio
import logging
import uuid
import weakref

from ..config import get_config
from ..errors import TransactionalError, TransactionTimeoutError
from ..interfaces import TransactionLock
from ..metadata import Metadata
from ..utils import get_object_name, resolve
from .binding import TransactionProxy, is_proxy, unwrap

logger = logging.getLogger("txlock.transactions")

Action = Callable[[], Union[Any, Awaitable[Any]]]


def _trace(message: str) -> None:
    """Transaction trace lines, only emitted with the debug toggle on."""
    if get_config().transaction.debug:
        logger.debug(message)


class Transaction:
    """
    One serialized unit of work.

    Usage:
        transaction = Transaction("UserService", "create_user", action)
        result = await Transaction.submit(transaction)

        # or let the decorator build and submit it
        class UserService:
            @transactional()
            async def create_user(self, data):
                ...

    Binding another transaction into this one replaces this one's action
    with the other's and merges its log: firing this transaction again runs
    the chained call in place, inside the slot it already holds.
    """

    _lock: Optional[TransactionLock] = None
    _contexts: "weakref.WeakKeyDictionary[TransactionProxy, Transaction]" = weakref.WeakKeyDictionary()

    def __init__(
        self,
        source: str,
        method: Optional[str] = None,
        action: Optional[Action] = None,
        metadata: Optional[List[Any]] = None,
    ):
        self.id: str = str(uuid.uuid4())[:8]
        self.source = source
        self.method = method
        self.action = action
        self.logs: List[str] = [" | ".join([self.id, source or "", method or ""])]
        self.released = False

        self._metadata = list(metadata) if metadata else None
        self._carrier: Optional[Transaction] = None
        self._initial_fire_dispatched = False
        self._outcome: Optional[Tuple[bool, Any]] = None
        self._completion: Optional[asyncio.Future] = None

    # === LOCK CONFIGURATION ===

    @classmethod
    def set_lock(cls, lock: Optional[TransactionLock]) -> None:
        """Install the process-wide lock (None restores the lazy default)."""
        Transaction._lock = lock

    @classmethod
    def get_lock(cls) -> TransactionLock:
        """Process-wide lock, a SynchronousLock unless one was set."""
        if Transaction._lock is None:
            from ..locks.synchronous import SynchronousLock

            Transaction._lock = SynchronousLock(get_config().transaction.capacity)
        return Transaction._lock

    @classmethod
    async def submit(cls, transaction: "Transaction") -> Any:
        """Hand a transaction to the process-wide lock and wait for its result."""
        return await cls.get_lock().submit(transaction)

    @classmethod
    async def release_lock(cls, err: Optional[BaseException] = None) -> None:
        """Release the process-wide lock's current slot."""
        await cls.get_lock().release(err)

    # === ENTRY POINTS ===

    @classmethod
    async def push(cls, issuer: Any, method: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run ``method(issuer, *args, **kwargs)`` as a new transaction.

        Args:
            issuer: Object passed (transaction-bound) as the method's first
                argument, or a plain string naming the origin
            method: Function holding the transaction logic
        """
        issuer_name = get_object_name(issuer)
        method_name = get_object_name(method)

        transaction = cls(issuer_name, method_name)

        async def invoke() -> Any:
            _trace(f"[{transaction.id}] Executing transaction method {method_name}")
            result = await resolve(method(transaction.bind_to_transaction(issuer), *args, **kwargs))
            _trace(f"[{transaction.id}] Transaction method {method_name} executed successfully")
            return result

        transaction.action = releasing(transaction, invoke)
        logger.debug(f"Pushing transaction {transaction.id} for method {method_name} on issuer {issuer_name}")
        return await cls.submit(transaction)

    @classmethod
    async def run(
        cls,
        runnable: Callable[[Any], Any],
        context: Any = None,
        metadata: Optional[List[Any]] = None,
    ) -> Any:
        """
        Run ``runnable`` as a new transaction.

        ``runnable`` receives ``context`` bound to the transaction, or the
        transaction itself when no context is given.
        """
        if not callable(runnable):
            raise TransactionalError("Transaction.run requires a callable")

        source = get_object_name(context) if context is not None else get_object_name(runnable)
        transaction = cls(source, get_object_name(runnable), metadata=metadata)

        async def invoke() -> Any:
            bound = transaction.bind_to_transaction(context) if context is not None else transaction
            return await resolve(runnable(bound))

        transaction.action = releasing(transaction, invoke)
        return await cls.submit(transaction)

    @classmethod
    def context_transaction(cls, context: Any) -> Optional["Transaction"]:
        """The transaction a bound object belongs to, if ``context`` is one."""
        if context is None or not is_proxy(context):
            return None
        return cls._contexts.get(context)

    # === LIFECYCLE ===

    async def release(self, err: Optional[BaseException] = None) -> None:
        """Release the lock for this transaction; later calls are no-ops."""
        if self._carrier is not None:
            await self._carrier.release(err)
            return
        if self.released:
            return
        self.released = True
        await Transaction.release_lock(err)

    def get_metadata(self) -> Optional[List[Any]]:
        """Copy of the metadata given at construction."""
        return list(self._metadata) if self._metadata else None

    def bind_transaction(self, next_transaction: "Transaction") -> None:
        """
        Chain ``next_transaction`` into this one.

        Its log is merged into this one's and its action becomes this one's
        action. Objects it binds afterwards belong to this transaction.
        """
        if self._carrier is not None:
            self._carrier.bind_transaction(next_transaction)
            return
        _trace(f"Binding the {next_transaction} to {self}")
        self.logs.extend(next_transaction.logs)
        next_transaction._carrier = self
        self.action = next_transaction.action

    def bind_to_transaction(self, obj: Any) -> Any:
        """
        Transaction-aware view of ``obj``.

        Returns ``obj`` unchanged when its class has no transactional methods.
        """
        if self._carrier is not None:
            return self._carrier.bind_to_transaction(obj)

        target = unwrap(obj)
        methods = Metadata.transactionals(type(target))
        if not methods:
            return obj
        properties = Metadata.transactional_properties(target)

        _trace(
            f"Binding object {get_object_name(target)} to transaction {self.id}: "
            f"methods {', '.join(methods)}; properties {', '.join(properties)}"
        )
        proxy = TransactionProxy(target, self, frozenset(methods), frozenset(properties))
        Transaction._contexts[proxy] = self
        return proxy

    def fire(self) -> "asyncio.Task":
        """
        Invoke the current action now and track its outcome.

        Must be called from a running event loop. A synchronous raise from
        the action fails the returned task instead of escaping. Only the
        first fire's outcome settles the future returned by ``wait()``.

        Raises:
            TransactionalError: If the transaction has no action
        """
        if self.action is None:
            raise TransactionalError(f"Missing the method for transaction {self.id}")

        loop = asyncio.get_running_loop()
        try:
            outcome = self.action()
        except Exception as e:
            outcome = loop.create_future()
            outcome.set_exception(e)
        execution = asyncio.ensure_future(self._execute(outcome))
        if not self._initial_fire_dispatched:
            self._initial_fire_dispatched = True
            execution.add_done_callback(self._settle)
        return execution

    def wait(self) -> "asyncio.Future":
        """Future settled with the outcome of the first fire."""
        if self._completion is None:
            self._completion = asyncio.get_running_loop().create_future()
            if self._outcome is not None:
                self._apply_outcome()
        return self._completion

    def abort(self, err: BaseException) -> None:
        """Fail the transaction before it ever fires."""
        if self._initial_fire_dispatched:
            return
        self._initial_fire_dispatched = True
        self._outcome = (False, err)
        self._apply_outcome()

    async def _execute(self, outcome: Any) -> Any:
        timeout_ms = get_config().transaction.timeout_ms
        if timeout_ms <= 0:
            return await resolve(outcome)

        task = asyncio.ensure_future(resolve(outcome))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task in done:
            return task.result()

        error = TransactionTimeoutError(
            f"Transaction {self} exceeded timeout of {timeout_ms}ms",
            transaction_id=self.id,
            timeout_ms=timeout_ms,
        )
        logger.warning(error.message)
        # the action keeps running; nobody waits for it any more
        task.add_done_callback(_discard)
        try:
            await self.release(error)
        except Exception as release_error:
            logger.error(f"Failed to release timed out transaction {self.id}: {release_error!r}")
        raise error

    def _settle(self, execution: "asyncio.Future") -> None:
        if execution.cancelled():
            self._outcome = (False, None)
        elif execution.exception() is not None:
            self._outcome = (False, execution.exception())
        else:
            self._outcome = (True, execution.result())
        self._apply_outcome()

    def _apply_outcome(self) -> None:
        if self._completion is None or self._completion.done() or self._outcome is None:
            return
        ok, value = self._outcome
        if ok:
            self._completion.set_result(value)
        elif value is None:
            self._completion.cancel()
        else:
            self._completion.set_exception(value)

    # === REPRESENTATION ===

    def describe(self, with_id: bool = True, with_log: bool = False) -> str:
        text = f"{f'[{self.id}]' if with_id else ''}[Transaction][{self.source}.{self.method}"
        if with_log:
            return text + "]\nTransaction Log:\n" + "\n".join(self.logs)
        return text + "]"

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"<Transaction {self.id} {self.source}.{self.method}>"


def releasing(transaction: Transaction, invoke: Callable[[], Awaitable[Any]]) -> Callable[[], Awaitable[Any]]:
    """
    Action for a top-level transaction.

    Runs ``invoke`` and releases ``transaction`` once, with the error when
    ``invoke`` fails, before the result or error reaches the caller.
    """

    async def action() -> Any:
        try:
            result = await invoke()
        except BaseException as e:
            await transaction.release(e)
            raise
        await transaction.release()
        return result

    return action


def _discard(task: "asyncio.Future") -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"Timed out action finished with {task.exception()!r}")
