"""
txlock/transactions/decorators.py - Method level transaction demarcation

Usage:
    class UserRepository:
        @transactional()
        async def create(self, user):
            ...

    class AuditedUserRepository(UserRepository):
        @transactional("audit")
        async def create(self, user):
            created = await transactional_super_call(super().create, user)
            await self.audit(created)
            return created

A call on a decorated method either starts a new transaction and submits it
to the process-wide lock, or, when the call already belongs to a running
transaction, chains into it and runs in place.
"""

from __future__ import annotations
from typing import Any, Callable, Optional
import functools
import inspect
import logging
import types

from ..errors import TransactionalError
from ..metadata import Metadata
from ..utils import get_object_name, resolve
from .binding import unwrap
from .transaction import Transaction, releasing

logger = logging.getLogger("txlock.transactions.decorators")


class TransactionalMethod:
    """
    Descriptor produced by @transactional.

    Registers the method as transactional when the owning class is created
    and turns every call into a transaction.
    """

    def __init__(self, func: Callable[..., Any], data: tuple):
        functools.update_wrapper(self, func)
        self.func = func
        self.data = data
        self.name = func.__name__
        self.owner: Optional[type] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.owner = owner
        self.name = name
        Metadata.register(owner, name, self.data)

    def __get__(self, instance: Any, owner: Optional[type] = None) -> Any:
        if self.owner is None and owner is not None:
            self._register_late(owner)
        if instance is None:
            return self
        return types.MethodType(self, instance)

    def _register_late(self, owner: type) -> None:
        # assigned after the class body ran, so __set_name__ never fired
        for klass in owner.__mro__:
            for name, value in vars(klass).items():
                if value is self:
                    self.__set_name__(klass, name)
                    return

    async def __call__(self, receiver: Any, *args: Any, **kwargs: Any) -> Any:
        if args and isinstance(args[0], Transaction):
            active, args = args[0], args[1:]
        else:
            active = Transaction.context_transaction(receiver)

        source = get_object_name(type(unwrap(receiver)))
        metadata = list(self.data) if self.data else None

        if active is not None:
            continuation = Transaction(source, self.name, metadata=metadata)
            continuation.action = functools.partial(self._invoke, continuation, receiver, args, kwargs)
            active.bind_transaction(continuation)
            return await active.fire()

        transaction = Transaction(source, self.name, metadata=metadata)
        transaction.action = releasing(
            transaction,
            functools.partial(self._invoke, transaction, receiver, args, kwargs),
        )
        return await Transaction.submit(transaction)

    async def _invoke(self, transaction: Transaction, receiver: Any, args: tuple, kwargs: dict) -> Any:
        return await resolve(self.func(transaction.bind_to_transaction(receiver), *args, **kwargs))

    def __repr__(self) -> str:
        return f"<transactional {self.__qualname__}>"


def transactional(*data: Any) -> Callable[[Callable[..., Any]], TransactionalMethod]:
    """
    Mark a method as transactional.

    Args:
        data: Optional metadata handed, untouched, to the transaction

    Raises:
        TransactionalError: At decoration time, when applied to anything
            other than a function defined in a class body
    """

    def decorator(func: Callable[..., Any]) -> TransactionalMethod:
        if not inspect.isfunction(func):
            raise TransactionalError("This decorator only applies to methods")
        scope = func.__qualname__.split(".")
        if len(scope) < 2 or scope[-2] == "<locals>":
            raise TransactionalError(
                f"This decorator only applies to methods, {func.__qualname__} is not defined in a class"
            )
        return TransactionalMethod(func, data)

    return decorator


def _is_transactional(method: Any) -> bool:
    return isinstance(getattr(method, "__func__", method), TransactionalMethod)


async def transactional_super_call(method: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """
    Call an overridden implementation inside the running transaction.

    ``method`` is typically ``super().name``. The transaction is taken from
    the bound receiver when it is a transaction proxy, otherwise from the
    process-wide lock's current transaction. Non-transactional methods are
    simply called.
    """
    if not _is_transactional(method):
        return await resolve(method(*args, **kwargs))

    active = Transaction.context_transaction(getattr(method, "__self__", None))
    if active is None:
        active = Transaction.get_lock().current_transaction
    if active is None:
        logger.debug(f"No running transaction for {getattr(method, '__qualname__', method)}, starting one")
        return await resolve(method(*args, **kwargs))
    return await resolve(method(active, *args, **kwargs))
