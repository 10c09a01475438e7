"""
txlock/transactions/binding.py - Transaction-aware object views

A TransactionProxy is a disposable view over a real object. Transactional
methods read through it receive the owning transaction as an implicit
leading argument; transactional collaborators read through it come back as
proxies themselves; everything else passes through to the target.
"""

from __future__ import annotations
from typing import Any, Callable, FrozenSet, TYPE_CHECKING
import functools
import inspect
import types

from ..utils import get_object_name

if TYPE_CHECKING:
    from .transaction import Transaction


class TransactionProxy:
    """
    Delegating view of ``target`` bound to ``transaction``.

    The proxy reports the target's class through ``__class__`` so that
    ``isinstance`` checks and zero-argument ``super()`` keep working inside
    methods that receive the proxy as ``self``. The target never references
    its proxies.
    """

    __slots__ = ("__target", "__transaction", "__methods", "__properties", "__weakref__")

    def __init__(
        self,
        target: Any,
        transaction: "Transaction",
        methods: FrozenSet[str],
        properties: FrozenSet[str],
    ):
        object.__setattr__(self, "_TransactionProxy__target", target)
        object.__setattr__(self, "_TransactionProxy__transaction", transaction)
        object.__setattr__(self, "_TransactionProxy__methods", methods)
        object.__setattr__(self, "_TransactionProxy__properties", properties)

    @property
    def __class__(self):
        return type(self.__target)

    def __getattr__(self, name: str) -> Any:
        target = self.__target

        if name in self.__methods:
            return _leading(getattr(target, name), self.__transaction)

        value = getattr(target, name)

        if name in self.__properties:
            if value is None:
                return value
            return self.__transaction.bind_to_transaction(value)

        if inspect.ismethod(value) and value.__self__ is target:
            # plain methods run against the proxy so their calls propagate too
            return types.MethodType(value.__func__, self)

        return value

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self.__target, name, value)

    def __delattr__(self, name: str) -> None:
        delattr(self.__target, name)

    def __dir__(self):
        return dir(self.__target)

    def __str__(self) -> str:
        return f"{get_object_name(self.__target)} proxy for transaction {self.__transaction.id}"

    __repr__ = __str__


def _leading(method: Callable[..., Any], transaction: "Transaction") -> Callable[..., Any]:
    @functools.wraps(method)
    def bound(*args: Any, **kwargs: Any) -> Any:
        return method(transaction, *args, **kwargs)

    return bound


def is_proxy(obj: Any) -> bool:
    # type() rather than isinstance(): the proxy reports its target's class
    return type(obj) is TransactionProxy


def unwrap(obj: Any) -> Any:
    """The real object behind ``obj`` (``obj`` itself if it is not a proxy)."""
    if is_proxy(obj):
        return object.__getattribute__(obj, "_TransactionProxy__target")
    return obj
