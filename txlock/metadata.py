"""
txlock/metadata.py - Registry of transactional members

The @transactional decorator registers each decorated method against its
owning class when the class body is executed. Binding a transaction to an
object asks this registry which methods and attributes of the object need
transaction-aware wrappers.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import logging
import typing
import weakref

from .constants import TRANSACTIONAL

logger = logging.getLogger("txlock.metadata")


@dataclass(frozen=True)
class TransactionalMetadata:
    """Marks a method as transactional, with the data given to the decorator."""

    name: str
    data: Tuple[Any, ...] = ()
    kind: str = TRANSACTIONAL


class Metadata:
    """
    Class-definition-time table: class -> {method name: TransactionalMetadata}.

    Lookups follow the MRO. A name only counts as transactional when the
    class that actually provides it (first in the MRO) registered it, so a
    plain override hides a transactional base method.
    """

    _registry: "weakref.WeakKeyDictionary[type, Dict[str, TransactionalMetadata]]" = weakref.WeakKeyDictionary()

    @classmethod
    def register(cls, owner: type, name: str, data: Tuple[Any, ...] = ()) -> TransactionalMetadata:
        meta = TransactionalMetadata(name=name, data=tuple(data))
        cls._registry.setdefault(owner, {})[name] = meta
        logger.debug(f"Registered transactional method {owner.__name__}.{name}")
        return meta

    @staticmethod
    def _provider(owner: type, name: str) -> Optional[type]:
        for klass in owner.__mro__:
            if name in vars(klass):
                return klass
        return None

    @classmethod
    def get(cls, owner: type, name: str) -> Optional[TransactionalMetadata]:
        """Metadata for ``owner.name`` or None if it is not transactional."""
        if not isinstance(owner, type):
            return None
        provider = cls._provider(owner, name)
        if provider is None:
            return None
        return cls._registry.get(provider, {}).get(name)

    @classmethod
    def transactionals(cls, owner: type) -> List[str]:
        """Names of the transactional methods of ``owner``, subclass first."""
        if not isinstance(owner, type):
            return []
        names: List[str] = []
        seen = set()
        for klass in owner.__mro__:
            for name in cls._registry.get(klass, {}):
                if name in seen:
                    continue
                seen.add(name)
                if cls._provider(owner, name) is klass:
                    names.append(name)
        return names

    @classmethod
    def is_transactional(cls, owner: Any) -> bool:
        return bool(cls.transactionals(owner))

    @classmethod
    def transactional_properties(cls, obj: Any) -> List[str]:
        """
        Attributes of ``obj`` holding transactional collaborators.

        An attribute qualifies when its declared annotation (anywhere in the
        MRO) is a transactional class, or when its current value is an
        instance of one.
        """
        names: List[str] = []
        owner = type(obj)

        for klass in reversed(owner.__mro__):
            for name, hint in _declared_hints(klass).items():
                if name not in names and _is_transactional_hint(hint):
                    names.append(name)

        for name, value in getattr(obj, "__dict__", {}).items():
            if name in names or value is None or isinstance(value, type):
                continue
            # __class__ sees through proxies to the bound object's class
            if cls.is_transactional(value.__class__):
                names.append(name)

        return names


def _declared_hints(klass: type) -> Dict[str, Any]:
    if "__annotations__" not in vars(klass):
        return {}
    try:
        return typing.get_type_hints(klass)
    except Exception as e:
        # unresolvable forward references; runtime values still count
        logger.debug(f"Could not resolve annotations of {klass.__name__}: {e}")
        return {}


def _is_transactional_hint(hint: Any) -> bool:
    for candidate in (hint, *typing.get_args(hint)):
        if isinstance(candidate, type) and Metadata.is_transactional(candidate):
            return True
    return False
