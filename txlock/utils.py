"""
txlock/utils.py - Small helpers shared by locks and transactions
"""

from __future__ import annotations

from typing import Any, Optional
import inspect


def get_object_name(obj: Any) -> Optional[str]:
    """
    Best-effort human readable name for an object.

    Strings are returned as-is, classes and functions by their ``__name__``,
    anything else by its class name.
    """
    if obj is None:
        return None
    if isinstance(obj, str):
        return obj
    if inspect.isclass(obj) or inspect.isfunction(obj) or inspect.ismethod(obj):
        return obj.__name__
    name = getattr(obj, "__name__", None)
    if name:
        return name
    return obj.__class__.__name__


async def resolve(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value
