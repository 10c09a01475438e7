"""
txlock/locks/ - Lock primitives and transaction admission strategies
"""

from .lock import Lock
from .multi_lock import MultiLock
from .synchronous import SynchronousLock

__all__ = [
    "Lock",
    "MultiLock",
    "SynchronousLock",
]
