"""
txlock/harness/ - Producer/consumer harness for ordering and stress checks
"""

from .producer import Producer, TickRecord
from .consumer import ComparisonResult, ConsumerRunner, default_comparer
from .repository import DelayedRepository, RamRepository, RecordNotFoundError

__all__ = [
    "ComparisonResult",
    "ConsumerRunner",
    "DelayedRepository",
    "Producer",
    "RamRepository",
    "RecordNotFoundError",
    "TickRecord",
    "default_comparer",
]
