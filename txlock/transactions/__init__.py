"""
txlock/transactions/ - Transaction lifecycle, binding and decorators
"""

from .binding import TransactionProxy
from .transaction import Transaction
from .decorators import (
    TransactionalMethod,
    transactional,
    transactional_super_call,
)

__all__ = [
    "Transaction",
    "TransactionProxy",
    "TransactionalMethod",
    "transactional",
    "transactional_super_call",
]
