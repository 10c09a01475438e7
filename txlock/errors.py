"""
txlock/errors.py - Transaction and lock exceptions

Action errors raised by transactional methods are never wrapped; these
classes only cover failures produced by txlock itself.
"""

from __future__ import annotations

from typing import Optional


class TransactionalError(Exception):
    """Base exception for transaction and lock usage errors."""

    def __init__(self, message: str, code: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return self.message


class TransactionTimeoutError(TransactionalError):
    """Raised when a transaction exceeds the configured global timeout."""

    def __init__(
        self,
        message: str,
        transaction_id: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ):
        super().__init__(message, code=408)
        self.transaction_id = transaction_id
        self.timeout_ms = timeout_ms


class LockError(TransactionalError):
    """Raised on lock misuse, e.g. releasing a lock that was never acquired."""
