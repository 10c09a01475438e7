"""
txlock/interfaces.py - Contract for transaction admission strategies
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .transactions.transaction import Transaction


class TransactionLock(ABC):
    """
    Decides when submitted transactions may run.

    Implementations admit a transaction (fire it), queue it, or run it in
    place when it is the one already holding a slot. ``release`` is called
    exactly once per admitted transaction when its work concludes.
    """

    current_transaction: Optional["Transaction"] = None

    @abstractmethod
    async def submit(self, transaction: "Transaction") -> Any:
        """
        Admit a transaction.

        Returns:
            The transaction's eventual result (raises its failure)
        """

    @abstractmethod
    async def release(self, err: Optional[BaseException] = None) -> None:
        """
        Free the slot held by the concluding transaction.

        Args:
            err: The error (if any) the transaction concluded with
        """
