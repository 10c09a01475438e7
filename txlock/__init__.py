"""
txlock - Method level transaction demarcation for asyncio

Serializes calls to methods marked @transactional through a process-wide
TransactionLock, and chains nested transactional calls into the transaction
already running instead of submitting them again.
"""

from .constants import VERSION

from .errors import (
    TransactionalError,
    TransactionTimeoutError,
    LockError,
)

from .config import (
    TransactionConfig,
    LoggingConfig,
    TxlockConfig,
    load_config,
    get_config,
    configure,
    reset_config,
)

from .interfaces import TransactionLock

from .locks import (
    Lock,
    MultiLock,
    SynchronousLock,
)

from .metadata import (
    Metadata,
    TransactionalMetadata,
)

from .transactions import (
    Transaction,
    TransactionProxy,
    TransactionalMethod,
    transactional,
    transactional_super_call,
)

__version__ = VERSION

__all__ = [
    "VERSION",
    # Errors
    "TransactionalError",
    "TransactionTimeoutError",
    "LockError",
    # Config
    "TransactionConfig",
    "LoggingConfig",
    "TxlockConfig",
    "load_config",
    "get_config",
    "configure",
    "reset_config",
    # Locks
    "TransactionLock",
    "Lock",
    "MultiLock",
    "SynchronousLock",
    # Metadata
    "Metadata",
    "TransactionalMetadata",
    # Transactions
    "Transaction",
    "TransactionProxy",
    "TransactionalMethod",
    "transactional",
    "transactional_super_call",
]
