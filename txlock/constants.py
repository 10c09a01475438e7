"""
txlock/constants.py - Shared keys and defaults
"""

# Registry key under which transactional method metadata is stored
TRANSACTIONAL = "transactional"

# Default number of transactions a SynchronousLock admits at once
DEFAULT_CAPACITY = 1

# A timeout <= 0 disables the global transaction timeout
NO_TIMEOUT = -1

VERSION = "0.3.0"
