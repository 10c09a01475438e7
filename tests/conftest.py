"""
txlock test configuration and fixtures

Every test starts with the lazy default lock and freshly loaded
configuration, so a lock or timeout installed by one test never leaks into
the next.
"""

import pytest


@pytest.fixture(autouse=True)
def isolated_transactions(monkeypatch, tmp_path):
    """Reset the process-wide lock and configuration around each test."""
    from txlock.config import reset_config
    from txlock.transactions import Transaction

    for name in ("TXLOCK_DEBUG", "TXLOCK_TIMEOUT_MS", "TXLOCK_CAPACITY"):
        monkeypatch.delenv(name, raising=False)
    # keep a developer's txlock.json out of the tests
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))

    reset_config()
    Transaction.set_lock(None)
    yield
    Transaction.set_lock(None)
    reset_config()


@pytest.fixture
def debug_traces():
    """Turn transaction trace logging on for one test."""
    from txlock.config import configure

    configure(debug=True)
    yield
    configure(debug=False)
