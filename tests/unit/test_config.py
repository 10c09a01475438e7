"""
tests/unit/test_config.py - Configuration tests
"""

import pytest
import json


# =============================================================================
# TRANSACTION CONFIG TESTS
# =============================================================================

class TestTransactionConfig:
    """Test TransactionConfig."""

    def test_defaults(self):
        """Test default settings."""
        from txlock.config import TransactionConfig

        config = TransactionConfig()
        assert config.debug is False
        assert config.timeout_ms == -1
        assert config.capacity == 1
        assert not config.timeout_enabled

    def test_from_env(self, monkeypatch):
        """Test settings read from the environment."""
        from txlock.config import TransactionConfig

        monkeypatch.setenv("TXLOCK_DEBUG", "true")
        monkeypatch.setenv("TXLOCK_TIMEOUT_MS", "250")
        monkeypatch.setenv("TXLOCK_CAPACITY", "2")

        config = TransactionConfig.from_env()
        assert config.debug is True
        assert config.timeout_ms == 250
        assert config.capacity == 2
        assert config.timeout_enabled


# =============================================================================
# ROOT CONFIG TESTS
# =============================================================================

class TestTxlockConfig:
    """Test TxlockConfig loading."""

    def test_from_file(self, tmp_path):
        """Test JSON sections override defaults."""
        from txlock.config import TxlockConfig

        path = tmp_path / "txlock.json"
        path.write_text(json.dumps({
            "transaction": {"timeout_ms": 500, "unknown": 1},
            "logging": {"level": "DEBUG"},
        }))

        config = TxlockConfig.from_file(str(path))
        assert config.transaction.timeout_ms == 500
        assert config.transaction.capacity == 1
        assert config.logging.level == "DEBUG"
        assert not hasattr(config.transaction, "unknown")

    def test_missing_file_falls_back(self, tmp_path):
        """Test a missing file yields environment defaults."""
        from txlock.config import TxlockConfig

        config = TxlockConfig.from_file(str(tmp_path / "missing.json"))
        assert config.transaction.timeout_ms == -1

    def test_to_dict(self):
        """Test serialization."""
        from txlock.config import TxlockConfig

        data = TxlockConfig().to_dict()
        assert data["transaction"] == {"debug": False, "timeout_ms": -1, "capacity": 1}
        assert data["logging"]["level"] == "INFO"

    def test_default_file_in_working_directory(self, tmp_path):
        """Test load_config picks up ./txlock.json."""
        from txlock.config import load_config

        (tmp_path / "txlock.json").write_text(json.dumps({"transaction": {"capacity": 4}}))

        assert load_config().transaction.capacity == 4


# =============================================================================
# PROCESS-WIDE SETTINGS TESTS
# =============================================================================

class TestConfigure:
    """Test configure, get_config and reset_config."""

    def test_get_config_is_cached(self):
        """Test get_config returns one instance until reset."""
        from txlock.config import get_config, reset_config

        first = get_config()
        assert get_config() is first

        reset_config()
        assert get_config() is not first

    def test_configure_updates_settings(self):
        """Test configure changes debug and timeout in place."""
        from txlock.config import configure, get_config

        settings = configure(debug=True, timeout_ms=100)

        assert settings is get_config().transaction
        assert settings.debug is True
        assert settings.timeout_ms == 100

    def test_configure_leaves_unset_values(self):
        """Test None arguments keep the current values."""
        from txlock.config import configure

        configure(timeout_ms=100)
        settings = configure(debug=True)

        assert settings.timeout_ms == 100
