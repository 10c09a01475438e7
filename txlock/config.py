"""
txlock/config.py - Process-wide configuration

Provides configuration loading from files, environment variables, and defaults.
Values are read lazily: transactions consult get_config() on every fire and
every trace log call, so changes made through configure() apply immediately.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

from .constants import DEFAULT_CAPACITY, NO_TIMEOUT

logger = logging.getLogger("txlock.config")


@dataclass
class TransactionConfig:
    """Transaction runtime settings."""

    debug: bool = False  # emit transaction trace logs
    timeout_ms: int = NO_TIMEOUT  # <= 0 disables the global timeout
    capacity: int = DEFAULT_CAPACITY  # slots of the default SynchronousLock

    @classmethod
    def from_env(cls) -> "TransactionConfig":
        return cls(
            debug=os.getenv("TXLOCK_DEBUG", "false").lower() == "true",
            timeout_ms=int(os.getenv("TXLOCK_TIMEOUT_MS", str(NO_TIMEOUT))),
            capacity=int(os.getenv("TXLOCK_CAPACITY", str(DEFAULT_CAPACITY))),
        )

    @property
    def timeout_enabled(self) -> bool:
        return self.timeout_ms > 0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("TXLOCK_LOG_LEVEL", "INFO"),
            format=os.getenv("TXLOCK_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("TXLOCK_LOG_FILE"),
            json_logs=os.getenv("TXLOCK_JSON_LOGS", "false").lower() == "true",
        )


@dataclass
class TxlockConfig:
    """Root configuration."""

    transaction: TransactionConfig = field(default_factory=TransactionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "TxlockConfig":
        """Create configuration from environment variables."""
        return cls(
            transaction=TransactionConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "TxlockConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "TxlockConfig":
        """Create config from dictionary, environment values as the base."""
        config = cls.from_env()

        if "transaction" in data:
            for key, value in data["transaction"].items():
                if hasattr(config.transaction, key):
                    setattr(config.transaction, key, value)

        if "logging" in data:
            for key, value in data["logging"].items():
                if hasattr(config.logging, key):
                    setattr(config.logging, key, value)

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "transaction": {
                "debug": self.transaction.debug,
                "timeout_ms": self.transaction.timeout_ms,
                "capacity": self.transaction.capacity,
            },
            "logging": {
                "level": self.logging.level,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
        }


# Global config instance
_config: Optional[TxlockConfig] = None


def load_config(filepath: str = None) -> TxlockConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        TxlockConfig instance
    """
    global _config

    if filepath:
        _config = TxlockConfig.from_file(filepath)
    else:
        default_paths = [
            "./txlock.json",
            os.path.expanduser("~/.txlock/config.json"),
        ]

        for path in default_paths:
            if Path(path).exists():
                logger.info(f"Loading config from: {path}")
                _config = TxlockConfig.from_file(path)
                return _config

        _config = TxlockConfig.from_env()

    logger.debug(f"Configuration loaded: {_config.to_dict()}")
    return _config


def get_config() -> TxlockConfig:
    """Get current configuration, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def configure(debug: Optional[bool] = None, timeout_ms: Optional[int] = None) -> TransactionConfig:
    """
    Update the process-wide transaction settings.

    Args:
        debug: Toggle transaction trace logging
        timeout_ms: Global transaction timeout in milliseconds (<= 0 disables)

    Returns:
        The updated TransactionConfig
    """
    settings = get_config().transaction
    if debug is not None:
        settings.debug = debug
    if timeout_ms is not None:
        settings.timeout_ms = timeout_ms
    return settings


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() reloads it."""
    global _config
    _config = None
