"""Configuration module for Backup Monitor.

Provides centralized configuration, logging, exceptions, and utilities.
"""
from config.constants import (
    ALLOWED_SUBPROCESS_COMMANDS,
    INTERVALS,
    LIMITS,
    NOTIFICATIONS,
    STORAGE,
    Intervals,
    Limits,
    NotificationConfig,
    StorageConfig,
)
from config.exceptions import (
    BackupMonitorError,
    ConfigurationError,
    NotificationError,
    ScheduleLookupError,
    StorageError,
    SubprocessError,
)
from config.logging_config import get_logger, log_exception, setup_logging
from config.subprocess_cache import SubprocessCache, safe_run

__all__ = [
    # Constants
    "INTERVALS",
    "LIMITS",
    "STORAGE",
    "NOTIFICATIONS",
    "Intervals",
    "Limits",
    "StorageConfig",
    "NotificationConfig",
    "ALLOWED_SUBPROCESS_COMMANDS",
    # Exceptions
    "BackupMonitorError",
    "ConfigurationError",
    "NotificationError",
    "ScheduleLookupError",
    "StorageError",
    "SubprocessError",
    # Logging
    "setup_logging",
    "get_logger",
    "log_exception",
    # Subprocess
    "SubprocessCache",
    "safe_run",
]
