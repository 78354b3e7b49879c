"""Centralized constants and configuration for Backup Monitor.

Keeps the magic numbers and strings used across the monitoring core in one
place so that tests and collaborators can refer to them by name.

Usage:
    from config.constants import INTERVALS, LIMITS, STORAGE

    timeout = INTERVALS.SUBPROCESS_TIMEOUT_SECONDS
    max_alerts = LIMITS.MAX_NOTIFICATION_COUNT
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class Intervals:
    """Time intervals for various operations (in seconds)."""
    # Expected gap between backups per schedule
    HOURLY_SECONDS: int = 3600
    DAILY_SECONDS: int = 86400
    WEEKLY_SECONDS: int = 604800

    # Poll loop default (30 minutes)
    DEFAULT_CHECK_SECONDS: int = 1800

    # Spacing between notifications of one episode (30 minutes)
    DEFAULT_SPACING_SECONDS: int = 1800

    # tmutil lookups
    SUBPROCESS_TIMEOUT_SECONDS: float = 5.0
    SCHEDULE_LOOKUP_CACHE_SECONDS: float = 300.0

    SECONDS_PER_HOUR: int = 3600


@dataclass(frozen=True)
class Limits:
    """Allowed ranges for per-device monitoring policy."""
    MIN_MISSED_BACKUP_THRESHOLD: int = 1
    MAX_MISSED_BACKUP_THRESHOLD: int = 10
    MIN_NOTIFICATION_COUNT: int = 1
    MAX_NOTIFICATION_COUNT: int = 5


@dataclass(frozen=True)
class StorageConfig:
    """Storage and file-related configuration."""
    DATA_DIR_NAME: str = ".tm-backup-monitor"
    SETTINGS_FILE: str = "monitoring.json"
    LOG_FILE: str = "backup_monitor.log"

    # Log rotation
    LOG_MAX_BYTES: int = 5_000_000  # 5MB
    LOG_BACKUP_COUNT: int = 3


@dataclass(frozen=True)
class NotificationConfig:
    """Text used when building overdue notifications."""
    TITLE_PREFIX: str = "Time Machine Backup Overdue"
    UNKNOWN_DEVICE: str = "Unknown Device"
    PLAY_SOUND: bool = True


# Global instances - import these
INTERVALS = Intervals()
LIMITS = Limits()
STORAGE = StorageConfig()
NOTIFICATIONS = NotificationConfig()


# Allowed commands for subprocess safety
ALLOWED_SUBPROCESS_COMMANDS = frozenset({
    'tmutil',
})
