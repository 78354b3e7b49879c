"""Backup monitoring components.

This package holds the pure monitoring logic: schedules and overdue
arithmetic, per-destination configs, the decision function, and the
Time Machine schedule lookup.

Modules:
    schedule: Backup schedules, poll intervals, overdue arithmetic
    destination: Destination snapshots supplied by the status collaborator
    device_config: Per-destination policy and runtime state
    manager: Config ownership, alert decision, display figures
    schedule_lookup: `tmutil destinationinfo` schedule detection

Example:
    >>> from monitor import BackupMonitoringManager
    >>> manager = BackupMonitoringManager()
    >>> manager.is_monitoring_enabled = True
    >>> manager.get_or_create_config("dest-1").is_monitored = True
    >>> manager.should_send_notification("dest-1")
    True
"""
from .destination import Destination
from .device_config import DeviceMonitoringConfig
from .manager import AlertMode, AlertState, BackupMonitoringManager, DeviceStatus
from .schedule import (
    BackupSchedule,
    MonitoringInterval,
    NotificationSpacing,
    hours_overdue,
    is_overdue,
    missed_backup_count,
    parse_auto_backup_interval,
    resolve_schedule_interval,
)
from .schedule_lookup import TimeMachineScheduleLookup

__all__ = [
    # Schedule model
    "BackupSchedule",
    "MonitoringInterval",
    "NotificationSpacing",
    "resolve_schedule_interval",
    "is_overdue",
    "hours_overdue",
    "missed_backup_count",
    "parse_auto_backup_interval",
    # Configs and manager
    "Destination",
    "DeviceMonitoringConfig",
    "BackupMonitoringManager",
    "DeviceStatus",
    "AlertMode",
    "AlertState",
    # Lookup
    "TimeMachineScheduleLookup",
]
