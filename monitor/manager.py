"""Backup monitoring manager.

Owns every DeviceMonitoringConfig and decides, once per poll tick and
destination, whether an overdue alert should go out.

Usage:
    from monitor.manager import BackupMonitoringManager

    manager = BackupMonitoringManager()
    manager.is_monitoring_enabled = True
    config = manager.get_or_create_config("dest-1")
    config.is_monitored = True
    if manager.should_send_notification("dest-1"):
        ...
"""
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from config import get_logger
from monitor.device_config import DeviceMonitoringConfig
from monitor.schedule import MonitoringInterval, to_local_naive

logger = get_logger(__name__)


class AlertMode(Enum):
    """How the status item reflects overdue destinations."""
    NONE = "none"                # Never change the icon
    DEFAULT = "default"          # Warning icon in the menu bar color
    COUNT_BASED = "count_based"  # Yellow at 1 missed backup, red at 2+
    TIME_BASED = "time_based"    # Yellow past the hours threshold, red past twice it


class AlertState(Enum):
    """Icon state derived from all monitored destinations."""
    NORMAL = "normal"
    WARNING = "warning"
    WARNING_YELLOW = "warning_yellow"
    WARNING_RED = "warning_red"


@dataclass(frozen=True)
class DeviceStatus:
    """Display figures for one destination at a point in time."""
    destination_id: str
    device_name: str
    is_monitored: bool
    is_overdue: bool
    hours_overdue: int
    missed_backups: int
    consecutive_missed_backups: int
    notifications_sent: int
    last_backup_date: Optional[datetime]
    schedule: str

    def to_dict(self) -> dict:
        return {
            "destination_id": self.destination_id,
            "device_name": self.device_name,
            "is_monitored": self.is_monitored,
            "is_overdue": self.is_overdue,
            "hours_overdue": self.hours_overdue,
            "missed_backups": self.missed_backups,
            "consecutive_missed_backups": self.consecutive_missed_backups,
            "notifications_sent": self.notifications_sent,
            "last_backup_date": (
                self.last_backup_date.isoformat() if self.last_backup_date else None
            ),
            "schedule": self.schedule,
        }


class BackupMonitoringManager:
    """Maps destination ids to their monitoring configs.

    All reads and writes of config state go through ``lock``. The dispatcher
    and controller share it, so poll ticks, episode steps and preference
    refreshes never interleave.

    Attributes:
        is_monitoring_enabled: Global switch; nothing alerts while False.
        check_interval: Poll loop period.
        device_configs: destination id -> config, created on first lookup.
        clock: Returns the current time. Injected for tests.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.is_monitoring_enabled = False
        self.check_interval = MonitoringInterval.MINUTES_30
        self.device_configs: Dict[str, DeviceMonitoringConfig] = {}
        self.clock = clock or datetime.now
        self.lock = threading.RLock()

    def now(self) -> datetime:
        return self.clock()

    def get_or_create_config(self, destination_id: str) -> DeviceMonitoringConfig:
        with self.lock:
            config = self.device_configs.get(destination_id)
            if config is None:
                config = DeviceMonitoringConfig(destination_id=destination_id)
                self.device_configs[destination_id] = config
                logger.debug(f"Created monitoring config for {destination_id}")
            return config

    def update_device_info(self, destination_id: str, name: Optional[str],
                           mount_point: Optional[str],
                           last_backup_date: Optional[datetime]) -> DeviceMonitoringConfig:
        """Refresh the cached display fields from a destination snapshot."""
        with self.lock:
            config = self.get_or_create_config(destination_id)
            config.device_name = name
            config.mount_point = mount_point
            config.last_backup_date = (
                to_local_naive(last_backup_date) if last_backup_date else None
            )
            return config

    def should_send_notification(self, destination_id: str) -> bool:
        """Decide whether a new overdue episode should start now.

        Updates consecutive_missed_backups on every call, and
        last_notification_sent when returning True. Calling twice with no
        change in the miss count returns False the second time.
        """
        with self.lock:
            if not self.is_monitoring_enabled:
                return False

            config = self.get_or_create_config(destination_id)
            if not config.is_monitored:
                return False

            now = self.now()
            if not config.is_overdue(now):
                config.consecutive_missed_backups = 0
                return False

            current_missed = config.missed_backup_count(now)
            if current_missed == config.consecutive_missed_backups:
                return False

            config.consecutive_missed_backups = current_missed
            if current_missed < config.missed_backup_threshold:
                logger.debug(
                    f"{config.display_name()}: {current_missed} missed, "
                    f"threshold {config.missed_backup_threshold}"
                )
                return False

            # Only re-alert once enough further intervals have passed since
            # the last alert to amount to a new escalation step.
            should_notify = (
                config.last_notification_sent is None
                or current_missed > config.intervals_since_last_notification(now)
                + config.missed_backup_threshold - 1
            )
            if should_notify:
                config.last_notification_sent = now
                logger.info(
                    f"{config.display_name()} is overdue with {current_missed} missed backup(s)"
                )
            return should_notify

    def reset_notifications(self, destination_id: str) -> bool:
        """Clear the streak and alert history, cancelling any pending episode.

        Returns:
            False if no config exists for the destination.
        """
        with self.lock:
            config = self.device_configs.get(destination_id)
            if config is None:
                return False
            config.consecutive_missed_backups = 0
            config.last_notification_sent = None
            config.cancel_pending_notifications()
            logger.info(f"Notifications reset for {config.display_name()}")
            return True

    def get_device_status(self, destination_id: str) -> DeviceStatus:
        with self.lock:
            config = self.get_or_create_config(destination_id)
            return self._status_for(config, self.now())

    def get_device_statuses(self) -> List[DeviceStatus]:
        with self.lock:
            now = self.now()
            return [self._status_for(c, now) for c in self.device_configs.values()]

    def _status_for(self, config: DeviceMonitoringConfig, now: datetime) -> DeviceStatus:
        overdue = config.is_overdue(now)
        return DeviceStatus(
            destination_id=config.destination_id,
            device_name=config.display_name(),
            is_monitored=config.is_monitored,
            is_overdue=overdue,
            hours_overdue=config.hours_overdue(now),
            missed_backups=config.missed_backup_count(now) if overdue else 0,
            consecutive_missed_backups=config.consecutive_missed_backups,
            notifications_sent=config.notifications_sent,
            last_backup_date=config.last_backup_date,
            schedule=config.backup_schedule.display_name,
        )

    def get_current_alert_state(self, mode: AlertMode,
                                time_threshold_hours: float = 24) -> AlertState:
        """Icon state across all monitored destinations.

        Only monitored destinations count, and only while monitoring is
        globally enabled. The worst destination decides the colour: by
        missed backups in COUNT_BASED mode, by hours overdue in TIME_BASED
        mode (below the threshold the plain warning is shown).
        """
        with self.lock:
            if mode is AlertMode.NONE or not self.is_monitoring_enabled:
                return AlertState.NORMAL

            now = self.now()
            overdue = [
                c for c in self.device_configs.values()
                if c.is_monitored and c.is_overdue(now)
            ]
            if not overdue:
                return AlertState.NORMAL
            if mode is AlertMode.DEFAULT:
                return AlertState.WARNING

            if mode is AlertMode.COUNT_BASED:
                worst_missed = max(c.missed_backup_count(now) for c in overdue)
                if worst_missed >= 2:
                    return AlertState.WARNING_RED
                return AlertState.WARNING_YELLOW

            worst_hours = max(c.hours_overdue(now) for c in overdue)
            if worst_hours >= 2 * time_threshold_hours:
                return AlertState.WARNING_RED
            if worst_hours >= time_threshold_hours:
                return AlertState.WARNING_YELLOW
            return AlertState.WARNING
