"""Per-destination monitoring policy and runtime state."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from config import NOTIFICATIONS
from monitor.schedule import (
    BackupSchedule,
    NotificationSpacing,
    hours_overdue,
    is_overdue,
    missed_backup_count,
    resolve_schedule_interval,
    seconds_between,
)

if TYPE_CHECKING:
    from app.timer import TaskHandle


@dataclass
class DeviceMonitoringConfig:
    """Monitoring settings and alert progress for one destination.

    Policy fields are set by the settings collaborator; display fields are
    refreshed from destination snapshots; the remaining fields are owned by
    the manager and dispatcher.

    Invariants:
        - consecutive_missed_backups is 0 whenever the destination is not overdue
        - notifications_sent never exceeds notification_count within an episode
        - at most one notification_task exists at a time
    """
    destination_id: str

    # Policy
    is_monitored: bool = False
    missed_backup_threshold: int = 1
    notification_count: int = 1
    notification_spacing: NotificationSpacing = NotificationSpacing.MINUTES_30
    backup_schedule: BackupSchedule = BackupSchedule.DAILY
    custom_interval: Optional[float] = None

    # Display fields
    device_name: Optional[str] = None
    mount_point: Optional[str] = None
    last_backup_date: Optional[datetime] = None

    # Runtime state
    consecutive_missed_backups: int = 0
    last_notification_sent: Optional[datetime] = None
    notifications_sent: int = 0
    notification_task: Optional["TaskHandle"] = field(default=None, repr=False)

    @property
    def schedule_interval(self) -> float:
        return resolve_schedule_interval(self.backup_schedule, self.custom_interval)

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        return is_overdue(self.last_backup_date, self.schedule_interval, now or datetime.now())

    def hours_overdue(self, now: Optional[datetime] = None) -> int:
        return hours_overdue(self.last_backup_date, self.schedule_interval, now or datetime.now())

    def missed_backup_count(self, now: Optional[datetime] = None) -> int:
        return missed_backup_count(
            self.last_backup_date, self.schedule_interval, now or datetime.now()
        )

    def intervals_since_last_notification(self, now: datetime) -> int:
        """Whole schedule intervals elapsed since the last alert was sent."""
        if self.last_notification_sent is None:
            return 0
        elapsed = seconds_between(self.last_notification_sent, now)
        return int(elapsed / self.schedule_interval)

    @property
    def has_pending_notifications(self) -> bool:
        return self.notification_task is not None and self.notification_task.active

    def cancel_pending_notifications(self) -> None:
        """Stop the in-progress episode and reset its progress counter."""
        if self.notification_task is not None:
            self.notification_task.cancel()
        self.notification_task = None
        self.notifications_sent = 0

    @property
    def spacing_seconds(self) -> int:
        return self.notification_spacing.value

    def display_name(self) -> str:
        return self.device_name or NOTIFICATIONS.UNKNOWN_DEVICE

    def policy_dict(self) -> dict:
        """Policy fields for settings persistence."""
        return {
            "is_monitored": self.is_monitored,
            "missed_backup_threshold": self.missed_backup_threshold,
            "notification_count": self.notification_count,
            "notification_spacing": self.notification_spacing.value,
            "custom_interval": self.custom_interval,
        }
