"""Backup schedules and overdue arithmetic.

Pure functions over a last-backup timestamp and an expected interval.
Nothing here reads the wall clock; callers pass ``now`` explicitly.
"""
import re
from datetime import datetime
from enum import Enum
from typing import Optional

from config import INTERVALS


class BackupSchedule(Enum):
    """How often a destination is expected to back up."""
    HOURLY = "Hourly"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    CUSTOM = "Custom"

    @property
    def interval_seconds(self) -> float:
        """Expected seconds between backups.

        CUSTOM has no interval of its own; it falls back to daily when the
        device config carries no custom interval.
        """
        return {
            BackupSchedule.HOURLY: INTERVALS.HOURLY_SECONDS,
            BackupSchedule.DAILY: INTERVALS.DAILY_SECONDS,
            BackupSchedule.WEEKLY: INTERVALS.WEEKLY_SECONDS,
            BackupSchedule.CUSTOM: INTERVALS.DAILY_SECONDS,
        }[self]

    @property
    def display_name(self) -> str:
        return f"Backs up: {self.value}"


class MonitoringInterval(Enum):
    """How often the poll loop checks for missed backups (seconds)."""
    MINUTES_5 = 300
    MINUTES_15 = 900
    MINUTES_30 = 1800
    HOUR_1 = 3600
    HOURS_4 = 14400
    HOURS_8 = 28800
    DAY_1 = 86400

    @property
    def display_name(self) -> str:
        if self is MonitoringInterval.HOUR_1:
            return "Every hour"
        if self is MonitoringInterval.DAY_1:
            return "Once per day"
        return f"Every {_format_span(self.value)}"


class NotificationSpacing(Enum):
    """Delay between the notifications of one episode (seconds)."""
    MINUTES_5 = 300
    MINUTES_15 = 900
    MINUTES_30 = 1800
    HOUR_1 = 3600
    HOURS_4 = 14400
    HOURS_8 = 28800

    @property
    def display_name(self) -> str:
        return _format_span(self.value)


def _format_span(seconds: int) -> str:
    """Format 900 -> '15 minutes', 3600 -> '1 hour', 14400 -> '4 hours'."""
    if seconds < INTERVALS.SECONDS_PER_HOUR:
        return f"{seconds // 60} minutes"
    hours = seconds // INTERVALS.SECONDS_PER_HOUR
    return "1 hour" if hours == 1 else f"{hours} hours"


def resolve_schedule_interval(schedule: BackupSchedule,
                              custom_interval: Optional[float] = None) -> float:
    """Return the custom interval when set, else the schedule's interval."""
    if custom_interval is not None:
        return custom_interval
    return schedule.interval_seconds


def to_local_naive(value: datetime) -> datetime:
    """Express an instant as naive local time.

    Naive values are taken to be local already. Snapshot dates may carry a
    UTC offset while the clock is naive; all arithmetic goes through here.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def seconds_between(earlier: datetime, later: datetime) -> float:
    return (to_local_naive(later) - to_local_naive(earlier)).total_seconds()


def _seconds_since(last_backup_date: datetime, now: datetime) -> float:
    return seconds_between(last_backup_date, now)


def is_overdue(last_backup_date: Optional[datetime], interval: float,
               now: datetime) -> bool:
    """A destination with no recorded backup is always overdue."""
    if last_backup_date is None:
        return True
    return _seconds_since(last_backup_date, now) > interval


def hours_overdue(last_backup_date: Optional[datetime], interval: float,
                  now: datetime) -> int:
    """Whole hours past the expected backup time (0 when on schedule)."""
    if last_backup_date is None:
        return 0
    overdue_time = max(0.0, _seconds_since(last_backup_date, now) - interval)
    return int(overdue_time / INTERVALS.SECONDS_PER_HOUR)


def missed_backup_count(last_backup_date: Optional[datetime], interval: float,
                        now: datetime) -> int:
    """Number of scheduled backups missed, never less than 1.

    Only meaningful while the destination is overdue.
    """
    if last_backup_date is None:
        return 1
    overdue_time = max(0.0, _seconds_since(last_backup_date, now) - interval)
    return max(1, int(overdue_time / interval))


_AUTO_BACKUP_INTERVAL = re.compile(r"AutoBackupInterval\s*=\s*(\d+)")

_SCHEDULES_BY_INTERVAL = {
    INTERVALS.HOURLY_SECONDS: BackupSchedule.HOURLY,
    INTERVALS.DAILY_SECONDS: BackupSchedule.DAILY,
    INTERVALS.WEEKLY_SECONDS: BackupSchedule.WEEKLY,
}


def parse_auto_backup_interval(output: str) -> BackupSchedule:
    """Map `tmutil destinationinfo` output to a schedule, defaulting to daily."""
    match = _AUTO_BACKUP_INTERVAL.search(output or "")
    if match is None:
        return BackupSchedule.DAILY
    return _SCHEDULES_BY_INTERVAL.get(int(match.group(1)), BackupSchedule.DAILY)
