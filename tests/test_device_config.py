"""Tests for DeviceMonitoringConfig and Destination."""
from datetime import datetime, timedelta

import pytest

from app.timer import TaskHandle
from monitor.destination import Destination
from monitor.device_config import DeviceMonitoringConfig
from monitor.schedule import BackupSchedule, NotificationSpacing

NOW = datetime(2026, 1, 20, 12, 0, 0)


class TestDeviceMonitoringConfig:
    """Tests for DeviceMonitoringConfig."""

    def test_defaults(self):
        config = DeviceMonitoringConfig(destination_id="dest-1")

        assert config.is_monitored is False
        assert config.missed_backup_threshold == 1
        assert config.notification_count == 1
        assert config.notification_spacing is NotificationSpacing.MINUTES_30
        assert config.backup_schedule is BackupSchedule.DAILY
        assert config.consecutive_missed_backups == 0
        assert config.last_notification_sent is None
        assert config.notification_task is None

    def test_schedule_interval_prefers_custom(self):
        config = DeviceMonitoringConfig("dest-1", backup_schedule=BackupSchedule.WEEKLY)
        assert config.schedule_interval == 604800

        config.custom_interval = 7200
        assert config.schedule_interval == 7200

    def test_overdue_figures_use_schedule(self):
        config = DeviceMonitoringConfig(
            "dest-1",
            backup_schedule=BackupSchedule.HOURLY,
            last_backup_date=NOW - timedelta(hours=3, minutes=30),
        )
        assert config.is_overdue(NOW) is True
        assert config.hours_overdue(NOW) == 2
        assert config.missed_backup_count(NOW) == 2

    def test_intervals_since_last_notification(self):
        config = DeviceMonitoringConfig("dest-1")
        assert config.intervals_since_last_notification(NOW) == 0

        config.last_notification_sent = NOW - timedelta(days=2, hours=5)
        assert config.intervals_since_last_notification(NOW) == 2

    def test_cancel_pending_notifications(self):
        config = DeviceMonitoringConfig("dest-1")
        handle = TaskHandle("episode")
        config.notification_task = handle
        config.notifications_sent = 2

        config.cancel_pending_notifications()

        assert handle.cancelled
        assert config.notification_task is None
        assert config.notifications_sent == 0
        assert config.has_pending_notifications is False

    def test_cancel_without_task(self):
        config = DeviceMonitoringConfig("dest-1", notifications_sent=1)
        config.cancel_pending_notifications()
        assert config.notifications_sent == 0

    def test_display_name_fallback(self):
        config = DeviceMonitoringConfig("dest-1")
        assert config.display_name() == "Unknown Device"
        config.device_name = "Office NAS"
        assert config.display_name() == "Office NAS"

    def test_policy_dict(self):
        config = DeviceMonitoringConfig(
            "dest-1", is_monitored=True, notification_count=3,
            notification_spacing=NotificationSpacing.HOUR_1,
        )
        policy = config.policy_dict()
        assert policy["is_monitored"] is True
        assert policy["notification_count"] == 3
        assert policy["notification_spacing"] == 3600
        assert policy["custom_interval"] is None


class TestDestination:
    """Tests for the Destination input record."""

    def test_last_backup_date(self):
        dates = (NOW - timedelta(days=2), NOW - timedelta(days=1))
        destination = Destination("dest-1", snapshot_dates=dates)
        assert destination.last_backup_date == dates[-1]

    def test_no_snapshots(self):
        assert Destination("dest-1").last_backup_date is None

    def test_identifiers_order(self):
        destination = Destination("dest-1", last_known_volume_name="Backup",
                                  network_url="smb://nas.local/tm")
        assert destination.identifiers == ["smb://nas.local/tm", "Backup"]
        assert Destination("dest-2").identifiers == []

    def test_from_dict_preferences_keys(self):
        destination = Destination.from_dict({
            "destinationID": "ABC-123",
            "lastKnownVolumeName": "Backup",
            "snapshotDates": ["2026-01-18T10:00:00", "2026-01-19T10:00:00"],
        })
        assert destination.destination_id == "ABC-123"
        assert destination.network_url is None
        assert destination.last_backup_date == datetime(2026, 1, 19, 10, 0, 0)

    def test_from_dict_requires_id(self):
        with pytest.raises(ValueError):
            Destination.from_dict({"lastKnownVolumeName": "Backup"})
