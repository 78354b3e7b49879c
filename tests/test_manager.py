"""Tests for BackupMonitoringManager (monitor/manager.py)."""
from datetime import timedelta

from hypothesis import given
from hypothesis import strategies as st

from monitor.manager import AlertMode, AlertState, BackupMonitoringManager
from monitor.schedule import BackupSchedule
from tests.mocks import ManualClock

DAY = 86400


class TestConfigOwnership:
    """Tests for get-or-create and device info updates."""

    def test_get_or_create_returns_same_config(self, manager):
        first = manager.get_or_create_config("dest-1")
        second = manager.get_or_create_config("dest-1")

        assert first is second
        assert list(manager.device_configs) == ["dest-1"]

    def test_update_device_info(self, manager, clock):
        last = clock.ago(3600)
        config = manager.update_device_info("dest-1", "Backup Disk", "smb://nas/tm", last)

        assert config.device_name == "Backup Disk"
        assert config.mount_point == "smb://nas/tm"
        assert config.last_backup_date == last

    def test_defaults(self):
        manager = BackupMonitoringManager()
        assert manager.is_monitoring_enabled is False
        assert manager.check_interval.value == 1800


class TestShouldSendNotification:
    """Tests for the alert decision function."""

    def test_disabled_globally(self, manager, overdue_config):
        manager.is_monitoring_enabled = False
        assert manager.should_send_notification("dest-1") is False
        assert overdue_config.consecutive_missed_backups == 0

    def test_device_not_monitored(self, manager, overdue_config):
        overdue_config.is_monitored = False
        assert manager.should_send_notification("dest-1") is False

    def test_not_overdue_resets_streak(self, manager, overdue_config, clock):
        overdue_config.consecutive_missed_backups = 4
        overdue_config.last_backup_date = clock.ago(60)

        assert manager.should_send_notification("dest-1") is False
        assert overdue_config.consecutive_missed_backups == 0

    def test_first_overdue_tick_notifies(self, manager, overdue_config, clock):
        assert manager.should_send_notification("dest-1") is True
        assert overdue_config.consecutive_missed_backups == 1
        assert overdue_config.last_notification_sent == clock()

    def test_second_call_without_change_returns_false(self, manager, overdue_config):
        assert manager.should_send_notification("dest-1") is True
        assert manager.should_send_notification("dest-1") is False

    def test_no_backup_ever_recorded(self, manager):
        config = manager.get_or_create_config("dest-1")
        config.is_monitored = True

        assert manager.should_send_notification("dest-1") is True
        assert config.consecutive_missed_backups == 1

    def test_threshold_reached_across_ticks(self, manager, overdue_config, clock):
        """Threshold 2: miss count 1 stays quiet, miss count 2 alerts."""
        overdue_config.missed_backup_threshold = 2

        assert manager.should_send_notification("dest-1") is False
        assert overdue_config.consecutive_missed_backups == 1
        assert overdue_config.last_notification_sent is None

        # Last backup now 3 days + 1s ago: two intervals missed
        clock.advance(3 * DAY + 1 - 100000)
        assert overdue_config.missed_backup_count(clock()) == 2

        assert manager.should_send_notification("dest-1") is True
        assert overdue_config.consecutive_missed_backups == 2
        assert overdue_config.last_notification_sent == clock()

    def test_recent_alert_suppresses_repeat(self, manager, overdue_config, clock):
        """Threshold 3, 3 missed, last alert one interval ago: 3 > 1 + 3 - 1 is false."""
        overdue_config.missed_backup_threshold = 3
        overdue_config.last_backup_date = clock.ago(4 * DAY + 1)
        overdue_config.last_notification_sent = clock.ago(DAY + 10)
        previous_alert = overdue_config.last_notification_sent

        assert manager.should_send_notification("dest-1") is False
        assert overdue_config.consecutive_missed_backups == 3
        assert overdue_config.last_notification_sent == previous_alert

    def test_realerts_after_further_misses(self, manager, overdue_config, clock):
        """Threshold 1: a second miss past the alert's interval raises a new episode."""
        assert manager.should_send_notification("dest-1") is True

        clock.advance(3 * DAY + 1 - 100000)  # 2 missed, 1 interval since the alert
        assert manager.should_send_notification("dest-1") is True
        assert overdue_config.consecutive_missed_backups == 2

    def test_unknown_destination_is_created(self, manager):
        assert manager.should_send_notification("new-dest") is False
        assert "new-dest" in manager.device_configs

    @given(
        missed=st.integers(min_value=1, max_value=20),
        threshold=st.integers(min_value=1, max_value=10),
        since_alert=st.integers(min_value=0, max_value=30 * 3600),
    )
    def test_debounce_formula(self, missed, threshold, since_alert):
        """Re-alerts exactly when missed > intervals-since-alert + threshold - 1."""
        interval = 3600
        clock = ManualClock()
        manager = BackupMonitoringManager(clock=clock)
        manager.is_monitoring_enabled = True
        config = manager.get_or_create_config("dest-1")
        config.is_monitored = True
        config.custom_interval = interval
        config.missed_backup_threshold = threshold
        config.last_backup_date = clock.ago(interval * (missed + 1) + 1)
        config.last_notification_sent = clock.ago(since_alert)

        expected = missed > int(since_alert / interval) + threshold - 1

        assert config.missed_backup_count(clock()) == missed
        assert manager.should_send_notification("dest-1") is expected

    @given(steps=st.lists(
        st.tuples(st.integers(min_value=0, max_value=3 * DAY), st.booleans()),
        min_size=1, max_size=25,
    ))
    def test_streak_is_zero_when_not_overdue(self, steps):
        clock = ManualClock()
        manager = BackupMonitoringManager(clock=clock)
        manager.is_monitoring_enabled = True
        config = manager.get_or_create_config("dest-1")
        config.is_monitored = True
        config.last_backup_date = clock.ago(2 * DAY)

        for advance, backed_up in steps:
            clock.advance(advance)
            if backed_up:
                config.last_backup_date = clock()
            manager.should_send_notification("dest-1")
            if not config.is_overdue(clock()):
                assert config.consecutive_missed_backups == 0


class TestResetNotifications:

    def test_reset_clears_state(self, manager, overdue_config, scheduler):
        manager.should_send_notification("dest-1")
        overdue_config.notification_task = scheduler.call_every(300, lambda: None)
        overdue_config.notifications_sent = 2

        assert manager.reset_notifications("dest-1") is True

        assert overdue_config.consecutive_missed_backups == 0
        assert overdue_config.last_notification_sent is None
        assert overdue_config.notifications_sent == 0
        assert scheduler.active_tasks == []

    def test_reset_unknown_destination(self, manager):
        assert manager.reset_notifications("missing") is False
        assert "missing" not in manager.device_configs


class TestDisplayFigures:
    """Tests for device statuses and alert state."""

    def test_device_status(self, manager, overdue_config):
        status = manager.get_device_status("dest-1")

        assert status.device_name == "Backup Disk"
        assert status.is_overdue is True
        assert status.hours_overdue == 3
        assert status.missed_backups == 1
        assert status.schedule == "Backs up: Daily"
        assert status.to_dict()["last_backup_date"] == overdue_config.last_backup_date.isoformat()

    def test_status_not_overdue(self, manager, clock):
        manager.update_device_info("dest-2", None, None, clock.ago(60))
        status = manager.get_device_status("dest-2")

        assert status.device_name == "Unknown Device"
        assert status.is_overdue is False
        assert status.missed_backups == 0

    def test_all_statuses(self, manager, overdue_config, clock):
        manager.update_device_info("dest-2", "Other", None, clock.ago(60))
        ids = {s.destination_id for s in manager.get_device_statuses()}
        assert ids == {"dest-1", "dest-2"}

    def test_alert_state_normal_when_nothing_overdue(self, manager, clock):
        config = manager.get_or_create_config("dest-1")
        config.is_monitored = True
        config.last_backup_date = clock.ago(60)

        assert manager.get_current_alert_state(AlertMode.DEFAULT) is AlertState.NORMAL

    def test_alert_state_modes(self, manager, overdue_config):
        assert manager.get_current_alert_state(AlertMode.NONE) is AlertState.NORMAL
        assert manager.get_current_alert_state(AlertMode.DEFAULT) is AlertState.WARNING

    def test_count_based_alert_state(self, manager, overdue_config, clock):
        """One missed backup is yellow, two or more are red."""
        assert overdue_config.missed_backup_count(clock()) == 1
        assert manager.get_current_alert_state(AlertMode.COUNT_BASED) is AlertState.WARNING_YELLOW

        overdue_config.last_backup_date = clock.ago(3 * DAY + 1)
        assert overdue_config.missed_backup_count(clock()) == 2
        assert manager.get_current_alert_state(AlertMode.COUNT_BASED) is AlertState.WARNING_RED

    def test_time_based_alert_state(self, manager, overdue_config):
        """3 hours overdue: plain below the threshold, yellow at it, red at twice it."""
        assert manager.get_current_alert_state(AlertMode.TIME_BASED, 4) is AlertState.WARNING
        assert manager.get_current_alert_state(AlertMode.TIME_BASED, 3) is AlertState.WARNING_YELLOW
        assert manager.get_current_alert_state(AlertMode.TIME_BASED, 2) is AlertState.WARNING_YELLOW
        assert manager.get_current_alert_state(AlertMode.TIME_BASED, 1.5) is AlertState.WARNING_RED

    def test_count_based_uses_worst_destination(self, manager, overdue_config, clock):
        other = manager.update_device_info("dest-2", "Other", None, clock.ago(5 * DAY))
        other.is_monitored = True
        assert manager.get_current_alert_state(AlertMode.COUNT_BASED) is AlertState.WARNING_RED

    def test_alert_state_ignores_unmonitored(self, manager, overdue_config):
        overdue_config.is_monitored = False
        assert manager.get_current_alert_state(AlertMode.DEFAULT) is AlertState.NORMAL

    def test_alert_state_disabled_globally(self, manager, overdue_config):
        manager.is_monitoring_enabled = False
        assert manager.get_current_alert_state(AlertMode.DEFAULT) is AlertState.NORMAL

    def test_weekly_destination_not_overdue(self, manager, overdue_config):
        overdue_config.backup_schedule = BackupSchedule.WEEKLY
        assert manager.get_device_status("dest-1").is_overdue is False
