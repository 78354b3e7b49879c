"""Application controller for Backup Monitor.

The single entry point for the collaborators around the monitoring core:
the backup-status poller feeds destination snapshots in, the settings UI
changes policy, and the status item reads display figures back out.

Usage:
    from app.controller import MonitoringController
    from app.dependencies import create_dependencies

    controller = MonitoringController(create_dependencies())
    controller.start()
    controller.refresh_destinations(destinations)
"""
import threading
from typing import Iterable, List, Optional, Union

from app.dependencies import AppDependencies
from app.events import EventType
from config import LIMITS, ConfigurationError, get_logger
from monitor.destination import Destination
from monitor.device_config import DeviceMonitoringConfig
from monitor.manager import AlertMode, AlertState, DeviceStatus
from monitor.schedule import MonitoringInterval, NotificationSpacing
from storage.settings import DevicePolicy

logger = get_logger(__name__)


def _check_range(name: str, value: int, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise ConfigurationError(
            f"{name} must be between {low} and {high}", {"value": value}
        )
    return value


class MonitoringController:
    """Orchestrates the monitoring manager, dispatcher and settings.

    Every operation that touches config state runs under the manager lock.
    Policy changes are persisted and announced on the event bus.

    Attributes:
        deps: The dependency container with all components.
    """

    def __init__(self, deps: AppDependencies, async_refresh: bool = True):
        """Initialize the controller.

        Args:
            deps: AppDependencies container with all required components.
            async_refresh: Run schedule lookups on a background thread.
        """
        self.deps = deps
        self.manager = deps.manager
        self.dispatcher = deps.dispatcher
        self.event_bus = deps.event_bus
        self._async_refresh = async_refresh
        logger.info("MonitoringController initialized")

    # === Lifecycle ===

    def start(self) -> None:
        """Apply persisted settings and start monitoring if enabled."""
        logger.info("Starting MonitoringController...")
        self.apply_settings()
        if self.manager.is_monitoring_enabled:
            self.dispatcher.start_monitoring()

    def stop(self) -> None:
        logger.info("Stopping MonitoringController...")
        self.dispatcher.stop_monitoring()
        self.deps.scheduler.shutdown()

    def apply_settings(self) -> None:
        """Copy persisted policy into the manager and its configs."""
        settings = self.deps.settings.settings
        with self.manager.lock:
            self.manager.is_monitoring_enabled = settings.monitoring_enabled
            self.manager.check_interval = MonitoringInterval(settings.check_interval)
            for destination_id, policy in settings.devices.items():
                config = self.manager.get_or_create_config(destination_id)
                config.is_monitored = policy.is_monitored
                config.missed_backup_threshold = policy.missed_backup_threshold
                config.notification_count = policy.notification_count
                config.notification_spacing = NotificationSpacing(policy.notification_spacing)
                config.custom_interval = policy.custom_interval
        logger.debug(f"Applied settings for {len(settings.devices)} device(s)")

    # === Destination snapshots ===

    def refresh_destinations(self, destinations: Iterable[Destination]) -> None:
        """Update cached display fields and re-derive each backup schedule."""
        destinations = list(destinations)
        with self.manager.lock:
            for destination in destinations:
                self.manager.update_device_info(
                    destination.destination_id,
                    name=destination.last_known_volume_name,
                    mount_point=destination.network_url,
                    last_backup_date=destination.last_backup_date,
                )
        for destination in destinations:
            self._publish(EventType.DEVICE_UPDATED, {
                "destination_id": destination.destination_id,
                "last_backup_date": destination.last_backup_date,
            })

        if self._async_refresh:
            threading.Thread(
                target=self._update_schedules, args=(destinations,), daemon=True
            ).start()
        else:
            self._update_schedules(destinations)

    def _update_schedules(self, destinations: List[Destination]) -> None:
        for destination in destinations:
            schedule = self.deps.schedule_lookup.lookup(destination)
            with self.manager.lock:
                config = self.manager.get_or_create_config(destination.destination_id)
                changed = config.backup_schedule is not schedule
                config.backup_schedule = schedule
            if changed:
                logger.info(f"{config.display_name()}: {schedule.display_name}")
                self._publish(EventType.SCHEDULE_UPDATED, {
                    "destination_id": destination.destination_id,
                    "schedule": schedule.value,
                })

    # === Global settings ===

    def get_or_create_config(self, destination_id: str) -> DeviceMonitoringConfig:
        return self.manager.get_or_create_config(destination_id)

    def is_monitoring_enabled(self) -> bool:
        return self.manager.is_monitoring_enabled

    def set_monitoring_enabled(self, enabled: bool) -> None:
        with self.manager.lock:
            self.manager.is_monitoring_enabled = enabled
        self.deps.settings.set_monitoring_enabled(enabled)

        if enabled:
            self.dispatcher.start_monitoring()
        else:
            self.dispatcher.stop_monitoring()
        logger.info(f"Backup monitoring {'enabled' if enabled else 'disabled'}")

    def get_check_interval(self) -> MonitoringInterval:
        return self.manager.check_interval

    def set_check_interval(self, interval: Union[MonitoringInterval, int]) -> None:
        """Change the poll period, restarting the poll loop when running."""
        try:
            interval = MonitoringInterval(interval)
        except ValueError as e:
            raise ConfigurationError("Unsupported check interval", {"value": interval}) from e

        with self.manager.lock:
            self.manager.check_interval = interval
        self.deps.settings.set_check_interval(interval.value)

        if self.manager.is_monitoring_enabled:
            self.dispatcher.restart_monitoring()
        self._publish(EventType.CHECK_INTERVAL_CHANGED, {"interval": interval.value})

    # === Per-device policy ===

    def set_device_monitored(self, destination_id: str, monitored: bool) -> None:
        self._update_device(destination_id, is_monitored=bool(monitored))

    def set_missed_backup_threshold(self, destination_id: str, threshold: int) -> None:
        _check_range("Missed backup threshold", threshold,
                     LIMITS.MIN_MISSED_BACKUP_THRESHOLD, LIMITS.MAX_MISSED_BACKUP_THRESHOLD)
        self._update_device(destination_id, missed_backup_threshold=threshold)

    def set_notification_count(self, destination_id: str, count: int) -> None:
        _check_range("Notification count", count,
                     LIMITS.MIN_NOTIFICATION_COUNT, LIMITS.MAX_NOTIFICATION_COUNT)
        self._update_device(destination_id, notification_count=count)

    def set_notification_spacing(self, destination_id: str,
                                 spacing: Union[NotificationSpacing, int]) -> None:
        try:
            spacing = NotificationSpacing(spacing)
        except ValueError as e:
            raise ConfigurationError("Unsupported notification spacing",
                                     {"value": spacing}) from e
        self._update_device(destination_id, notification_spacing=spacing)

    def set_custom_interval(self, destination_id: str, seconds: Optional[float]) -> None:
        """Override the detected schedule; None goes back to the detected one."""
        if seconds is not None and (isinstance(seconds, bool) or seconds <= 0):
            raise ConfigurationError("Custom interval must be positive", {"value": seconds})
        self._update_device(destination_id, custom_interval=seconds)

    def _update_device(self, destination_id: str, **changes) -> None:
        with self.manager.lock:
            config = self.manager.get_or_create_config(destination_id)
            for name, value in changes.items():
                setattr(config, name, value)
            policy = DevicePolicy.from_dict(config.policy_dict())

        self.deps.settings.set_device_policy(destination_id, policy)
        self._publish(EventType.DEVICE_SETTINGS_CHANGED, {
            "destination_id": destination_id,
            **{k: getattr(v, "value", v) for k, v in changes.items()},
        })

    def reset_notifications(self, destination_id: str) -> None:
        if self.manager.reset_notifications(destination_id):
            self._publish(EventType.NOTIFICATIONS_RESET, {"destination_id": destination_id})

    # === Display figures ===

    def get_device_status(self, destination_id: str) -> DeviceStatus:
        return self.manager.get_device_status(destination_id)

    def get_device_statuses(self) -> List[DeviceStatus]:
        return self.manager.get_device_statuses()

    def get_alert_state(self, mode: AlertMode = AlertMode.DEFAULT,
                        time_threshold_hours: float = 24) -> AlertState:
        return self.manager.get_current_alert_state(mode, time_threshold_hours)

    def _publish(self, event_type: EventType, data: Optional[dict] = None) -> None:
        if self.event_bus is not None:
            self.event_bus.publish(event_type, data, source="controller")
