"""Notification dispatcher for overdue backups.

Runs two nested loops on a Scheduler:

- the poll loop, every ``check_interval``, asks the manager whether each
  destination needs an alert;
- an episode loop per alerting destination, which delivers up to
  ``notification_count`` notifications ``notification_spacing`` apart and
  stops early once the destination is no longer overdue or monitored.

Usage:
    from app.dispatcher import BackupNotificationDispatcher
    from app.notifier import RumpsNotifier
    from app.timer import ThreadScheduler

    dispatcher = BackupNotificationDispatcher(manager, RumpsNotifier(), ThreadScheduler())
    dispatcher.start_monitoring()
"""
import threading
from typing import Any, Dict, List, Optional

from app.events import EventBus, EventType
from app.notifier import Notifier, OverdueNotification, format_overdue_notification
from app.timer import Scheduler, TaskHandle, cancel_task
from config import get_logger, log_exception
from monitor.device_config import DeviceMonitoringConfig
from monitor.manager import BackupMonitoringManager

logger = get_logger(__name__)


class BackupNotificationDispatcher:
    """Drives the poll loop and notification episodes.

    Every state change happens under ``manager.lock``. Notification delivery
    and the permission request run on daemon threads unless
    ``async_delivery`` is False.

    Attributes:
        manager: Owner of all device configs.
        permission_granted: Outcome of the permission request, None until known.
    """

    def __init__(self, manager: BackupMonitoringManager, notifier: Notifier,
                 scheduler: Scheduler, event_bus: Optional[EventBus] = None,
                 async_delivery: bool = True):
        self.manager = manager
        self._notifier = notifier
        self._scheduler = scheduler
        self._event_bus = event_bus
        self._async_delivery = async_delivery
        self._poll_task: Optional[TaskHandle] = None
        self._has_requested_permission = False
        self.permission_granted: Optional[bool] = None

    @property
    def is_running(self) -> bool:
        return self._poll_task is not None and self._poll_task.active

    # === Poll loop ===

    def start_monitoring(self) -> bool:
        """Start (or restart) the poll loop at the manager's check interval.

        Returns:
            False if monitoring is globally disabled.
        """
        with self.manager.lock:
            if not self.manager.is_monitoring_enabled:
                return False

            self._request_permission_if_needed()

            cancel_task(self._poll_task)
            interval = self.manager.check_interval
            task: Optional[TaskHandle] = None

            def tick() -> None:
                self._poll_tick(task)

            task = self._scheduler.call_every(interval.value, tick, name="backup-check")
            self._poll_task = task

        logger.info(f"Started backup monitoring with {interval.value}s interval")
        self._publish(EventType.MONITORING_STARTED, {"interval": interval.value})
        return True

    def restart_monitoring(self) -> bool:
        """Replace the poll loop after a check interval change."""
        return self.start_monitoring()

    def stop_monitoring(self, cancel_episodes: bool = True) -> None:
        """Stop the poll loop and, by default, every pending episode."""
        with self.manager.lock:
            cancel_task(self._poll_task)
            self._poll_task = None
            if cancel_episodes:
                for config in self.manager.device_configs.values():
                    if config.notification_task is not None:
                        config.cancel_pending_notifications()

        logger.info("Stopped backup monitoring")
        self._publish(EventType.MONITORING_STOPPED)

    def _poll_tick(self, task: Optional[TaskHandle]) -> None:
        with self.manager.lock:
            # Stopped or restarted after this tick woke up
            if task is None or task.cancelled or self._poll_task is not task:
                return
            self.check_for_missed_backups()

    def check_for_missed_backups(self) -> List[str]:
        """Run one poll tick.

        Returns:
            Destination ids for which a new episode began.
        """
        started = []
        with self.manager.lock:
            for destination_id, config in list(self.manager.device_configs.items()):
                if self.manager.should_send_notification(destination_id):
                    self._publish(EventType.BACKUP_OVERDUE, {
                        "destination_id": destination_id,
                        "device_name": config.display_name(),
                        "missed_backups": config.consecutive_missed_backups,
                    })
                    self.send_notifications(config)
                    started.append(destination_id)

        logger.debug(f"Backup check complete, {len(started)} episode(s) started")
        self._publish(EventType.CHECK_COMPLETED, {"episodes_started": started})
        return started

    # === Episode loop ===

    def send_notifications(self, config: DeviceMonitoringConfig) -> None:
        """Begin an episode: notify now, then every spacing until the count is reached."""
        with self.manager.lock:
            config.cancel_pending_notifications()
            config.notifications_sent = 0
            self._send_single_notification(config)

            if config.notification_count <= 1:
                self._publish_episode(EventType.EPISODE_COMPLETED, config)
                return

            task: Optional[TaskHandle] = None

            def step() -> None:
                self._episode_step(config, task)

            task = self._scheduler.call_every(
                config.spacing_seconds, step, name=f"episode-{config.destination_id}"
            )
            config.notification_task = task

    def _episode_step(self, config: DeviceMonitoringConfig,
                      task: Optional[TaskHandle]) -> None:
        with self.manager.lock:
            # A newer episode or a reset replaced this one
            if task is None or task.cancelled or config.notification_task is not task:
                return

            if not self._should_continue(config):
                self._publish_episode(EventType.EPISODE_CANCELLED, config)
                config.cancel_pending_notifications()
                logger.info(f"Notification sequence for {config.display_name()} cancelled")
                return

            self._send_single_notification(config)

            if config.notifications_sent >= config.notification_count:
                task.cancel()
                config.notification_task = None
                self._publish_episode(EventType.EPISODE_COMPLETED, config)

    def _should_continue(self, config: DeviceMonitoringConfig) -> bool:
        return (
            self.manager.is_monitoring_enabled
            and config.is_monitored
            and config.is_overdue(self.manager.now())
            and config.notifications_sent < config.notification_count
        )

    def _send_single_notification(self, config: DeviceMonitoringConfig) -> None:
        config.notifications_sent += 1
        index = config.notifications_sent
        notification = format_overdue_notification(
            config.display_name(),
            config.hours_overdue(self.manager.now()),
            config.consecutive_missed_backups,
        )

        logger.info(
            f"Sending notification {index}/{config.notification_count} for "
            f"{config.display_name()} (next in {config.notification_spacing.display_name})"
        )
        self._publish(EventType.NOTIFICATION_SENT, {
            "destination_id": config.destination_id,
            "index": index,
            "count": config.notification_count,
            "title": notification.title,
            "body": notification.body,
        })
        self._run_async(self._deliver, notification, config.destination_id, index)

    def _deliver(self, notification: OverdueNotification, destination_id: str,
                 index: int) -> None:
        try:
            self._notifier.deliver(notification.title, notification.body, notification.sound)
            logger.debug(f"Delivered notification {index} for {destination_id}")
        except Exception as e:
            # Still counted as sent; the episode carries on
            logger.error(f"Failed to send notification for {destination_id}: {e}")
            self._publish(EventType.NOTIFICATION_FAILED, {
                "destination_id": destination_id,
                "index": index,
                "error": str(e),
            })

    # === Permission ===

    def _request_permission_if_needed(self) -> None:
        if self._has_requested_permission:
            return
        self._has_requested_permission = True
        self._run_async(self._request_permission)

    def _request_permission(self) -> None:
        try:
            granted = bool(self._notifier.request_permission())
        except Exception as e:
            log_exception(logger, "Failed to request notification permission", e)
            self._publish(EventType.PERMISSION_RESULT, {"granted": False, "error": str(e)})
            return

        self.permission_granted = granted
        if granted:
            logger.info("Notification permission granted")
        else:
            logger.warning("Notification permission denied")
        self._publish(EventType.PERMISSION_RESULT, {"granted": granted})

    # === Helpers ===

    def _run_async(self, target, *args) -> None:
        if self._async_delivery:
            threading.Thread(target=target, args=args, daemon=True).start()
        else:
            target(*args)

    def _publish_episode(self, event_type: EventType, config: DeviceMonitoringConfig) -> None:
        self._publish(event_type, {
            "destination_id": config.destination_id,
            "notifications_sent": config.notifications_sent,
        })

    def _publish(self, event_type: EventType, data: Optional[Dict[str, Any]] = None) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event_type, data, source="dispatcher")
