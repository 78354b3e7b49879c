"""Application module for Backup Monitor.

Contains the active components around the monitoring core:
- EventBus: State-change channel for observers
- MonitoringController: Operations exposed to the UI and status poller
- BackupNotificationDispatcher: Poll loop and notification episodes
- ThreadScheduler: Cancellable delayed and repeating tasks
- RumpsNotifier: macOS notification delivery
"""

from app.controller import MonitoringController
from app.dependencies import AppDependencies, create_dependencies
from app.dispatcher import BackupNotificationDispatcher
from app.events import Event, EventBus, EventType
from app.notifier import Notifier, RumpsNotifier, format_overdue_notification
from app.timer import Scheduler, TaskHandle, ThreadScheduler

__all__ = [
    "AppDependencies",
    "BackupNotificationDispatcher",
    "Event",
    "EventBus",
    "EventType",
    "MonitoringController",
    "Notifier",
    "RumpsNotifier",
    "Scheduler",
    "TaskHandle",
    "ThreadScheduler",
    "create_dependencies",
    "format_overdue_notification",
]
