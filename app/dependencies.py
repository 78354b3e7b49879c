"""Dependency injection container for Backup Monitor.

Every component is constructed here and handed to its users explicitly;
nothing reaches for a process-wide instance.

Usage:
    from app.dependencies import create_dependencies

    deps = create_dependencies()
    deps.manager.get_or_create_config("dest-1")
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from config import STORAGE, get_logger

logger = get_logger(__name__)


@dataclass
class AppDependencies:
    """Container for all application dependencies.

    Each field is a component that tests can replace.
    """

    # Monitoring core
    manager: "BackupMonitoringManager"
    dispatcher: "BackupNotificationDispatcher"
    schedule_lookup: "TimeMachineScheduleLookup"

    # Infrastructure
    scheduler: "Scheduler"
    notifier: "Notifier"
    settings: "SettingsManager"

    # Event bus (optional, can be shared)
    event_bus: Optional["EventBus"] = None

    def __post_init__(self):
        logger.debug("AppDependencies container created")


def create_dependencies(
    data_dir: Optional[Path] = None,
    event_bus: Optional["EventBus"] = None,
    notifier: Optional["Notifier"] = None,
    scheduler: Optional["Scheduler"] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> AppDependencies:
    """Create all application dependencies and wire them together.

    Args:
        data_dir: Override the default data directory.
        event_bus: Provide an existing event bus, or one will be created.
        notifier: Notification backend. Defaults to rumps.
        scheduler: Task scheduler. Defaults to real threads.
        clock: Time source for the manager.

    Returns:
        AppDependencies container with all components.
    """
    # Import here to avoid circular imports
    from app.dispatcher import BackupNotificationDispatcher
    from app.events import EventBus
    from app.notifier import RumpsNotifier
    from app.timer import ThreadScheduler
    from monitor.manager import BackupMonitoringManager
    from monitor.schedule_lookup import TimeMachineScheduleLookup
    from storage.settings import SettingsManager

    logger.info("Creating application dependencies...")

    if data_dir is None:
        data_dir = Path.home() / STORAGE.DATA_DIR_NAME

    event_bus = event_bus or EventBus(async_mode=True)
    notifier = notifier or RumpsNotifier()
    scheduler = scheduler or ThreadScheduler()

    manager = BackupMonitoringManager(clock=clock)
    dispatcher = BackupNotificationDispatcher(
        manager, notifier, scheduler, event_bus=event_bus
    )

    deps = AppDependencies(
        manager=manager,
        dispatcher=dispatcher,
        schedule_lookup=TimeMachineScheduleLookup(),
        scheduler=scheduler,
        notifier=notifier,
        settings=SettingsManager(data_dir),
        event_bus=event_bus,
    )

    logger.info("All dependencies created successfully")
    return deps
