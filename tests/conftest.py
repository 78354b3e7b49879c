"""Pytest configuration and shared fixtures.

This module provides:
- A manual clock and virtual scheduler for driving the poll and episode loops
- A monitoring manager, dispatcher and controller wired to fakes
- Pytest markers for test categorization (unit, integration, slow)
"""
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from app.controller import MonitoringController
from app.dependencies import AppDependencies
from app.dispatcher import BackupNotificationDispatcher
from app.events import EventBus
from monitor.manager import BackupMonitoringManager
from monitor.schedule import MonitoringInterval
from storage.settings import SettingsManager
from tests.mocks import ManualClock, MockScheduleLookup, RecordingNotifier, VirtualScheduler


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: mark test as a unit test (fast, isolated)")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# =============================================================================
# Time Fixtures
# =============================================================================


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def scheduler(clock: ManualClock) -> VirtualScheduler:
    return VirtualScheduler(clock)


# =============================================================================
# Monitoring Fixtures
# =============================================================================


@pytest.fixture
def notifier(clock: ManualClock) -> RecordingNotifier:
    return RecordingNotifier(clock)


@pytest.fixture
def event_bus() -> EventBus:
    """Synchronous event bus so assertions see events immediately."""
    return EventBus(async_mode=False)


@pytest.fixture
def manager(clock: ManualClock) -> BackupMonitoringManager:
    manager = BackupMonitoringManager(clock=clock)
    manager.is_monitoring_enabled = True
    return manager


@pytest.fixture
def dispatcher(manager, notifier, scheduler, event_bus) -> BackupNotificationDispatcher:
    return BackupNotificationDispatcher(
        manager, notifier, scheduler, event_bus=event_bus, async_delivery=False
    )


@pytest.fixture
def overdue_config(manager, clock):
    """A monitored destination whose last backup was 100000s ago (daily schedule)."""
    config = manager.get_or_create_config("dest-1")
    config.is_monitored = True
    config.device_name = "Backup Disk"
    config.last_backup_date = clock.ago(100000)
    return config


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def settings_manager(tmp_path: Path) -> SettingsManager:
    return SettingsManager(tmp_path)


@pytest.fixture
def schedule_lookup() -> MockScheduleLookup:
    return MockScheduleLookup()


@pytest.fixture
def deps(manager, dispatcher, schedule_lookup, scheduler, notifier,
         settings_manager, event_bus) -> AppDependencies:
    manager.is_monitoring_enabled = False
    manager.check_interval = MonitoringInterval.MINUTES_30
    return AppDependencies(
        manager=manager,
        dispatcher=dispatcher,
        schedule_lookup=schedule_lookup,
        scheduler=scheduler,
        notifier=notifier,
        settings=settings_manager,
        event_bus=event_bus,
    )


@pytest.fixture
def controller(deps) -> MonitoringController:
    return MonitoringController(deps, async_refresh=False)


@pytest.fixture
def mock_event_bus() -> MagicMock:
    """Create a mock event bus for asserting published events."""
    mock_bus = MagicMock()
    mock_bus.publish = MagicMock()
    return mock_bus
