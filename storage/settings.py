"""Persistence of the backup monitoring policy.

Only the user's choices are stored (global switch, check interval and the
per-device policy). Streaks, alert timestamps and episode progress live in
memory and start fresh with each process.
"""
import json
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, Optional

from config import INTERVALS, LIMITS, STORAGE, StorageError, get_logger
from monitor.schedule import MonitoringInterval, NotificationSpacing

logger = get_logger(__name__)


def _clamp(value, low: int, high: int, default: int) -> int:
    try:
        return min(high, max(low, int(value)))
    except (TypeError, ValueError):
        return default


@dataclass
class DevicePolicy:
    """Stored monitoring policy for one destination."""
    is_monitored: bool = False
    missed_backup_threshold: int = 1
    notification_count: int = 1
    notification_spacing: int = INTERVALS.DEFAULT_SPACING_SECONDS
    custom_interval: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'DevicePolicy':
        spacing = data.get("notification_spacing", INTERVALS.DEFAULT_SPACING_SECONDS)
        if spacing not in {s.value for s in NotificationSpacing}:
            spacing = INTERVALS.DEFAULT_SPACING_SECONDS

        custom = data.get("custom_interval")
        if not isinstance(custom, (int, float)) or isinstance(custom, bool) or custom <= 0:
            custom = None

        return cls(
            is_monitored=bool(data.get("is_monitored", False)),
            missed_backup_threshold=_clamp(
                data.get("missed_backup_threshold"),
                LIMITS.MIN_MISSED_BACKUP_THRESHOLD, LIMITS.MAX_MISSED_BACKUP_THRESHOLD, 1,
            ),
            notification_count=_clamp(
                data.get("notification_count"),
                LIMITS.MIN_NOTIFICATION_COUNT, LIMITS.MAX_NOTIFICATION_COUNT, 1,
            ),
            notification_spacing=spacing,
            custom_interval=custom,
        )


@dataclass
class MonitoringSettings:
    """Global monitoring settings plus per-device policies."""
    monitoring_enabled: bool = False
    check_interval: int = INTERVALS.DEFAULT_CHECK_SECONDS
    devices: Dict[str, DevicePolicy] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "monitoring_enabled": self.monitoring_enabled,
            "check_interval": self.check_interval,
            "devices": {key: policy.to_dict() for key, policy in self.devices.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'MonitoringSettings':
        interval = data.get("check_interval", INTERVALS.DEFAULT_CHECK_SECONDS)
        if interval not in {i.value for i in MonitoringInterval}:
            interval = INTERVALS.DEFAULT_CHECK_SECONDS
        devices = data.get("devices") or {}
        return cls(
            monitoring_enabled=bool(data.get("monitoring_enabled", False)),
            check_interval=interval,
            devices={
                str(key): DevicePolicy.from_dict(value)
                for key, value in devices.items()
                if isinstance(value, dict)
            },
        )


class SettingsManager:
    """Loads and saves MonitoringSettings as JSON.

    A missing or unreadable file yields default settings; a failed save is
    logged and the in-memory settings stay authoritative.
    """

    def __init__(self, data_dir: Path, filename: str = STORAGE.SETTINGS_FILE):
        self.data_dir = data_dir
        self.settings_file = data_dir / filename
        self._lock = threading.Lock()
        self._settings = self._load()

    @property
    def settings(self) -> MonitoringSettings:
        return self._settings

    def _load(self) -> MonitoringSettings:
        if not self.settings_file.exists():
            return MonitoringSettings()
        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise StorageError("Settings file is not a JSON object",
                                   {"path": str(self.settings_file)})
            return MonitoringSettings.from_dict(data)
        except (json.JSONDecodeError, OSError, StorageError) as e:
            logger.warning(f"Could not load settings from {self.settings_file}: {e}")
            return MonitoringSettings()

    def save(self) -> bool:
        """Write the current settings to disk.

        Returns:
            True on success.
        """
        with self._lock:
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                tmp_file = self.settings_file.with_suffix('.tmp')
                with open(tmp_file, 'w', encoding='utf-8') as f:
                    json.dump(self._settings.to_dict(), f, indent=2)
                tmp_file.replace(self.settings_file)
                return True
            except OSError as e:
                logger.error(f"Error saving settings to {self.settings_file}: {e}")
                return False

    # === Global settings ===

    def set_monitoring_enabled(self, enabled: bool) -> None:
        self._settings.monitoring_enabled = enabled
        self.save()

    def set_check_interval(self, seconds: int) -> None:
        self._settings.check_interval = seconds
        self.save()

    # === Device policies ===

    def set_device_policy(self, destination_id: str, policy: DevicePolicy) -> None:
        self._settings.devices[destination_id] = policy
        self.save()
