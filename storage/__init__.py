"""Data persistence components."""

from .settings import DevicePolicy, MonitoringSettings, SettingsManager

__all__ = [
    "DevicePolicy",
    "MonitoringSettings",
    "SettingsManager",
]
