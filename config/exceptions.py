"""Custom exception hierarchy for Backup Monitor.

Provides specific exceptions for the different failure categories of the
monitoring core. Only ConfigurationError is expected to reach callers;
everything else is caught, logged and degraded to a safe default.
"""

from typing import Optional


class BackupMonitorError(Exception):
    """Base exception for all Backup Monitor errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigurationError(BackupMonitorError):
    """Invalid monitoring policy values.

    Raised when a settings collaborator passes:
    - A missed-backup threshold or notification count outside its range
    - A non-positive custom schedule interval
    - An unknown check interval or notification spacing

    Examples:
        >>> raise ConfigurationError("Invalid notification count", {"value": 0})
    """

    pass


class StorageError(BackupMonitorError):
    """Monitoring settings could not be read or written.

    Examples:
        >>> raise StorageError("Failed to save settings", {"path": "/path/to/file"})
    """

    pass


class ScheduleLookupError(BackupMonitorError):
    """Backup schedule could not be determined for one identifier.

    The lookup catches this per identifier and moves on to the next one.
    """

    pass


class NotificationError(BackupMonitorError):
    """Notification delivery or permission request failed.

    Failures are logged by the dispatcher and never abort an episode.
    """

    pass


class SubprocessError(BackupMonitorError):
    """Subprocess execution errors.

    Raised when there are issues with:
    - Command execution failures
    - Timeouts
    - Commands outside the allowlist
    - Command not found

    Attributes:
        command: The command that failed.
        returncode: Exit code if available.
        stdout: Standard output if available.
        stderr: Standard error if available.

    Examples:
        >>> raise SubprocessError(
        ...     "Command failed",
        ...     details={"command": ["tmutil", "destinationinfo"], "returncode": 1}
        ... )
    """

    def __init__(
        self,
        message: str,
        command: Optional[list] = None,
        returncode: Optional[int] = None,
        stdout: Optional[str] = None,
        stderr: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        details = details or {}
        if command:
            details["command"] = command
        if returncode is not None:
            details["returncode"] = returncode
        if stdout:
            details["stdout"] = stdout[:500]  # Truncate long output
        if stderr:
            details["stderr"] = stderr[:500]

        super().__init__(message, details)
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
