"""User notification delivery.

The monitoring core only knows the Notifier contract: ask for permission
once, then deliver(title, body, sound). RumpsNotifier is the macOS
implementation used by the menu bar app.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass

from config import NOTIFICATIONS, NotificationError, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OverdueNotification:
    """Text of one overdue alert."""
    title: str
    body: str
    sound: bool = NOTIFICATIONS.PLAY_SOUND


def _plural(count: int, unit: str) -> str:
    return f"1 {unit}" if count == 1 else f"{count} {unit}s"


def format_overdue_notification(device_name: str, hours_overdue: int,
                                missed_backups: int) -> OverdueNotification:
    """Build the alert for an overdue destination.

    Example:
        >>> format_overdue_notification("Backup Disk", 3, 1).body
        'Backup is 3 hours overdue. 1 backup missed.'
    """
    name = device_name or NOTIFICATIONS.UNKNOWN_DEVICE
    return OverdueNotification(
        title=f"{NOTIFICATIONS.TITLE_PREFIX}: {name}",
        body=(
            f"Backup is {_plural(hours_overdue, 'hour')} overdue. "
            f"{_plural(missed_backups, 'backup')} missed."
        ),
    )


class Notifier(ABC):
    """Contract for delivering user notifications.

    Implementations may block; the dispatcher calls them off the poll loop.
    """

    @abstractmethod
    def request_permission(self) -> bool:
        """Ask the OS for permission to post notifications.

        Returns:
            True if granted.

        Raises:
            NotificationError: If the request itself failed.
        """

    @abstractmethod
    def deliver(self, title: str, body: str, sound: bool = True) -> None:
        """Post one notification.

        Raises:
            NotificationError: If delivery failed.
        """


class RumpsNotifier(Notifier):
    """Posts notifications through rumps (macOS only).

    rumps is imported lazily so the monitoring core stays importable on
    machines without PyObjC.
    """

    def __init__(self, subtitle: str = "Time Machine"):
        self._subtitle = subtitle

    def request_permission(self) -> bool:
        try:
            import rumps  # noqa: F401
        except ImportError as e:
            raise NotificationError("rumps is not available", {"error": str(e)}) from e
        # NSUserNotificationCenter, which rumps posts through, needs no grant
        return True

    def deliver(self, title: str, body: str, sound: bool = True) -> None:
        try:
            import rumps
            rumps.notification(
                title=title,
                subtitle=self._subtitle,
                message=body,
                sound=sound,
            )
        except Exception as e:
            raise NotificationError(
                f"Failed to post notification: {e}", {"title": title}
            ) from e
