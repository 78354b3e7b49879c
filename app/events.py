"""Event bus for monitoring state changes.

Observers (a status item, a settings window, a log sink) subscribe to the
events they care about instead of watching the monitoring objects directly.

Usage:
    from app.events import EventBus, EventType

    bus = EventBus()
    bus.subscribe(EventType.NOTIFICATION_SENT, lambda e: print(e.data))
    bus.publish(EventType.NOTIFICATION_SENT, {"destination_id": "dest-1", "index": 1})
"""
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional

from config import get_logger

logger = get_logger(__name__)


class EventType(Enum):
    """Types of events that can be published/subscribed."""

    # Monitoring lifecycle
    MONITORING_STARTED = auto()
    MONITORING_STOPPED = auto()
    CHECK_INTERVAL_CHANGED = auto()
    CHECK_COMPLETED = auto()

    # Destination events
    DEVICE_UPDATED = auto()
    SCHEDULE_UPDATED = auto()
    DEVICE_SETTINGS_CHANGED = auto()
    NOTIFICATIONS_RESET = auto()

    # Episode events
    BACKUP_OVERDUE = auto()
    NOTIFICATION_SENT = auto()
    NOTIFICATION_FAILED = auto()
    EPISODE_COMPLETED = auto()
    EPISODE_CANCELLED = auto()

    # Notification permission
    PERMISSION_RESULT = auto()


@dataclass
class Event:
    """Represents an event with type and data.

    Attributes:
        event_type: The type of event.
        data: Event-specific data.
        timestamp: When the event was created.
        source: Optional identifier of the event source.
    """
    event_type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    source: Optional[str] = None

    def __str__(self) -> str:
        return f"Event({self.event_type.name}, data={self.data})"


# Type alias for event handlers
EventHandler = Callable[[Event], None]


class EventBus:
    """Thread-safe publish/subscribe event bus.

    Events are processed on a background worker by default so that a slow
    observer never holds up a poll tick. Pass ``async_mode=False`` to
    dispatch inline (tests).

    Example:
        >>> bus = EventBus(async_mode=False)
        >>> bus.subscribe(EventType.BACKUP_OVERDUE, lambda e: print(e.data))
        >>> bus.publish(EventType.BACKUP_OVERDUE, {"destination_id": "dest-1"})
    """

    def __init__(self, async_mode: bool = True):
        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._lock = threading.Lock()
        self._async_mode = async_mode
        self._event_queue: queue.Queue = queue.Queue()
        self._running = False
        self._worker_thread: Optional[threading.Thread] = None

        if async_mode:
            self._start_worker()

    def _start_worker(self) -> None:
        self._running = True
        self._worker_thread = threading.Thread(
            target=self._process_events,
            daemon=True,
            name="EventBus-Worker"
        )
        self._worker_thread.start()
        logger.debug("EventBus worker thread started")

    def _process_events(self) -> None:
        while self._running:
            try:
                event = self._event_queue.get(timeout=0.1)
            except queue.Empty:
                continue
            self._dispatch_event(event)
            self._event_queue.task_done()

    def _dispatch_event(self, event: Event) -> None:
        with self._lock:
            handlers = self._subscribers.get(event.event_type, []).copy()

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in event handler for {event.event_type.name}: {e}",
                    exc_info=True
                )

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed to {event_type.name}")

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> bool:
        """Remove a handler.

        Returns:
            True if handler was found and removed, False otherwise.
        """
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                logger.debug(f"Unsubscribed from {event_type.name}")
                return True
        return False

    def publish(self, event_type: EventType, data: Optional[Dict[str, Any]] = None,
                source: Optional[str] = None) -> None:
        event = Event(event_type=event_type, data=data or {}, source=source)

        if self._async_mode and self._running:
            self._event_queue.put(event)
        else:
            self._dispatch_event(event)

        logger.debug(f"Published {event_type.name}")

    def get_subscriber_count(self, event_type: EventType) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, []))

    def shutdown(self) -> None:
        """Stop the worker thread. Later events are dispatched inline."""
        self._running = False
        if self._worker_thread:
            self._worker_thread.join(timeout=1.0)
        logger.debug("EventBus shut down")
