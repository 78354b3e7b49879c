"""Cancellable delayed and repeating tasks.

The poll loop and every notification episode run as tasks created through a
Scheduler. Each task hands back a TaskHandle that its owner stores and
cancels; cancelling is idempotent and takes effect before the next tick.

Usage:
    from app.timer import ThreadScheduler

    def on_tick():
        print("Tick!")

    scheduler = ThreadScheduler()
    handle = scheduler.call_every(1800, on_tick)
    # Later...
    handle.cancel()
"""

import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from config import get_logger

logger = get_logger(__name__)


class TaskHandle:
    """Handle to a scheduled task.

    Attributes:
        name: Label used in log messages.
    """

    def __init__(self, name: str = "task"):
        self.name = name
        self._cancelled = threading.Event()
        self._finished = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def active(self) -> bool:
        """True until the task is cancelled or a one-shot task has fired."""
        return not self._cancelled.is_set() and not self._finished

    def cancel(self) -> None:
        if not self._cancelled.is_set():
            self._cancelled.set()
            logger.debug(f"Task '{self.name}' cancelled")

    def _mark_finished(self) -> None:
        self._finished = True

    def _wait(self, seconds: float) -> bool:
        """Sleep until the delay elapses or the task is cancelled.

        Returns:
            True if the task was cancelled while waiting.
        """
        return self._cancelled.wait(seconds)


class Scheduler(ABC):
    """Creates delayed and repeating tasks.

    Subclasses decide how time passes: ThreadScheduler uses real threads,
    tests substitute a virtual clock.
    """

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None],
                   name: str = "task") -> TaskHandle:
        """Run ``callback`` once after ``delay`` seconds."""

    @abstractmethod
    def call_every(self, interval: float, callback: Callable[[], None],
                   name: str = "task") -> TaskHandle:
        """Run ``callback`` every ``interval`` seconds, first after one interval."""

    def shutdown(self) -> None:
        """Release scheduler resources. Outstanding handles stay cancellable."""


class ThreadScheduler(Scheduler):
    """Scheduler backed by one daemon thread per task.

    Each thread waits on its handle's cancellation event rather than
    sleeping, so cancel() ends the thread immediately. Exceptions raised by
    callbacks are logged and never escape into the timer thread; a
    repeating task keeps running after a failing tick.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handles: set = set()

    def call_later(self, delay: float, callback: Callable[[], None],
                   name: str = "task") -> TaskHandle:
        handle = TaskHandle(name)
        self._start(handle, self._run_once, delay, callback)
        return handle

    def call_every(self, interval: float, callback: Callable[[], None],
                   name: str = "task") -> TaskHandle:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        handle = TaskHandle(name)
        self._start(handle, self._run_repeating, interval, callback)
        return handle

    def _start(self, handle: TaskHandle, loop: Callable, seconds: float,
               callback: Callable[[], None]) -> None:
        with self._lock:
            self._handles.add(handle)
        thread = threading.Thread(
            target=loop,
            args=(handle, seconds, callback),
            daemon=True,
            name=f"Scheduler-{handle.name}",
        )
        thread.start()
        logger.debug(f"Task '{handle.name}' scheduled ({seconds}s)")

    def _run_once(self, handle: TaskHandle, delay: float,
                  callback: Callable[[], None]) -> None:
        try:
            if not handle._wait(delay):
                handle._mark_finished()
                self._invoke(handle, callback)
        finally:
            self._forget(handle)

    def _run_repeating(self, handle: TaskHandle, interval: float,
                       callback: Callable[[], None]) -> None:
        try:
            while not handle._wait(interval):
                self._invoke(handle, callback)
        finally:
            self._forget(handle)

    def _invoke(self, handle: TaskHandle, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception as e:
            logger.error(f"Error in scheduled task '{handle.name}': {e}", exc_info=True)

    def _forget(self, handle: TaskHandle) -> None:
        with self._lock:
            self._handles.discard(handle)

    @property
    def active_count(self) -> int:
        with self._lock:
            return sum(1 for h in self._handles if h.active)

    def shutdown(self) -> None:
        """Cancel every outstanding task."""
        with self._lock:
            handles = list(self._handles)
        for handle in handles:
            handle.cancel()
        logger.debug("ThreadScheduler shut down")


def cancel_task(handle: Optional[TaskHandle]) -> None:
    """Cancel a possibly-missing handle."""
    if handle is not None:
        handle.cancel()
