"""
hotrun Debounce Scheduler.

Coalesces bursts of file system events into a single deferred trigger.
Requires Python 3.11+.
"""

import threading
from collections.abc import Callable
from typing import Any

from utils.logger import LoggerMixin


class DebounceScheduler(LoggerMixin):
    """
    Debounces rapid file changes.

    Holds at most one pending timer. Every notify() cancels it and arms a
    new one, so the callback runs once after delay_ms milliseconds with
    no further notifications. A steady stream of events postpones the
    callback indefinitely.
    """

    def __init__(
        self,
        callback: Callable[[], Any],
        delay_ms: int = 1000,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            callback: Function to call once the burst has settled
            delay_ms: Quiescence window in milliseconds
        """
        self._delay = delay_ms / 1000.0
        self._callback = callback
        self._timer: threading.Timer | None = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def delay(self) -> float:
        """Quiescence window in seconds."""
        return self._delay

    def notify(self) -> None:
        """Record a qualifying event and (re)arm the timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()

            self._generation += 1
            self._timer = threading.Timer(self._delay, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A newer notify() replaced this timer after it started running
            if generation != self._generation or self._timer is None:
                return
            self._timer = None

        self.log.debug("debounce_elapsed", delay=self._delay)

        try:
            self._callback()
        except Exception as e:
            self.log.error("debounce_callback_failed", error=str(e))

    def cancel(self) -> None:
        """Drop the pending timer without running the callback."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1

    @property
    def pending(self) -> bool:
        """Check if a trigger is scheduled but has not fired yet."""
        with self._lock:
            return self._timer is not None
