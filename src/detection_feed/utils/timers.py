"""
Single-slot cancellable timers.

The reconnect schedule and the auto-dismiss countdown each own one of these.
Scheduling always replaces the pending callback, so a slot never holds more
than one live timer and a cancelled callback can never fire late.
"""

import logging
import threading
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class Timer(Protocol):
    """Subset of ``threading.Timer`` used by SingleSlotTimer."""

    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


class SingleSlotTimer:
    """
    Holds at most one scheduled callback.

    Each schedule() bumps a generation counter; the wrapped callback checks
    it before running, which covers the window where threading.Timer has
    already woken up but cancel() was called from another thread.
    """

    def __init__(self, name: str, timer_factory: TimerFactory = threading.Timer):
        self._name = name
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Timer | None = None
        self._generation = 0
        self._delay: float | None = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    @property
    def delay(self) -> float | None:
        """Delay (seconds) of the pending callback, None when idle."""
        with self._lock:
            return self._delay if self._timer is not None else None

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        """
        Run ``callback`` after ``delay`` seconds, replacing anything pending.

        Args:
            delay: Seconds to wait
            callback: Zero-argument callable
        """
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            generation = self._generation

            def fire() -> None:
                with self._lock:
                    if generation != self._generation:
                        return
                    self._timer = None
                    self._delay = None
                try:
                    callback()
                except Exception as e:
                    logger.error(f"{self._name} timer callback failed: {e}", exc_info=True)

            timer = self._timer_factory(delay, fire)
            timer.daemon = True
            self._timer = timer
            self._delay = delay
            timer.start()

        logger.debug(f"{self._name}: scheduled in {delay:.1f}s")

    def cancel(self) -> bool:
        """
        Cancel the pending callback, if any.

        Returns:
            True if something was pending
        """
        with self._lock:
            had_timer = self._timer is not None
            self._cancel_locked()
        if had_timer:
            logger.debug(f"{self._name}: cancelled")
        return had_timer

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._delay = None
        self._generation += 1
