# MDTasks Sync Scheduler
# Adaptive timer loop: base interval, fast path after local edits, backoff on failure

import logging
import threading
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Protocol

from mdtasks.codec.dates import utc_now

logger = logging.getLogger(__name__)

DEFAULT_BASE_INTERVAL = 30.0
DEFAULT_FAST_SYNC_DELAY = 5.0
DEFAULT_BACKOFF = (60.0, 120.0, 300.0)


class PendingTimer(Protocol):
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], PendingTimer]


def start_thread_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    """Default timer factory: a started daemon ``threading.Timer``."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class SyncScheduler:
    """
    Runs a sync action on an adaptive schedule.

    At most one wake-up is pending at any time and the loop re-arms itself
    only after the action returns, so two runs never overlap. The delay
    after a run is ``base_interval`` on success, or the backoff step for the
    current number of consecutive failures (the last step repeats).

    ``stop`` cancels the pending wake-up but never a run in progress; a run
    that finishes after ``stop`` does not re-arm.
    """

    def __init__(
        self,
        *,
        base_interval: float = DEFAULT_BASE_INTERVAL,
        fast_sync_delay: float = DEFAULT_FAST_SYNC_DELAY,
        backoff: Sequence[float] = DEFAULT_BACKOFF,
        timer_factory: TimerFactory = start_thread_timer,
        clock: Callable[[], datetime] = utc_now,
    ):
        if not backoff:
            raise ValueError("backoff must contain at least one delay")
        self.base_interval = base_interval
        self.fast_sync_delay = fast_sync_delay
        self.backoff = tuple(backoff)
        self._timer_factory = timer_factory
        self._clock = clock

        self._lock = threading.Lock()
        self._action: Callable[[], bool] | None = None
        self._running = False
        self._in_flight = False
        self._fast_requested = False
        self._timer: PendingTimer | None = None
        self._pending_delay: float | None = None
        self._generation = 0

        self.consecutive_failures = 0
        self.last_sync_time: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def pending_delay(self) -> float | None:
        """Delay of the currently pending wake-up, if any."""
        return self._pending_delay

    def next_interval(self) -> float:
        """Delay to use after the most recent run."""
        if self.consecutive_failures == 0:
            return self.base_interval
        step = min(self.consecutive_failures - 1, len(self.backoff) - 1)
        return self.backoff[step]

    def start(self, action: Callable[[], bool], *, initial_delay: float | None = None) -> None:
        """
        Begin the loop.

        Args:
            action: Runs one sync; returns True on success. An exception
                counts as a failure.
            initial_delay: Delay before the first run (defaults to the base
                interval).
        """
        self.stop()
        with self._lock:
            self._action = action
            self._running = True
            self._schedule(self.base_interval if initial_delay is None else initial_delay)

    def stop(self) -> None:
        """Cancel the pending wake-up. A run already in progress finishes."""
        with self._lock:
            self._running = False
            self._fast_requested = False
            self._cancel_pending()

    def trigger_fast_sync(self) -> None:
        """
        Replace the pending wake-up with the fast-path delay.

        No-op unless running. During a run, the re-arm after it uses the
        fast-path delay instead.
        """
        with self._lock:
            if not self._running:
                return
            if self._in_flight:
                self._fast_requested = True
                return
            self._cancel_pending()
            self._schedule(self.fast_sync_delay)

    def _schedule(self, delay: float) -> None:
        # Caller holds the lock
        self._generation += 1
        generation = self._generation
        self._pending_delay = delay
        self._timer = self._timer_factory(delay, lambda: self._fire(generation))

    def _cancel_pending(self) -> None:
        # Caller holds the lock
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._pending_delay = None
        self._generation += 1

    def _fire(self, generation: int) -> None:
        with self._lock:
            if not self._running or generation != self._generation or self._in_flight:
                return
            self._in_flight = True
            self._timer = None
            self._pending_delay = None
            action = self._action

        succeeded = False
        try:
            succeeded = bool(action()) if action is not None else False
        except Exception as e:
            logger.warning(f"Scheduled sync failed: {e}")
            succeeded = False
        finally:
            with self._lock:
                self._in_flight = False
                self.last_sync_time = self._clock()
                if succeeded:
                    self.consecutive_failures = 0
                else:
                    self.consecutive_failures += 1

                if self._running:
                    if self._fast_requested:
                        delay = self.fast_sync_delay
                    else:
                        delay = self.next_interval()
                    self._fast_requested = False
                    self._schedule(delay)
                    logger.debug(f"Next sync in {delay:g}s")
