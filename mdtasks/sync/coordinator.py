# MDTasks Sync Coordinator
# Serializes passes from every trigger and tracks last-known-good results

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from mdtasks.errors import TaskError
from mdtasks.index import LocalIndex
from mdtasks.sync.engine import SyncEngine
from mdtasks.sync.events import SyncResult, SyncSummary
from mdtasks.sync.state import StateManager, SyncState

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 3


@dataclass(frozen=True)
class CoordinatorStatus:
    """Snapshot of the coordinator for display."""

    last_summary: SyncSummary | None
    last_success: datetime | None
    consecutive_failures: int
    stale: bool
    last_error: str | None
    in_flight: bool


class SyncCoordinator:
    """
    Owns one engine, its state and the local index.

    Both the scheduler and on-demand callers go through ``run_once``; a call
    made while another pass is in flight returns False immediately instead
    of starting a second pass.
    """

    def __init__(
        self,
        engine: SyncEngine,
        *,
        state: SyncState | None = None,
        index: LocalIndex | None = None,
        state_manager: StateManager | None = None,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        on_result: Callable[[SyncResult], None] | None = None,
    ):
        """
        Initialize coordinator.

        Args:
            engine: Engine that performs passes.
            state: Baseline to thread through passes (from ``state_manager``
                when given, else empty).
            index: Local index kept in step with the records.
            state_manager: Persists the baseline after each good pass.
            failure_threshold: Consecutive failures after which data is stale.
            on_result: Called with each successful pass result.
        """
        self.engine = engine
        self.state_manager = state_manager
        if state is None:
            state = state_manager.state if state_manager is not None else SyncState()
        self.state = state
        self.index = index if index is not None else LocalIndex()
        self.failure_threshold = failure_threshold
        self.on_result = on_result

        self._lock = threading.Lock()
        self.last_result: SyncResult | None = None
        self.last_success: datetime | None = None
        self.consecutive_failures = 0
        self.last_error: str | None = None

    def run_once(self) -> bool:
        """
        Run a pass unless one is already running.

        Returns:
            True if a pass ran and succeeded; False if it failed or was
            skipped because another pass was in flight.
        """
        if not self._lock.acquire(blocking=False):
            logger.debug("Sync pass already in flight, skipping")
            return False

        try:
            try:
                result = self.engine.run(self.state, self.index)
            except TaskError as e:
                self.consecutive_failures += 1
                self.last_error = str(e)
                level = logging.WARNING if self.is_stale else logging.DEBUG
                logger.log(level, f"Sync pass failed ({self.consecutive_failures} in a row): {e}")
                return False

            self.last_result = result
            self.last_success = result.summary.timestamp
            self.consecutive_failures = 0
            self.last_error = None

            if self.state_manager is not None:
                try:
                    self.state_manager.save()
                except OSError as e:
                    logger.warning(f"Could not persist sync state: {e}")
        finally:
            self._lock.release()

        if self.on_result is not None:
            self.on_result(result)
        return True

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    @property
    def is_stale(self) -> bool:
        return self.consecutive_failures >= self.failure_threshold

    def status(self) -> CoordinatorStatus:
        return CoordinatorStatus(
            last_summary=self.last_result.summary if self.last_result else None,
            last_success=self.last_success,
            consecutive_failures=self.consecutive_failures,
            stale=self.is_stale,
            last_error=self.last_error,
            in_flight=self.in_flight,
        )
