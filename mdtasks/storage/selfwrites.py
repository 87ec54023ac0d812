# MDTasks Self-Write Registry
# Pending registrations of writes the application itself performed

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

DEFAULT_TOLERANCE = 2.0
DEFAULT_GRACE_PERIOD = 30.0


@dataclass(frozen=True)
class SelfWrite:
    """One pending registration."""

    expected_mtime: float
    registered_at: float


class SelfWriteRegistry:
    """
    Remembers paths the repository just wrote.

    A later observation of the same path whose modification time lies within
    ``tolerance`` seconds of the expected one is a self-write echo; matching
    consumes the registration. Registrations older than ``grace_period``
    seconds are dropped by ``purge``.
    """

    def __init__(
        self,
        *,
        tolerance: float = DEFAULT_TOLERANCE,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        clock: Callable[[], float] = time.time,
    ):
        self.tolerance = tolerance
        self.grace_period = grace_period
        self._clock = clock
        self._pending: dict[Path, SelfWrite] = {}
        self._lock = threading.Lock()

    def register(self, path: Path, expected_mtime: float | None = None) -> None:
        """Record that ``path`` is about to be (or was just) written by us."""
        now = self._clock()
        with self._lock:
            self._pending[Path(path)] = SelfWrite(
                expected_mtime=now if expected_mtime is None else expected_mtime,
                registered_at=now,
            )

    def discard(self, path: Path) -> None:
        with self._lock:
            self._pending.pop(Path(path), None)

    def matches(self, path: Path, observed_mtime: float) -> bool:
        """
        Check an observed change against pending registrations.

        Returns:
            True if the change is our own write; the registration is cleared.
        """
        with self._lock:
            entry = self._pending.get(Path(path))
            if entry is None:
                return False
            if abs(entry.expected_mtime - observed_mtime) > self.tolerance:
                return False
            del self._pending[Path(path)]
            return True

    def purge(self) -> int:
        """Drop registrations older than the grace period. Returns how many."""
        cutoff = self._clock() - self.grace_period
        with self._lock:
            stale = [path for path, entry in self._pending.items() if entry.registered_at < cutoff]
            for path in stale:
                del self._pending[path]
        return len(stale)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return Path(path) in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
