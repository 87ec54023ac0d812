# MDTasks Folder Watcher
# Debounced polling event source for changes anywhere in the task folder

import logging
import threading
import time
from collections.abc import Callable

from mdtasks.errors import TaskIOError
from mdtasks.storage.fileio import TaskFolder

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_DEBOUNCE = 1.0


class FolderWatcher:
    """
    Notices folder changes by polling a cheap tree signature.

    The signature covers path, modification time and size of every
    conforming file (conflict copies included). ``on_change`` fires once the
    signature has stopped changing for ``debounce`` seconds, so a burst of
    writes produces a single notification.
    """

    def __init__(
        self,
        folder: TaskFolder,
        on_change: Callable[[], None],
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        debounce: float = DEFAULT_DEBOUNCE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.folder = folder
        self.on_change = on_change
        self.poll_interval = poll_interval
        self.debounce = debounce
        self._clock = clock

        self._signature: frozenset | None = None
        self._changed_at: float | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def signature(self) -> frozenset:
        snapshot = self.folder.enumerate()
        return frozenset(
            (str(path), fingerprint.mtime, fingerprint.size) for path, fingerprint in snapshot.files.items()
        ) | frozenset(("pending", str(path), 0) for path in snapshot.pending)

    def poll(self) -> bool:
        """
        Take one sample.

        Returns:
            True if ``on_change`` was called.
        """
        try:
            current = self.signature()
        except TaskIOError as e:
            logger.debug(f"Watcher cannot enumerate folder: {e}")
            return False

        now = self._clock()
        if self._signature is None:
            # First sample is the baseline
            self._signature = current
            return False

        if current != self._signature:
            self._signature = current
            self._changed_at = now
            return False

        if self._changed_at is not None and now - self._changed_at >= self.debounce:
            self._changed_at = None
            logger.debug("Task folder changed")
            self.on_change()
            return True
        return False

    def start(self) -> None:
        """Poll in a background daemon thread until ``stop``."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="mdtasks-watcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.poll_interval + 1.0)
            self._thread = None

    def _loop(self) -> None:
        while not self._stop.is_set():
            self.poll()
            self._stop.wait(self.poll_interval)
