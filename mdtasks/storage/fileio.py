# MDTasks File I/O
# Enumeration, fingerprints and guarded read/write/delete for the task folder

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from mdtasks.errors import (
    PlaceholderNotMaterializedError,
    StructuralParseError,
    TaskIOError,
    TaskNotFoundError,
)
from mdtasks.storage.filenames import TASK_EXTENSION
from mdtasks.utils.paths import atomic_write, expand_path, is_hidden, matches_any_pattern

logger = logging.getLogger(__name__)

PLACEHOLDER_SUFFIX = ".icloud"

# Asked to make a cloud-only file local; returns True once the file is readable.
Materializer = Callable[[Path], bool]


@dataclass(frozen=True)
class FileFingerprint:
    """Cheap change-detection key for one file."""

    mtime: float
    size: int

    @classmethod
    def from_stat(cls, stat_result: os.stat_result) -> "FileFingerprint":
        return cls(mtime=stat_result.st_mtime, size=stat_result.st_size)


@dataclass
class FolderSnapshot:
    """
    Result of enumerating the task folder once.

    Attributes:
        files: Conforming task files mapped to their fingerprints.
        pending: Task paths that exist only as cloud placeholders and could
            not be made local during this enumeration.
        skipped: Paths rejected by the ``accept`` filter (for example
            conflict copies).
    """

    files: dict[Path, FileFingerprint] = field(default_factory=dict)
    pending: set[Path] = field(default_factory=set)
    skipped: set[Path] = field(default_factory=set)


def placeholder_target(placeholder: Path) -> Path | None:
    """
    Map an iCloud placeholder to the task file it stands for.

    ``.buy-milk.md.icloud`` stands for ``buy-milk.md`` in the same directory.
    """
    name = placeholder.name
    if not (name.startswith(".") and name.endswith(PLACEHOLDER_SUFFIX)):
        return None
    target_name = name[1 : -len(PLACEHOLDER_SUFFIX)]
    if not target_name.lower().endswith(TASK_EXTENSION) or target_name.startswith("."):
        return None
    return placeholder.with_name(target_name)


class TaskFolder:
    """
    File-level access to a task folder tree.

    Hidden files and directories are skipped, as are paths matching any of
    the ``exclude`` glob patterns (relative to the root).
    """

    def __init__(
        self,
        root: Path | str,
        *,
        exclude: list[str] | None = None,
        materializer: Materializer | None = None,
    ):
        self.root = expand_path(root)
        self.exclude = list(exclude or [])
        self.materializer = materializer

    def enumerate(self, accept: Callable[[Path], bool] | None = None) -> FolderSnapshot:
        """
        Walk the folder tree and fingerprint every conforming task file.

        Args:
            accept: Optional filter; paths it rejects land in ``skipped``.

        Returns:
            FolderSnapshot.

        Raises:
            TaskIOError: If the root folder itself cannot be listed.
        """
        if not self.root.is_dir():
            raise TaskIOError("enumerate", self.root, "folder does not exist")

        snapshot = FolderSnapshot()

        def on_error(error: OSError) -> None:
            if Path(error.filename or "") == self.root:
                raise TaskIOError("enumerate", self.root, error.strerror or str(error))
            logger.debug(f"Skipping unreadable directory {error.filename}: {error}")

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=on_error):
            current = Path(dirpath)
            rel_dir = current.relative_to(self.root)

            # Prune hidden and excluded directories in place
            dirnames[:] = sorted(
                d
                for d in dirnames
                if not d.startswith(".") and not matches_any_pattern(rel_dir / d, self.exclude)
            )

            for filename in sorted(filenames):
                path = current / filename
                rel_path = rel_dir / filename

                if matches_any_pattern(rel_path, self.exclude):
                    continue

                if filename.startswith("."):
                    target = placeholder_target(path)
                    if target is not None and target.name not in filenames:
                        self._handle_placeholder(target, snapshot)
                    continue

                if not filename.lower().endswith(TASK_EXTENSION) or is_hidden(rel_path):
                    continue

                if accept is not None and not accept(path):
                    snapshot.skipped.add(path)
                    continue

                fingerprint = self._fingerprint(path)
                if fingerprint is not None:
                    snapshot.files[path] = fingerprint

        return snapshot

    def _handle_placeholder(self, target: Path, snapshot: FolderSnapshot) -> None:
        if self.materializer is not None:
            try:
                available = self.materializer(target)
            except OSError as e:
                logger.debug(f"Materializing {target.name} failed: {e}")
                available = False
            if available:
                fingerprint = self._fingerprint(target)
                if fingerprint is not None:
                    snapshot.files[target] = fingerprint
                    return

        logger.debug(f"Skipping cloud placeholder {target.name}, not available locally")
        snapshot.pending.add(target)

    def _fingerprint(self, path: Path) -> FileFingerprint | None:
        try:
            stat_result = path.stat()
        except FileNotFoundError:
            # Removed between listing and stat
            return None
        except OSError as e:
            logger.debug(f"Cannot stat {path}: {e}")
            return None
        if not path.is_file():
            return None
        return FileFingerprint.from_stat(stat_result)

    def fingerprint(self, path: Path) -> FileFingerprint:
        """
        Fingerprint a single file.

        Raises:
            TaskNotFoundError: If the file does not exist.
            TaskIOError: If it cannot be stat'ed.
        """
        try:
            return FileFingerprint.from_stat(path.stat())
        except FileNotFoundError:
            raise TaskNotFoundError(path) from None
        except OSError as e:
            raise TaskIOError("stat", path, str(e)) from None

    def read(self, path: Path) -> str:
        """
        Read a task file as UTF-8 text.

        Raises:
            PlaceholderNotMaterializedError: If only a cloud placeholder exists.
            TaskNotFoundError: If the file does not exist.
            StructuralParseError: If the bytes are not valid UTF-8.
            TaskIOError: For any other read failure.
        """
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            placeholder = path.with_name(f".{path.name}{PLACEHOLDER_SUFFIX}")
            if placeholder.exists():
                raise PlaceholderNotMaterializedError(path) from None
            raise TaskNotFoundError(path) from None
        except UnicodeDecodeError as e:
            raise StructuralParseError(f"not valid UTF-8 ({e.reason})", path=path) from None
        except OSError as e:
            raise TaskIOError("read", path, e.strerror or str(e)) from None

    def write(self, path: Path, content: str) -> FileFingerprint:
        """
        Atomically write a task file.

        Returns:
            Fingerprint of the written file.

        Raises:
            TaskIOError: If the write fails; the previous file is left intact.
        """
        try:
            atomic_write(path, content)
            return FileFingerprint.from_stat(path.stat())
        except OSError as e:
            raise TaskIOError("write", path, e.strerror or str(e)) from None

    def delete(self, path: Path) -> None:
        """
        Delete a task file.

        Raises:
            TaskNotFoundError: If the file does not exist.
            TaskIOError: If deletion fails.
        """
        try:
            path.unlink()
        except FileNotFoundError:
            raise TaskNotFoundError(path) from None
        except OSError as e:
            raise TaskIOError("delete", path, e.strerror or str(e)) from None

    def existing_names(self, directory: Path) -> set[str]:
        """Names of all entries in a directory (empty if it does not exist)."""
        try:
            return {entry.name for entry in directory.iterdir()}
        except FileNotFoundError:
            return set()
        except OSError as e:
            raise TaskIOError("list", directory, e.strerror or str(e)) from None
