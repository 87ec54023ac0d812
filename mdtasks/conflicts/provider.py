# MDTasks Version Providers
# Access to the unresolved concurrent versions a sync backend keeps for a path

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Protocol

from mdtasks.errors import TaskIOError
from mdtasks.utils.paths import atomic_write

logger = logging.getLogger(__name__)


class ResolutionOutcome(str, Enum):
    """What to do with one version when a conflict is resolved."""

    DISCARD = "discard"
    REPLACE_LOCAL = "replace_local"


@dataclass(frozen=True)
class VersionHandle:
    """
    One unresolved alternate version of a task file.

    Attributes:
        id: Provider-specific identifier, stable while the version exists.
        path: The conflicted (working copy) path.
        modified: When this version was last modified.
        origin: Human-readable label for where the version came from.
        location: Where the provider keeps the version, if it is a file.
    """

    id: str
    path: Path
    modified: datetime
    origin: str
    location: Path | None = None
    reader: Callable[[], str] = field(default=lambda: "", compare=False, repr=False)

    def content(self) -> str:
        """Read this version's content."""
        return self.reader()


class VersionProvider(Protocol):
    """Capability a sync backend exposes for conflict handling."""

    def owner_of(self, path: Path) -> Path | None:
        """Return the task path a file is an alternate version of, or None."""
        ...

    def list_unresolved_versions(self, path: Path) -> list[VersionHandle]:
        """Return the unresolved alternate versions of ``path``."""
        ...

    def resolve(self, handle: VersionHandle, outcome: ResolutionOutcome) -> None:
        """Apply an outcome to one version; it is no longer reported afterwards."""
        ...


class NullVersionProvider:
    """Backend without version tracking; nothing ever conflicts."""

    def owner_of(self, path: Path) -> Path | None:
        return None

    def list_unresolved_versions(self, path: Path) -> list[VersionHandle]:
        return []

    def resolve(self, handle: VersionHandle, outcome: ResolutionOutcome) -> None:
        raise TaskIOError("resolve", handle.path, "no version provider configured")


# Dropbox: "name (Laptop's conflicted copy 2024-05-01).md"
# Nextcloud: "name (conflicted copy 2024-05-01 101500).md"
_CONFLICTED_COPY_RE = re.compile(
    r"^(?P<stem>.+?) \((?P<detail>[^()]*conflicted copy[^()]*)\)(?P<ext>\.md)$",
    re.IGNORECASE,
)
# Syncthing: "name.sync-conflict-20240501-101500-ABCDEFG.md"
_SYNC_CONFLICT_RE = re.compile(
    r"^(?P<stem>.+)\.sync-conflict-(?P<date>\d{8})-(?P<time>\d{6})-(?P<device>[A-Za-z0-9]+)(?P<ext>\.md)$",
)


def parse_conflict_copy(filename: str) -> tuple[str, str] | None:
    """
    Recognize a sibling conflict copy by name.

    Returns:
        (owner filename, origin label), or None if not a conflict copy.
    """
    match = _SYNC_CONFLICT_RE.match(filename)
    if match:
        return f"{match.group('stem')}{match.group('ext')}", f"syncthing:{match.group('device')}"

    match = _CONFLICTED_COPY_RE.match(filename)
    if match:
        return f"{match.group('stem')}{match.group('ext')}", match.group("detail").strip()

    return None


class ConflictCopyProvider:
    """
    Versions kept as sibling "conflicted copy" files.

    Folder sync tools such as Dropbox, Nextcloud and Syncthing do not merge
    concurrent edits; they leave the losing edit next to the original under a
    decorated name. Each such sibling is one unresolved version of its owner.
    """

    def owner_of(self, path: Path) -> Path | None:
        parsed = parse_conflict_copy(path.name)
        if parsed is None:
            return None
        return path.with_name(parsed[0])

    def list_unresolved_versions(self, path: Path) -> list[VersionHandle]:
        try:
            siblings = sorted(path.parent.iterdir())
        except FileNotFoundError:
            return []
        except OSError as e:
            raise TaskIOError("list", path.parent, str(e)) from None

        handles = []
        for sibling in siblings:
            parsed = parse_conflict_copy(sibling.name)
            if parsed is None or parsed[0] != path.name:
                continue
            try:
                mtime = sibling.stat().st_mtime
            except FileNotFoundError:
                continue
            handles.append(
                VersionHandle(
                    id=sibling.name,
                    path=path,
                    modified=datetime.fromtimestamp(mtime, tz=timezone.utc),
                    origin=parsed[1],
                    location=sibling,
                    reader=lambda copy_path=sibling: _read(copy_path),
                )
            )
        return handles

    def resolve(self, handle: VersionHandle, outcome: ResolutionOutcome) -> None:
        if handle.location is None:
            raise TaskIOError("resolve", handle.path, f"version {handle.id} has no file")

        if outcome is ResolutionOutcome.REPLACE_LOCAL:
            content = _read(handle.location)
            try:
                atomic_write(handle.path, content)
            except OSError as e:
                raise TaskIOError("write", handle.path, str(e)) from None

        try:
            handle.location.unlink(missing_ok=True)
        except OSError as e:
            raise TaskIOError("delete", handle.location, str(e)) from None
        logger.debug(f"Resolved version {handle.id} of {handle.path.name}: {outcome.value}")


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise TaskIOError("read", path, str(e)) from None
