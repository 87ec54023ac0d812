# MDTasks Sync State
# Per-engine baseline of observed files, plus YAML persistence between runs

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from mdtasks.codec.dates import format_datetime, parse_datetime
from mdtasks.codec.models import TaskRecord
from mdtasks.errors import ParseError
from mdtasks.storage.fileio import FileFingerprint
from mdtasks.sync.events import ParseFailureDiagnostic
from mdtasks.utils.paths import atomic_write

logger = logging.getLogger(__name__)

STATE_VERSION = "1.0"


@dataclass(frozen=True)
class BurstEntry:
    """A new file counted towards burst detection."""

    observed_at: float
    source: str | None
    path: Path


@dataclass
class SyncState:
    """
    Everything a SyncEngine remembers between passes.

    One instance is threaded through each call to ``SyncEngine.run``; two
    engines never share a state unless the caller hands them the same one.
    Only the baseline (fingerprints, conflicted paths, conflict artifacts)
    is persisted; records are rebuilt from disk on the first pass.
    """

    version: str = STATE_VERSION
    last_sync: datetime | None = None
    fingerprints: dict[Path, FileFingerprint] = field(default_factory=dict)
    records: dict[Path, TaskRecord] = field(default_factory=dict)
    diagnostics: dict[Path, ParseFailureDiagnostic] = field(default_factory=dict)
    conflicted: set[Path] = field(default_factory=set)
    artifacts: set[Path] = field(default_factory=set)
    burst_history: list[BurstEntry] = field(default_factory=list)

    def known_paths(self) -> set[Path]:
        """Paths observed in the last pass."""
        return set(self.fingerprints) | set(self.records)

    def to_dict(self) -> dict[str, Any]:
        """Convert the persistable baseline to a dictionary."""
        return {
            "version": self.version,
            "last_sync": format_datetime(self.last_sync) if self.last_sync else None,
            "files": {
                str(path): {"mtime": fingerprint.mtime, "size": fingerprint.size}
                for path, fingerprint in sorted(self.fingerprints.items())
            },
            "conflicted": sorted(str(path) for path in self.conflicted),
            "artifacts": sorted(str(path) for path in self.artifacts),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncState":
        """Create from dictionary; malformed entries are skipped."""
        fingerprints = {}
        for path, entry in (data.get("files") or {}).items():
            try:
                fingerprints[Path(path)] = FileFingerprint(mtime=float(entry["mtime"]), size=int(entry["size"]))
            except (KeyError, TypeError, ValueError):
                continue

        last_sync = None
        if data.get("last_sync"):
            try:
                last_sync = parse_datetime("last_sync", str(data["last_sync"]))
            except ParseError:
                last_sync = None

        return cls(
            version=str(data.get("version", STATE_VERSION)),
            last_sync=last_sync,
            fingerprints=fingerprints,
            conflicted={Path(path) for path in data.get("conflicted") or []},
            artifacts={Path(path) for path in data.get("artifacts") or []},
        )


class StateManager:
    """
    Manages sync state persistence.

    Handles loading, saving, and resetting the baseline file.
    """

    def __init__(self, state_path: Path | None = None):
        """
        Initialize state manager.

        Args:
            state_path: Path to state file. Defaults to ~/.config/mdtasks/sync_state.yaml
        """
        if state_path is None:
            state_path = Path.home() / ".config" / "mdtasks" / "sync_state.yaml"
        self.state_path = state_path
        self._state: SyncState | None = None

    @property
    def state(self) -> SyncState:
        """Get current state, loading if necessary."""
        if self._state is None:
            self._state = self.load()
        return self._state

    def load(self) -> SyncState:
        """Load state from file; an unreadable file yields an empty state."""
        if not self.state_path.exists():
            return SyncState()

        try:
            with open(self.state_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Ignoring unreadable sync state {self.state_path}: {e}")
            return SyncState()

        if not isinstance(data, dict):
            return SyncState()
        return SyncState.from_dict(data)

    def save(self) -> None:
        """Save state to file."""
        if self._state is None:
            return
        content = yaml.safe_dump(self._state.to_dict(), default_flow_style=False, sort_keys=False, allow_unicode=True)
        atomic_write(self.state_path, content)

    def reset(self) -> None:
        """Reset state to empty."""
        self._state = SyncState()
        self.save()
