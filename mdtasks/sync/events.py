# MDTasks Sync Events
# Immutable outputs of a sync pass: events, summary, timings and diagnostics

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import ClassVar

from mdtasks.codec.models import TaskRecord


class SyncEventKind(str, Enum):
    """Tag of a SyncEvent."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    CONFLICT = "conflict"
    RATE_LIMITED_BATCH = "rate_limited_batch"


@dataclass(frozen=True)
class SyncEvent:
    """Base class of everything a pass reports about individual paths."""

    kind: ClassVar[SyncEventKind]


@dataclass(frozen=True)
class TaskCreated(SyncEvent):
    kind: ClassVar[SyncEventKind] = SyncEventKind.CREATED
    path: Path


@dataclass(frozen=True)
class TaskUpdated(SyncEvent):
    kind: ClassVar[SyncEventKind] = SyncEventKind.UPDATED
    path: Path


@dataclass(frozen=True)
class TaskDeleted(SyncEvent):
    kind: ClassVar[SyncEventKind] = SyncEventKind.DELETED
    path: Path


@dataclass(frozen=True)
class ConflictDetected(SyncEvent):
    """The provider holds unresolved concurrent versions of ``path``."""

    kind: ClassVar[SyncEventKind] = SyncEventKind.CONFLICT
    path: Path
    version_count: int


@dataclass(frozen=True)
class RateLimitedBatch(SyncEvent):
    """
    Too many new files from one source.

    Replaces the individual created events of ``paths``; the records are
    still ingested.
    """

    kind: ClassVar[SyncEventKind] = SyncEventKind.RATE_LIMITED_BATCH
    paths: tuple[Path, ...]
    source: str | None = None


@dataclass(frozen=True)
class PhaseTimings:
    """Wall time of each pass phase, in milliseconds."""

    enumerate_ms: float = 0.0
    parse_ms: float = 0.0
    index_ms: float = 0.0
    query_ms: float = 0.0

    @property
    def total_ms(self) -> float:
        return self.enumerate_ms + self.parse_ms + self.index_ms + self.query_ms


@dataclass(frozen=True)
class SyncSummary:
    """Counts for one pass."""

    timestamp: datetime
    ingested: int = 0
    updated: int = 0
    deleted: int = 0
    failed: int = 0
    conflicts: int = 0
    timings: PhaseTimings = field(default_factory=PhaseTimings)

    @property
    def changed(self) -> bool:
        return bool(self.ingested or self.updated or self.deleted)


@dataclass(frozen=True)
class ParseFailureDiagnostic:
    """A file that could not be parsed; it is kept on disk for review."""

    path: Path
    reason: str
    timestamp: datetime


@dataclass(frozen=True)
class SyncResult:
    """
    Everything one pass produced.

    Attributes:
        summary: Counts and timings.
        events: Ordered per-path events.
        diagnostics: All current parse failures, including older ones.
        new_diagnostics: Failures first seen (or changed) in this pass.
        records: Records created or replaced in this pass.
        deleted_paths: Paths that disappeared in this pass.
    """

    summary: SyncSummary
    events: tuple[SyncEvent, ...] = ()
    diagnostics: tuple[ParseFailureDiagnostic, ...] = ()
    new_diagnostics: tuple[ParseFailureDiagnostic, ...] = ()
    records: tuple[TaskRecord, ...] = ()
    deleted_paths: tuple[Path, ...] = ()

    def events_of(self, kind: SyncEventKind) -> list[SyncEvent]:
        """Events with the given tag, in pass order."""
        return [event for event in self.events if event.kind is kind]
