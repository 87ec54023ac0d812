# MDTasks Sync Engine
# One reconciliation pass of the task folder against the last observed baseline

import logging
import time
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from mdtasks.codec.dates import utc_now
from mdtasks.codec.models import TaskRecord
from mdtasks.conflicts.provider import NullVersionProvider, VersionProvider
from mdtasks.errors import ParseError, TaskIOError
from mdtasks.index import LocalIndex
from mdtasks.storage.fileio import FileFingerprint
from mdtasks.storage.repository import TaskRepository
from mdtasks.sync.events import (
    ConflictDetected,
    ParseFailureDiagnostic,
    PhaseTimings,
    RateLimitedBatch,
    SyncEvent,
    SyncResult,
    SyncSummary,
    TaskCreated,
    TaskDeleted,
    TaskUpdated,
)
from mdtasks.sync.state import BurstEntry, SyncState

logger = logging.getLogger(__name__)

DEFAULT_BURST_THRESHOLD = 50


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


class SyncEngine:
    """
    Reconciles the task folder with a SyncState.

    A pass enumerates the tree, re-parses only files whose fingerprint
    changed, and reports what happened. Per-file failures never abort a
    pass; only failure to list the root folder does. The state is updated
    at the very end, so an interrupted pass leaves the previous baseline
    intact.
    """

    def __init__(
        self,
        repository: TaskRepository,
        *,
        provider: VersionProvider | None = None,
        burst_threshold: int = DEFAULT_BURST_THRESHOLD,
        burst_window: float = 0.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize sync engine.

        Args:
            repository: Repository used to read task files.
            provider: Source of unresolved concurrent versions.
            burst_threshold: New files from one source allowed before they
                are reported as a single rate-limited batch.
            burst_window: Seconds over which new files are counted. 0 counts
                within one pass only.
            clock: Time source for event timestamps and burst windows.
        """
        self.repository = repository
        self.provider = provider or NullVersionProvider()
        self.burst_threshold = burst_threshold
        self.burst_window = burst_window
        self.clock = clock

    def run(self, state: SyncState, index: LocalIndex | None = None) -> SyncResult:
        """
        Run one pass.

        Args:
            state: Baseline from the previous pass; updated in place.
            index: Optional local index to keep in step with the records.

        Returns:
            SyncResult with summary, events and diagnostics.

        Raises:
            TaskIOError: If the task folder cannot be enumerated.
        """
        now = self.clock()
        self_writes = self.repository.self_writes
        self_writes.purge()

        # Enumerate
        start = time.perf_counter()
        snapshot = self.repository.folder.enumerate(accept=lambda path: self.provider.owner_of(path) is None)
        enumerate_ms = _elapsed_ms(start)

        changed: list[Path] = []
        hydrate: list[Path] = []
        self_written: set[Path] = set()
        for path, fingerprint in snapshot.files.items():
            previous = state.fingerprints.get(path)
            if previous == fingerprint:
                if path not in state.records and path not in state.diagnostics:
                    hydrate.append(path)
                continue
            changed.append(path)
            if self_writes.matches(path, fingerprint.mtime):
                logger.debug(f"Self-write echo for {path.name}")
                self_written.add(path)
        changed.sort()

        # Parse
        start = time.perf_counter()
        fingerprints: dict[Path, FileFingerprint] = dict(snapshot.files)
        records: dict[Path, TaskRecord] = {}
        diagnostics: dict[Path, ParseFailureDiagnostic] = dict(state.diagnostics)
        new_diagnostics: list[ParseFailureDiagnostic] = []
        events: list[SyncEvent] = []
        created_events: dict[Path, SyncEvent] = {}
        burst_candidates: list[tuple[Path, str | None]] = []
        ingested = updated = failed = 0

        for path in changed:
            # Restored baseline paths are updates unless they last failed to parse
            is_new = path not in state.records and (path not in state.fingerprints or path in state.diagnostics)
            try:
                record = self.repository.load(path)
            except ParseError as e:
                failed += 1
                diagnostic = ParseFailureDiagnostic(path=path, reason=e.reason, timestamp=now)
                diagnostics[path] = diagnostic
                new_diagnostics.append(diagnostic)
                logger.warning(f"Cannot parse {path.name}: {e.reason}")
                if is_new and path not in self_written:
                    burst_candidates.append((path, None))
                continue
            except TaskIOError as e:
                failed += 1
                diagnostic = ParseFailureDiagnostic(path=path, reason=str(e), timestamp=now)
                diagnostics[path] = diagnostic
                new_diagnostics.append(diagnostic)
                logger.warning(str(e))
                # Not recorded as observed, so the next pass retries it
                if path in state.fingerprints:
                    fingerprints[path] = state.fingerprints[path]
                else:
                    fingerprints.pop(path, None)
                continue

            records[path] = record
            diagnostics.pop(path, None)
            if is_new:
                ingested += 1
                event = TaskCreated(path=path)
                created_events[path] = event
                events.append(event)
                if path not in self_written:
                    burst_candidates.append((path, record.frontmatter.source))
            else:
                updated += 1
                events.append(TaskUpdated(path=path))

        hydrated: list[TaskRecord] = []
        for path in sorted(hydrate):
            try:
                record = self.repository.load(path)
            except ParseError as e:
                diagnostics[path] = ParseFailureDiagnostic(path=path, reason=e.reason, timestamp=now)
                continue
            except TaskIOError as e:
                logger.debug(f"Cannot hydrate {path.name}: {e}")
                fingerprints.pop(path, None)
                continue
            hydrated.append(record)
        parse_ms = _elapsed_ms(start)

        # Placeholders that are not local yet keep their previous baseline
        for path in snapshot.pending:
            if path in state.fingerprints:
                fingerprints[path] = state.fingerprints[path]

        vanished = state.known_paths() - set(snapshot.files) - snapshot.pending
        # Diagnostics only describe files still in the folder
        for path in list(diagnostics):
            if path not in snapshot.files and path not in snapshot.pending:
                del diagnostics[path]
        # A file that never parsed disappears without a deleted event
        deleted_paths = sorted(path for path in vanished if path in state.records or path not in state.diagnostics)

        # Bursts
        burst_history, batches = self._detect_bursts(state.burst_history, burst_candidates, now)
        for source, paths in batches:
            for path in paths:
                event = created_events.get(path)
                if event is not None:
                    events.remove(event)
            logger.warning(f"Burst of {len(paths)} new files from source {source or 'unknown'}")

        # Conflicts
        start = time.perf_counter()
        new_artifacts = snapshot.skipped - state.artifacts
        candidates = set(changed) | state.conflicted
        for artifact in new_artifacts:
            owner = self.provider.owner_of(artifact)
            if owner is not None:
                candidates.add(owner)

        conflicted: set[Path] = set()
        conflict_events: list[SyncEvent] = []
        for path in sorted(candidates):
            if path not in snapshot.files:
                continue
            try:
                versions = self.provider.list_unresolved_versions(path)
            except TaskIOError as e:
                logger.warning(f"Cannot query versions of {path.name}: {e}")
                if path in state.conflicted:
                    conflicted.add(path)
                continue
            if versions:
                conflicted.add(path)
                conflict_events.append(ConflictDetected(path=path, version_count=len(versions)))
                logger.warning(f"Conflict: {path.name} has {len(versions)} unresolved version(s)")
        query_ms = _elapsed_ms(start)

        events.extend(conflict_events)
        events.extend(RateLimitedBatch(paths=tuple(paths), source=source) for source, paths in batches)
        events.extend(TaskDeleted(path=path) for path in deleted_paths)

        # Index
        start = time.perf_counter()
        if index is not None:
            index.apply([*records.values(), *hydrated], deleted_paths)
        index_ms = _elapsed_ms(start)

        # Commit
        for path in deleted_paths:
            state.records.pop(path, None)
        state.records.update(records)
        state.records.update((record.path, record) for record in hydrated)
        state.fingerprints = fingerprints
        state.diagnostics = diagnostics
        state.conflicted = conflicted
        state.artifacts = set(snapshot.skipped)
        state.burst_history = burst_history
        state.last_sync = now

        summary = SyncSummary(
            timestamp=now,
            ingested=ingested,
            updated=updated,
            deleted=len(deleted_paths),
            failed=failed,
            conflicts=len(conflict_events),
            timings=PhaseTimings(
                enumerate_ms=enumerate_ms,
                parse_ms=parse_ms,
                index_ms=index_ms,
                query_ms=query_ms,
            ),
        )
        logger.info(
            f"Sync pass: {summary.ingested} new, {summary.updated} updated, {summary.deleted} deleted, "
            f"{summary.failed} failed, {summary.conflicts} conflicts ({summary.timings.total_ms:.1f} ms)"
        )

        return SyncResult(
            summary=summary,
            events=tuple(events),
            diagnostics=tuple(sorted(diagnostics.values(), key=lambda d: str(d.path))),
            new_diagnostics=tuple(new_diagnostics),
            records=tuple(records.values()),
            deleted_paths=tuple(deleted_paths),
        )

    def _detect_bursts(
        self,
        history: list[BurstEntry],
        candidates: list[tuple[Path, str | None]],
        now: datetime,
    ) -> tuple[list[BurstEntry], list[tuple[str | None, list[Path]]]]:
        """
        Group new files by source and find sources over the threshold.

        Returns:
            (history to keep, [(source, paths)] for each burst)
        """
        observed_at = now.timestamp()
        entries = [BurstEntry(observed_at=observed_at, source=source, path=path) for path, source in candidates]

        if self.burst_window > 0:
            cutoff = observed_at - self.burst_window
            entries = [entry for entry in history if entry.observed_at >= cutoff] + entries

        by_source: dict[str | None, list[Path]] = defaultdict(list)
        for entry in entries:
            by_source[entry.source].append(entry.path)

        batches = [
            (source, sorted(paths))
            for source, paths in sorted(by_source.items(), key=lambda item: item[0] or "")
            if len(paths) > self.burst_threshold
        ]

        if self.burst_window <= 0:
            return [], batches

        # A reported burst starts counting afresh
        reported = {source for source, _ in batches}
        return [entry for entry in entries if entry.source not in reported], batches
