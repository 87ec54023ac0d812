# MDTasks Local Index
# Denormalized, queryable mirror of task records; rebuilt from files, never authoritative

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path

from mdtasks.codec.models import TaskPriority, TaskRecord, TaskStatus


@dataclass(frozen=True)
class TaskIndexEntry:
    """Flattened view of one task for listing and filtering."""

    path: Path
    filename: str
    title: str
    status: TaskStatus
    priority: TaskPriority
    flagged: bool
    due: date | None
    due_time: time | None
    defer: date | None
    scheduled: date | None
    area: str | None
    project: str | None
    tags: tuple[str, ...]
    recurrence: str | None
    created: datetime
    modified: datetime | None
    completed: datetime | None
    source: str
    description: str | None
    body: str

    @classmethod
    def from_record(cls, record: TaskRecord) -> TaskIndexEntry:
        fm = record.frontmatter
        return cls(
            path=record.path,
            filename=record.filename,
            title=fm.title,
            status=fm.status,
            priority=fm.priority,
            flagged=fm.flagged,
            due=fm.due,
            due_time=fm.due_time,
            defer=fm.defer,
            scheduled=fm.scheduled,
            area=fm.area,
            project=fm.project,
            tags=fm.tags,
            recurrence=fm.recurrence,
            created=fm.created,
            modified=fm.modified,
            completed=fm.completed,
            source=fm.source,
            description=fm.description,
            body=record.document.body,
        )

    @property
    def is_open(self) -> bool:
        return self.status in (TaskStatus.TODO, TaskStatus.IN_PROGRESS)


def _sort_key(entry: TaskIndexEntry):
    return (entry.due is None, entry.due or date.min, entry.title.casefold(), str(entry.path))


class LocalIndex:
    """
    In-memory index keyed by task path.

    Fed by sync pass output; it can always be thrown away and rebuilt from
    the task files.
    """

    def __init__(self):
        self._entries: dict[Path, TaskIndexEntry] = {}
        self._lock = threading.Lock()

    def apply(self, records: Iterable[TaskRecord], deleted_paths: Iterable[Path] = ()) -> None:
        """Upsert changed records and drop deleted paths."""
        with self._lock:
            for record in records:
                self._entries[record.path] = TaskIndexEntry.from_record(record)
            for path in deleted_paths:
                self._entries.pop(Path(path), None)

    def replace_all(self, records: Iterable[TaskRecord]) -> None:
        """Discard everything and index ``records`` from scratch."""
        entries = {record.path: TaskIndexEntry.from_record(record) for record in records}
        with self._lock:
            self._entries = entries

    def get(self, path: Path | str) -> TaskIndexEntry | None:
        with self._lock:
            return self._entries.get(Path(path))

    def entries(self) -> list[TaskIndexEntry]:
        """All entries, sorted by due date then title."""
        with self._lock:
            entries = list(self._entries.values())
        return sorted(entries, key=_sort_key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return Path(path) in self._entries

    def query(
        self,
        *,
        status: TaskStatus | str | None = None,
        area: str | None = None,
        project: str | None = None,
        tag: str | None = None,
        flagged: bool | None = None,
        due_before: date | None = None,
        text: str | None = None,
    ) -> list[TaskIndexEntry]:
        """
        Filter entries; every given criterion must match.

        Args:
            status: Exact status.
            area: Exact area (case-insensitive).
            project: Exact project (case-insensitive).
            tag: Entry must carry this tag (case-insensitive).
            flagged: Flag state.
            due_before: Due on or before this date; undated tasks never match.
            text: Substring of title, description or body (case-insensitive).

        Returns:
            Matching entries sorted by due date then title.
        """
        wanted_status = TaskStatus(status) if status is not None else None
        needle = text.casefold() if text else None

        def matches(entry: TaskIndexEntry) -> bool:
            if wanted_status is not None and entry.status is not wanted_status:
                return False
            if area is not None and (entry.area or "").casefold() != area.casefold():
                return False
            if project is not None and (entry.project or "").casefold() != project.casefold():
                return False
            if tag is not None and tag.casefold() not in {t.casefold() for t in entry.tags}:
                return False
            if flagged is not None and entry.flagged != flagged:
                return False
            if due_before is not None and (entry.due is None or entry.due > due_before):
                return False
            if needle is not None:
                haystack = " ".join(filter(None, (entry.title, entry.description, entry.body))).casefold()
                if needle not in haystack:
                    return False
            return True

        return [entry for entry in self.entries() if matches(entry)]

    def counts_by_status(self) -> dict[TaskStatus, int]:
        """Number of entries per status (every status present, zero if unused)."""
        counts = dict.fromkeys(TaskStatus, 0)
        with self._lock:
            for entry in self._entries.values():
                counts[entry.status] += 1
        return counts
