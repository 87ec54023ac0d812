# MDTasks Task Models
# Task frontmatter, document and record types

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from enum import Enum
from pathlib import Path
from typing import Any

from mdtasks.codec.dates import CREATED_SENTINEL, utc_now


class TaskStatus(str, Enum):
    """Lifecycle status of a task."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    CANCELLED = "cancelled"
    SOMEDAY = "someday"


class TaskPriority(str, Enum):
    """Task priority."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class TaskFrontmatter:
    """Recognized header fields of a task file."""

    title: str
    status: TaskStatus = TaskStatus.TODO
    due: date | None = None
    due_time: time | None = None
    defer: date | None = None
    scheduled: date | None = None
    priority: TaskPriority = TaskPriority.NONE
    flagged: bool = False
    area: str | None = None
    project: str | None = None
    tags: tuple[str, ...] = ()
    recurrence: str | None = None
    estimated_minutes: int | None = None
    description: str | None = None
    created: datetime = CREATED_SENTINEL
    modified: datetime | None = None
    completed: datetime | None = None
    source: str = "unknown"


@dataclass(frozen=True)
class TaskDocument:
    """
    Parsed content of one task file.

    ``unknown_fields`` holds header keys the codec does not recognize;
    they are written back unchanged on serialize.
    """

    frontmatter: TaskFrontmatter
    body: str = ""
    unknown_fields: dict[str, Any] = field(default_factory=dict)

    def with_frontmatter(self, **changes: Any) -> TaskDocument:
        """Return a copy with the given frontmatter fields replaced."""
        return replace(self, frontmatter=replace(self.frontmatter, **changes))

    def with_body(self, body: str) -> TaskDocument:
        """Return a copy with a new body."""
        return replace(self, body=body)

    def copy(self) -> TaskDocument:
        """Deep copy, so unknown field containers are not shared."""
        return replace(self, unknown_fields=copy.deepcopy(self.unknown_fields))


@dataclass(frozen=True)
class TaskFileIdentity:
    """Stable identity of a task: its normalized absolute path."""

    path: Path

    @classmethod
    def from_path(cls, path: Path | str) -> TaskFileIdentity:
        return cls(path=Path(path).expanduser().resolve())

    @property
    def filename(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class TaskRecord:
    """A task document bound to the file it was read from or written to."""

    identity: TaskFileIdentity
    document: TaskDocument

    @property
    def path(self) -> Path:
        return self.identity.path

    @property
    def filename(self) -> str:
        return self.identity.filename

    @property
    def frontmatter(self) -> TaskFrontmatter:
        return self.document.frontmatter


def new_document(
    title: str,
    *,
    source: str = "mdtasks",
    body: str = "",
    now: datetime | None = None,
    **fields: Any,
) -> TaskDocument:
    """
    Build a fresh document for a new task.

    Args:
        title: Task title.
        source: Writer identifier stored in the header.
        body: Free-form markdown body.
        now: Creation time (defaults to current UTC time).
        **fields: Any other TaskFrontmatter fields.

    Returns:
        TaskDocument with status todo and created set.
    """
    if "tags" in fields:
        fields["tags"] = tuple(fields["tags"])
    frontmatter = TaskFrontmatter(title=title, source=source, created=now or utc_now(), **fields)
    return TaskDocument(frontmatter=frontmatter, body=body)
