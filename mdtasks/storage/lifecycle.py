# MDTasks Task Lifecycle
# Completion of one-off and recurring tasks

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from mdtasks.codec.models import TaskDocument, TaskRecord, TaskStatus
from mdtasks.errors import RecurrenceError, RecurringSpawnError, TaskError
from mdtasks.storage.recurrence import RecurrenceEvaluator

if TYPE_CHECKING:
    from mdtasks.storage.repository import TaskRepository

logger = logging.getLogger(__name__)


class CompletionState(str, Enum):
    """States of a recurring task while it is being completed."""

    ACTIVE = "active"
    COMPLETING_INSTANCE = "completing_instance"
    SPAWNING_NEXT = "spawning_next"
    DONE = "done"


def mark_complete(document: TaskDocument, at: datetime) -> TaskDocument:
    """Return the document with status done and completed/modified set to ``at``."""
    return document.with_frontmatter(status=TaskStatus.DONE, completed=at, modified=at)


def plan_next_instance(document: TaskDocument, at: datetime, evaluator: RecurrenceEvaluator) -> TaskDocument:
    """
    Build the next instance of a recurring task.

    Everything is carried forward (title, area, project, tags, priority,
    body, unknown fields, the recurrence rule itself); status goes back to
    todo and each of due/defer/scheduled that is set moves one step ahead.

    Raises:
        RecurrenceError: If the task has no rule or the evaluator rejects it.
    """
    fm = document.frontmatter
    rule = (fm.recurrence or "").strip()
    if not rule:
        raise RecurrenceError("Task has no recurrence rule")

    changes = {
        "status": TaskStatus.TODO,
        "created": at,
        "modified": at,
        "completed": None,
        "recurrence": fm.recurrence,
    }
    for field_name in ("due", "defer", "scheduled"):
        current = getattr(fm, field_name)
        if current is not None:
            changes[field_name] = evaluator.next_occurrence(current, rule)

    return document.copy().with_frontmatter(**changes)


class RecurringCompletion:
    """
    Drives one recurring task from Active to Done.

    Step one rewrites the current file as a finished historical record
    without its recurrence rule. Step two creates the next instance as a new
    file. The next instance is planned before anything is written, so a bad
    rule fails without touching the disk; a failure while writing the new
    file leaves the first step in place and raises RecurringSpawnError.
    """

    def __init__(self, repository: TaskRepository, evaluator: RecurrenceEvaluator):
        self.repository = repository
        self.evaluator = evaluator
        self.state = CompletionState.ACTIVE

    def run(self, path, at: datetime) -> tuple[TaskRecord, TaskRecord]:
        """
        Complete the task at ``path``.

        Returns:
            (completed record, next instance record)

        Raises:
            RecurrenceError: Nothing was written.
            RecurringSpawnError: The original is done; the next instance is missing.
        """
        current = self.repository.load(path)
        next_document = plan_next_instance(current.document, at, self.evaluator)

        self.state = CompletionState.COMPLETING_INSTANCE
        completed = self.repository.update(
            current.path,
            lambda document: mark_complete(document, at).with_frontmatter(recurrence=None),
            at=at,
        )

        self.state = CompletionState.SPAWNING_NEXT
        try:
            spawned = self.repository.create(next_document, directory=completed.path.parent)
        except TaskError as e:
            logger.warning(f"Completed {completed.filename} but could not create next instance: {e}")
            raise RecurringSpawnError(completed, e) from e

        self.state = CompletionState.DONE
        logger.info(f"Completed {completed.filename}, next instance {spawned.filename}")
        return completed, spawned
