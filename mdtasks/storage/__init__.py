# MDTasks Storage Module
# Task files on disk: enumeration, repository, lifecycle and manual order

from mdtasks.storage.fileio import FileFingerprint, FolderSnapshot, TaskFolder, placeholder_target
from mdtasks.storage.filenames import (
    generate_filename,
    resolve_collision,
    sanitize_preferred_filename,
    slugify,
    title_from_filename,
)
from mdtasks.storage.lifecycle import CompletionState, RecurringCompletion, mark_complete, plan_next_instance
from mdtasks.storage.order import ManualOrder, OrderDocument, OrderRepository
from mdtasks.storage.recurrence import IntervalRecurrence, RecurrenceEvaluator
from mdtasks.storage.repository import TaskRepository
from mdtasks.storage.selfwrites import SelfWriteRegistry

__all__ = [
    # File I/O
    "TaskFolder",
    "FolderSnapshot",
    "FileFingerprint",
    "placeholder_target",
    # Filenames
    "slugify",
    "generate_filename",
    "resolve_collision",
    "sanitize_preferred_filename",
    "title_from_filename",
    # Repository
    "TaskRepository",
    "SelfWriteRegistry",
    # Lifecycle
    "CompletionState",
    "RecurringCompletion",
    "mark_complete",
    "plan_next_instance",
    # Recurrence
    "RecurrenceEvaluator",
    "IntervalRecurrence",
    # Order
    "OrderDocument",
    "OrderRepository",
    "ManualOrder",
]
