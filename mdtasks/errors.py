# MDTasks Errors
# Exception hierarchy shared by codec, storage and sync layers

from __future__ import annotations

from pathlib import Path


class TaskError(Exception):
    """Base class for all errors raised by mdtasks."""


class ParseError(TaskError):
    """
    A task file could not be turned into a document.

    Attributes:
        reason: Human-readable description of the failure.
        path: File the content came from, when known.
    """

    def __init__(self, reason: str, *, path: Path | str | None = None):
        self.reason = reason
        self.path = Path(path) if path is not None else None
        super().__init__(reason)

    def with_path(self, path: Path | str) -> "ParseError":
        """Return the same error annotated with a file path."""
        self.path = Path(path)
        return self

    def __str__(self) -> str:
        if self.path is not None:
            return f"{self.path.name}: {self.reason}"
        return self.reason


class StructuralParseError(ParseError):
    """Delimiter, YAML tree, or size/depth limit failure."""


class FieldError(ParseError):
    """A known field has the wrong type or an invalid value."""

    def __init__(self, field: str, reason: str, *, path: Path | str | None = None):
        self.field = field
        super().__init__(reason, path=path)


class TaskIOError(TaskError):
    """Reading, writing or deleting a task file failed."""

    def __init__(self, operation: str, path: Path | str, detail: str = ""):
        self.operation = operation
        self.path = Path(path)
        self.detail = detail
        message = f"Failed to {operation} {self.path}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class TaskNotFoundError(TaskIOError):
    """The task file does not exist."""

    def __init__(self, path: Path | str):
        super().__init__("read", path, "file not found")


class PlaceholderNotMaterializedError(TaskIOError):
    """A cloud-only placeholder has not been downloaded yet."""

    def __init__(self, path: Path | str):
        super().__init__("read", path, "cloud placeholder is not available locally yet")


class RecurrenceError(TaskError):
    """The recurrence rule is missing or cannot be evaluated."""


class RecurringSpawnError(TaskError):
    """
    The next instance of a recurring task could not be created.

    The original task has already been marked done and stays that way;
    ``completed`` holds that record so callers can report it.
    """

    def __init__(self, completed, cause: Exception):
        self.completed = completed
        self.cause = cause
        super().__init__(f"Completed {completed.identity.filename} but failed to create next instance: {cause}")
