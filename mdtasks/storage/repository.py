# MDTasks Task Repository
# File-level CRUD for task documents, with atomic writes and self-write registration

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from mdtasks.codec.dates import utc_now
from mdtasks.codec.frontmatter import FrontmatterCodec
from mdtasks.codec.models import TaskDocument, TaskFileIdentity, TaskRecord
from mdtasks.errors import ParseError, TaskIOError
from mdtasks.storage.fileio import TaskFolder
from mdtasks.storage.filenames import (
    generate_filename,
    resolve_collision,
    sanitize_preferred_filename,
    title_from_filename,
)
from mdtasks.storage.lifecycle import RecurringCompletion, mark_complete
from mdtasks.storage.recurrence import IntervalRecurrence, RecurrenceEvaluator
from mdtasks.storage.selfwrites import SelfWriteRegistry

logger = logging.getLogger(__name__)

Mutator = Callable[[TaskDocument], TaskDocument]


class TaskRepository:
    """
    Reads and writes task files in one folder tree.

    Every write goes through a temp-file-then-rename sequence and is
    registered with the shared SelfWriteRegistry so the sync engine can
    recognize the echo.
    """

    def __init__(
        self,
        folder: TaskFolder | Path | str,
        *,
        codec: FrontmatterCodec | None = None,
        self_writes: SelfWriteRegistry | None = None,
        recurrence: RecurrenceEvaluator | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.folder = folder if isinstance(folder, TaskFolder) else TaskFolder(folder)
        self.codec = codec or FrontmatterCodec()
        self.self_writes = self_writes or SelfWriteRegistry()
        self.recurrence = recurrence or IntervalRecurrence()
        self.clock = clock

    @property
    def root(self) -> Path:
        return self.folder.root

    def create(
        self,
        document: TaskDocument,
        preferred_filename: str | None = None,
        *,
        directory: Path | str | None = None,
    ) -> TaskRecord:
        """
        Write a new task file.

        Args:
            document: Document to write.
            preferred_filename: Name to use instead of a generated one; still
                gets a numeric suffix if taken.
            directory: Target directory (defaults to the folder root; relative
                paths are taken relative to it).

        Returns:
            TaskRecord of the new file.

        Raises:
            FieldError: If the document fails validation.
            TaskIOError: If the write fails.
        """
        content = self.codec.serialize(document)
        target_dir = self._resolve_directory(directory)
        existing = self.folder.existing_names(target_dir)

        filename = sanitize_preferred_filename(preferred_filename)
        if filename is None:
            filename = generate_filename(document.frontmatter.title, existing, now=self.clock())
        else:
            filename = resolve_collision(filename, existing)

        identity = TaskFileIdentity.from_path(target_dir / filename)
        self._write(identity.path, content)
        logger.debug(f"Created {identity.filename}")
        return TaskRecord(identity=identity, document=document)

    def load(self, path: Path | str) -> TaskRecord:
        """
        Parse one task file.

        A header without a title gets one derived from the filename.

        Raises:
            ParseError: If the content is malformed (annotated with the path).
            TaskIOError: If the file cannot be read.
        """
        identity = TaskFileIdentity.from_path(path)
        content = self.folder.read(identity.path)
        try:
            document = self.codec.parse(content, fallback_title=title_from_filename(identity.filename))
        except ParseError as e:
            raise e.with_path(identity.path)
        return TaskRecord(identity=identity, document=document)

    def update(self, path: Path | str, mutator: Mutator, *, at: datetime | None = None) -> TaskRecord:
        """
        Load, mutate, and rewrite a task file.

        The mutator receives the current document and returns the new one;
        ``modified`` is stamped afterwards.

        Args:
            path: Task file path.
            mutator: Function from the current document to the updated one.
            at: Modification time to stamp (defaults to now).

        Returns:
            The updated TaskRecord.
        """
        current = self.load(path)
        mutated = mutator(current.document)
        if not isinstance(mutated, TaskDocument):
            raise TypeError(f"Mutator must return a TaskDocument, got {type(mutated).__name__}")

        updated = mutated.with_frontmatter(modified=at or self.clock())
        self._write(current.path, self.codec.serialize(updated))
        return TaskRecord(identity=current.identity, document=updated)

    def delete(self, path: Path | str) -> None:
        """
        Delete a task file.

        Raises:
            TaskNotFoundError: If the file is already gone.
            TaskIOError: If deletion fails.
        """
        identity = TaskFileIdentity.from_path(path)
        self.folder.delete(identity.path)
        self.self_writes.discard(identity.path)
        logger.debug(f"Deleted {identity.filename}")

    def complete(self, path: Path | str, at: datetime | None = None) -> TaskRecord:
        """Mark a task done with ``completed`` set to ``at`` (defaults to now)."""
        moment = at or self.clock()
        return self.update(path, lambda document: mark_complete(document, moment), at=moment)

    def complete_repeating(self, path: Path | str, at: datetime | None = None) -> tuple[TaskRecord, TaskRecord]:
        """
        Complete a recurring task and spawn its next instance.

        Returns:
            (completed record, next instance record)

        Raises:
            RecurrenceError: The task has no usable rule; nothing was written.
            RecurringSpawnError: The original was completed but the next
                instance could not be created. The completion stays.
        """
        return RecurringCompletion(self, self.recurrence).run(path, at or self.clock())

    def _resolve_directory(self, directory: Path | str | None) -> Path:
        if directory is None:
            return self.root
        directory = Path(directory).expanduser()
        if not directory.is_absolute():
            directory = self.root / directory
        return directory

    def _write(self, path: Path, content: str) -> None:
        self.self_writes.register(path, expected_mtime=time.time())
        try:
            fingerprint = self.folder.write(path, content)
        except TaskIOError:
            self.self_writes.discard(path)
            raise
        self.self_writes.register(path, expected_mtime=fingerprint.mtime)
