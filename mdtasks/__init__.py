"""MDTasks - tasks as markdown files with a YAML header.

Keeps a local task index in step with a folder of task files that other
devices and tools may change at any time.
"""

__version__ = "1.0.0"
__author__ = "Equitania Software GmbH"
__email__ = "info@equitania.de"

__all__ = [
    "__version__",
    "TaskDocument",
    "TaskFrontmatter",
    "TaskRecord",
    "FrontmatterCodec",
    "TaskRepository",
    "TaskFolder",
    "SyncEngine",
    "SyncState",
    "SyncResult",
    "LocalIndex",
]


def __getattr__(name: str):
    """Lazy import to avoid loading dependencies during setup."""
    if name in ("TaskDocument", "TaskFrontmatter", "TaskRecord"):
        from mdtasks.codec import models

        return getattr(models, name)
    if name == "FrontmatterCodec":
        from mdtasks.codec.frontmatter import FrontmatterCodec

        return FrontmatterCodec
    if name == "TaskRepository":
        from mdtasks.storage.repository import TaskRepository

        return TaskRepository
    if name == "TaskFolder":
        from mdtasks.storage.fileio import TaskFolder

        return TaskFolder
    if name in ("SyncEngine", "SyncState", "SyncResult"):
        from mdtasks import sync

        return getattr(sync, name)
    if name == "LocalIndex":
        from mdtasks.index import LocalIndex

        return LocalIndex
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
