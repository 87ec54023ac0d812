# MDTasks Sync Module
# Sync engine, scheduling, coordination and change watching

from mdtasks.sync.coordinator import CoordinatorStatus, SyncCoordinator
from mdtasks.sync.engine import SyncEngine
from mdtasks.sync.events import (
    ConflictDetected,
    ParseFailureDiagnostic,
    PhaseTimings,
    RateLimitedBatch,
    SyncEvent,
    SyncEventKind,
    SyncResult,
    SyncSummary,
    TaskCreated,
    TaskDeleted,
    TaskUpdated,
)
from mdtasks.sync.scheduler import SyncScheduler, start_thread_timer
from mdtasks.sync.state import StateManager, SyncState
from mdtasks.sync.watcher import FolderWatcher

__all__ = [
    # Events
    "SyncEvent",
    "SyncEventKind",
    "TaskCreated",
    "TaskUpdated",
    "TaskDeleted",
    "ConflictDetected",
    "RateLimitedBatch",
    "PhaseTimings",
    "SyncSummary",
    "SyncResult",
    "ParseFailureDiagnostic",
    # State
    "SyncState",
    "StateManager",
    # Engine
    "SyncEngine",
    # Scheduling
    "SyncScheduler",
    "start_thread_timer",
    "SyncCoordinator",
    "CoordinatorStatus",
    "FolderWatcher",
]
