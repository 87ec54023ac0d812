# MDTasks Conflicts Module
# Version providers and conflict resolution policies

from mdtasks.conflicts.provider import (
    ConflictCopyProvider,
    NullVersionProvider,
    ResolutionOutcome,
    VersionHandle,
    VersionProvider,
    parse_conflict_copy,
)
from mdtasks.conflicts.resolver import ConflictResolution, ConflictResolver, ResolutionPolicy

__all__ = [
    # Providers
    "VersionHandle",
    "VersionProvider",
    "ResolutionOutcome",
    "NullVersionProvider",
    "ConflictCopyProvider",
    "parse_conflict_copy",
    # Resolver
    "ResolutionPolicy",
    "ConflictResolution",
    "ConflictResolver",
]
