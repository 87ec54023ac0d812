# MDTasks Conflict Resolver
# Resolution policies for paths with unresolved concurrent versions

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from mdtasks.conflicts.provider import ResolutionOutcome, VersionHandle, VersionProvider
from mdtasks.storage.selfwrites import SelfWriteRegistry

logger = logging.getLogger(__name__)


class ResolutionPolicy(str, Enum):
    """How a conflicted path should be settled."""

    KEEP_LOCAL = "keep-local"
    KEEP_REMOTE = "keep-remote"
    DEFER = "defer"


@dataclass(frozen=True)
class ConflictResolution:
    """Outcome of resolving one conflicted path."""

    path: Path
    policy: ResolutionPolicy
    kept: VersionHandle | None = None
    discarded: tuple[VersionHandle, ...] = ()

    @property
    def resolved(self) -> bool:
        return self.policy is not ResolutionPolicy.DEFER


class ConflictResolver:
    """
    Settles conflicts reported by a VersionProvider.

    Resolution is one-shot: once alternates are discarded they are gone.
    Deferring leaves every version in place, so the next sync pass reports
    the conflict again.
    """

    def __init__(self, provider: VersionProvider, *, self_writes: SelfWriteRegistry | None = None):
        self.provider = provider
        self.self_writes = self_writes

    def versions(self, path: Path) -> list[VersionHandle]:
        """Unresolved versions of ``path``, oldest first."""
        return sorted(self.provider.list_unresolved_versions(Path(path)), key=lambda handle: handle.modified)

    def resolve(
        self,
        path: Path,
        policy: ResolutionPolicy,
        preferred_version_id: str | None = None,
    ) -> ConflictResolution:
        """
        Apply a policy to a conflicted path.

        Args:
            path: Conflicted task path.
            policy: KEEP_LOCAL, KEEP_REMOTE or DEFER.
            preferred_version_id: For KEEP_REMOTE, the version to keep. The
                most recently modified version is used when omitted or unknown.

        Returns:
            ConflictResolution describing what was kept and discarded.

        Raises:
            TaskIOError: If the provider fails to apply an outcome.
        """
        path = Path(path)
        policy = ResolutionPolicy(policy)
        versions = self.versions(path)

        if policy is ResolutionPolicy.DEFER or not versions:
            return ConflictResolution(path=path, policy=policy)

        if policy is ResolutionPolicy.KEEP_LOCAL:
            for handle in versions:
                self.provider.resolve(handle, ResolutionOutcome.DISCARD)
            logger.info(f"Kept local {path.name}, discarded {len(versions)} version(s)")
            return ConflictResolution(path=path, policy=policy, discarded=tuple(versions))

        selected = self._select(versions, preferred_version_id)
        if self.self_writes is not None:
            self.self_writes.register(path)
        self.provider.resolve(selected, ResolutionOutcome.REPLACE_LOCAL)

        discarded = tuple(handle for handle in versions if handle is not selected)
        for handle in discarded:
            self.provider.resolve(handle, ResolutionOutcome.DISCARD)

        logger.info(f"Replaced {path.name} with version {selected.id}, discarded {len(discarded)} other(s)")
        return ConflictResolution(path=path, policy=policy, kept=selected, discarded=discarded)

    def _select(self, versions: list[VersionHandle], preferred_version_id: str | None) -> VersionHandle:
        if preferred_version_id is not None:
            for handle in versions:
                if handle.id == preferred_version_id:
                    return handle
            logger.warning(f"Version {preferred_version_id} not found, keeping the newest version")
        return max(versions, key=lambda handle: handle.modified)
