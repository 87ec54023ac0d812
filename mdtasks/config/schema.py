# MDTasks Configuration Schema
# Pydantic models for YAML configuration validation

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class ConflictProviderType(str, Enum):
    """Which version provider reports conflicts."""

    CONFLICT_COPIES = "conflict-copies"
    NONE = "none"


class FolderConfig(BaseModel):
    """Location of the task folder."""

    path: str = Field(description="Root of the task folder tree")
    exclude: list[str] = Field(default_factory=list, description="Glob patterns relative to the root to skip")

    @field_validator("path")
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand ~ in path."""
        return str(Path(v).expanduser())


class SyncConfig(BaseModel):
    """Sync engine, scheduler and watcher tuning."""

    base_interval: float = Field(default=30.0, gt=0, description="Seconds between passes after success")
    fast_sync_delay: float = Field(default=5.0, gt=0, description="Seconds until a pass after a local edit")
    backoff: list[float] = Field(
        default_factory=lambda: [60.0, 120.0, 300.0],
        description="Seconds after 1, 2, ... consecutive failures; the last value repeats",
    )
    failure_threshold: int = Field(default=3, ge=1, description="Consecutive failures before data is stale")
    burst_threshold: int = Field(default=50, ge=1, description="New files per source before a burst is reported")
    burst_window: float = Field(default=0.0, ge=0, description="Seconds over which bursts are counted, 0 = per pass")
    self_write_tolerance: float = Field(default=2.0, gt=0, description="Allowed mtime drift of a self-write")
    self_write_grace_period: float = Field(default=30.0, gt=0, description="Seconds a self-write stays registered")
    poll_interval: float = Field(default=2.0, gt=0, description="Folder watcher polling period")
    debounce: float = Field(default=1.0, ge=0, description="Quiet time before the watcher reports a change")
    conflict_provider: ConflictProviderType = Field(
        default=ConflictProviderType.CONFLICT_COPIES, description="Source of conflict versions"
    )

    @field_validator("backoff")
    @classmethod
    def validate_backoff(cls, v: list[float]) -> list[float]:
        """Backoff needs at least one positive delay."""
        if not v:
            raise ValueError("backoff must contain at least one delay")
        if any(delay <= 0 for delay in v):
            raise ValueError("backoff delays must be positive")
        return v


class LimitsConfig(BaseModel):
    """Frontmatter complexity limits."""

    max_depth: int = Field(default=24, ge=1, description="Maximum nesting depth of the header tree")
    max_nodes: int = Field(default=2000, ge=1, description="Maximum number of nodes in the header tree")


class StateConfig(BaseModel):
    """Persisted sync baseline."""

    path: str = Field(default="~/.config/mdtasks/sync_state.yaml", description="Sync state file")

    @field_validator("path")
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand ~ in path."""
        return str(Path(v).expanduser())


class OutputConfig(BaseModel):
    """Output and logging configuration."""

    verbose: bool = Field(default=False, description="Enable verbose output")
    colored: bool = Field(default=True, description="Enable colored output")
    log_file: str | None = Field(default=None, description="Path to log file")

    @field_validator("log_file")
    @classmethod
    def expand_optional_path(cls, v: str | None) -> str | None:
        """Expand ~ in optional paths."""
        if v is None:
            return None
        return str(Path(v).expanduser())


class MdtasksConfig(BaseModel):
    """Root configuration model for MDTasks."""

    folder: FolderConfig = Field(description="Task folder settings")
    sync: SyncConfig = Field(default_factory=SyncConfig, description="Sync settings")
    limits: LimitsConfig = Field(default_factory=LimitsConfig, description="Parser limits")
    state: StateConfig = Field(default_factory=StateConfig, description="Sync state settings")
    output: OutputConfig = Field(default_factory=OutputConfig, description="Output settings")

    @property
    def folder_path(self) -> Path:
        return Path(self.folder.path)

    @property
    def state_path(self) -> Path:
        return Path(self.state.path)
