# MDTasks Configuration Module
# Handles YAML-based configuration loading, validation, and defaults

from mdtasks.config.defaults import DEFAULT_CONFIG, generate_default_config
from mdtasks.config.loader import (
    ensure_config_exists,
    get_config_path,
    load_config,
    save_config,
    validate_config_file,
)
from mdtasks.config.schema import (
    ConflictProviderType,
    FolderConfig,
    LimitsConfig,
    MdtasksConfig,
    OutputConfig,
    StateConfig,
    SyncConfig,
)

__all__ = [
    # Schema
    "MdtasksConfig",
    "FolderConfig",
    "SyncConfig",
    "LimitsConfig",
    "StateConfig",
    "OutputConfig",
    "ConflictProviderType",
    # Loader
    "load_config",
    "save_config",
    "get_config_path",
    "ensure_config_exists",
    "validate_config_file",
    # Defaults
    "DEFAULT_CONFIG",
    "generate_default_config",
]
