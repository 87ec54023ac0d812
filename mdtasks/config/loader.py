# MDTasks Configuration Loader
# Load, save, and manage YAML configuration files

import copy
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from mdtasks.config.defaults import DEFAULT_CONFIG, generate_default_config
from mdtasks.config.schema import MdtasksConfig

SECTIONS = ("folder", "sync", "limits", "state", "output")


def get_config_dir() -> Path:
    """Get the MDTasks configuration directory."""
    return Path.home() / ".config" / "mdtasks"


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    # Allow override via environment variable
    env_path = os.environ.get("MDTASKS_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return get_config_dir() / "config.yaml"


def load_config(config_path: Path | None = None) -> MdtasksConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        MdtasksConfig: Validated configuration object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If the file is not a mapping of sections.
        ValidationError: If config file is invalid.
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}\nRun 'mdtasks config init' to create one.")

    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Configuration must be a mapping of sections")

    # Merge with defaults for missing values
    merged = _merge_with_defaults(data)

    return MdtasksConfig.model_validate(merged)


def save_config(config: MdtasksConfig, config_path: Path | None = None) -> Path:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration object to save.
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Path: Path where config was saved.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    # mode='json' serializes Enums as their string values
    data = config.model_dump(mode="json")

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    return config_path


def ensure_config_exists(config_path: Path | None = None, folder_path: str | None = None) -> tuple[Path, bool]:
    """
    Ensure configuration file exists, creating default if needed.

    Args:
        config_path: Optional path to config file. Uses default if not provided.
        folder_path: Task folder to write into a newly created file.

    Returns:
        Tuple of (config_path, was_created).
    """
    if config_path is None:
        config_path = get_config_path()

    if config_path.exists():
        return config_path, False

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(generate_default_config(folder_path), encoding="utf-8")
    return config_path, True


def validate_config_file(config_path: Path | None = None) -> tuple[bool, list[str]]:
    """
    Validate a configuration file without loading it into the system.

    Args:
        config_path: Path to config file to validate.

    Returns:
        Tuple of (is_valid, error_messages).
    """
    if config_path is None:
        config_path = get_config_path()

    errors: list[str] = []

    if not config_path.exists():
        return False, [f"Configuration file not found: {config_path}"]

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        return False, [f"Invalid YAML syntax: {e}"]

    if data is None:
        return False, ["Configuration file is empty"]

    if not isinstance(data, dict):
        return False, ["Configuration must be a mapping of sections"]

    try:
        MdtasksConfig.model_validate(_merge_with_defaults(data))
    except ValidationError as e:
        for error in e.errors():
            loc = " -> ".join(str(part) for part in error["loc"])
            errors.append(f"{loc}: {error['msg']}")
        return False, errors

    # Additional validation
    if "folder" not in data:
        errors.append("Missing 'folder' section")

    unknown = sorted(set(data) - set(SECTIONS))
    if unknown:
        errors.append(f"Unknown section(s): {', '.join(unknown)}")

    return len(errors) == 0, errors


def _merge_with_defaults(data: dict) -> dict:
    """Merge loaded data with default values for missing keys."""
    result = copy.deepcopy(DEFAULT_CONFIG)

    for section in SECTIONS:
        value = data.get(section)
        if isinstance(value, dict):
            result[section] = {**result[section], **value}
        elif value is not None:
            # Let validation report the wrong type
            result[section] = value

    return result
