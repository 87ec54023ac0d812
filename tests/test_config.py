# MDTasks Config Tests
# Tests for configuration loading and validation

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from mdtasks.config.defaults import DEFAULT_CONFIG, generate_default_config
from mdtasks.config.loader import (
    ensure_config_exists,
    get_config_path,
    load_config,
    save_config,
    validate_config_file,
)
from mdtasks.config.schema import ConflictProviderType, FolderConfig, MdtasksConfig, SyncConfig


class TestMdtasksConfig:
    """Tests for MdtasksConfig schema."""

    def test_minimal_config(self, temp_dir: Path):
        """Test minimal valid configuration."""
        config = MdtasksConfig(folder={"path": str(temp_dir)})

        assert config.folder_path == temp_dir
        assert config.folder.exclude == []
        assert config.sync.base_interval == 30.0
        assert config.sync.conflict_provider == ConflictProviderType.CONFLICT_COPIES

    def test_full_config(self, sample_config: dict, task_folder: Path):
        """Test full configuration loading."""
        config = MdtasksConfig.model_validate(sample_config)

        assert config.folder_path == task_folder
        assert config.folder.exclude == ["archive/**"]
        assert config.sync.backoff == [60, 120, 300]
        assert config.output.colored is False
        assert config.state_path.name == "sync_state.yaml"

    def test_folder_required(self):
        """Test that the folder section is mandatory."""
        with pytest.raises(ValidationError):
            MdtasksConfig.model_validate({})

    def test_conflict_provider_enum(self):
        """Test conflict provider enum values."""
        assert ConflictProviderType.CONFLICT_COPIES.value == "conflict-copies"
        assert ConflictProviderType.NONE.value == "none"


class TestSyncConfig:
    """Tests for SyncConfig schema."""

    def test_sync_defaults(self):
        """Test sync section with default values."""
        sync = SyncConfig()
        assert sync.fast_sync_delay == 5.0
        assert sync.backoff == [60.0, 120.0, 300.0]
        assert sync.failure_threshold == 3
        assert sync.burst_threshold == 50
        assert sync.burst_window == 0.0

    def test_empty_backoff_rejected(self):
        with pytest.raises(ValidationError):
            SyncConfig(backoff=[])

    def test_negative_backoff_rejected(self):
        with pytest.raises(ValidationError):
            SyncConfig(backoff=[60, -1])

    @pytest.mark.parametrize("field", ["base_interval", "fast_sync_delay", "poll_interval"])
    def test_delays_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            SyncConfig(**{field: 0})

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            SyncConfig(conflict_provider="icloud")

    def test_path_expansion(self, temp_home: Path):
        """Test that ~ is expanded in paths."""
        folder = FolderConfig(path="~/Tasks")
        assert "~" not in folder.path
        assert folder.path == str(temp_home / "Tasks")


class TestConfigLoader:
    """Tests for config loading and saving."""

    def test_load_config(self, config_file: Path, task_folder: Path):
        """Test loading configuration from file."""
        config = load_config(config_file)
        assert config.folder_path == task_folder

    def test_load_merges_defaults(self, temp_dir: Path):
        """Sections and keys missing from the file take default values."""
        config_path = temp_dir / "partial.yaml"
        config_path.write_text("folder:\n  path: /srv/tasks\nsync:\n  base_interval: 10\n", encoding="utf-8")

        config = load_config(config_path)

        assert config.folder.path == "/srv/tasks"
        assert config.sync.base_interval == 10
        assert config.sync.fast_sync_delay == 5.0
        assert config.limits.max_depth == 24

    def test_load_missing_config(self, temp_dir: Path):
        """Test loading missing configuration."""
        with pytest.raises(FileNotFoundError, match="mdtasks config init"):
            load_config(temp_dir / "nonexistent.yaml")

    @pytest.mark.parametrize("content", ["- folder\n- sync\n", "just text\n", "42\n"])
    def test_load_rejects_non_mapping(self, temp_dir: Path, content: str):
        """A top level that is not a mapping is a configuration error."""
        config_path = temp_dir / "config.yaml"
        config_path.write_text(content, encoding="utf-8")

        with pytest.raises(ValueError, match="mapping of sections"):
            load_config(config_path)

    def test_env_override(self, temp_home: Path, monkeypatch: pytest.MonkeyPatch):
        """MDTASKS_CONFIG replaces the default location."""
        assert get_config_path() == temp_home / ".config" / "mdtasks" / "config.yaml"
        monkeypatch.setenv("MDTASKS_CONFIG", "/etc/mdtasks.yaml")
        assert get_config_path() == Path("/etc/mdtasks.yaml")

    def test_save_config(self, temp_dir: Path, sample_config: dict):
        """Test saving configuration."""
        config = MdtasksConfig.model_validate(sample_config)
        config_path = temp_dir / "nested" / "test_config.yaml"

        save_config(config, config_path)

        assert config_path.exists()

        with open(config_path, encoding="utf-8") as f:
            saved = yaml.safe_load(f)

        assert saved["folder"]["exclude"] == ["archive/**"]
        assert saved["sync"]["conflict_provider"] == "conflict-copies"

    def test_ensure_config_exists(self, temp_dir: Path):
        config_path = temp_dir / "config.yaml"

        path, created = ensure_config_exists(config_path, "/srv/tasks")
        assert created is True
        assert yaml.safe_load(path.read_text(encoding="utf-8"))["folder"]["path"] == "/srv/tasks"

        path, created = ensure_config_exists(config_path, "/elsewhere")
        assert created is False
        assert yaml.safe_load(path.read_text(encoding="utf-8"))["folder"]["path"] == "/srv/tasks"

    def test_validate_valid_config(self, config_file: Path):
        """Test validating a valid configuration."""
        is_valid, errors = validate_config_file(config_file)
        assert is_valid is True
        assert len(errors) == 0

    def test_validate_invalid_yaml(self, temp_dir: Path):
        """Test validating invalid YAML."""
        bad_file = temp_dir / "bad.yaml"
        bad_file.write_text("{ invalid yaml [", encoding="utf-8")

        is_valid, errors = validate_config_file(bad_file)
        assert is_valid is False
        assert len(errors) > 0

    def test_validate_reports_field_location(self, temp_dir: Path):
        bad_file = temp_dir / "bad.yaml"
        bad_file.write_text("folder:\n  path: /tmp\nsync:\n  backoff: []\n", encoding="utf-8")

        is_valid, errors = validate_config_file(bad_file)
        assert is_valid is False
        assert any(error.startswith("sync -> backoff") for error in errors)

    def test_validate_missing_folder_and_unknown_section(self, temp_dir: Path):
        config_path = temp_dir / "config.yaml"
        config_path.write_text("sync:\n  base_interval: 10\nrepository:\n  path: /x\n", encoding="utf-8")

        is_valid, errors = validate_config_file(config_path)

        assert is_valid is False
        assert "Missing 'folder' section" in errors
        assert "Unknown section(s): repository" in errors

    def test_validate_empty_file(self, temp_dir: Path):
        config_path = temp_dir / "empty.yaml"
        config_path.write_text("", encoding="utf-8")
        assert validate_config_file(config_path) == (False, ["Configuration file is empty"])


class TestDefaults:
    """Tests for default configuration."""

    def test_default_config_structure(self):
        """Test default config has required structure."""
        assert set(DEFAULT_CONFIG) == {"folder", "sync", "limits", "state", "output"}

    def test_default_config_is_valid(self):
        config = MdtasksConfig.model_validate(DEFAULT_CONFIG)
        assert config.sync.self_write_grace_period == 30.0

    def test_generate_default_config(self):
        """Test YAML generation."""
        yaml_str = generate_default_config("/srv/tasks")

        assert yaml_str.startswith("# MDTasks Configuration")
        assert "conflict_provider: conflict-copies" in yaml_str

        parsed = yaml.safe_load(yaml_str)
        assert parsed["folder"]["path"] == "/srv/tasks"
        assert DEFAULT_CONFIG["folder"]["path"] == "~/Tasks"
