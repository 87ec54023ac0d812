# MDTasks Test Fixtures
# Pytest fixtures for MDTasks tests

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
import yaml

SAMPLE_TASK = """---
title: Buy milk
status: todo
due: 2025-03-02
tags: [errands, home]
created: 2025-03-01T09:30:00.000Z
source: phone
---

Two litres.
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def temp_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary home directory."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("MDTASKS_CONFIG", raising=False)
    return home


@pytest.fixture
def task_folder(temp_dir: Path) -> Path:
    """Create an empty task folder."""
    folder = temp_dir / "tasks"
    folder.mkdir()
    return folder


def task_content(title: str, **fields: str) -> str:
    """Minimal valid task file content."""
    lines = ["---", f"title: {title}"]
    lines.extend(f"{key}: {value}" for key, value in fields.items())
    lines.extend(["---", ""])
    return "\n".join(lines)


@pytest.fixture
def sample_config(temp_home: Path, task_folder: Path) -> dict:
    """Create sample configuration dict."""
    return {
        "folder": {
            "path": str(task_folder),
            "exclude": ["archive/**"],
        },
        "sync": {
            "base_interval": 30,
            "fast_sync_delay": 5,
            "backoff": [60, 120, 300],
            "burst_threshold": 50,
            "conflict_provider": "conflict-copies",
        },
        "state": {
            "path": str(temp_home / ".config" / "mdtasks" / "sync_state.yaml"),
        },
        "output": {"verbose": False, "colored": False},
    }


@pytest.fixture
def config_file(temp_home: Path, sample_config: dict) -> Path:
    """Create a configuration file."""
    config_dir = temp_home / ".config" / "mdtasks"
    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(sample_config, f, default_flow_style=False)

    return config_path


@pytest.fixture
def make_task(task_folder: Path):
    """
    Factory writing raw task files below the task folder.

    ``make_task("a.md")`` writes the sample task; ``make_task("b.md", "raw")``
    writes raw content; ``make_task("c.md", title="C", status="done")``
    writes a minimal header.
    """

    def _make(name: str, content: str | None = None, **fields: str) -> Path:
        if content is None:
            content = task_content(fields.pop("title"), **fields) if "title" in fields else SAMPLE_TASK
        path = task_folder / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _make
