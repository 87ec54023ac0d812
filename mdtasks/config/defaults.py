# MDTasks Default Configuration
# Full default configuration as Python dict and YAML generator

from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "folder": {
        "path": "~/Tasks",
        "exclude": [],
    },
    "sync": {
        "base_interval": 30.0,
        "fast_sync_delay": 5.0,
        "backoff": [60.0, 120.0, 300.0],
        "failure_threshold": 3,
        "burst_threshold": 50,
        "burst_window": 0.0,
        "self_write_tolerance": 2.0,
        "self_write_grace_period": 30.0,
        "poll_interval": 2.0,
        "debounce": 1.0,
        "conflict_provider": "conflict-copies",
    },
    "limits": {
        "max_depth": 24,
        "max_nodes": 2000,
    },
    "state": {
        "path": "~/.config/mdtasks/sync_state.yaml",
    },
    "output": {
        "verbose": False,
        "colored": True,
        "log_file": None,
    },
}


def generate_default_config(folder_path: str | None = None) -> str:
    """
    Generate default configuration as YAML string with comments.

    Args:
        folder_path: Task folder to put in the file instead of the default.
    """
    header = """# MDTasks Configuration
# Version: 1.0
#
# folder.path is the root of the task tree; every non-hidden .md file below
# it is one task. folder.exclude holds glob patterns relative to that root.
#
# sync timings are in seconds:
#   - base_interval: delay between passes while everything succeeds
#   - fast_sync_delay: delay after a local edit
#   - backoff: delays after 1, 2, 3+ consecutive failures
#   - burst_window: 0 counts new files per pass only
#
# sync.conflict_provider:
#   - conflict-copies: treat "conflicted copy" / ".sync-conflict-" siblings as versions
#   - none: never report conflicts

"""
    data = {section: dict(values) for section, values in DEFAULT_CONFIG.items()}
    if folder_path is not None:
        data["folder"]["path"] = folder_path
    return header + yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
