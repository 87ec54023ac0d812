# MDTasks Utilities Module
# Helper functions for path handling and content hashing

from mdtasks.utils.hashing import (
    content_hash,
    short_hash,
)
from mdtasks.utils.paths import (
    atomic_write,
    ensure_dir,
    expand_path,
    get_relative_path,
    is_hidden,
    matches_any_pattern,
    matches_pattern,
)

__all__ = [
    # Paths
    "expand_path",
    "ensure_dir",
    "atomic_write",
    "get_relative_path",
    "is_hidden",
    "matches_pattern",
    "matches_any_pattern",
    # Hashing
    "content_hash",
    "short_hash",
]
