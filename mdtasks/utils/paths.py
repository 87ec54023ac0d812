# MDTasks Path Utilities
# Atomic writes, path expansion and pattern matching for the task folder

import fnmatch
import os
import tempfile
from pathlib import Path


def expand_path(path: str | Path) -> Path:
    """
    Expand ~ and environment variables in path.

    Args:
        path: Path string or Path object.

    Returns:
        Expanded, resolved Path object.
    """
    path_str = str(path)
    path_str = os.path.expanduser(path_str)
    path_str = os.path.expandvars(path_str)
    return Path(path_str).resolve()


def ensure_dir(path: Path) -> Path:
    """
    Ensure directory exists, creating if necessary.

    Args:
        path: Directory path.

    Returns:
        The path that was ensured.
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def atomic_write(path: Path, content: str | bytes, *, encoding: str = "utf-8") -> None:
    """
    Atomically write content to file.

    The content goes to a hidden temporary file in the same directory which
    is then renamed over the target, so readers see either the old or the
    new file and never a partial one.

    Args:
        path: Target file path.
        content: Content to write (str or bytes).
        encoding: Encoding for string content (default utf-8).
    """
    ensure_dir(path.parent)

    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        if isinstance(content, str):
            with os.fdopen(fd, "w", encoding=encoding, newline="") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        else:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        os.replace(temp_path, path)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise


def get_relative_path(path: Path, base: Path) -> Path | None:
    """
    Get path relative to base, or None if not relative.

    Args:
        path: Path to make relative.
        base: Base path.

    Returns:
        Relative path or None if not relative.
    """
    try:
        return path.relative_to(base)
    except ValueError:
        return None


def is_hidden(rel_path: Path) -> bool:
    """Check whether any component of a relative path is a dotfile."""
    return any(part.startswith(".") for part in rel_path.parts)


def matches_pattern(path: str | Path, pattern: str) -> bool:
    """
    Check if path matches a glob pattern.

    Supports:
    - * for any characters within path component
    - ** for any path components
    - ? for single character

    Args:
        path: Path to check.
        pattern: Glob pattern.

    Returns:
        True if path matches pattern.
    """
    path_str = Path(path).as_posix()

    if "**" in pattern:
        parts = pattern.split("**")
        if len(parts) == 2:
            prefix, suffix = parts
            if prefix and not fnmatch.fnmatch(path_str, f"{prefix}*"):
                return False
            if suffix:
                suffix = suffix.lstrip("/")
                if not fnmatch.fnmatch(path_str, f"*{suffix}"):
                    return False
            return True

    return fnmatch.fnmatch(path_str, pattern)


def matches_any_pattern(path: str | Path, patterns: list[str]) -> bool:
    """
    Check if path matches any of the given patterns.

    Args:
        path: Path to check.
        patterns: List of glob patterns.

    Returns:
        True if path matches any pattern.
    """
    return any(matches_pattern(path, p) for p in patterns)
