# MDTasks Filenames
# Collision-free task filenames and filename-derived titles

import re
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from mdtasks.codec.dates import utc_now

TIMESTAMP_FORMAT = "%Y%m%d-%H%M"
MAX_SLUG_LENGTH = 60
FALLBACK_SLUG = "task"
TASK_EXTENSION = ".md"

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_REPEATED_HYPHEN_RE = re.compile(r"-{2,}")
_TIMESTAMP_PREFIX_RE = re.compile(r"^\d{8}-\d{4}-")


def slugify(title: str) -> str:
    """
    Turn a title into a filename slug.

    Lowercases, collapses every run of non-alphanumeric characters into a
    single hyphen, trims hyphens at both ends and truncates to 60 characters.

    Args:
        title: Task title.

    Returns:
        Slug, or "task" if nothing usable remains.
    """
    slug = _NON_ALNUM_RE.sub("-", title.lower())
    slug = _REPEATED_HYPHEN_RE.sub("-", slug).strip("-")
    slug = slug[:MAX_SLUG_LENGTH].rstrip("-")
    return slug or FALLBACK_SLUG


def generate_filename(title: str, existing: Iterable[str] = (), now: datetime | None = None) -> str:
    """
    Generate a filename that does not collide with any existing name.

    The name is ``{yyyyMMdd-HHmm}-{slug}.md`` in UTC. On collision ``-2``,
    ``-3``, ... is appended before the extension. Comparison ignores case
    so names stay distinct on case-insensitive file systems.

    Args:
        title: Task title.
        existing: Filenames already present in the target directory.
        now: Timestamp to use (defaults to current UTC time).

    Returns:
        Filename (no directory component).
    """
    moment = now or utc_now()
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)

    stem = f"{moment.strftime(TIMESTAMP_FORMAT)}-{slugify(title)}"
    return resolve_collision(f"{stem}{TASK_EXTENSION}", existing)


def resolve_collision(filename: str, existing: Iterable[str]) -> str:
    """Append the lowest free numeric suffix (starting at 2) to a taken filename."""
    taken = {name.casefold() for name in existing}
    if filename.casefold() not in taken:
        return filename

    path = Path(filename)
    suffix_number = 2
    while True:
        candidate = f"{path.stem}-{suffix_number}{path.suffix}"
        if candidate.casefold() not in taken:
            return candidate
        suffix_number += 1


def sanitize_preferred_filename(name: str | None) -> str | None:
    """
    Clean a caller-supplied filename.

    Directory components are dropped and ``.md`` is appended when missing.

    Returns:
        Usable filename, or None when the name is blank.
    """
    if name is None:
        return None
    cleaned = Path(name.strip()).name.strip()
    if not cleaned or cleaned in (".", ".."):
        return None
    if cleaned.startswith("."):
        cleaned = cleaned.lstrip(".")
        if not cleaned:
            return None
    if not cleaned.lower().endswith(TASK_EXTENSION):
        cleaned += TASK_EXTENSION
    return cleaned


def title_from_filename(filename: str) -> str:
    """
    Derive a display title from a task filename.

    ``20250301-0930-buy-milk.md`` becomes ``buy milk``.
    """
    stem = Path(filename).stem
    derived = _TIMESTAMP_PREFIX_RE.sub("", stem)
    derived = derived.replace("-", " ").replace("_", " ").strip()
    derived = " ".join(derived.split())
    return derived or stem
