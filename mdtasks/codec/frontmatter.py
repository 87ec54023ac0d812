# MDTasks Frontmatter Codec
# Parse and serialize task files: a YAML header between --- delimiters plus a markdown body

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

import yaml

from mdtasks.codec.dates import (
    CREATED_SENTINEL,
    format_date,
    format_datetime,
    format_time,
    parse_date,
    parse_datetime,
    parse_time,
)
from mdtasks.codec.models import TaskDocument, TaskFrontmatter, TaskPriority, TaskStatus
from mdtasks.errors import FieldError, ParseError, StructuralParseError

DEFAULT_MAX_DEPTH = 24
DEFAULT_MAX_NODES = 2_000

KNOWN_KEYS: frozenset[str] = frozenset(
    {
        "title",
        "status",
        "due",
        "due_time",
        "defer",
        "scheduled",
        "priority",
        "flagged",
        "area",
        "project",
        "tags",
        "recurrence",
        "estimated_minutes",
        "description",
        "created",
        "modified",
        "completed",
        "source",
    }
)

# Legacy spellings (lowercased) -> canonical key
KEY_ALIASES: dict[str, str] = {
    "datecreated": "created",
    "datemodified": "modified",
    "completeddate": "completed",
}

STATUS_ALIASES: dict[str, TaskStatus] = {
    "": TaskStatus.TODO,
    "todo": TaskStatus.TODO,
    "to-do": TaskStatus.TODO,
    "open": TaskStatus.TODO,
    "pending": TaskStatus.TODO,
    "in-progress": TaskStatus.IN_PROGRESS,
    "inprogress": TaskStatus.IN_PROGRESS,
    "doing": TaskStatus.IN_PROGRESS,
    "done": TaskStatus.DONE,
    "complete": TaskStatus.DONE,
    "completed": TaskStatus.DONE,
    "cancelled": TaskStatus.CANCELLED,
    "canceled": TaskStatus.CANCELLED,
    "someday": TaskStatus.SOMEDAY,
    "maybe": TaskStatus.SOMEDAY,
}

PRIORITY_ALIASES: dict[str, TaskPriority] = {
    "": TaskPriority.NONE,
    "none": TaskPriority.NONE,
    "p4": TaskPriority.NONE,
    "low": TaskPriority.LOW,
    "p3": TaskPriority.LOW,
    "medium": TaskPriority.MEDIUM,
    "med": TaskPriority.MEDIUM,
    "normal": TaskPriority.MEDIUM,
    "p2": TaskPriority.MEDIUM,
    "high": TaskPriority.HIGH,
    "p1": TaskPriority.HIGH,
}

MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 2_000
MAX_BODY_LENGTH = 100_000
MAX_TAGS = 100
MAX_TAG_LENGTH = 80
MAX_ESTIMATED_MINUTES = 100_000

_DELIMITER = "---\n"

_INT_RE = re.compile(
    r"""^(?:[-+]?0b[0-1_]+
    |[-+]?0[0-7_]+
    |[-+]?(?:0|[1-9][0-9_]*)
    |[-+]?0x[0-9a-fA-F_]+)$""",
    re.X,
)
_FLOAT_RE = re.compile(
    r"""^(?:[-+]?(?:[0-9][0-9_]*)\.[0-9_]*(?:[eE][-+][0-9]+)?
    |\.[0-9][0-9_]*(?:[eE][-+][0-9]+)?
    |[-+]?\.(?:inf|Inf|INF)
    |\.(?:nan|NaN|NAN))$""",
    re.X,
)
_REPLACED_TAGS = {
    "tag:yaml.org,2002:timestamp",
    "tag:yaml.org,2002:int",
    "tag:yaml.org,2002:float",
}


class _HeaderLoader(yaml.SafeLoader):
    """
    SafeLoader that keeps dates and times as strings.

    Timestamps are left for the codec to parse strictly, and YAML 1.1
    base-60 numbers are not recognized, so ``due_time: 10:30`` stays text.
    """


_HeaderLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _REPLACED_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_HeaderLoader.add_implicit_resolver("tag:yaml.org,2002:int", _INT_RE, list("-+0123456789"))
_HeaderLoader.add_implicit_resolver("tag:yaml.org,2002:float", _FLOAT_RE, list("-+0123456789."))


def canonical_key(key: str) -> str:
    """Map a header key to its canonical spelling (lowercased, aliases applied)."""
    lowered = key.lower()
    return KEY_ALIASES.get(lowered, lowered)


def is_known_key(key: str) -> bool:
    """Check whether a header key is one the codec interprets."""
    return canonical_key(key) in KNOWN_KEYS


class FrontmatterCodec:
    """
    Converts between task file content and TaskDocument.

    Parsing never raises anything but ParseError subclasses, whatever the
    input; header trees deeper than ``max_depth`` or larger than
    ``max_nodes`` are rejected before any field is interpreted.
    """

    def __init__(self, *, max_depth: int = DEFAULT_MAX_DEPTH, max_nodes: int = DEFAULT_MAX_NODES):
        self.max_depth = max_depth
        self.max_nodes = max_nodes

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, content: str, fallback_title: str | None = None) -> TaskDocument:
        """
        Parse file content into a document.

        Args:
            content: Full text of a task file.
            fallback_title: Title to use when the header has none.

        Returns:
            TaskDocument.

        Raises:
            StructuralParseError: Delimiters, YAML syntax or size limits.
            FieldError: A known field has a bad type or value.
        """
        header_text, body = self._split(content)
        tree = self._load_header(header_text)
        self._check_complexity(tree)

        known: dict[str, Any] = {}
        unknown: dict[str, Any] = {}
        for key, value in tree.items():
            if not isinstance(key, str):
                raise StructuralParseError(f"Frontmatter keys must be strings, got {key!r}")
            canonical = canonical_key(key)
            if canonical in KNOWN_KEYS:
                # First occurrence wins
                known.setdefault(canonical, value)
            else:
                unknown[key] = value

        frontmatter = self._build_frontmatter(known, fallback_title)
        document = TaskDocument(frontmatter=frontmatter, body=body, unknown_fields=unknown)
        validate_document(document)
        return document

    def _split(self, content: str) -> tuple[str, str]:
        normalized = content.replace("\r\n", "\n")
        if normalized.startswith("\ufeff"):
            normalized = normalized[1:]

        if not normalized.startswith(_DELIMITER):
            raise StructuralParseError("Document is missing leading frontmatter delimiter")

        remainder = normalized[len(_DELIMITER) :]

        # Some legacy files repeat the opening delimiter
        if remainder.startswith(_DELIMITER):
            remainder = remainder[len(_DELIMITER) :]

        separator = remainder.find("\n---\n")
        if separator != -1:
            return remainder[:separator], remainder[separator + 5 :]

        if remainder.endswith("\n---"):
            return remainder[:-4], ""

        raise StructuralParseError("Document is missing closing frontmatter delimiter")

    def _load_header(self, header_text: str) -> dict:
        try:
            loaded = yaml.load(header_text, Loader=_HeaderLoader)
        except yaml.YAMLError as e:
            raise StructuralParseError(f"Invalid YAML frontmatter: {e}") from None
        except RecursionError:
            raise StructuralParseError(
                f"Frontmatter nesting exceeds maximum depth ({self.max_depth})"
            ) from None

        if not isinstance(loaded, dict):
            raise StructuralParseError("Frontmatter YAML is not an object")
        return loaded

    def _check_complexity(self, tree: dict) -> None:
        visited = 0
        stack: list[tuple[Any, int]] = [(tree, 1)]

        while stack:
            value, depth = stack.pop()
            if depth > self.max_depth:
                raise StructuralParseError(f"Frontmatter nesting exceeds maximum depth ({self.max_depth})")

            visited += 1
            if visited > self.max_nodes:
                raise StructuralParseError(f"Frontmatter exceeds maximum node count ({self.max_nodes})")

            if isinstance(value, dict):
                stack.extend((child, depth + 1) for child in value.values())
            elif isinstance(value, list):
                stack.extend((child, depth + 1) for child in value)

    def _build_frontmatter(self, known: dict[str, Any], fallback_title: str | None) -> TaskFrontmatter:
        title = _optional_string(known, "title")
        title = title.strip() if title else ""
        if not title:
            title = (fallback_title or "").strip()
        if not title:
            raise FieldError("title", "Missing required field: title")

        status_raw = _optional_string(known, "status") or ""
        priority_raw = _optional_string(known, "priority") or ""

        return TaskFrontmatter(
            title=title,
            status=STATUS_ALIASES.get(status_raw.strip().lower(), TaskStatus.TODO),
            due=_optional_date(known, "due"),
            due_time=_optional_time(known, "due_time"),
            defer=_optional_date(known, "defer"),
            scheduled=_optional_date(known, "scheduled"),
            priority=PRIORITY_ALIASES.get(priority_raw.strip().lower(), TaskPriority.NONE),
            flagged=_optional_bool(known, "flagged") or False,
            area=_optional_string(known, "area"),
            project=_optional_string(known, "project"),
            tags=_parse_tags(known.get("tags")),
            recurrence=_optional_string(known, "recurrence"),
            estimated_minutes=_optional_int(known, "estimated_minutes"),
            description=_optional_string(known, "description"),
            created=_optional_datetime(known, "created") or CREATED_SENTINEL,
            modified=_optional_datetime(known, "modified"),
            completed=_optional_datetime(known, "completed"),
            source=_optional_string(known, "source") or "unknown",
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def serialize(self, document: TaskDocument) -> str:
        """
        Serialize a document to file content.

        Keys are sorted, optional fields that are unset are omitted, and the
        body always ends with a newline when it is not empty.

        Raises:
            FieldError: If the document fails validation.
        """
        validate_document(document)
        fm = document.frontmatter

        header: dict[str, Any] = {
            "title": fm.title,
            "status": fm.status.value,
            "priority": fm.priority.value,
            "flagged": fm.flagged,
            "created": format_datetime(fm.created),
            "source": fm.source,
        }
        if fm.due is not None:
            header["due"] = format_date(fm.due)
        if fm.due_time is not None:
            header["due_time"] = format_time(fm.due_time)
        if fm.defer is not None:
            header["defer"] = format_date(fm.defer)
        if fm.scheduled is not None:
            header["scheduled"] = format_date(fm.scheduled)
        if fm.area is not None:
            header["area"] = fm.area
        if fm.project is not None:
            header["project"] = fm.project
        if fm.tags:
            header["tags"] = list(fm.tags)
        if fm.recurrence is not None:
            header["recurrence"] = fm.recurrence
        if fm.estimated_minutes is not None:
            header["estimated_minutes"] = fm.estimated_minutes
        if fm.description is not None:
            header["description"] = fm.description
        if fm.modified is not None:
            header["modified"] = format_datetime(fm.modified)
        if fm.completed is not None:
            header["completed"] = format_datetime(fm.completed)

        for key, value in document.unknown_fields.items():
            if not isinstance(key, str):
                raise FieldError(str(key), f"Unknown frontmatter key {key!r} is not a string")
            if is_known_key(key):
                continue
            header[key] = value

        try:
            header_text = yaml.safe_dump(
                header,
                sort_keys=True,
                allow_unicode=True,
                default_flow_style=False,
                width=4096,
            )
        except yaml.YAMLError as e:
            raise FieldError("frontmatter", f"Frontmatter cannot be serialized: {e}") from None

        body = document.body.replace("\r\n", "\n")
        if body and not body.endswith("\n"):
            body += "\n"

        return f"{_DELIMITER}{header_text}{_DELIMITER}{body}"


def validate_document(document: TaskDocument) -> None:
    """
    Check field limits on a document.

    Raises:
        FieldError: Naming the first field that violates a limit.
    """
    fm = document.frontmatter
    title = fm.title.strip()
    if not title:
        raise FieldError("title", "Missing required field: title")
    if len(title) > MAX_TITLE_LENGTH:
        raise FieldError("title", f"Field title exceeds {MAX_TITLE_LENGTH} characters")
    if fm.description is not None and len(fm.description) > MAX_DESCRIPTION_LENGTH:
        raise FieldError("description", f"Field description exceeds {MAX_DESCRIPTION_LENGTH} characters")
    if len(document.body) > MAX_BODY_LENGTH:
        raise FieldError("body", f"Body exceeds {MAX_BODY_LENGTH} characters")
    if not fm.source.strip():
        raise FieldError("source", "Missing required field: source")
    if fm.estimated_minutes is not None and not 0 <= fm.estimated_minutes <= MAX_ESTIMATED_MINUTES:
        raise FieldError("estimated_minutes", f"Field estimated_minutes must be between 0 and {MAX_ESTIMATED_MINUTES}")
    if len(fm.tags) > MAX_TAGS:
        raise FieldError("tags", f"At most {MAX_TAGS} tags are allowed")
    for tag in fm.tags:
        if len(tag) > MAX_TAG_LENGTH:
            raise FieldError("tags", f"Tag exceeds {MAX_TAG_LENGTH} characters: {tag[:20]}...")


def _optional_string(obj: dict[str, Any], key: str) -> str | None:
    value = obj.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise FieldError(key, f"Field {key} must be a string")
    return value


def _optional_bool(obj: dict[str, Any], key: str) -> bool | None:
    value = obj.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise FieldError(key, f"Field {key} must be a boolean")
    return value


def _optional_int(obj: dict[str, Any], key: str) -> int | None:
    value = obj.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise FieldError(key, f"Field {key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise FieldError(key, f"Field {key} must be an integer")


def _optional_date(obj: dict[str, Any], key: str):
    value = obj.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise FieldError(key, f"Field {key} must be a date string")
    normalized = value.strip()
    if not normalized:
        return None
    return parse_date(key, normalized)


def _optional_time(obj: dict[str, Any], key: str):
    value = obj.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise FieldError(key, f"Field {key} must be a time string")
    normalized = value.strip()
    if not normalized:
        return None
    return parse_time(key, normalized)


def _optional_datetime(obj: dict[str, Any], key: str) -> datetime | None:
    value = obj.get(key)
    if value is None:
        return None
    if isinstance(value, str):
        normalized = value.strip()
        if not normalized:
            return None
        return parse_datetime(key, normalized)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise FieldError(key, f"Invalid datetime for {key}: {value}") from None
    raise FieldError(key, f"Field {key} must be a datetime string")


def _parse_tags(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()

    if isinstance(value, list):
        raw_tags = []
        for item in value:
            if not isinstance(item, str):
                raise FieldError("tags", "Expected string tag value")
            raw_tags.append(item.strip())
    elif isinstance(value, str):
        raw_tags = [part.strip() for part in value.split(",")]
    else:
        raise FieldError("tags", "Expected array or comma-separated string for tags")

    # Ordered set: drop blanks and repeats, keep first position
    return tuple(dict.fromkeys(tag for tag in raw_tags if tag))


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_NODES",
    "KNOWN_KEYS",
    "KEY_ALIASES",
    "FrontmatterCodec",
    "ParseError",
    "canonical_key",
    "is_known_key",
    "validate_document",
]
