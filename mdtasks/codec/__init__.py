# MDTasks Codec Module
# Task data model and frontmatter parsing/serialization

from mdtasks.codec.dates import (
    CREATED_SENTINEL,
    format_date,
    format_datetime,
    format_time,
    parse_date,
    parse_datetime,
    parse_time,
    utc_now,
)
from mdtasks.codec.frontmatter import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_NODES,
    KEY_ALIASES,
    KNOWN_KEYS,
    FrontmatterCodec,
    canonical_key,
    is_known_key,
    validate_document,
)
from mdtasks.codec.models import (
    TaskDocument,
    TaskFileIdentity,
    TaskFrontmatter,
    TaskPriority,
    TaskRecord,
    TaskStatus,
    new_document,
)

__all__ = [
    # Models
    "TaskStatus",
    "TaskPriority",
    "TaskFrontmatter",
    "TaskDocument",
    "TaskFileIdentity",
    "TaskRecord",
    "new_document",
    # Codec
    "FrontmatterCodec",
    "KNOWN_KEYS",
    "KEY_ALIASES",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_NODES",
    "canonical_key",
    "is_known_key",
    "validate_document",
    # Dates
    "CREATED_SENTINEL",
    "utc_now",
    "parse_date",
    "parse_time",
    "parse_datetime",
    "format_date",
    "format_time",
    "format_datetime",
]
