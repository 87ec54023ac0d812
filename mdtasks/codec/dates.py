# MDTasks Date Coding
# Strict calendar date, time-of-day and ISO-8601 datetime handling

import re
from datetime import date, datetime, time, timezone

from mdtasks.errors import FieldError

# Stand-in for a missing "created" value; never fails a parse.
CREATED_SENTINEL = datetime(1970, 1, 1, tzinfo=timezone.utc)

_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")
_DATETIME_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})T(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?(?P<tz>Z|[+-]\d{2}:\d{2})$"
)
# YAML 1.1 timestamps: a bare date, or date and time separated by spaces with an optional zone
_YAML_TIMESTAMP_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?:[ \t]+(?P<time>\d{2}:\d{2}:\d{2})(?:\.(?P<fraction>\d+))?[ \t]*(?P<tz>Z|[+-]\d{2}:\d{2})?)?$"
)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_date(field: str, raw: str) -> date:
    """
    Parse a ``YYYY-MM-DD`` calendar date.

    Raises:
        FieldError: If the value is not a valid date in that exact format.
    """
    match = _DATE_RE.match(raw)
    if not match:
        raise FieldError(field, f"Invalid date for {field}: {raw}")
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        raise FieldError(field, f"Invalid date for {field}: {raw}") from None


def parse_time(field: str, raw: str) -> time:
    """
    Parse an ``HH:MM`` time of day.

    Raises:
        FieldError: If the value is not a valid 24h time in that exact format.
    """
    match = _TIME_RE.match(raw)
    if not match:
        raise FieldError(field, f"Invalid time for {field}: {raw}")
    try:
        return time(int(match.group(1)), int(match.group(2)))
    except ValueError:
        raise FieldError(field, f"Invalid time for {field}: {raw}") from None


def parse_datetime(field: str, raw: str) -> datetime:
    """
    Parse an ISO-8601 datetime with a zone designator; fractional seconds optional.

    Plain YAML timestamps written by hand are accepted too: a bare
    ``YYYY-MM-DD`` is midnight UTC, and ``YYYY-MM-DD HH:MM:SS`` without a
    zone is UTC. The result is normalized to UTC.

    Raises:
        FieldError: If the value matches neither form.
    """
    match = _DATETIME_RE.match(raw) or _YAML_TIMESTAMP_RE.match(raw)
    if not match:
        raise FieldError(field, f"Invalid datetime for {field}: {raw}")

    clock = match.group("time") or "00:00:00"
    fraction = (match.group("fraction") or "0")[:6].ljust(6, "0")
    tz = match.group("tz") or "Z"
    if tz == "Z":
        tz = "+00:00"

    try:
        parsed = datetime.fromisoformat(f"{match.group('date')}T{clock}.{fraction}{tz}")
    except ValueError:
        raise FieldError(field, f"Invalid datetime for {field}: {raw}") from None
    return parsed.astimezone(timezone.utc)


def format_date(value: date) -> str:
    """Format a calendar date as ``YYYY-MM-DD``."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def format_time(value: time) -> str:
    """Format a time of day as ``HH:MM``."""
    return f"{value.hour:02d}:{value.minute:02d}"


def format_datetime(value: datetime) -> str:
    """
    Format a datetime as UTC ISO-8601 with a ``Z`` suffix.

    Milliseconds are always written; full microseconds only when present,
    so parsing the output yields the same instant.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)

    if value.microsecond % 1000 == 0:
        fraction = f"{value.microsecond // 1000:03d}"
    else:
        fraction = f"{value.microsecond:06d}"
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{fraction}Z"
