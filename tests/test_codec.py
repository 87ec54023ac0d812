# Tests for mdtasks.codec
# Frontmatter parsing, serialization and strict date handling

from datetime import date, datetime, time, timezone

import pytest

from mdtasks.codec import (
    CREATED_SENTINEL,
    FrontmatterCodec,
    TaskDocument,
    TaskFrontmatter,
    TaskPriority,
    TaskStatus,
    new_document,
)
from mdtasks.codec.dates import format_datetime, parse_date, parse_datetime, parse_time
from mdtasks.codec.frontmatter import canonical_key, is_known_key, validate_document
from mdtasks.errors import FieldError, ParseError, StructuralParseError


@pytest.fixture
def codec() -> FrontmatterCodec:
    return FrontmatterCodec()


FULL_TASK = """---
title: Water plants
status: in-progress
due: 2025-03-02
due_time: "10:30"
defer: 2025-03-01
priority: high
flagged: true
area: Home
project: Garden
tags: [home, weekly]
recurrence: FREQ=WEEKLY;INTERVAL=1
estimated_minutes: 15
description: The ones on the balcony
created: 2025-03-01T09:30:00.000Z
modified: 2025-03-01T10:00:00Z
source: phone
color: green
---

Use the blue can.
"""


class TestParse:
    """Tests for FrontmatterCodec.parse."""

    def test_full_document(self, codec):
        """Every known field is interpreted."""
        document = codec.parse(FULL_TASK)
        fm = document.frontmatter

        assert fm.title == "Water plants"
        assert fm.status is TaskStatus.IN_PROGRESS
        assert fm.due == date(2025, 3, 2)
        assert fm.due_time == time(10, 30)
        assert fm.defer == date(2025, 3, 1)
        assert fm.priority is TaskPriority.HIGH
        assert fm.flagged is True
        assert fm.area == "Home"
        assert fm.project == "Garden"
        assert fm.tags == ("home", "weekly")
        assert fm.recurrence == "FREQ=WEEKLY;INTERVAL=1"
        assert fm.estimated_minutes == 15
        assert fm.created == datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
        assert fm.modified == datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert fm.source == "phone"
        assert document.body == "\nUse the blue can.\n"
        assert document.unknown_fields == {"color": "green"}

    def test_unquoted_time_stays_time(self, codec):
        """A bare HH:MM is not read as a base-60 number."""
        document = codec.parse("---\ntitle: A\ndue_time: 10:30\n---\n")
        assert document.frontmatter.due_time == time(10, 30)

    def test_defaults(self, codec):
        """Missing optional fields get their defaults."""
        fm = codec.parse("---\ntitle: Minimal\n---\n").frontmatter
        assert fm.status is TaskStatus.TODO
        assert fm.priority is TaskPriority.NONE
        assert fm.flagged is False
        assert fm.tags == ()
        assert fm.created == CREATED_SENTINEL
        assert fm.source == "unknown"

    def test_closing_delimiter_at_end_of_file(self, codec):
        """A header closed by the final line has an empty body."""
        document = codec.parse("---\ntitle: A\n---")
        assert document.frontmatter.title == "A"
        assert document.body == ""

    def test_crlf_and_bom(self, codec):
        """Windows line endings and a byte order mark are accepted."""
        document = codec.parse("\ufeff---\r\ntitle: A\r\n---\r\nbody\r\n")
        assert document.frontmatter.title == "A"
        assert document.body == "body\n"

    def test_repeated_opening_delimiter(self, codec):
        """A second --- right after the opening one is tolerated."""
        document = codec.parse("---\n---\ntitle: A\n---\n")
        assert document.frontmatter.title == "A"

    def test_fallback_title(self, codec):
        """The fallback title is used when the header has none."""
        document = codec.parse("---\nstatus: todo\n---\n", fallback_title="buy milk")
        assert document.frontmatter.title == "buy milk"

    def test_missing_title(self, codec):
        """No title and no fallback is a field error."""
        with pytest.raises(FieldError) as exc_info:
            codec.parse("---\nstatus: todo\n---\n")
        assert exc_info.value.field == "title"

    def test_status_and_priority_aliases(self, codec):
        """Legacy spellings map to canonical values; unknown values fall back."""
        assert codec.parse("---\ntitle: A\nstatus: Completed\n---\n").frontmatter.status is TaskStatus.DONE
        assert codec.parse("---\ntitle: A\nstatus: doing\n---\n").frontmatter.status is TaskStatus.IN_PROGRESS
        assert codec.parse("---\ntitle: A\nstatus: whatever\n---\n").frontmatter.status is TaskStatus.TODO
        assert codec.parse("---\ntitle: A\npriority: P1\n---\n").frontmatter.priority is TaskPriority.HIGH
        assert codec.parse("---\ntitle: A\npriority: urgent\n---\n").frontmatter.priority is TaskPriority.NONE

    def test_key_aliases_and_case(self, codec):
        """Legacy key names and capitalized keys are recognized."""
        document = codec.parse("---\nTitle: A\ndateCreated: 2025-01-01T00:00:00Z\n---\n")
        assert document.frontmatter.title == "A"
        assert document.frontmatter.created == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert document.unknown_fields == {}

    def test_first_occurrence_wins(self, codec):
        """Of two spellings of the same key, the first one counts."""
        document = codec.parse("---\ntitle: First\nTitle: Second\n---\n")
        assert document.frontmatter.title == "First"

    def test_tags_comma_string(self, codec):
        """Tags may be a comma-separated string; blanks and repeats are dropped."""
        document = codec.parse("---\ntitle: A\ntags: work, home, , work\n---\n")
        assert document.frontmatter.tags == ("work", "home")

    def test_created_epoch(self, codec):
        """A numeric created value is read as seconds since the epoch."""
        document = codec.parse("---\ntitle: A\ncreated: 0\n---\n")
        assert document.frontmatter.created == datetime(1970, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "header",
        [
            "due: 2025-13-01",
            "due: 2025-3-1",
            "due_time: '25:00'",
            "created: 2025-03-01T09:30:00",
            "flagged: yes please",
            "estimated_minutes: lots",
            "tags: 5",
            "tags: [1, 2]",
        ],
    )
    def test_field_errors(self, codec, header):
        """Bad values of known fields are field errors."""
        with pytest.raises(FieldError):
            codec.parse(f"---\ntitle: A\n{header}\n---\n")

    @pytest.mark.parametrize(
        "content",
        [
            "",
            "no header here",
            "---\ntitle: A\n",
            "---\n- a\n- b\n---\n",
            "---\njust a string\n---\n",
            "---\ntitle: [unclosed\n---\n",
            "---\n1: one\n---\n",
        ],
    )
    def test_structural_errors(self, codec, content):
        """Delimiter and tree problems are structural errors."""
        with pytest.raises(StructuralParseError):
            codec.parse(content)

    def test_depth_limit(self):
        """Headers nested deeper than the limit are rejected."""
        codec = FrontmatterCodec(max_depth=5)
        nested = "x: " + "[" * 6 + "]" * 6
        with pytest.raises(StructuralParseError, match="depth"):
            codec.parse(f"---\ntitle: A\n{nested}\n---\n")

    def test_node_limit(self):
        """Headers with too many nodes are rejected."""
        codec = FrontmatterCodec(max_nodes=50)
        items = ", ".join(str(i) for i in range(100))
        with pytest.raises(StructuralParseError, match="node"):
            codec.parse(f"---\ntitle: A\nx: [{items}]\n---\n")

    def test_hostile_input_only_raises_parse_errors(self, codec):
        """Whatever the content, only ParseError subclasses escape."""
        samples = [
            "---\n" + "a: &a [*a]\n" + "---\n",
            "---\n" + "[" * 5000 + "\n---\n",
            "---\n!!python/object:os.system ls\n---\n",
            "---\ntitle: !!binary aGVsbG8=\n---\n",
            "---\ntitle: A\nkey: \x00\n---\n",
        ]
        for content in samples:
            with pytest.raises(ParseError):
                codec.parse(content)

    def test_title_too_long(self, codec):
        """Titles over the limit fail validation."""
        with pytest.raises(FieldError) as exc_info:
            codec.parse(f"---\ntitle: {'x' * 501}\n---\n")
        assert exc_info.value.field == "title"


class TestSerialize:
    """Tests for FrontmatterCodec.serialize."""

    def test_round_trip_preserves_fields(self, codec):
        """Known and unknown fields survive serialize then parse."""
        original = codec.parse(FULL_TASK)
        again = codec.parse(codec.serialize(original))

        assert again.frontmatter == original.frontmatter
        assert again.unknown_fields == original.unknown_fields
        assert again.body == original.body

    def test_nested_unknown_fields_survive(self, codec):
        """Structured unknown values are written back unchanged."""
        document = TaskDocument(
            frontmatter=TaskFrontmatter(title="A", source="test"),
            unknown_fields={"meta": {"ids": [1, 2], "when": "2025-01-01"}, "Color": "red"},
        )
        again = codec.parse(codec.serialize(document))
        assert again.unknown_fields == {"meta": {"ids": [1, 2], "when": "2025-01-01"}, "Color": "red"}

    def test_keys_sorted_and_unset_fields_omitted(self, codec):
        """Header keys are written in sorted order; unset optionals are left out."""
        document = new_document("Buy milk", now=datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc))
        content = codec.serialize(document)
        header = content.split("---\n")[1]
        keys = [line.split(":")[0] for line in header.splitlines()]

        assert keys == sorted(keys)
        assert "due" not in keys
        assert "title: Buy milk" in header
        assert "source: mdtasks" in header

    def test_body_gets_trailing_newline(self, codec):
        """A non-empty body always ends with a newline."""
        document = new_document("A", body="line")
        assert codec.serialize(document).endswith("---\nline\n")

    def test_unknown_key_shadowing_known_key_is_dropped(self, codec):
        """An unknown-field entry spelled like a known key never overrides it."""
        document = TaskDocument(
            frontmatter=TaskFrontmatter(title="Real", source="test"),
            unknown_fields={"Title": "Fake"},
        )
        assert codec.parse(codec.serialize(document)).frontmatter.title == "Real"

    def test_invalid_document_is_not_serialized(self, codec):
        """Serializing runs validation first."""
        document = TaskDocument(frontmatter=TaskFrontmatter(title="A", source="test", tags=("x" * 81,)))
        with pytest.raises(FieldError):
            codec.serialize(document)


class TestValidation:
    """Tests for validate_document and key helpers."""

    def test_limits(self):
        """Each limit names its field."""
        cases = {
            "description": TaskFrontmatter(title="A", source="s", description="d" * 2001),
            "estimated_minutes": TaskFrontmatter(title="A", source="s", estimated_minutes=-1),
            "tags": TaskFrontmatter(title="A", source="s", tags=tuple(f"t{i}" for i in range(101))),
            "source": TaskFrontmatter(title="A", source=" "),
        }
        for field_name, frontmatter in cases.items():
            with pytest.raises(FieldError) as exc_info:
                validate_document(TaskDocument(frontmatter=frontmatter))
            assert exc_info.value.field == field_name

    def test_body_limit(self):
        with pytest.raises(FieldError):
            validate_document(new_document("A", body="x" * 100_001))

    def test_canonical_key(self):
        assert canonical_key("DateModified") == "modified"
        assert canonical_key("Due") == "due"
        assert is_known_key("completedDate")
        assert not is_known_key("color")


class TestDates:
    """Tests for strict date coding."""

    def test_parse_date(self):
        assert parse_date("due", "2024-02-29") == date(2024, 2, 29)
        with pytest.raises(FieldError):
            parse_date("due", "2023-02-29")

    def test_parse_time(self):
        assert parse_time("due_time", "23:59") == time(23, 59)
        with pytest.raises(FieldError):
            parse_time("due_time", "9:30")

    def test_parse_datetime_normalizes_to_utc(self):
        """Offsets are converted to UTC."""
        parsed = parse_datetime("created", "2025-03-01T10:30:00+01:00")
        assert parsed == datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
        assert parsed.utcoffset().total_seconds() == 0

    def test_parse_datetime_requires_zone(self):
        with pytest.raises(FieldError):
            parse_datetime("created", "2025-03-01T10:30:00")

    def test_parse_datetime_bare_date(self):
        """A hand-written date is midnight UTC."""
        assert parse_datetime("created", "2025-03-01") == datetime(2025, 3, 1, tzinfo=timezone.utc)

    def test_parse_datetime_yaml_timestamp(self):
        """Space-separated timestamps default to UTC and may carry a zone."""
        assert parse_datetime("created", "2025-03-01 09:30:00") == datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
        assert parse_datetime("created", "2025-03-01 10:30:00.5 +01:00") == datetime(
            2025, 3, 1, 9, 30, 0, 500000, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize("raw", ["2025-03-01 9:30", "2025-3-1", "2025-03-01  "])
    def test_parse_datetime_rejects_malformed_timestamp(self, raw):
        with pytest.raises(FieldError):
            parse_datetime("created", raw)

    def test_plain_dates_in_header(self):
        """created/completed written as plain YAML dates parse instead of failing the file."""
        document = FrontmatterCodec().parse(
            "---\ntitle: Buy milk\ncreated: 2025-03-01\ncompleted: 2025-03-02 18:00:00\n---\n"
        )
        assert document.frontmatter.created == datetime(2025, 3, 1, tzinfo=timezone.utc)
        assert document.frontmatter.completed == datetime(2025, 3, 2, 18, 0, tzinfo=timezone.utc)

    def test_format_datetime(self):
        """Milliseconds are always written; microseconds only when needed."""
        assert format_datetime(datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)) == "2025-03-01T09:30:00.000Z"
        precise = datetime(2025, 3, 1, 9, 30, 0, 123456, tzinfo=timezone.utc)
        assert format_datetime(precise) == "2025-03-01T09:30:00.123456Z"
        assert parse_datetime("created", format_datetime(precise)) == precise
