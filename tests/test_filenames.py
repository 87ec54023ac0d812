# Tests for mdtasks.storage.filenames
# Slugs, collision suffixes and filename-derived titles

from datetime import datetime, timedelta, timezone

from mdtasks.storage.filenames import (
    generate_filename,
    resolve_collision,
    sanitize_preferred_filename,
    slugify,
    title_from_filename,
)

FIXED = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


class TestSlugify:
    """Tests for slugify."""

    def test_punctuation_collapses(self):
        assert slugify("Review PR for Auth!!!") == "review-pr-for-auth"

    def test_trims_hyphens(self):
        assert slugify("  --Hello,   World--  ") == "hello-world"

    def test_truncates(self):
        """Slugs are cut to 60 characters without a trailing hyphen."""
        slug = slugify("word " * 30)
        assert len(slug) <= 60
        assert not slug.endswith("-")

    def test_fallback(self):
        """Titles without any usable character become 'task'."""
        assert slugify("!!!") == "task"
        assert slugify("日本語") == "task"


class TestGenerateFilename:
    """Tests for generate_filename and resolve_collision."""

    def test_example(self):
        """Same title twice yields a -2 suffix."""
        first = generate_filename("Review PR for Auth!!!", now=FIXED)
        assert first == "20250301-0930-review-pr-for-auth.md"
        second = generate_filename("Review PR for Auth!!!", existing={first}, now=FIXED)
        assert second.endswith("review-pr-for-auth-2.md")

    def test_timestamp_is_utc(self):
        """Local offsets are converted before formatting."""
        local = FIXED.astimezone(timezone(timedelta(hours=2)))
        assert generate_filename("A", now=local).startswith("20250301-0930-")

    def test_many_collisions_are_distinct_and_increasing(self):
        """Generating N names against a growing set gives N distinct names."""
        existing: set[str] = set()
        names = []
        for _ in range(5):
            name = generate_filename("Same", existing=existing, now=FIXED)
            existing.add(name)
            names.append(name)

        assert len(set(names)) == 5
        assert names[0] == "20250301-0930-same.md"
        assert names[1:] == [f"20250301-0930-same-{n}.md" for n in range(2, 6)]

    def test_collision_ignores_case(self):
        """A name differing only by case counts as taken."""
        assert resolve_collision("buy-milk.md", {"Buy-Milk.md"}) == "buy-milk-2.md"

    def test_first_free_suffix(self):
        assert resolve_collision("a.md", {"a.md", "a-2.md", "a-4.md"}) == "a-3.md"


class TestPreferredFilename:
    """Tests for sanitize_preferred_filename."""

    def test_extension_appended(self):
        assert sanitize_preferred_filename("groceries") == "groceries.md"
        assert sanitize_preferred_filename("notes.MD") == "notes.MD"

    def test_directories_dropped(self):
        assert sanitize_preferred_filename("../../etc/passwd") == "passwd.md"

    def test_blank(self):
        assert sanitize_preferred_filename(None) is None
        assert sanitize_preferred_filename("   ") is None
        assert sanitize_preferred_filename("..") is None

    def test_leading_dots_removed(self):
        """Hidden names would be skipped by enumeration."""
        assert sanitize_preferred_filename(".secret") == "secret.md"


class TestTitleFromFilename:
    """Tests for title_from_filename."""

    def test_strips_timestamp(self):
        assert title_from_filename("20250301-0930-buy-milk.md") == "buy milk"

    def test_underscores(self):
        assert title_from_filename("call_the_bank.md") == "call the bank"

    def test_only_timestamp(self):
        """Nothing left after stripping falls back to the raw stem."""
        assert title_from_filename("20250301-0930-.md") == "20250301-0930-"
