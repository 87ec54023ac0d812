# Tests for mdtasks.index
# Local index upserts, deletions and queries

from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from mdtasks.codec import TaskRecord, TaskStatus, new_document
from mdtasks.codec.models import TaskFileIdentity
from mdtasks.index import LocalIndex

NOW = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def record(name: str, title: str, **fields) -> TaskRecord:
    return TaskRecord(
        identity=TaskFileIdentity.from_path(Path("/tasks") / name),
        document=new_document(title, now=NOW, **fields),
    )


@pytest.fixture
def index() -> LocalIndex:
    index = LocalIndex()
    index.apply(
        [
            record("milk.md", "Buy milk", due=date(2025, 3, 2), tags=["errands", "Home"], area="Home"),
            record("report.md", "Write report", due=date(2025, 3, 1), project="Q1", flagged=True),
            record("taxes.md", "File taxes", status=TaskStatus.DONE, project="q1"),
            record("read.md", "read a book", status=TaskStatus.SOMEDAY, body="Something by Le Guin\n"),
        ]
    )
    return index


class TestLocalIndex:
    """Tests for LocalIndex maintenance."""

    def test_apply_upserts(self, index):
        index.apply([record("milk.md", "Buy oat milk")])

        assert len(index) == 4
        assert index.get("/tasks/milk.md").title == "Buy oat milk"

    def test_apply_deletes(self, index):
        index.apply([], deleted_paths=[Path("/tasks/milk.md"), Path("/tasks/unknown.md")])

        assert len(index) == 3
        assert Path("/tasks/milk.md") not in index

    def test_replace_all(self, index):
        index.replace_all([record("new.md", "New")])
        assert [entry.filename for entry in index.entries()] == ["new.md"]

    def test_entries_sorted_by_due_then_title(self, index):
        """Dated tasks come first; undated ones sort by title."""
        titles = [entry.title for entry in index.entries()]
        assert titles == ["Write report", "Buy milk", "File taxes", "read a book"]

    def test_entry_fields(self, index):
        entry = index.get(Path("/tasks/milk.md"))
        assert entry.tags == ("errands", "Home")
        assert entry.is_open
        assert entry.created == NOW
        assert not index.get(Path("/tasks/taxes.md")).is_open

    def test_counts_by_status(self, index):
        counts = index.counts_by_status()
        assert counts[TaskStatus.TODO] == 2
        assert counts[TaskStatus.DONE] == 1
        assert counts[TaskStatus.SOMEDAY] == 1
        assert counts[TaskStatus.CANCELLED] == 0


class TestQuery:
    """Tests for LocalIndex.query."""

    def test_no_filters(self, index):
        assert len(index.query()) == 4

    def test_status(self, index):
        assert [e.filename for e in index.query(status="done")] == ["taxes.md"]

    def test_project_case_insensitive(self, index):
        assert {e.filename for e in index.query(project="Q1")} == {"report.md", "taxes.md"}

    def test_tag_case_insensitive(self, index):
        assert [e.filename for e in index.query(tag="home")] == ["milk.md"]

    def test_area(self, index):
        assert [e.filename for e in index.query(area="home")] == ["milk.md"]

    def test_flagged(self, index):
        assert [e.filename for e in index.query(flagged=True)] == ["report.md"]

    def test_due_before_excludes_undated(self, index):
        assert [e.filename for e in index.query(due_before=date(2025, 3, 1))] == ["report.md"]

    def test_text_searches_body(self, index):
        assert [e.filename for e in index.query(text="le guin")] == ["read.md"]

    def test_combined(self, index):
        assert index.query(status=TaskStatus.TODO, project="q1", flagged=False) == []

    def test_unknown_status_rejected(self, index):
        with pytest.raises(ValueError):
            index.query(status="waiting")
