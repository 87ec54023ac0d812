# Tests for mdtasks.output.console
# Rich-based console output

from datetime import datetime, timezone
from io import StringIO
from pathlib import Path

from rich.console import Console as RichConsole

from mdtasks.codec import TaskRecord, new_document
from mdtasks.codec.models import TaskFileIdentity
from mdtasks.conflicts import VersionHandle
from mdtasks.index import TaskIndexEntry
from mdtasks.output.console import Console, create_console
from mdtasks.sync import CoordinatorStatus, ParseFailureDiagnostic, SyncResult, SyncSummary
from mdtasks.sync.events import ConflictDetected, RateLimitedBatch, TaskCreated, TaskDeleted, TaskUpdated

ROOT = Path("/tasks")
NOW = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def _make_console(verbose: bool = False) -> Console:
    """Create a console with captured output."""
    console = Console(verbose=verbose, colored=False, root=ROOT)
    console._console = RichConsole(file=StringIO(), no_color=True, width=120)
    return console


def _get_output(console: Console) -> str:
    """Get captured output from console."""
    console._console.file.seek(0)
    return console._console.file.read()


def _entry(name: str, title: str, **fields) -> TaskIndexEntry:
    record = TaskRecord(
        identity=TaskFileIdentity.from_path(ROOT / name),
        document=new_document(title, now=NOW, **fields),
    )
    return TaskIndexEntry.from_record(record)


class TestConsoleBasic:
    """Tests for basic console methods."""

    def test_print_error(self):
        c = _make_console()
        c.print_error("something failed")
        output = _get_output(c)
        assert "Error:" in output
        assert "something failed" in output

    def test_print_warning(self):
        c = _make_console()
        c.print_warning("be careful")
        assert "Warning: be careful" in _get_output(c)

    def test_print_success_and_info(self):
        c = _make_console()
        c.print_success("all good")
        c.print_info("fyi")
        output = _get_output(c)
        assert "all good" in output
        assert "fyi" in output

    def test_display_path_relative_to_root(self):
        c = _make_console()
        assert c.display_path(ROOT / "work" / "a.md") == "work/a.md"
        assert c.display_path(Path("/elsewhere/a.md")) == "/elsewhere/a.md"

    def test_display_path_escapes_markup(self):
        c = _make_console()
        assert c.display_path(ROOT / "[draft].md") == "\\[draft].md"

    def test_create_console(self):
        c = create_console(verbose=True, colored=False)
        assert isinstance(c, Console)
        assert c.verbose is True


class TestSyncOutput:
    """Tests for sync results and events."""

    def test_summary_counts(self):
        c = _make_console()
        c.print_sync_result(SyncResult(summary=SyncSummary(timestamp=NOW, ingested=2, failed=1)))
        output = _get_output(c)
        assert "New: 2" in output
        assert "Failed: 1" in output

    def test_up_to_date(self):
        c = _make_console()
        c.print_sync_result(SyncResult(summary=SyncSummary(timestamp=NOW)))
        assert "Everything is up to date" in _get_output(c)

    def test_events(self):
        c = _make_console()
        c.print_events(
            [
                TaskCreated(path=ROOT / "new.md"),
                TaskUpdated(path=ROOT / "changed.md"),
                TaskDeleted(path=ROOT / "gone.md"),
                ConflictDetected(path=ROOT / "plan.md", version_count=2),
            ]
        )
        output = _get_output(c)
        assert "+ new.md" in output
        assert "~ changed.md" in output
        assert "gone.md" in output
        assert "plan.md - 2 conflicting version(s)" in output
        assert "mdtasks conflicts resolve plan.md" in output

    def test_burst_lists_paths_when_verbose(self):
        event = RateLimitedBatch(paths=(ROOT / "a.md", ROOT / "b.md"), source="importer")

        quiet = _make_console()
        quiet.print_events([event])
        assert "2 new files from importer" in _get_output(quiet)
        assert "a.md" not in _get_output(quiet)

        verbose = _make_console(verbose=True)
        verbose.print_events([event])
        assert "a.md" in _get_output(verbose)

    def test_new_diagnostics_printed(self):
        c = _make_console()
        diagnostic = ParseFailureDiagnostic(path=ROOT / "broken.md", reason="missing closing delimiter", timestamp=NOW)
        c.print_sync_result(
            SyncResult(summary=SyncSummary(timestamp=NOW, failed=1), diagnostics=(diagnostic,), new_diagnostics=(diagnostic,))
        )
        output = _get_output(c)
        assert "broken.md" in output
        assert "missing closing delimiter" in output

    def test_no_diagnostics(self):
        c = _make_console()
        c.print_diagnostics([])
        assert "All task files parse" in _get_output(c)

    def test_stale_banner(self):
        c = _make_console()
        c.print_stale_banner(
            CoordinatorStatus(
                last_summary=None,
                last_success=NOW,
                consecutive_failures=3,
                stale=True,
                last_error="Failed to enumerate /tasks: [Errno 2]",
                in_flight=False,
            )
        )
        output = _get_output(c)
        assert "failed 3 times" in output
        assert "2025-03-01 09:30:00" in output
        assert "[Errno 2]" in output
        assert "New:" not in output

    def test_stale_banner_shows_last_counts(self):
        """The banner carries the counts of the last successful pass."""
        c = _make_console()
        c.print_stale_banner(
            CoordinatorStatus(
                last_summary=SyncSummary(timestamp=NOW, ingested=3, updated=1, deleted=2, failed=1, conflicts=1),
                last_success=NOW,
                consecutive_failures=2,
                stale=True,
                last_error="boom",
                in_flight=False,
            )
        )
        output = _get_output(c)
        assert "New: 3" in output
        assert "Updated: 1" in output
        assert "Deleted: 2" in output
        assert "Failed: 1" in output
        assert "Conflicts: 1" in output


class TestTaskOutput:
    """Tests for task tables."""

    def test_tasks_table(self):
        c = _make_console()
        c.print_tasks(
            [_entry("milk.md", "Buy milk", area="Home", tags=["errands"]), _entry("taxes.md", "File taxes")],
            title="Tasks (2)",
        )
        output = _get_output(c)
        assert "Tasks (2)" in output
        assert "Buy milk" in output
        assert "Home" in output
        assert "errands" in output
        assert "milk.md" not in output

    def test_verbose_shows_file(self):
        c = _make_console(verbose=True)
        c.print_tasks([_entry("milk.md", "Buy milk")])
        assert "milk.md" in _get_output(c)

    def test_no_tasks(self):
        c = _make_console()
        c.print_tasks([])
        assert "No tasks" in _get_output(c)


class TestConflictOutput:
    """Tests for conflict tables and diffs."""

    def _version(self, content: str) -> VersionHandle:
        return VersionHandle(
            id="plan (conflicted copy).md",
            path=ROOT / "plan.md",
            modified=NOW,
            origin="conflicted copy",
            reader=lambda: content,
        )

    def test_conflicts_table(self):
        c = _make_console()
        c.print_conflicts({ROOT / "plan.md": [self._version("remote")]})
        output = _get_output(c)
        assert "Conflict: plan.md" in output
        assert "conflicted copy" in output

    def test_no_conflicts(self):
        c = _make_console()
        c.print_conflicts({})
        assert "No conflicts" in _get_output(c)

    def test_diff(self):
        c = _make_console()
        c.print_version_diff("title: Local\n", self._version("title: Remote\n"))
        output = _get_output(c)
        assert "-title: Local" in output
        assert "+title: Remote" in output

    def test_identical(self):
        c = _make_console()
        c.print_version_diff("same\n", self._version("same\n"))
        assert "identical to local" in _get_output(c)
