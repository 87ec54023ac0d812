# MDTasks Console Output
# Rich-based console output for user-friendly display

import difflib
from pathlib import Path

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from mdtasks.codec.models import TaskPriority, TaskStatus
from mdtasks.conflicts.provider import VersionHandle
from mdtasks.errors import TaskIOError
from mdtasks.index import TaskIndexEntry
from mdtasks.sync.coordinator import CoordinatorStatus
from mdtasks.sync.events import (
    ConflictDetected,
    ParseFailureDiagnostic,
    RateLimitedBatch,
    SyncEvent,
    SyncResult,
    TaskCreated,
    TaskDeleted,
    TaskUpdated,
)
from mdtasks.utils.hashing import short_hash
from mdtasks.utils.paths import get_relative_path

STATUS_STYLES = {
    TaskStatus.TODO: "white",
    TaskStatus.IN_PROGRESS: "cyan",
    TaskStatus.DONE: "green",
    TaskStatus.CANCELLED: "dim",
    TaskStatus.SOMEDAY: "magenta",
}

PRIORITY_MARKERS = {
    TaskPriority.NONE: "",
    TaskPriority.LOW: "[dim]low[/dim]",
    TaskPriority.MEDIUM: "[yellow]medium[/yellow]",
    TaskPriority.HIGH: "[red]high[/red]",
}


class Console:
    """
    Console output manager using Rich.

    Provides formatted output for sync passes, tasks and conflicts.
    """

    def __init__(self, *, verbose: bool = False, colored: bool = True, root: Path | None = None):
        """
        Initialize console.

        Args:
            verbose: Enable verbose output.
            colored: Enable colored output.
            root: Task folder; paths below it are shown relative to it.
        """
        self.verbose = verbose
        self.root = root
        self._console = RichConsole(force_terminal=colored, no_color=not colored)

    def print(self, *args, **kwargs) -> None:
        """Print to console."""
        self._console.print(*args, **kwargs)

    def print_error(self, message: str) -> None:
        """Print error message."""
        self._console.print(f"[red]Error:[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print warning message."""
        self._console.print(f"[yellow]Warning:[/yellow] {message}")

    def print_success(self, message: str) -> None:
        """Print success message."""
        self._console.print(f"[green]{message}[/green]")

    def print_info(self, message: str) -> None:
        """Print info message."""
        self._console.print(f"[blue]{message}[/blue]")

    def display_path(self, path: Path) -> str:
        """Path relative to the task folder when possible."""
        if self.root is not None:
            relative = get_relative_path(path, self.root)
            if relative is not None:
                return escape(relative.as_posix())
        return escape(str(path))

    def print_sync_result(self, result: SyncResult) -> None:
        """
        Print pass summary, events and new diagnostics.

        Args:
            result: Result of one sync pass.
        """
        summary = result.summary
        timings = summary.timings
        has_issues = summary.failed > 0 or summary.conflicts > 0

        self._console.print(
            Panel(
                f"New: {summary.ingested}  Updated: {summary.updated}  Deleted: {summary.deleted}\n"
                f"Failed: {summary.failed}  Conflicts: {summary.conflicts}\n"
                f"[dim]enumerate {timings.enumerate_ms:.1f} ms, parse {timings.parse_ms:.1f} ms, "
                f"index {timings.index_ms:.1f} ms, query {timings.query_ms:.1f} ms[/dim]",
                title="Sync",
                border_style="yellow" if has_issues else "green",
            )
        )

        if result.events:
            self.print_events(result.events)
        elif not summary.changed:
            self._console.print("[green]✓[/green] Everything is up to date")

        if result.new_diagnostics:
            self.print_diagnostics(result.new_diagnostics)

    def print_events(self, events: tuple[SyncEvent, ...] | list[SyncEvent]) -> None:
        """Print one line per event."""
        for event in events:
            if isinstance(event, TaskCreated):
                self._console.print(f"  [green]+[/green] {self.display_path(event.path)}")
            elif isinstance(event, TaskUpdated):
                self._console.print(f"  [yellow]~[/yellow] {self.display_path(event.path)}")
            elif isinstance(event, TaskDeleted):
                self._console.print(f"  [red]×[/red] {self.display_path(event.path)}")
            elif isinstance(event, ConflictDetected):
                self._console.print(
                    f"  [red]![/red] {self.display_path(event.path)} - {event.version_count} conflicting version(s)"
                )
                self._console.print(
                    f"      [dim]→ mdtasks conflicts resolve {self.display_path(event.path)} --keep local|remote[/dim]"
                )
            elif isinstance(event, RateLimitedBatch):
                source = escape(event.source or "unknown source")
                self._console.print(f"  [yellow]⚠[/yellow] {len(event.paths)} new files from {source}")
                if self.verbose:
                    for path in event.paths:
                        self._console.print(f"      [dim]{self.display_path(path)}[/dim]")

    def print_diagnostics(self, diagnostics: tuple[ParseFailureDiagnostic, ...] | list[ParseFailureDiagnostic]) -> None:
        """Print unparseable files with their reasons."""
        if not diagnostics:
            self._console.print("[green]✓[/green] All task files parse")
            return

        table = Table(show_header=True, header_style="bold", title="Unparseable files")
        table.add_column("File")
        table.add_column("Reason", style="red")
        table.add_column("Seen", style="dim")

        for diagnostic in diagnostics:
            table.add_row(
                self.display_path(diagnostic.path),
                escape(diagnostic.reason),
                diagnostic.timestamp.strftime("%Y-%m-%d %H:%M"),
            )

        self._console.print(table)

    def print_tasks(self, entries: list[TaskIndexEntry], *, title: str | None = None) -> None:
        """Print a task table."""
        if not entries:
            self._console.print("[dim]No tasks[/dim]")
            return

        table = Table(show_header=True, header_style="bold", title=title)
        table.add_column("Title")
        table.add_column("Status")
        table.add_column("Due")
        table.add_column("Priority")
        table.add_column("Area / Project", style="dim")
        table.add_column("Tags", style="cyan")
        if self.verbose:
            table.add_column("File", style="dim")

        for entry in entries:
            style = STATUS_STYLES.get(entry.status, "white")
            title_text = f"[bold]{escape(entry.title)}[/bold]" if entry.flagged else escape(entry.title)
            due = entry.due.isoformat() if entry.due else ""
            if entry.due and entry.due_time:
                due += f" {entry.due_time.strftime('%H:%M')}"
            location = escape(" / ".join(part for part in (entry.area, entry.project) if part))
            row = [
                title_text,
                f"[{style}]{entry.status.value}[/{style}]",
                due,
                PRIORITY_MARKERS.get(entry.priority, ""),
                location,
                escape(", ".join(entry.tags)),
            ]
            if self.verbose:
                row.append(self.display_path(entry.path))
            table.add_row(*row)

        self._console.print(table)

    def print_conflicts(self, conflicts: dict[Path, list[VersionHandle]]) -> None:
        """Print each conflicted path with a table of its versions."""
        if not conflicts:
            self._console.print("[green]✓[/green] No conflicts")
            return

        for path, versions in conflicts.items():
            self._console.print(f"\n[bold red]Conflict:[/bold red] {self.display_path(path)}")
            table = Table(show_header=True, header_style="bold")
            table.add_column("Version")
            table.add_column("Origin")
            table.add_column("Modified", style="dim")
            table.add_column("Content", style="dim")
            for version in versions:
                try:
                    digest = short_hash(version.content())
                except TaskIOError:
                    digest = "unreadable"
                table.add_row(
                    escape(version.id),
                    escape(version.origin),
                    version.modified.strftime("%Y-%m-%d %H:%M:%S"),
                    digest,
                )
            self._console.print(table)

    def print_version_diff(self, local_content: str, version: VersionHandle) -> None:
        """Show a unified diff between the working copy and one version."""
        diff_lines = list(
            difflib.unified_diff(
                local_content.splitlines(keepends=True),
                version.content().splitlines(keepends=True),
                fromfile="local",
                tofile=version.id,
            )
        )
        if not diff_lines:
            self._console.print(f"[dim]{escape(version.id)}: identical to local[/dim]")
            return
        self._console.print(Syntax("".join(diff_lines), "diff", theme="monokai", line_numbers=False))

    def print_stale_banner(self, status: CoordinatorStatus) -> None:
        """Warn that shown data is from the last good pass."""
        last = status.last_success.strftime("%Y-%m-%d %H:%M:%S") if status.last_success else "never"
        counts = ""
        if status.last_summary is not None:
            summary = status.last_summary
            counts = (
                f"New: {summary.ingested}  Updated: {summary.updated}  Deleted: {summary.deleted}  "
                f"Failed: {summary.failed}  Conflicts: {summary.conflicts}\n"
            )
        self._console.print(
            Panel(
                f"[yellow]Sync has failed {status.consecutive_failures} times in a row.[/yellow]\n"
                f"Showing data from the last successful pass ({last}).\n"
                f"{counts}"
                f"[dim]{escape(status.last_error or '')}[/dim]",
                title="Stale",
                border_style="yellow",
            )
        )

    def print_config_summary(self, config_path: str, folder_path: str, provider: str) -> None:
        """Print configuration summary."""
        self._console.print(
            Panel(
                f"Config: {config_path}\nFolder: {folder_path}\nConflict provider: {provider}",
                title="MDTasks Configuration",
                border_style="blue",
            )
        )


def create_console(*, verbose: bool = False, colored: bool = True, root: Path | None = None) -> Console:
    """
    Create a console instance.

    Args:
        verbose: Enable verbose output.
        colored: Enable colored output.
        root: Task folder for relative path display.

    Returns:
        Console instance.
    """
    return Console(verbose=verbose, colored=colored, root=root)
