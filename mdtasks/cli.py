# MDTasks CLI
# Click-based command line interface

import sys
import time
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from mdtasks import __version__
from mdtasks.codec.dates import parse_date, parse_time
from mdtasks.codec.frontmatter import FrontmatterCodec
from mdtasks.codec.models import TaskPriority, TaskRecord, TaskStatus, new_document
from mdtasks.config import (
    ConflictProviderType,
    MdtasksConfig,
    ensure_config_exists,
    get_config_path,
    load_config,
    validate_config_file,
)
from mdtasks.conflicts import ConflictCopyProvider, ConflictResolver, NullVersionProvider, ResolutionPolicy
from mdtasks.errors import RecurringSpawnError, TaskError
from mdtasks.index import LocalIndex
from mdtasks.logger import setup_logging
from mdtasks.output import Console, create_console
from mdtasks.storage import ManualOrder, OrderRepository, SelfWriteRegistry, TaskFolder, TaskRepository
from mdtasks.sync import FolderWatcher, StateManager, SyncCoordinator, SyncEngine, SyncResult, SyncScheduler, SyncState

config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config file (default: ~/.config/mdtasks/config.yaml or $MDTASKS_CONFIG)",
)


# ============================================================================
# Wiring
# ============================================================================


def _load(config_path: Path | None, *, verbose: bool = False) -> tuple[MdtasksConfig, Console]:
    """Load config and set up logging and console, exiting on error."""
    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        create_console().print_error(str(e))
        sys.exit(1)
    except (ValidationError, ValueError, yaml.YAMLError) as e:
        create_console().print_error(f"Invalid configuration: {e}")
        sys.exit(1)

    verbose = verbose or config.output.verbose
    setup_logging(verbose=verbose, log_file=config.output.log_file, colored=config.output.colored)
    console = create_console(verbose=verbose, colored=config.output.colored, root=TaskFolder(config.folder_path).root)
    return config, console


def _build_repository(config: MdtasksConfig) -> TaskRepository:
    folder = TaskFolder(config.folder_path, exclude=config.folder.exclude)
    return TaskRepository(
        folder,
        codec=FrontmatterCodec(max_depth=config.limits.max_depth, max_nodes=config.limits.max_nodes),
        self_writes=SelfWriteRegistry(
            tolerance=config.sync.self_write_tolerance,
            grace_period=config.sync.self_write_grace_period,
        ),
    )


def _build_provider(config: MdtasksConfig):
    if config.sync.conflict_provider is ConflictProviderType.CONFLICT_COPIES:
        return ConflictCopyProvider()
    return NullVersionProvider()


def _build_engine(config: MdtasksConfig, repository: TaskRepository) -> SyncEngine:
    return SyncEngine(
        repository,
        provider=_build_provider(config),
        burst_threshold=config.sync.burst_threshold,
        burst_window=config.sync.burst_window,
    )


def _run_pass(engine: SyncEngine, state: SyncState, console: Console, index: LocalIndex | None = None) -> SyncResult:
    try:
        return engine.run(state, index)
    except TaskError as e:
        console.print_error(str(e))
        sys.exit(1)


def _resolve_task_path(config: MdtasksConfig, raw: str) -> Path:
    """Accept absolute paths, paths relative to cwd, or paths relative to the task folder."""
    path = Path(raw).expanduser()
    if path.is_absolute():
        return path
    if path.exists():
        return path.resolve()
    return TaskFolder(config.folder_path).root / path


# ============================================================================
# Commands
# ============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="mdtasks")
def cli() -> None:
    """MDTasks - tasks as markdown files.

    Every .md file with a YAML header in the task folder is one task.
    The folder may be changed by other devices and tools at any time;
    mdtasks keeps a local index in step with it.

    \b
    Workflows:
      mdtasks sync        Reconcile once and show what changed
      mdtasks watch       Keep reconciling until interrupted
      mdtasks list        Show tasks
      mdtasks add TITLE   Create a task file
    """
    pass


@cli.command()
@config_option
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
@click.option("--reset", is_flag=True, help="Forget the stored baseline and rescan everything")
def sync(config_path: Path | None, verbose: bool, reset: bool) -> None:
    """Synchronize the local index with the task folder.

    Only files changed since the last run are parsed. Files that fail to
    parse are reported and left untouched.
    """
    config, console = _load(config_path, verbose=verbose)
    state_manager = StateManager(config.state_path)
    if reset:
        state_manager.reset()
        console.print_info("Sync baseline reset")

    engine = _build_engine(config, _build_repository(config))
    result = _run_pass(engine, state_manager.state, console)
    console.print_sync_result(result)
    state_manager.save()


@cli.command()
@config_option
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
def watch(config_path: Path | None, verbose: bool) -> None:
    """Keep the index in sync until interrupted (Ctrl+C).

    Passes run on an adaptive schedule; a change in the folder triggers a
    pass within a few seconds.
    """
    config, console = _load(config_path, verbose=verbose)
    repository = _build_repository(config)
    state_manager = StateManager(config.state_path)

    def on_result(result: SyncResult) -> None:
        if result.events or result.new_diagnostics or console.verbose:
            console.print_sync_result(result)

    coordinator = SyncCoordinator(
        _build_engine(config, repository),
        state_manager=state_manager,
        failure_threshold=config.sync.failure_threshold,
        on_result=on_result,
    )
    scheduler = SyncScheduler(
        base_interval=config.sync.base_interval,
        fast_sync_delay=config.sync.fast_sync_delay,
        backoff=config.sync.backoff,
    )
    watcher = FolderWatcher(
        repository.folder,
        scheduler.trigger_fast_sync,
        poll_interval=config.sync.poll_interval,
        debounce=config.sync.debounce,
    )

    console.print_info(f"Watching {repository.root} (Ctrl+C to stop)")
    scheduler.start(coordinator.run_once, initial_delay=0.0)
    watcher.start()

    stale_shown = False
    try:
        while True:
            time.sleep(1.0)
            status = coordinator.status()
            if status.stale and not stale_shown:
                console.print_stale_banner(status)
            stale_shown = status.stale
    except KeyboardInterrupt:
        console.print_info("Stopping")
    finally:
        watcher.stop()
        scheduler.stop()


@cli.command("list")
@config_option
@click.option(
    "--status",
    "-s",
    type=click.Choice([status.value for status in TaskStatus]),
    help="Only tasks with this status",
)
@click.option("--tag", "-t", help="Only tasks with this tag")
@click.option("--area", "-a", help="Only tasks in this area")
@click.option("--project", "-p", help="Only tasks in this project")
@click.option("--view", help="Apply the manual order stored for this view")
@click.option("--verbose", "-v", is_flag=True, help="Show file names")
def list_tasks(
    config_path: Path | None,
    status: str | None,
    tag: str | None,
    area: str | None,
    project: str | None,
    view: str | None,
    verbose: bool,
) -> None:
    """List tasks from the task folder."""
    config, console = _load(config_path, verbose=verbose)
    repository = _build_repository(config)
    state = SyncState()
    index = LocalIndex()
    result = _run_pass(_build_engine(config, repository), state, console, index)

    entries = index.query(status=status, tag=tag, area=area, project=project)

    if view:
        by_path = {entry.path: entry for entry in entries}
        records = [state.records[path] for path in by_path if path in state.records]
        ordered: list[TaskRecord] = ManualOrder(OrderRepository(repository.root)).ordered(records, view)
        entries = [by_path[record.path] for record in ordered]

    console.print_tasks(entries, title=f"Tasks ({len(entries)})")
    if result.diagnostics:
        console.print_warning(f"{len(result.diagnostics)} file(s) could not be parsed, see 'mdtasks diagnostics'")


@cli.command()
@config_option
@click.argument("title")
@click.option("--due", help="Due date (YYYY-MM-DD)")
@click.option("--due-time", help="Due time (HH:MM)")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--area", "-a", help="Area")
@click.option("--project", "-p", help="Project")
@click.option(
    "--priority",
    type=click.Choice([priority.value for priority in TaskPriority]),
    default=TaskPriority.NONE.value,
    help="Priority",
)
@click.option("--flagged", is_flag=True, help="Flag the task")
@click.option("--recurrence", "-r", help="Recurrence rule, e.g. FREQ=WEEKLY;INTERVAL=1")
@click.option("--filename", help="Preferred filename (a suffix is added if taken)")
def add(
    config_path: Path | None,
    title: str,
    due: str | None,
    due_time: str | None,
    tags: tuple[str, ...],
    area: str | None,
    project: str | None,
    priority: str,
    flagged: bool,
    recurrence: str | None,
    filename: str | None,
) -> None:
    """Create a new task file."""
    config, console = _load(config_path)
    repository = _build_repository(config)

    try:
        document = new_document(
            title.strip(),
            due=parse_date("due", due) if due else None,
            due_time=parse_time("due_time", due_time) if due_time else None,
            tags=list(dict.fromkeys(tags)),
            area=area,
            project=project,
            priority=TaskPriority(priority),
            flagged=flagged,
            recurrence=recurrence,
        )
        record = repository.create(document, filename)
    except TaskError as e:
        console.print_error(str(e))
        sys.exit(1)

    console.print_success(f"Created {console.display_path(record.path)}")


@cli.command()
@config_option
@click.argument("path")
def complete(config_path: Path | None, path: str) -> None:
    """Mark a task as done.

    Tasks with a recurrence rule are completed and their next instance is
    created as a new file.
    """
    config, console = _load(config_path)
    repository = _build_repository(config)
    task_path = _resolve_task_path(config, path)

    try:
        record = repository.load(task_path)
        if record.frontmatter.recurrence:
            completed, spawned = repository.complete_repeating(task_path)
            console.print_success(f"Completed {console.display_path(completed.path)}")
            console.print_info(f"Next instance: {console.display_path(spawned.path)}")
        else:
            completed = repository.complete(task_path)
            console.print_success(f"Completed {console.display_path(completed.path)}")
    except RecurringSpawnError as e:
        console.print_success(f"Completed {console.display_path(e.completed.path)}")
        console.print_error(f"Next instance was not created: {e.cause}")
        sys.exit(1)
    except TaskError as e:
        console.print_error(str(e))
        sys.exit(1)


@cli.command()
@config_option
def diagnostics(config_path: Path | None) -> None:
    """List task files that cannot be parsed.

    The files are never modified or deleted; fix or remove them by hand.
    """
    config, console = _load(config_path)
    state_manager = StateManager(config.state_path)
    engine = _build_engine(config, _build_repository(config))
    result = _run_pass(engine, state_manager.state, console)
    state_manager.save()
    console.print_diagnostics(result.diagnostics)


# ============================================================================
# Conflict Commands
# ============================================================================


@cli.group()
def conflicts() -> None:
    """Inspect and resolve conflicting versions of task files."""
    pass


@conflicts.command("list")
@config_option
@click.option("--diff", "show_diff", is_flag=True, help="Show a diff of each version against the local file")
def conflicts_list(config_path: Path | None, show_diff: bool) -> None:
    """List task files with unresolved versions."""
    config, console = _load(config_path)
    repository = _build_repository(config)
    state_manager = StateManager(config.state_path)
    _run_pass(_build_engine(config, repository), state_manager.state, console)
    state_manager.save()

    resolver = ConflictResolver(_build_provider(config))
    found = {}
    for conflicted in sorted(state_manager.state.conflicted):
        versions = resolver.versions(conflicted)
        if versions:
            found[conflicted] = versions

    console.print_conflicts(found)
    if show_diff:
        for conflicted, versions in found.items():
            local_content = repository.folder.read(conflicted)
            for version in versions:
                console.print_version_diff(local_content, version)


@conflicts.command("resolve")
@config_option
@click.argument("path")
@click.option("--keep", type=click.Choice(["local", "remote"]), required=True, help="Which side wins")
@click.option("--version", "version_id", help="Version to keep with --keep remote (default: newest)")
def conflicts_resolve(config_path: Path | None, path: str, keep: str, version_id: str | None) -> None:
    """Resolve a conflicted task file.

    \b
    --keep local   discard all other versions
    --keep remote  replace the local file with a version, discard the rest
    """
    config, console = _load(config_path)
    repository = _build_repository(config)
    task_path = _resolve_task_path(config, path)
    resolver = ConflictResolver(_build_provider(config), self_writes=repository.self_writes)
    policy = ResolutionPolicy.KEEP_LOCAL if keep == "local" else ResolutionPolicy.KEEP_REMOTE

    try:
        resolution = resolver.resolve(task_path, policy, version_id)
    except TaskError as e:
        console.print_error(str(e))
        sys.exit(1)

    if not resolution.kept and not resolution.discarded:
        console.print_info(f"No unresolved versions for {console.display_path(task_path)}")
        return

    if resolution.kept is not None:
        console.print_success(f"Replaced {console.display_path(task_path)} with version {resolution.kept.id}")
    else:
        console.print_success(f"Kept local {console.display_path(task_path)}")
    if resolution.discarded:
        console.print_info(f"Discarded {len(resolution.discarded)} version(s)")


# ============================================================================
# Configuration Commands
# ============================================================================


@cli.group()
def config() -> None:
    """Configuration file management."""
    pass


@config.command("init")
@config_option
@click.option("--folder", "folder_path", help="Task folder to configure")
def config_init(config_path: Path | None, folder_path: str | None) -> None:
    """Create a default configuration file."""
    console = create_console()
    path, created = ensure_config_exists(config_path, folder_path)
    if created:
        console.print_success(f"Created {path}")
    else:
        console.print_info(f"Configuration already exists: {path}")


@config.command("show")
@config_option
def config_show(config_path: Path | None) -> None:
    """Show the effective configuration."""
    config, console = _load(config_path)
    console.print_config_summary(
        str(config_path or get_config_path()),
        config.folder.path,
        config.sync.conflict_provider.value,
    )
    console.print(yaml.dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False), markup=False)


@config.command("validate")
@config_option
def config_validate(config_path: Path | None) -> None:
    """Validate the configuration file."""
    console = create_console()
    is_valid, errors = validate_config_file(config_path)
    if is_valid:
        console.print_success("Configuration is valid")
        return

    for error in errors:
        console.print_error(error)
    sys.exit(1)


if __name__ == "__main__":
    cli()
