"""Directory jumping and frecency database commands.

Provides CLI commands for:
    - Query-and-jump, interactive selection, previous directory (``jump``)
    - Database management flags on ``jump`` (--add, --remove, --list, --clean)
    - The post-cd tracking entry point used by the shell hook (``track``)

``jump`` prints only the target directory on stdout; every diagnostic goes
to stderr so the shell function can ``cd`` into whatever stdout holds.
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

import typer
from rich import box
from rich.markup import escape
from rich.table import Table

from jnav.core.console import console, stderr_console
from jnav.core.external import Launcher, ProjectRegistry
from jnav.core.migration import migrate_legacy_marks
from jnav.core.navigator import NavigationRequest, Navigator, NavState, SessionState
from jnav.core.paths import canonicalize, display_path, printable
from jnav.core.ranker import Ranker
from jnav.core.result import Err, Ok
from jnav.core.selector import choose_backend
from jnav.core.store import FrecencyStore
from jnav.core.tracker import ChangeTracker

PREV_DIR_ENV = "JNAV_PREV_DIR"


def _human_hours(hours: int) -> str:
    return datetime.fromtimestamp(hours * 3600).strftime("%Y-%m-%d %H:00")


def _warn(message: str) -> None:
    stderr_console.print(f"[yellow]![/yellow] {escape(printable(message))}")


def _current_dir() -> Path:
    try:
        return canonicalize(Path.cwd())
    except OSError:
        # The working directory was deleted underneath the shell.
        return canonicalize(os.environ.get("PWD") or Path.home())


def _session() -> SessionState:
    previous = os.environ.get(PREV_DIR_ENV) or None
    return SessionState(
        cwd=_current_dir(),
        previous_dir=Path(previous) if previous else None,
        home=Path.home(),
    )


def _open_store(ctx: typer.Context) -> FrecencyStore:
    """Build the store and run the one-time bookmark migration."""
    config = ctx.obj.config
    store = FrecencyStore.from_config(config)

    match migrate_legacy_marks(
        store, config.legacy_marks_path, visit_count=config.migration_visit_count
    ):
        case Ok(count) if count > 0:
            stderr_console.print(
                f"Migrated {count} bookmarks. Original file preserved at "
                f"{escape(printable(display_path(config.legacy_marks_path, Path.home())))}"
            )
        case Err(err):
            _warn(f"Bookmark migration failed: {err}")
        case _:
            pass

    return store


def _add_current(store: FrecencyStore, cwd: Path, home: Path) -> None:
    label = escape(printable(display_path(cwd, home)))
    match store.upsert(cwd):
        case Ok(None):
            console.print(f"[dim]Not tracked (excluded or too short):[/dim] [cyan]{label}[/cyan]")
        case Ok(_):
            console.print(f"[green]✓[/green] Added: [cyan]{label}[/cyan]")
        case Err(err):
            _warn(str(err))


def _remove_current(store: FrecencyStore, cwd: Path, home: Path) -> None:
    label = escape(printable(display_path(cwd, home)))
    match store.remove(cwd):
        case Ok(True):
            console.print(f"[green]✓[/green] Removed: [cyan]{label}[/cyan]")
        case Ok(False):
            stderr_console.print(f"[yellow]![/yellow] Not in database: [cyan]{label}[/cyan]")
            raise typer.Exit(code=1)
        case Err(err):
            _warn(str(err))
            raise typer.Exit(code=1)


def _list_entries(ranker: Ranker, home: Path) -> None:
    entries = ranker.scored()
    if not entries:
        console.print("[dim]No directories tracked yet.[/dim]")
        console.print("[dim]Use cd to navigate and directories will be automatically added.[/dim]")
        return

    table = Table(box=box.SIMPLE_HEAVY, expand=False)
    table.add_column("Score", style="magenta", justify="right", no_wrap=True)
    table.add_column("Last visit", style="white", no_wrap=True)
    table.add_column("Path", style="cyan")

    for entry in entries:
        label = escape(printable(display_path(entry.path, home)))
        if not os.path.isdir(entry.path):
            label = f"[dim strike]{label}[/dim strike]"
        table.add_row(f"{entry.score:.4f}", _human_hours(entry.last_access), label)

    console.print(table)


def _clean(store: FrecencyStore) -> None:
    if not store.exists():
        console.print("[dim]Database is empty[/dim]")
        return

    match store.prune():
        case Ok(report) if report.removed > 0:
            console.print(
                f"[green]✓[/green] Removed [magenta]{report.removed}[/magenta] "
                f"non-existent directories (kept {report.kept})"
            )
        case Ok(report):
            console.print(
                f"[green]✓[/green] Database is clean ([magenta]{report.total}[/magenta] directories)"
            )
        case Err(err):
            _warn(str(err))
            raise typer.Exit(code=1)


def jump(
    ctx: typer.Context,
    terms: list[str] | None = typer.Argument(
        None, help="Keywords that must all match, or '-' for the previous directory."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show each resolution stage on stderr."
    ),
    code: bool = typer.Option(False, "--code", "-c", help="Open the target in VS Code."),
    add: bool = typer.Option(False, "--add", "-a", help="Add the current directory."),
    remove: bool = typer.Option(False, "--remove", help="Remove the current directory."),
    show_list: bool = typer.Option(
        False, "--list", "--db", help="Show the database with scores."
    ),
    clean: bool = typer.Option(False, "--clean", help="Remove non-existent directories."),
) -> None:
    """Jump to the best matching directory (interactive when no keywords)."""
    config = ctx.obj.config
    session = _session()
    store = _open_store(ctx)
    ranker = Ranker(store, decay=config.decay, min_score=config.min_score)

    if add:
        _add_current(store, session.cwd, session.home)
        return
    if remove:
        _remove_current(store, session.cwd, session.home)
        return
    if show_list:
        _list_entries(ranker, session.home)
        return
    if clean:
        _clean(store)
        return

    navigator = Navigator(
        ranker,
        ChangeTracker(store, enabled=not config.disable_hook),
        choose_backend(config, session.home),
        ProjectRegistry(config.registry_command, list_command=config.registry_list_command),
        Launcher(config.launcher_command),
        echo=lambda message: stderr_console.print(f"[dim]\\[j][/dim] {escape(printable(message))}"),
    )
    request = NavigationRequest.from_args(terms or [], open_external=code, verbose=verbose)
    outcome = navigator.navigate(request, session)

    for warning in outcome.warnings:
        _warn(warning)

    if outcome.state is NavState.JUMPED and outcome.target is not None:
        # Bytes go to stdout unchanged, so undecodable names still reach cd.
        typer.echo(os.fsencode(outcome.target))
        return
    if outcome.state is NavState.CANCELLED:
        return

    message = outcome.error.message if outcome.error else "No matching directory"
    _warn(message)
    raise typer.Exit(code=1)


def track(
    ctx: typer.Context,
    path: Path | None = typer.Argument(None, help="Directory that was entered (default: cwd)."),
) -> None:
    """Record a directory visit. Called by the shell hook after every cd."""
    config = ctx.obj.config
    store = _open_store(ctx)
    tracker = ChangeTracker(store, enabled=not config.disable_hook)
    tracker.on_directory_change(path or _current_dir())
