from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn

from .changelog import write_changelog
from .config import AppConfig, ConfigError, load_config
from .fetch import fetch_snapshot
from .models import EditType, FileState
from .reconcile import Revision
from .report_parser import select_report
from .state_db import load_revision, save_revision
from .text_utils import decode_spool
from .transport import JobTransport, SpoolFileTransport, SSHJobTransport

app = typer.Typer(help="Detect changes in SCLM libraries from DBUTIL reports")
console = Console()

_EDIT_STYLES = {
    EditType.ADDED: "green",
    EditType.EDITED: "yellow",
    EditType.DELETED: "red",
    EditType.UNCLASSIFIED: "dim",
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _load_config_or_exit(config: Path) -> AppConfig:
    try:
        return load_config(config)
    except ConfigError as exc:
        console.print(f"[red]Invalid config:[/red] {escape(str(exc))}")
        raise typer.Exit(1)


def _print_files(files: list[FileState] | tuple[FileState, ...]) -> None:
    for file in files:
        style = _EDIT_STYLES.get(file.edit_type or EditType.UNCLASSIFIED, "")
        console.print(file.describe(), style=style, markup=False, highlight=False)


def _print_counts(revision: Revision) -> None:
    summary = revision.counts()
    console.print()
    console.print(f"Added: {summary.added}")
    console.print(f"Edited: {summary.edited}")
    console.print(f"Deleted: {summary.deleted}")
    console.print(f"Unchanged: {summary.unchanged}")


def _make_transport(app_config: AppConfig, spool_file: Path | None) -> JobTransport:
    if spool_file is not None:
        return SpoolFileTransport(spool_file.expanduser())
    if app_config.remote is None:
        console.print(
            "[red]No \\[remote] section in config.[/red] Add one or pass --spool-file."
        )
        raise typer.Exit(1)
    return SSHJobTransport(app_config.remote)


@app.command()
def scan(
    config: Path = typer.Option(..., help="TOML config describing the SCLM library"),
    spool_file: Path | None = typer.Option(
        None,
        help="Read job output from a captured spool dump instead of submitting over SSH",
    ),
    state_db: Path | None = typer.Option(
        None,
        help="SQLite file holding the previous revision (default: state_db from config)",
    ),
    show_all: bool = typer.Option(
        False, "--all", help="List unchanged members as well"
    ),
    changelog: Path | None = typer.Option(
        None, help="Write the detected changes as JSON to this file"
    ),
    wait_seconds: int = typer.Option(
        0, help="Give up waiting for job output after this many seconds (0 = no limit)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Fetch the DBUTIL report and reconcile it against the stored revision."""
    _configure_logging(verbose)
    app_config = _load_config_or_exit(config)
    library = app_config.library
    db_path = (state_db or app_config.state_db).expanduser()
    transport = _make_transport(app_config, spool_file)

    baseline = load_revision(db_path, library.library_key)

    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Running DBUTIL for {library.library_key}...", total=None)
        try:
            snapshot = fetch_snapshot(transport, library, wait_seconds=wait_seconds)
        except ValueError as exc:
            progress.stop()
            console.print(f"[red]Cannot build DBUTIL job:[/red] {escape(str(exc))}")
            raise typer.Exit(1)

    revision = Revision.build(snapshot, baseline, library.types)
    _print_files(revision.files if show_all else revision.changed_only())
    _print_counts(revision)

    if changelog is not None:
        write_changelog(changelog.expanduser(), revision)
        console.print(f"Changelog: {changelog}")

    if not revision.complete:
        console.print(
            "[yellow]Fetch incomplete:[/yellow] stored revision left untouched."
        )
        raise typer.Exit(1)

    revision.remove_deleted()
    save_revision(db_path, library.library_key, revision)
    console.print(f"State DB: {db_path}")


@app.command()
def show(
    config: Path = typer.Option(..., help="TOML config describing the SCLM library"),
    state_db: Path | None = typer.Option(
        None, help="SQLite file holding revisions (default: state_db from config)"
    ),
    show_all: bool = typer.Option(
        False, "--all", help="List unchanged members as well"
    ),
) -> None:
    """Print the stored revision for the configured library."""
    app_config = _load_config_or_exit(config)
    db_path = (state_db or app_config.state_db).expanduser()
    revision = load_revision(db_path, app_config.library.library_key)
    if revision is None:
        console.print("No revision stored yet. Run `sclmdelta scan` first.")
        raise typer.Exit(1)
    _print_files(revision.files if show_all else revision.changed_only())
    _print_counts(revision)


@app.command()
def parse(
    spool_file: Path = typer.Argument(..., help="Captured job output"),
    project: str = typer.Option(..., help="SCLM project"),
    alternate: str = typer.Option(..., help="SCLM alternate project definition"),
    group: str = typer.Option(..., help="SCLM group"),
    member_type: list[str] | None = typer.Option(
        None, "--type", help="Keep only these member types (repeatable)"
    ),
) -> None:
    """Parse a captured spool dump and list the members of its DBUTIL report."""
    try:
        data = spool_file.expanduser().read_bytes()
    except OSError as exc:
        console.print(f"[red]Cannot read spool file:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    selection = select_report(
        decode_spool(data), project, alternate, group, member_type or ()
    )
    if not selection.found:
        console.print("[red]No DBUTIL report found in spool output.[/red]")
        raise typer.Exit(1)

    revision = Revision.build(selection.to_snapshot(), None, member_type or ())
    _print_files(revision.files)
    console.print()
    console.print(f"Report spool file: {selection.index}")
    console.print(f"Members: {len(revision)}")


if __name__ == "__main__":
    app()
