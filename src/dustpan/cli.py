"""CLI interface for dustpan."""

import os
import time
from concurrent.futures import ThreadPoolExecutor, wait
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.table import Table

from dustpan import __version__
from dustpan.config import ConfigError, Settings, default_config_path, load_settings
from dustpan.deleter import submit_delete
from dustpan.display import (
    confirm_action,
    console,
    delete_progress,
    show_delete_result,
    show_directory,
    show_freed_space,
    show_status,
)
from dustpan.formatting import format_count
from dustpan.logging import disable_logging, init_logging
from dustpan.models import DeletionRequest
from dustpan.progress import ProgressCounter
from dustpan.scanner import expand_path, get_disk_usage, list_directory
from dustpan.status import collect_status

# Create Typer app
app = typer.Typer(
    name="dustpan",
    help="Disk usage browser with delete, plus a system status dashboard",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"dustpan version {__version__}")
        raise typer.Exit()


def get_settings() -> Settings:
    """Load settings, exiting with a message if the config file is broken."""
    try:
        return load_settings()
    except ConfigError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1)


def _start_logging() -> None:
    try:
        level = load_settings().log_level
    except ConfigError:
        # Reported by the command that needs the settings
        level = "INFO"

    try:
        init_logging(level=level)
    except OSError as e:
        console.print(f"[yellow]Logging disabled:[/yellow] {e}")
        disable_logging()


def _free_bytes(root: str) -> Optional[int]:
    # Measured on the parent, which outlives the deleted root
    try:
        return get_disk_usage(os.path.dirname(root)).free_bytes
    except OSError:
        return None


def _launch_browser(path: Path) -> None:
    from dustpan.tui import run_tui

    if not path.is_dir():
        console.print(f"[red]Not a directory: {path}[/red]")
        raise typer.Exit(1)
    run_tui(path, get_settings())


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    no_log: bool = typer.Option(False, "--no-log", help="Don't write a log file."),
) -> None:
    """dustpan - see what fills your disk and clear it out."""
    if no_log:
        disable_logging()
    else:
        _start_logging()

    # If no command specified, browse the current directory
    if ctx.invoked_subcommand is None:
        _launch_browser(Path.cwd())


@app.command()
def browse(
    path: Optional[Path] = typer.Argument(None, help="Directory to browse (default: cwd)"),
) -> None:
    """Browse disk usage interactively and delete what you don't need."""
    _launch_browser(expand_path(str(path)) if path else Path.cwd())


@app.command(name="ls")
def list_command(
    path: Optional[Path] = typer.Argument(None, help="Directory to list (default: cwd)"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum rows to show"),
) -> None:
    """List a directory's entries by size."""
    target = expand_path(str(path)) if path else Path.cwd()
    settings = get_settings()

    try:
        with console.status(f"Sizing {target}..."):
            entries = list_directory(target, show_hidden=settings.show_hidden)
    except OSError as e:
        console.print(f"[red]Cannot list {target}: {e}[/red]")
        raise typer.Exit(1)

    show_directory(str(target), entries, limit=limit)


@app.command()
def delete(
    paths: list[Path] = typer.Argument(..., help="Files or directories to delete"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompt"),
) -> None:
    """Permanently delete files or directories, showing live progress."""
    settings = get_settings()
    roots = [os.path.abspath(expand_path(str(p))) for p in paths]

    console.print("[bold]About to permanently delete:[/bold]")
    for root in roots:
        console.print(f"  • {root}")

    if settings.confirm_delete and not yes:
        if not confirm_action("Proceed?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    logger.info("Delete requested from CLI for {} path(s)", len(roots))
    counter = ProgressCounter()
    request = DeletionRequest(roots=roots, counter=counter)

    free_before = _free_bytes(roots[0])
    started = time.monotonic()

    with ThreadPoolExecutor(max_workers=1) as executor:
        future = submit_delete(executor, request)
        with delete_progress() as progress:
            task = progress.add_task("Deleting...", total=None, files="0")
            while not future.done():
                progress.update(task, files=format_count(counter.value))
                wait([future], timeout=settings.refresh_interval)
        result = future.result()

    elapsed = time.monotonic() - started
    free_after = _free_bytes(roots[0])

    show_delete_result(result)
    if free_before is not None and free_after is not None:
        show_freed_space(free_after - free_before, elapsed)
    if not result.success:
        raise typer.Exit(1)


@app.command()
def status(
    top: Optional[int] = typer.Option(None, "--top", "-t", help="Number of processes to show"),
) -> None:
    """Show a system status snapshot."""
    settings = get_settings()
    show_status(collect_status(top=top or settings.top_processes))


@app.command()
def config() -> None:
    """Show the config file location and effective settings."""
    path = default_config_path()
    state = "" if path.exists() else " [dim](not created, using defaults)[/dim]"
    console.print(f"[bold]Config file:[/bold] {path}{state}\n")

    settings = get_settings()

    table = Table(show_header=True, header_style="bold")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in settings.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


if __name__ == "__main__":
    app()
