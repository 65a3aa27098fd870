"""Rich terminal display for dustpan."""

from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from dustpan.deleter import MultiDeleteError
from dustpan.formatting import (
    format_count,
    format_rate,
    human_bytes,
    human_bytes_compact,
    human_bytes_short,
    shorten,
)
from dustpan.models import DeletionResult, DirEntry
from dustpan.status import SystemStatus, disk_label, split_disks

console = Console()

DANGER = "red"
WARN = "yellow"
OK = "green"

# Usage thresholds (percent used)
PERCENT_WARN = 60.0
PERCENT_DANGER = 85.0

# Battery thresholds (percent remaining)
BATTERY_DANGER = 20.0
BATTERY_WARN = 50.0


def _styled(color: str, text: str) -> str:
    return f"[{color}]{text}[/{color}]"


def colorize_percent(percent: float, text: str) -> str:
    """Color a usage figure: green, yellow from 60%, red from 85%."""
    if percent >= PERCENT_DANGER:
        return _styled(DANGER, text)
    if percent >= PERCENT_WARN:
        return _styled(WARN, text)
    return _styled(OK, text)


def colorize_battery(percent: float, text: str) -> str:
    """Color a battery charge: red below 20%, yellow below 50%."""
    if percent < BATTERY_DANGER:
        return _styled(DANGER, text)
    if percent < BATTERY_WARN:
        return _styled(WARN, text)
    return _styled(OK, text)


def show_directory(path: str, entries: list[DirEntry], limit: int = 50) -> None:
    """Display a directory listing, largest first."""
    total = sum(e.size_bytes for e in entries)

    table = Table(title=shorten(path, 80), show_header=True, header_style="bold")
    table.add_column("Size", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Name")

    for entry in entries[:limit]:
        share = (entry.size_bytes / total * 100) if total else 0.0
        name = f"[bold blue]{escape(entry.name)}/[/bold blue]" if entry.is_dir else escape(entry.name)
        if entry.error:
            name += f" [red]({escape(entry.error)})[/red]"
        table.add_row(
            human_bytes(entry.size_bytes),
            f"{share:.1f}",
            format_count(entry.file_count),
            name,
        )

    console.print(table)
    if len(entries) > limit:
        console.print(f"[dim]...and {len(entries) - limit} more[/dim]")
    console.print(f"[bold]Total: {human_bytes(total)}[/bold]")


def delete_progress() -> Progress:
    """Progress display for a running deletion."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TextColumn("[cyan]{task.fields[files]}[/cyan] files"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def show_freed_space(freed_bytes: int, elapsed: float) -> None:
    """Display how much space a run gave back, and how fast."""
    if freed_bytes <= 0:
        return
    line = f"  [dim]Freed {human_bytes(freed_bytes)}"
    if elapsed > 0:
        line += f" at {format_rate(freed_bytes / (1024 * 1024) / elapsed)}"
    console.print(line + "[/dim]")


def show_delete_result(result: DeletionResult) -> None:
    """Display the outcome of a deletion run."""
    if result.success:
        console.print(f"[green]✓[/green] Deleted {format_count(result.count)} files")
        return

    console.print(
        f"[yellow]![/yellow] Deleted {format_count(result.count)} files, "
        f"some items could not be removed"
    )
    console.print(f"  [red]{escape(result.error_message or '')}[/red]")
    if isinstance(result.err, MultiDeleteError):
        hidden = len(result.err) - MultiDeleteError.MAX_DISPLAYED
    else:
        hidden = 0
    if hidden > 0:
        console.print(f"  [dim]...and {hidden} more errors (see log)[/dim]")


def build_status_renderables(status: SystemStatus) -> list:
    """Build the dashboard as Rich renderables (shared by CLI and TUI)."""
    load = " ".join(f"{v:.2f}" for v in status.load_average)
    parts: list = [
        f"[bold]{escape(status.hostname)}[/bold]  "
        f"[dim]{status.cpu_count} CPUs, load {load}[/dim]\n",
    ]

    table = Table(title="Disks", show_header=True, header_style="bold")
    table.add_column("Disk")
    table.add_column("Mount")
    table.add_column("Used", justify="right")
    table.add_column("Free", justify="right")
    table.add_column("Total", justify="right")

    internal, external = split_disks(status.disks)
    for prefix, group in (("INTR", internal), ("EXTR", external)):
        for i, disk in enumerate(group):
            pct = disk.used_percent
            table.add_row(
                disk_label(prefix, i, len(group)),
                escape(shorten(disk.mount, 30)),
                colorize_percent(pct, f"{pct:.0f}%"),
                human_bytes_compact(disk.free_bytes),
                human_bytes_short(disk.total_bytes),
            )
    parts.append(table)

    if status.processes:
        procs = Table(title="Top Processes", show_header=True, header_style="bold")
        procs.add_column("Name")
        procs.add_column("CPU", justify="right")
        procs.add_column("Mem", justify="right")
        for proc in status.processes:
            procs.add_row(
                escape(shorten(proc.name, 24)),
                colorize_percent(proc.cpu, f"{proc.cpu:.1f}%"),
                f"{proc.memory:.1f}%",
            )
        parts.append(procs)

    if status.battery:
        battery = status.battery
        state = " (charging)" if battery.charging else ""
        charge = colorize_battery(battery.percent, f"{battery.percent:.0f}%")
        parts.append(f"Battery: {charge}{state}")

    return parts


def show_status(status: SystemStatus) -> None:
    """Display the system status dashboard."""
    for part in build_status_renderables(status):
        console.print(part)


def confirm_action(message: str) -> bool:
    """Ask user for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message, default=False)
