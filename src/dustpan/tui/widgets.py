"""Custom widgets for the dustpan TUI."""

from rich.markup import escape
from textual.reactive import reactive
from textual.widgets import Static

from dustpan.display import PERCENT_DANGER, PERCENT_WARN
from dustpan.formatting import format_count, human_bytes
from dustpan.models import DiskUsage
from dustpan.progress import ProgressCounter


class DiskUsageBar(Static):
    """Visual disk usage indicator with progress bar."""

    usage_percent: reactive[float] = reactive(0.0)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.disk_usage: DiskUsage | None = None

    def update_usage(self, disk_usage: DiskUsage) -> None:
        """Update with new disk usage data."""
        self.disk_usage = disk_usage
        self.usage_percent = disk_usage.used_percent
        self.refresh()

    def render(self) -> str:
        """Render the disk usage bar."""
        if not self.disk_usage:
            return "[dim]Loading disk usage...[/dim]"

        du = self.disk_usage
        bar_width = 40
        filled = int(bar_width * du.used_percent / 100)
        empty = bar_width - filled

        # Same thresholds as the status dashboard
        if du.used_percent >= PERCENT_DANGER:
            color = "red"
        elif du.used_percent >= PERCENT_WARN:
            color = "yellow"
        else:
            color = "green"

        bar = f"[{color}]{'█' * filled}[/{color}][dim]{'░' * empty}[/dim]"

        return (
            f"[bold]{escape(du.mount_point)}[/bold] {bar} [{color}]{du.used_percent:.0f}%[/{color}]  "
            f"[dim]Free: {human_bytes(du.free_bytes)} / Total: {human_bytes(du.total_bytes)}[/dim]"
        )


class DeleteStatus(Static):
    """Status line that shows live deletion progress.

    The counter is pulled on the screen's timer; nothing pushes updates.
    """

    def __init__(self, *args, **kwargs):
        super().__init__("", *args, **kwargs)
        self.counter: ProgressCounter | None = None
        self.roots = 0
        self.status_text = ""

    def start(self, counter: ProgressCounter, roots: int) -> None:
        """Begin following a new run."""
        self.counter = counter
        self.roots = roots
        self.poll()

    def poll(self) -> None:
        """Redraw from the counter's current value."""
        if self.counter is None:
            return
        target = "item" if self.roots == 1 else "items"
        self.set_status_text(
            f"[cyan]Deleting {self.roots} {target}...[/cyan] "
            f"{format_count(self.counter.value)} files removed"
        )

    def stop(self, message: str = "") -> None:
        """Forget the counter once the result has arrived."""
        self.counter = None
        self.set_status_text(message)

    def set_status_text(self, message: str) -> None:
        """Replace the line, keeping the markup text in `status_text`."""
        self.status_text = message
        self.update(message)

    @property
    def active(self) -> bool:
        return self.counter is not None
