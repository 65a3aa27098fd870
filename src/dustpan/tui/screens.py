"""TUI screens for dustpan."""

from functools import partial
from pathlib import Path

from loguru import logger
from rich.console import Group
from rich.markup import escape
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, VerticalScroll
from textual.screen import ModalScreen, Screen
from textual.widgets import Button, DataTable, Footer, Header, Static

from dustpan.deleter import run_request
from dustpan.display import build_status_renderables
from dustpan.formatting import format_count, human_bytes, shorten
from dustpan.models import DeletionRequest, DeletionResult, DirEntry
from dustpan.progress import ProgressCounter
from dustpan.scanner import get_disk_usage, list_directory
from dustpan.status import collect_status
from dustpan.tui.widgets import DeleteStatus, DiskUsageBar


class BrowserScreen(Screen):
    """Disk usage browser with delete."""

    BINDINGS = [
        Binding("backspace", "go_up", "Up"),
        Binding("space", "toggle_select", "Select"),
        Binding("d", "delete", "Delete"),
        Binding("u", "deselect_all", "Deselect All"),
        Binding("r", "refresh", "Refresh"),
    ]

    def __init__(self, start_path: Path):
        super().__init__()
        self.current_path = Path(start_path).resolve()
        self.entries: dict[str, DirEntry] = {}
        self.selected: set[str] = set()

    def compose(self) -> ComposeResult:
        yield Header()

        with Container(id="browser-container"):
            yield DiskUsageBar(id="disk-bar")
            yield Static("", id="path-label")
            yield DataTable(id="entry-table")
            yield Static("", id="selection-info")
            yield DeleteStatus(id="delete-status")

        yield Footer()

    def on_mount(self) -> None:
        """Initialize the screen."""
        table = self.query_one("#entry-table", DataTable)
        table.cursor_type = "row"
        table.add_columns("", "Size", "Files", "Name")

        # The progress counter is pulled on this cadence while a delete runs
        self.set_interval(self.app.settings.refresh_interval, self._poll_progress)

        self.refresh_data()

    @property
    def deleting(self) -> bool:
        return self.query_one("#delete-status", DeleteStatus).active

    # -- loading ------------------------------------------------------------

    def refresh_data(self) -> None:
        """Reload the disk bar and the current listing."""
        self.run_worker(self._load_disk_usage, thread=True, group="disk")
        self.load_directory(self.current_path)

    def load_directory(self, path: Path) -> None:
        """List a directory in the background and show it."""
        label = self.query_one("#path-label", Static)
        label.update(f"[bold]{escape(str(path))}[/bold] [dim]sizing...[/dim]")
        self.run_worker(
            partial(self._load_entries, path),
            thread=True,
            group="listing",
            exclusive=True,
        )

    def _load_disk_usage(self) -> None:
        try:
            usage = get_disk_usage(str(self.current_path))
        except OSError as e:
            logger.debug("Disk usage unavailable for {}: {}", self.current_path, e)
            return
        self.app.call_from_thread(self._show_disk_usage, usage)

    def _show_disk_usage(self, usage) -> None:
        self.query_one("#disk-bar", DiskUsageBar).update_usage(usage)

    def _load_entries(self, path: Path) -> None:
        try:
            entries = list_directory(path, show_hidden=self.app.settings.show_hidden)
        except OSError as e:
            logger.warning("Cannot list {}: {}", path, e)
            self.app.call_from_thread(
                self.notify, f"Cannot open {path}: {e}", severity="error", timeout=5
            )
            self.app.call_from_thread(self._update_path_label)
            return

        self.app.call_from_thread(self._show_entries, path, entries)

    def _show_entries(self, path: Path, entries: list[DirEntry]) -> None:
        self.current_path = path
        self.entries = {e.path: e for e in entries}
        self.selected &= set(self.entries)
        self._update_table()
        self._update_path_label()

    def _update_path_label(self) -> None:
        total = sum(e.size_bytes for e in self.entries.values())
        self.query_one("#path-label", Static).update(
            f"[bold]{escape(str(self.current_path))}[/bold]  [dim]{human_bytes(total)}[/dim]"
        )

    def _update_table(self) -> None:
        """Update the table with the current entries."""
        table = self.query_one("#entry-table", DataTable)
        cursor = table.cursor_row
        table.clear()

        for entry in self.entries.values():
            checkbox = "[green]X[/green]" if entry.path in self.selected else "[ ]"
            name = escape(shorten(entry.name, 60))
            if entry.is_dir:
                name = f"[bold blue]{name}/[/bold blue]"
            table.add_row(
                checkbox,
                human_bytes(entry.size_bytes),
                format_count(entry.file_count),
                name,
                key=entry.path,
            )

        if self.entries and cursor is not None:
            table.move_cursor(row=min(cursor, len(self.entries) - 1))
        self._update_selection_info()

    def _update_selection_info(self) -> None:
        info = self.query_one("#selection-info", Static)
        if not self.selected:
            info.update("[dim]No items selected[/dim]")
            return

        total_bytes = sum(self.entries[p].size_bytes for p in self.selected if p in self.entries)
        info.update(
            f"[bold]{len(self.selected)}[/bold] selected: [cyan]{human_bytes(total_bytes)}[/cyan]"
        )

    def _highlighted_path(self) -> str | None:
        table = self.query_one("#entry-table", DataTable)
        if not self.entries or table.cursor_row is None:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        return str(row_key.value) if row_key.value is not None else None

    # -- navigation -----------------------------------------------------------

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Open a directory when its row is chosen."""
        if event.row_key is None or event.row_key.value is None:
            return
        entry = self.entries.get(str(event.row_key.value))
        if entry and entry.is_dir:
            self.selected.clear()
            self.load_directory(Path(entry.path))

    def action_go_up(self) -> None:
        """Go to the parent directory."""
        parent = self.current_path.parent
        if parent != self.current_path:
            self.selected.clear()
            self.load_directory(parent)

    def action_refresh(self) -> None:
        self.refresh_data()

    def action_toggle_select(self) -> None:
        """Toggle selection of current item."""
        path = self._highlighted_path()
        if path is None:
            return
        if path in self.selected:
            self.selected.remove(path)
        else:
            self.selected.add(path)
        self._update_table()

    def action_deselect_all(self) -> None:
        """Deselect all items."""
        self.selected.clear()
        self._update_table()

    # -- deletion -------------------------------------------------------------

    def action_delete(self) -> None:
        """Delete the selection, or the highlighted row if nothing is selected."""
        if self.deleting:
            self.notify("A deletion is already running", severity="warning")
            return

        if self.selected:
            roots = [p for p in self.entries if p in self.selected]
        else:
            path = self._highlighted_path()
            roots = [path] if path else []

        if not roots:
            self.notify("Nothing to delete", severity="warning")
            return

        if self.app.settings.confirm_delete:
            self.app.push_screen(ConfirmDeleteScreen(roots), partial(self._on_confirm, roots))
        else:
            self.start_delete(roots)

    def _on_confirm(self, roots: list[str], confirmed: bool | None) -> None:
        if confirmed:
            self.start_delete(roots)

    def start_delete(self, roots: list[str]) -> None:
        """Dispatch a deletion without blocking the UI."""
        counter = ProgressCounter()
        request = DeletionRequest(roots=roots, counter=counter)

        logger.info("Dispatching delete of {} path(s) from {}", len(roots), self.current_path)
        self.query_one("#delete-status", DeleteStatus).start(counter, len(roots))
        self.run_worker(partial(self._execute_delete, request), thread=True, group="delete")

    def _execute_delete(self, request: DeletionRequest) -> None:
        """Execute the deletion in background."""
        try:
            result = run_request(request)
        except Exception as ex:
            logger.exception("Delete worker failed: {}", ex)
            count = request.counter.value if request.counter is not None else 0
            result = DeletionResult(count=count, err=ex)
        self.app.call_from_thread(self._on_delete_done, result)

    def _poll_progress(self) -> None:
        status = self.query_one("#delete-status", DeleteStatus)
        if status.active:
            status.poll()

    def _on_delete_done(self, result: DeletionResult) -> None:
        """Show the outcome and reload what changed."""
        status = self.query_one("#delete-status", DeleteStatus)
        summary = f"Deleted {format_count(result.count)} files"
        status.stop(f"[dim]{summary}[/dim]")
        logger.info("Delete finished in UI: {} files, error={}", result.count, result.error_message)

        if result.success:
            self.notify(summary, timeout=3)
        else:
            self.notify(f"{summary}. {result.error_message}", severity="error", timeout=8)

        self.selected.clear()
        if result.refresh_all:
            self.refresh_data()
        elif Path(result.refresh_parent).resolve() == self.current_path:
            self.load_directory(self.current_path)


class ConfirmDeleteScreen(ModalScreen[bool]):
    """Ask before permanently deleting."""

    BINDINGS = [
        Binding("y", "confirm", "Yes, Delete"),
        Binding("n", "cancel", "Cancel"),
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(self, roots: list[str]):
        super().__init__()
        self.roots = roots

    def compose(self) -> ComposeResult:
        shown = "\n".join(f"  • {escape(shorten(r, 70))}" for r in self.roots[:10])
        if len(self.roots) > 10:
            shown += f"\n  [dim]...and {len(self.roots) - 10} more[/dim]"

        with Container(id="confirm-container"):
            yield Static(
                f"[bold red]Permanently delete {len(self.roots)} item(s)?[/bold red]\n\n{shown}",
                id="confirm-text",
            )
            with Horizontal(id="confirm-buttons"):
                yield Button("Delete", variant="error", id="btn-delete")
                yield Button("Cancel", variant="default", id="btn-cancel")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        if event.button.id == "btn-delete":
            self.action_confirm()
        else:
            self.action_cancel()

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


class StatusScreen(Screen):
    """System status dashboard."""

    BINDINGS = [
        Binding("r", "refresh", "Refresh"),
    ]

    # Seconds between automatic refreshes
    REFRESH_SECONDS = 2.0

    def compose(self) -> ComposeResult:
        yield Header()
        with VerticalScroll(id="status-container"):
            yield Static("[dim]Collecting status...[/dim]", id="status-content")
        yield Footer()

    def on_mount(self) -> None:
        self.refresh_data()
        self.set_interval(self.REFRESH_SECONDS, self.refresh_data)

    def action_refresh(self) -> None:
        self.refresh_data()

    def refresh_data(self) -> None:
        """Collect a new snapshot in the background."""
        self.run_worker(self._collect, thread=True, group="status", exclusive=True)

    def _collect(self) -> None:
        status = collect_status(top=self.app.settings.top_processes)
        self.app.call_from_thread(self._show, status)

    def _show(self, status) -> None:
        content = self.query_one("#status-content", Static)
        content.update(Group(*build_status_renderables(status)))
