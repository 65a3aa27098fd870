"""Main TUI application for dustpan."""

from pathlib import Path

from textual.app import App
from textual.binding import Binding

from dustpan.config import Settings
from dustpan.tui.screens import BrowserScreen, StatusScreen


class DustpanApp(App):
    """Interactive disk usage browser."""

    TITLE = "dustpan"
    SUB_TITLE = "Disk usage browser"

    CSS_PATH = "styles.tcss"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("?", "help", "Help"),
        Binding("s", "status", "Status"),
        Binding("t", "toggle_dark", "Toggle Dark"),
        Binding("escape", "back", "Back", show=False),
    ]

    def __init__(self, start_path: Path, settings: Settings | None = None):
        super().__init__()
        self.start_path = start_path
        self.settings = settings or Settings()

    def on_mount(self) -> None:
        """Called when the app is mounted."""
        self.push_screen(BrowserScreen(self.start_path))

    def action_toggle_dark(self) -> None:
        """Toggle dark mode."""
        self.theme = "textual-light" if self.theme == "textual-dark" else "textual-dark"

    def action_status(self) -> None:
        """Open the system status dashboard."""
        if not isinstance(self.screen, StatusScreen):
            self.push_screen(StatusScreen())

    def action_back(self) -> None:
        """Go back to previous screen."""
        # The default screen plus the browser stay at the bottom
        if len(self.screen_stack) > 2:
            self.pop_screen()

    def action_help(self) -> None:
        """Show help information."""
        self.notify(
            "Enter opens a folder, Backspace goes up, Space selects, D deletes, S shows system status",
            title="Help",
            timeout=5,
        )


def run_tui(start_path: Path, settings: Settings | None = None) -> None:
    """Run the interactive TUI.

    Args:
        start_path: Directory shown first
        settings: Effective settings (defaults if omitted)
    """
    app = DustpanApp(start_path, settings=settings)
    app.run()
