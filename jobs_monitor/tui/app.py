"""
Terminal TUI Application using Textual

Control panel for the Amazon jobs monitor: connection indicator, status
line, start form and the live log streamed from the backend.
Works over SSH on headless servers.
"""
from typing import List, Optional

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import (
    Header,
    Footer,
    Static,
    Button,
    Input,
    Label,
)
from textual.binding import Binding
from textual.reactive import reactive
from rich.text import Text
from rich.panel import Panel
from rich.table import Table

from jobs_monitor.config import ClientSettings
from jobs_monitor.domain.entities import ConnectionState, ConnectionStatus, LogEntry
from jobs_monitor.client.session import MonitorClientSession


def split_field(value: str) -> List[str]:
    """
    Split a comma-separated input into fields.

    An empty input yields one blank field so it is reported as required.
    """
    return value.split(",")


class ConnectionWidget(Static):
    """Widget displaying the event channel connection."""

    status = reactive("disconnected")
    retry_count = reactive(0)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._max_retries = 10

    def update_connection(self, state: ConnectionState):
        """Update from the session's connection state."""
        self._max_retries = state.max_retries
        self.status = state.status.value
        self.retry_count = state.retry_count
        self.refresh()

    def render(self) -> Panel:
        """Render the connection widget."""
        status_styles = {
            ConnectionStatus.CONNECTED.value: ("●  Connected", "green bold"),
            ConnectionStatus.CONNECTING.value: ("◌  Connecting", "yellow"),
            ConnectionStatus.DISCONNECTED.value: ("○  Disconnected", "red"),
            ConnectionStatus.GAVE_UP.value: ("✕  Gave up", "red bold"),
        }
        label, style = status_styles.get(self.status, (self.status, "white"))

        content = Table.grid(padding=1)
        content.add_column()
        content.add_row(Text(label, style=style))
        if self.retry_count:
            content.add_row(
                Text(f"Retries: {self.retry_count}/{self._max_retries}", style="dim")
            )

        return Panel(content, title="Connection", border_style="blue")


class StatusWidget(Static):
    """Widget displaying the run flag and the status line."""

    is_running = reactive(False)
    message = reactive("")

    def update_status(self, is_running: bool, message: str = ""):
        """Update the status display."""
        self.is_running = is_running
        self.message = message
        self.refresh()

    def render(self) -> Panel:
        """Render the status widget."""
        if self.is_running:
            state_text = Text("RUNNING", style="green bold")
        else:
            state_text = Text("STOPPED", style="dim")

        content = Table.grid(padding=1)
        content.add_column()
        content.add_row(state_text)
        if self.message:
            content.add_row(Text(self.message))

        return Panel(content, title="Monitor", border_style="green")


class LogWidget(Static):
    """Widget displaying the session's log entries."""

    VISIBLE_ENTRIES = 20

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._logs: List[LogEntry] = []

    @property
    def logs(self) -> List[LogEntry]:
        return self._logs

    def set_logs(self, entries: List[LogEntry]):
        """Replace the displayed entries."""
        self._logs = list(entries)
        self.refresh()

    def render(self) -> Panel:
        """Render the log widget."""
        content = Table.grid(padding=(0, 1))
        content.add_column(width=10)
        content.add_column()

        for entry in self._logs[-self.VISIBLE_ENTRIES:]:
            style = "red" if entry.message.startswith("ERROR:") else "white"
            content.add_row(
                Text(entry.timestamp, style="dim"),
                Text(entry.message, style=style),
            )

        if not self._logs:
            content.add_row(Text(""), Text("No logs yet...", style="dim"))

        return Panel(
            content,
            title=f"Logs ({len(self._logs)})",
            border_style="cyan",
        )


class MonitorTUI(App):
    """
    Main Terminal TUI Application.

    Renders a MonitorClientSession and forwards user actions to it.
    """

    TITLE = "Amazon Jobs Monitor"

    CSS = """
    Screen {
        layout: grid;
        grid-size: 2 3;
        grid-rows: auto auto 1fr;
        grid-gutter: 1;
    }

    #connection {
        height: auto;
    }

    #status {
        height: auto;
    }

    #form {
        column-span: 1;
        height: auto;
    }

    #controls {
        height: auto;
        align: center middle;
    }

    #form_errors {
        color: red;
    }

    #logs {
        column-span: 2;
        height: 100%;
    }

    Button {
        margin: 1;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("ctrl+s", "start", "Start"),
        Binding("ctrl+x", "stop", "Stop"),
        Binding("ctrl+r", "reconnect", "Reconnect"),
        Binding("ctrl+l", "clear_logs", "Clear Logs"),
    ]

    def __init__(
        self,
        session: Optional[MonitorClientSession] = None,
        settings: Optional[ClientSettings] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self._settings = settings or ClientSettings.from_env()
        self._session = session

    @property
    def session(self) -> Optional[MonitorClientSession]:
        return self._session

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Header()

        yield ConnectionWidget(id="connection")
        yield StatusWidget(id="status")

        with Vertical(id="form"):
            yield Label("Amazon job links (comma separated):")
            yield Input(id="links_input", placeholder="https://hiring.amazon.com/...")
            yield Label("Target positions (comma separated):")
            yield Input(id="positions_input", placeholder="Warehouse Associate, Sortation")
            yield Label("", id="form_errors")

        with Horizontal(id="controls"):
            yield Button("▶ Start", id="btn_start", variant="success")
            yield Button("⏹ Stop", id="btn_stop", variant="error", disabled=True)
            yield Button("🔄 Reconnect", id="btn_reconnect", variant="primary")
            yield Button("Clear", id="btn_clear")

        yield LogWidget(id="logs")

        yield Footer()

    async def on_mount(self):
        """Initialize when app mounts."""
        if self._session is None:
            self._session = MonitorClientSession(self._settings)
        self._session.add_listener(self._on_session_change)
        self.run_worker(self._session.mount(), exclusive=True, group="session")

    def _on_session_change(self, session: MonitorClientSession):
        """Re-render from the session state."""
        self.query_one("#connection", ConnectionWidget).update_connection(
            session.connection_state
        )
        self.query_one("#status", StatusWidget).update_status(
            session.is_running, session.status_message
        )
        self.query_one("#logs", LogWidget).set_logs(session.logs)
        self._update_form_errors()
        self._update_buttons(session.is_running)

    def _update_buttons(self, is_running: bool):
        """Update button states based on the run flag."""
        self.query_one("#btn_start", Button).disabled = is_running
        self.query_one("#btn_stop", Button).disabled = not is_running

    def _update_form_errors(self):
        errors = self._session.form_errors
        messages = [e for e in errors.link_errors + errors.position_errors if e]
        # Keep the first occurrence of each message
        unique = list(dict.fromkeys(messages))
        self.query_one("#form_errors", Label).update("\n".join(unique))

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        button_id = event.button.id

        if button_id == "btn_start":
            await self.action_start()
        elif button_id == "btn_stop":
            await self.action_stop()
        elif button_id == "btn_reconnect":
            await self.action_reconnect()
        elif button_id == "btn_clear":
            self.action_clear_logs()

    async def action_start(self):
        """Start monitoring with the form values."""
        links = split_field(self.query_one("#links_input", Input).value)
        positions = split_field(self.query_one("#positions_input", Input).value)
        await self._session.start_monitoring(links, positions)

    async def action_stop(self):
        """Stop monitoring."""
        await self._session.stop_monitoring()

    async def action_reconnect(self):
        """Manually reconnect the event channel."""
        await self._session.reconnect()

    def action_clear_logs(self):
        """Clear the log display."""
        self._session.clear_logs()

    async def action_quit(self):
        """Quit the application."""
        if self._session:
            await self._session.close()
        self.exit()


def run_tui(settings: Optional[ClientSettings] = None):
    """Run the TUI application."""
    app = MonitorTUI(settings=settings)
    app.run()


if __name__ == "__main__":
    run_tui()
