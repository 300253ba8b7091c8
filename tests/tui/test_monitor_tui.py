"""
Tests for the Textual control panel.
"""
import pytest
import httpx
from rich.panel import Panel

from jobs_monitor.client.session import MonitorClientSession
from jobs_monitor.config import ClientSettings
from jobs_monitor.domain.entities import ConnectionState, ConnectionStatus, LogEntry
from jobs_monitor.tui.app import (
    ConnectionWidget,
    LogWidget,
    MonitorTUI,
    StatusWidget,
    split_field,
)
from tests.utils.monitor_test_helpers import FakeConnector, ManualScheduler


class TestSplitField:
    """Tests for comma-separated input parsing."""

    def test_empty_input_is_one_blank_field(self):
        """An empty input is reported as a required field."""
        assert split_field("") == [""]

    def test_several_fields(self):
        """Values are split on commas."""
        assert split_field("Engineer, Associate") == ["Engineer", " Associate"]


class TestWidgets:
    """Tests for the display widgets."""

    def test_connection_widget_default_state(self):
        """ConnectionWidget should start disconnected."""
        widget = ConnectionWidget()
        assert widget.status == "disconnected"
        assert isinstance(widget.render(), Panel)

    def test_connection_widget_update(self):
        """ConnectionWidget should follow the state value."""
        widget = ConnectionWidget()
        widget.update_connection(ConnectionState(status=ConnectionStatus.GAVE_UP, retry_count=10))
        assert widget.status == "gave_up"
        assert widget.retry_count == 10

    def test_status_widget_update(self):
        """StatusWidget should show the run flag and message."""
        widget = StatusWidget()
        widget.update_status(True, "Job monitoring started")
        assert widget.is_running
        assert widget.message == "Job monitoring started"
        assert isinstance(widget.render(), Panel)

    def test_log_widget_set_logs(self):
        """LogWidget should hold the session's entries."""
        widget = LogWidget()
        widget.set_logs([LogEntry("one", "10:00:00"), LogEntry("ERROR: two", "10:00:01")])
        assert [entry.message for entry in widget.logs] == ["one", "ERROR: two"]
        assert isinstance(widget.render(), Panel)


class TestMonitorTUI:
    """Tests for the main TUI application."""

    def test_tui_app_creation(self):
        """TUI app should be creatable without a backend."""
        app = MonitorTUI(settings=ClientSettings())
        assert app.title == "Amazon Jobs Monitor"
        assert app.session is None

    @pytest.mark.asyncio
    async def test_invalid_start_shows_errors(self):
        """Starting with empty fields shows errors and sends nothing."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"isRunning": False})

        async with httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url="http://test"
        ) as http_client:
            session = MonitorClientSession(
                settings=ClientSettings(),
                http_client=http_client,
                connector=FakeConnector([]),
                scheduler=ManualScheduler(),
            )
            app = MonitorTUI(session=session)

            async with app.run_test() as pilot:
                await pilot.pause()
                await app.action_start()
                await pilot.pause()

                assert session.status_message == "Please fix the errors before starting"
                assert requests == []
                assert app.query_one("#status", StatusWidget).message == (
                    "Please fix the errors before starting"
                )
                await session.close()
