"""
Tests for the monitor's REST endpoints and WebSocket channel.
"""
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from jobs_monitor.application.services import MonitorControlService
from jobs_monitor.config import MonitorSettings
from jobs_monitor.domain.errors import AlreadyRunning
from jobs_monitor.web.api import MonitorAPI, create_app
from jobs_monitor.web.broadcast import WELCOME_MESSAGE
from tests.utils.monitor_test_helpers import FakeWorker


VALID_BODY = {"links": ["https://hiring.amazon/x"], "positions": ["Engineer"]}


@pytest.fixture
def settings():
    return MonitorSettings(refresh_interval_ms=1000, ping_interval=3600)


@pytest.fixture
def service():
    return MonitorControlService(FakeWorker(), refresh_interval_ms=1000)


class TestControlEndpoints:
    """Tests for REST control endpoints."""
    pytestmark = pytest.mark.asyncio

    @pytest.fixture
    def app(self, service, settings):
        """Create test application."""
        return create_app(service=service, settings=settings)

    @pytest_asyncio.fixture
    async def client(self, app, service):
        """Create async test client."""
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
        await service.shutdown()

    async def test_root_banner(self, client):
        """GET / should return the plain text banner."""
        response = await client.get("/")
        assert response.status_code == 200
        assert response.text == "Amazon Jobs Monitor Backend"

    async def test_status_idle(self, client):
        """GET /status should report not running."""
        response = await client.get("/status")
        assert response.status_code == 200
        assert response.json() == {"isRunning": False}

    async def test_start_success(self, client):
        """POST /start should acknowledge with the config."""
        response = await client.post("/start", json=VALID_BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Script started"
        assert data["config"]["target_url"] == "https://hiring.amazon/x"
        assert data["config"]["target_positions"] == ["Engineer"]
        assert data["config"]["refresh_interval_ms"] == 1000

        status = await client.get("/status")
        assert status.json() == {"isRunning": True}

    async def test_start_twice(self, client):
        """Second POST /start should return 400 already running."""
        await client.post("/start", json=VALID_BODY)
        response = await client.post("/start", json=VALID_BODY)

        assert response.status_code == 400
        assert response.json() == {"message": "Script is already running"}

    @pytest.mark.parametrize(
        "body",
        [
            {"links": "https://hiring.amazon/x", "positions": ["Engineer"]},
            {"links": ["https://hiring.amazon/x"]},
            {},
        ],
    )
    async def test_start_invalid_format(self, client, body):
        """Malformed bodies should return 400 invalid input format."""
        response = await client.post("/start", json=body)

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid input format"}

    async def test_start_invalid_input(self, client):
        """Links on other sites should be rejected."""
        response = await client.post(
            "/start",
            json={"links": ["https://careers.other.com/x"], "positions": ["Engineer"]},
        )

        assert response.status_code == 400
        assert response.json() == {
            "message": "Provide valid Amazon job links and target positions"
        }

    async def test_stop_not_running(self, client):
        """POST /stop without a run should return 400."""
        response = await client.post("/stop")

        assert response.status_code == 400
        assert response.json() == {"message": "Script is not running"}

    async def test_start_then_stop(self, client):
        """POST /stop after start should acknowledge."""
        await client.post("/start", json=VALID_BODY)
        response = await client.post("/stop")

        assert response.status_code == 200
        assert response.json() == {"message": "Script stopped"}
        assert (await client.get("/status")).json() == {"isRunning": False}


class TestUnexpectedErrors:
    """Tests for the 500 path."""
    pytestmark = pytest.mark.asyncio

    @pytest_asyncio.fixture
    async def client(self, settings):
        mock_service = MagicMock()
        mock_service.start = AsyncMock(side_effect=RuntimeError("worker unavailable"))
        mock_service.shutdown = AsyncMock()
        app = create_app(service=mock_service, settings=settings)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client

    async def test_start_unexpected_error(self, client):
        """Unexpected errors should return 500 with the error text."""
        response = await client.post("/start", json=VALID_BODY)

        assert response.status_code == 500
        assert response.json() == {
            "message": "Error starting script",
            "error": "worker unavailable",
        }


class TestMonitorAPI:
    """Tests for the API orchestrator."""

    def test_default_wiring(self, settings):
        """MonitorAPI should build its own service and channel."""
        api = MonitorAPI(settings=settings)

        assert api.settings is settings
        assert not api.service.is_running
        assert api.channel.subscriber_count == 0

    def test_app_state(self, service, settings):
        """create_app should expose the orchestrator."""
        app = create_app(service=service, settings=settings)
        assert isinstance(app.state.api, MonitorAPI)
        assert app.state.api.service is service

    def test_control_error_mapping(self):
        """ControlError subclasses carry a 400 status."""
        assert AlreadyRunning().status_code == 400


class TestEventChannelEndpoint:
    """Tests for the /ws channel through the full app lifecycle."""

    def test_welcome_and_heartbeat(self, service, settings):
        """Clients get the welcome frame and heartbeat answers."""
        app = create_app(service=service, settings=settings)

        with TestClient(app) as client:
            with client.websocket_connect("/ws") as ws:
                assert ws.receive_json() == {"log": WELCOME_MESSAGE}

                ws.send_json({"type": "heartbeat"})
                assert ws.receive_json() == {"type": "heartbeat_response"}

                ws.send_text("not json")
                ws.send_json({"type": "heartbeat"})
                assert ws.receive_json() == {"type": "heartbeat_response"}

    def test_control_logs_are_broadcast(self, service, settings):
        """Start and stop log lines reach connected clients in order."""
        app = create_app(service=service, settings=settings)

        with TestClient(app) as client:
            with client.websocket_connect("/ws") as ws:
                assert ws.receive_json() == {"log": WELCOME_MESSAGE}

                assert client.post("/start", json=VALID_BODY).status_code == 200
                assert ws.receive_json() == {
                    "log": "🚀 Starting with job link: https://hiring.amazon/x"
                }
                assert ws.receive_json() == {"log": "🔍 Looking for positions: Engineer"}

                assert client.post("/stop").status_code == 200
                assert ws.receive_json() == {"log": "🛑 Script stopped"}

    def test_worker_failure_broadcast(self, settings):
        """Worker exceptions reach clients as ERROR lines."""
        service = MonitorControlService(FakeWorker(fail_with=RuntimeError("browser crashed")))
        app = create_app(service=service, settings=settings)

        with TestClient(app) as client:
            with client.websocket_connect("/ws") as ws:
                ws.receive_json()
                client.post("/start", json=VALID_BODY)

                messages = [ws.receive_json()["log"] for _ in range(3)]

                assert messages[-1] == "ERROR: Monitor jobs error: browser crashed"
                assert client.get("/status").json() == {"isRunning": False}
