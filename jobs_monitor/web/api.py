"""
Web API - FastAPI control surface for the Amazon Jobs Monitor

Provides endpoints for:
- Monitor control (start, stop)
- Status polling
- A WebSocket event channel streaming log lines in real time
"""
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()
from typing import Optional, List, Dict, Any
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from jobs_monitor import __version__
from jobs_monitor.application.services import MonitorControlService
from jobs_monitor.config import MonitorSettings
from jobs_monitor.domain.errors import ControlError
from jobs_monitor.infrastructure.logging import (
    BroadcastLogHandler,
    attach_broadcast_sink,
    detach_broadcast_sink,
    get_logger,
)
from jobs_monitor.infrastructure.workers import HiringPageMonitor
from jobs_monitor.web.broadcast import CHANNEL_LOGGER_NAME, EventBroadcastChannel


BANNER = "Amazon Jobs Monitor Backend"
INVALID_FORMAT_MESSAGE = "Invalid input format"

logger = get_logger("api")


# Pydantic models for API request/response
class StartRequest(BaseModel):
    """Request model for starting the monitor."""
    links: List[str] = Field(..., description="Amazon hiring job links")
    positions: List[str] = Field(..., description="Target position names")


class StartResponse(BaseModel):
    """Response model for a successful start."""
    message: str
    config: Dict[str, Any]


class MessageResponse(BaseModel):
    """Response model for stop and rejected requests."""
    message: str


class StatusResponse(BaseModel):
    """Response model for status endpoint."""
    isRunning: bool


class ErrorResponse(BaseModel):
    """Response model for unexpected start failures."""
    message: str
    error: str


class MonitorAPI:
    """
    Orchestrator class for the Web API.

    Owns the control service and the event channel, and wires the
    namespace logger into the channel for the lifetime of the app.
    """

    def __init__(
        self,
        service: Optional[MonitorControlService] = None,
        channel: Optional[EventBroadcastChannel] = None,
        settings: Optional[MonitorSettings] = None,
    ):
        self._settings = settings or MonitorSettings.from_env()
        self._service = service or MonitorControlService(
            worker=HiringPageMonitor(request_timeout=self._settings.request_timeout),
            link_prefix=self._settings.link_prefix,
            refresh_interval_ms=self._settings.refresh_interval_ms,
            profile_selectors=self._settings.profile_selectors,
        )
        self._channel = channel or EventBroadcastChannel(
            ping_interval=self._settings.ping_interval,
            queue_size=self._settings.subscriber_queue_size,
        )
        self._log_handler: Optional[BroadcastLogHandler] = None

    @property
    def service(self) -> MonitorControlService:
        return self._service

    @property
    def channel(self) -> EventBroadcastChannel:
        return self._channel

    @property
    def settings(self) -> MonitorSettings:
        return self._settings

    async def startup(self):
        """Attach the broadcast sink and start the liveness timer."""
        self._log_handler = attach_broadcast_sink(
            self._channel.publish,
            exclude=[CHANNEL_LOGGER_NAME],
        )
        await self._channel.start()
        logger.info("Monitor API started", extra={"broadcast": False})

    async def shutdown(self):
        """Stop the worker, close subscribers and clear every timer."""
        await self._service.shutdown()
        await self._channel.stop()
        if self._log_handler is not None:
            detach_broadcast_sink(self._log_handler)
            self._log_handler = None
        logger.info("Monitor API stopped")


def create_app(
    service: Optional[MonitorControlService] = None,
    channel: Optional[EventBroadcastChannel] = None,
    settings: Optional[MonitorSettings] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        service: Optional pre-configured control service (for testing)
        channel: Optional pre-configured event channel (for testing)
        settings: Optional settings; read from the environment otherwise

    Returns:
        Configured FastAPI application
    """
    api = MonitorAPI(service=service, channel=channel, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle."""
        await api.startup()
        yield
        await api.shutdown()

    app = FastAPI(
        title="Amazon Jobs Monitor API",
        description="REST and WebSocket API for controlling the Amazon jobs monitor",
        version=__version__,
        lifespan=lifespan,
    )

    # Store API instance in app state
    app.state.api = api

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(api.settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============ Error Handlers ============

    @app.exception_handler(ControlError)
    async def control_error_handler(request: Request, exc: ControlError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.debug("Rejected request body: %s", exc.errors(), extra={"broadcast": False})
        return JSONResponse(status_code=400, content={"message": INVALID_FORMAT_MESSAGE})

    # ============ API Endpoints ============

    @app.get("/", response_class=PlainTextResponse, tags=["Health"])
    async def root():
        """Liveness banner."""
        return BANNER

    @app.post(
        "/start",
        response_model=StartResponse,
        responses={400: {"model": MessageResponse}, 500: {"model": ErrorResponse}},
        tags=["Control"],
    )
    async def start_monitor(request: StartRequest):
        """Start the monitor with the first valid job link."""
        try:
            config = await api.service.start(request.links, request.positions)
        except ControlError:
            raise
        except Exception as e:
            logger.exception("Error starting script")
            return JSONResponse(
                status_code=500,
                content={"message": "Error starting script", "error": str(e)},
            )

        return StartResponse(message="Script started", config=config.to_dict())

    @app.post(
        "/stop",
        response_model=MessageResponse,
        responses={400: {"model": MessageResponse}},
        tags=["Control"],
    )
    async def stop_monitor():
        """Signal the running monitor to stop."""
        await api.service.stop()
        return MessageResponse(message="Script stopped")

    @app.get("/status", response_model=StatusResponse, tags=["Control"])
    async def get_status():
        """Current run state."""
        return StatusResponse(**api.service.status().to_dict())

    # ============ Event Channel ============

    @app.websocket("/ws")
    async def event_channel(websocket: WebSocket):
        """Stream log lines to the client until it disconnects."""
        await websocket.accept()
        await api.channel.serve(websocket)

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the web server."""
    import uvicorn
    settings = MonitorSettings.from_env()
    app = create_app(settings=settings)
    uvicorn.run(app, host=host or settings.host, port=port or settings.port)


if __name__ == "__main__":
    run_server()
