"""
Client Session

One persistent subscription to the event channel plus the REST control
calls, with the state a UI renders: connection status, run flag,
status line and the append-only log.

Reconnection is driven by the ConnectionState value; timers go through an
injected scheduler so the whole machine can be stepped in tests.
"""
import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from jobs_monitor.config import ClientSettings
from jobs_monitor.domain.entities import ConnectionState, ConnectionStatus, LogEntry
from jobs_monitor.domain.errors import (
    ControlError,
    MonitorError,
    TransportFailure,
    UpstreamTimeout,
)
from jobs_monitor.application.validation import (
    FormValidation,
    filter_positions,
    validate_form,
)
from jobs_monitor.infrastructure.logging import get_logger
from jobs_monitor.infrastructure.resilience import ExponentialBackoff, ReconnectPolicy
from .transport import (
    ABNORMAL_CLOSURE,
    AiohttpChannelConnector,
    AsyncioScheduler,
    ChannelConnection,
    ChannelConnector,
    Scheduler,
    TimerHandle,
)


HEARTBEAT_FRAME = json.dumps({"type": "heartbeat"})
PONG_FRAME = json.dumps({"type": "pong"})

GAVE_UP_MESSAGE = "Failed to connect to WebSocket. Please check if the server is running."
FIX_ERRORS_MESSAGE = "Please fix the errors before starting"


Listener = Callable[["MonitorClientSession"], Any]


class MonitorClientSession:
    """
    Client-side view of the monitor.

    Usage:
        session = MonitorClientSession(ClientSettings.from_env())
        await session.mount()
        await session.start_monitoring(["https://hiring.amazon/..."], ["Engineer"])
        ...
        await session.close()
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        connector: Optional[ChannelConnector] = None,
        scheduler: Optional[Scheduler] = None,
        policy: Optional[ReconnectPolicy] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the session.

        Args:
            settings: Client settings; read from the environment otherwise
            http_client: Client for the REST endpoints (for testing)
            connector: Opens event channel connections (for testing)
            scheduler: Runs delayed callbacks (for testing)
            policy: Reconnect backoff; derived from settings otherwise
            logger: Diagnostic logger
        """
        self._settings = settings or ClientSettings.from_env()
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=self._settings.api_url)
        self._connector = connector or AiohttpChannelConnector()
        self._scheduler = scheduler or AsyncioScheduler()
        self._policy = policy or ReconnectPolicy(
            max_retries=self._settings.max_retries,
            backoff=ExponentialBackoff(
                base_delay=self._settings.backoff_base,
                max_delay=self._settings.backoff_max,
            ),
        )
        self._logger = logger or get_logger("client")

        self._state = ConnectionState(max_retries=self._settings.max_retries)
        self._logs: List[LogEntry] = []
        self._is_running = False
        self._status_message = ""
        self._form = FormValidation(link_errors=(), position_errors=())

        self._connection: Optional[ChannelConnection] = None
        self._reader: Optional[asyncio.Task] = None
        self._heartbeat: Optional[asyncio.Task] = None
        self._retry_handle: Optional[TimerHandle] = None
        self._status_handle: Optional[TimerHandle] = None
        # Bumped whenever a connection is superseded; stale readers compare it
        self._generation = 0
        self._listeners: List[Listener] = []
        self._closed = False

    # ============ Observable state ============

    @property
    def logs(self) -> List[LogEntry]:
        return list(self._logs)

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def is_connected(self) -> bool:
        return self._state.is_connected

    @property
    def connection_state(self) -> ConnectionState:
        return self._state

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def form_errors(self) -> FormValidation:
        return self._form

    def add_listener(self, listener: Listener) -> None:
        """Register a callback invoked after every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                self._logger.exception("Session listener failed")

    def _record(self, message: str) -> None:
        self._logs.append(LogEntry(message))
        self._notify()

    def _set_status(self, message: str) -> None:
        self._status_message = message
        self._notify()

    def clear_logs(self) -> None:
        self._logs.clear()
        self._notify()

    # ============ Lifecycle ============

    async def mount(self) -> None:
        """Open the channel and schedule the first status poll."""
        self._status_handle = self._scheduler.call_later(
            self._settings.initial_status_delay, self.fetch_status
        )
        self._state = self._state.connecting()
        await self._open()

    async def reconnect(self) -> bool:
        """
        Manual reconnect: reset the retry counter and connect now.

        Safe to call in any state, including after the session gave up.
        """
        self._record("🔄 Manual connection check initiated...")
        self._cancel_retry()
        await self._teardown()
        self._state = self._state.manual_reconnect()
        connected = await self._open()
        if not connected:
            await self.fetch_status()
        return connected

    async def close(self) -> None:
        """Cancel every timer and task and release the transports."""
        self._closed = True
        self._cancel_retry()
        if self._status_handle is not None:
            self._status_handle.cancel()
            self._status_handle = None
        await self._teardown()
        self._state = ConnectionState(
            status=ConnectionStatus.DISCONNECTED, max_retries=self._state.max_retries
        )
        if self._owns_http:
            await self._http.aclose()

    # ============ Connection ============

    async def _open(self) -> bool:
        """Attempt one connection; the state is already CONNECTING."""
        if self._closed:
            return False

        self._generation += 1
        generation = self._generation
        self._record(
            f"Connecting to WebSocket (attempt {self._state.retry_count + 1}/"
            f"{self._state.max_retries})..."
        )

        try:
            connection = await self._connector.connect(self._settings.ws_url)
        except TransportFailure as e:
            self._logger.warning("Channel connect failed: %s", e)
            self._record("❌ WebSocket connection error")
            if generation == self._generation:
                self._handle_drop(ABNORMAL_CLOSURE)
            return False

        if generation != self._generation or self._closed:
            await self._close_quietly(connection)
            return False

        self._connection = connection
        self._state = self._state.opened()
        self._set_status("Connected to server")
        self._record("✅ WebSocket connected successfully")

        self._heartbeat = asyncio.create_task(self._heartbeat_loop(connection))
        self._reader = asyncio.create_task(self._read_loop(connection, generation))

        await self.fetch_status()
        return True

    async def _read_loop(self, connection: ChannelConnection, generation: int) -> None:
        try:
            while True:
                raw = await connection.receive_text()
                if raw is None:
                    break
                await self.handle_frame(raw)
        except TransportFailure as e:
            self._logger.warning("Channel receive failed: %s", e)
            self._record("❌ WebSocket connection error")

        if generation != self._generation:
            return

        self._reader = None
        self._connection = None
        self._stop_heartbeat()
        code = connection.close_code
        await self._close_quietly(connection)
        self._handle_drop(code)

    def _handle_drop(self, code: int) -> None:
        """Record the disconnect and schedule the next attempt, if any."""
        self._stop_heartbeat()
        self._state = self._state.dropped()
        delay = self._state.retry_delay(self._policy)
        if delay is None:
            self._set_status(GAVE_UP_MESSAGE)
            self._record(
                f"⚠️ WebSocket disconnected (code: {code}). Gave up after "
                f"{self._state.retry_count} attempts; use Reconnect to try again."
            )
            return

        self._set_status(f"Disconnected from server (code: {code})")
        self._record(
            f"⚠️ WebSocket disconnected (code: {code}). Retrying "
            f"({self._state.retry_count}/{self._state.max_retries})..."
        )
        if not self._closed:
            self._retry_handle = self._scheduler.call_later(delay, self._retry)

    async def _retry(self) -> None:
        self._retry_handle = None
        if self._closed or self._state.status != ConnectionStatus.DISCONNECTED:
            return
        self._state = self._state.connecting()
        await self._open()

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    def _stop_heartbeat(self) -> None:
        if self._heartbeat is not None:
            if self._heartbeat is not asyncio.current_task():
                self._heartbeat.cancel()
            self._heartbeat = None

    async def _teardown(self) -> None:
        """Drop the current connection without scheduling a retry."""
        self._generation += 1
        self._stop_heartbeat()

        reader = self._reader
        self._reader = None
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        connection = self._connection
        self._connection = None
        if connection is not None:
            await self._close_quietly(connection)

    async def _close_quietly(self, connection: ChannelConnection) -> None:
        try:
            await connection.close()
        except Exception as e:
            self._logger.debug("Channel close failed: %s", e)

    async def _heartbeat_loop(self, connection: ChannelConnection) -> None:
        while True:
            await asyncio.sleep(self._settings.heartbeat_interval)
            try:
                await connection.send_text(HEARTBEAT_FRAME)
            except TransportFailure as e:
                self._logger.warning("Heartbeat failed: %s", e)
                return

    async def handle_frame(self, raw: str) -> None:
        """Apply one server frame. Malformed frames are dropped."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            self._logger.warning("Dropping malformed frame: %r", raw)
            return

        if not isinstance(data, dict):
            self._logger.warning("Dropping non-object frame: %r", raw)
            return

        message = data.get("log")
        if isinstance(message, str):
            self._record(message)
            return

        frame_type = data.get("type")
        if frame_type == "ping":
            connection = self._connection
            if connection is not None:
                try:
                    await connection.send_text(PONG_FRAME)
                except TransportFailure as e:
                    self._logger.warning("Pong failed: %s", e)
        elif frame_type == "heartbeat_response":
            self._logger.debug("Heartbeat acknowledged")
        else:
            self._logger.warning("Dropping unknown frame: %r", raw)

    # ============ Control requests ============

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        timeout: float,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Send a control request with a hard deadline.

        Raises:
            UpstreamTimeout: If the deadline passed
            ControlError: If the server rejected the request
            TransportFailure: If the server could not be reached
        """
        try:
            response = await asyncio.wait_for(
                self._http.request(method, path, json=body, timeout=timeout),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise UpstreamTimeout(operation, timeout) from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"{operation} request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.is_error:
            raise ControlError(data.get("message") or f"{operation} failed (HTTP {response.status_code})")
        return data

    async def fetch_status(self) -> Optional[bool]:
        """
        Poll the run flag.

        Returns:
            The run flag, or None if the server could not be asked
        """
        self._record("🔍 Checking server status...")
        try:
            data = await self._request(
                "GET", "/status", "Status check", self._settings.status_timeout
            )
        except MonitorError as e:
            self._set_status("Error connecting to server. Please ensure the backend is running.")
            self._record(f"❌ Error fetching status: {e}")
            return None

        self._is_running = bool(data.get("isRunning"))
        self._record(f"📊 Server status: {'Running' if self._is_running else 'Stopped'}")
        return self._is_running

    async def start_monitoring(self, links: Sequence[str], positions: Sequence[str]) -> bool:
        """
        Validate the form and ask the server to start.

        Invalid input never reaches the server.
        """
        self._form = validate_form(links, positions, self._settings.link_prefix)
        if not self._form.is_valid:
            self._set_status(FIX_ERRORS_MESSAGE)
            return False

        job_links = [link.strip() for link in links if link.strip()]
        target_positions = filter_positions(positions)
        if not job_links:
            self._set_status("Please add at least one Amazon job link")
            return False
        if not target_positions:
            self._set_status("Please add at least one position to monitor")
            return False

        self._set_status("Starting job monitor...")
        self._record(
            f"🚀 Attempting to start monitoring with {len(job_links)} links "
            f"and {len(target_positions)} positions..."
        )
        try:
            await self._request(
                "POST",
                "/start",
                "Start",
                self._settings.control_timeout,
                body={"links": job_links, "positions": target_positions},
            )
        except MonitorError as e:
            self._set_status(f"Error: {e}")
            self._record(f"❌ Error starting monitoring: {e}")
            return False

        self._is_running = True
        self._set_status("Job monitoring started")
        self._record(
            f"✅ Monitoring started with {len(job_links)} links "
            f"and {len(target_positions)} positions"
        )
        return True

    async def stop_monitoring(self) -> bool:
        """Ask the server to stop the monitor."""
        self._set_status("Stopping job monitor...")
        self._record("🛑 Attempting to stop monitoring...")
        try:
            await self._request("POST", "/stop", "Stop", self._settings.control_timeout)
        except MonitorError as e:
            self._set_status(f"Error: {e}")
            self._record(f"❌ Error stopping monitoring: {e}")
            return False

        self._is_running = False
        self._set_status("Job monitoring stopped")
        self._record("✅ Monitoring stopped successfully")
        return True
