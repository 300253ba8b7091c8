"""
Client transports.

aiohttp-based WebSocket connection to the event channel and the asyncio
scheduler used for reconnect and status timers.
"""
import asyncio
from typing import Any, Awaitable, Callable, Optional, Protocol, Set, Union

import aiohttp

from jobs_monitor.domain.errors import TransportFailure


ABNORMAL_CLOSURE = 1006


class ChannelConnection(Protocol):
    """An open client-side channel."""

    @property
    def close_code(self) -> int:
        ...

    async def send_text(self, data: str) -> None:
        ...

    async def receive_text(self) -> Optional[str]:
        """Next text frame, or None once the channel closed."""
        ...

    async def close(self) -> None:
        ...


class ChannelConnector(Protocol):
    """Opens channel connections."""

    async def connect(self, url: str) -> ChannelConnection:
        ...


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Runs a callback after a delay; the handle cancels it."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle:
        ...


class AiohttpChannelConnection:
    """Wraps an aiohttp WebSocket response."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse, session: aiohttp.ClientSession):
        self._ws = ws
        self._session = session

    @property
    def close_code(self) -> int:
        return self._ws.close_code if self._ws.close_code is not None else ABNORMAL_CLOSURE

    async def send_text(self, data: str) -> None:
        try:
            await self._ws.send_str(data)
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            raise TransportFailure(f"Send failed: {e}") from e

    async def receive_text(self) -> Optional[str]:
        while True:
            msg = await self._ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                return msg.data
            if msg.type in (
                aiohttp.WSMsgType.CLOSE,
                aiohttp.WSMsgType.CLOSING,
                aiohttp.WSMsgType.CLOSED,
            ):
                return None
            if msg.type == aiohttp.WSMsgType.ERROR:
                raise TransportFailure(f"Channel error: {self._ws.exception()}")
            # Binary and control frames carry nothing for us

    async def close(self) -> None:
        try:
            await self._ws.close()
        finally:
            await self._session.close()


class AiohttpChannelConnector:
    """Opens WebSocket connections with aiohttp."""

    def __init__(self, connect_timeout: float = 10.0):
        self._connect_timeout = connect_timeout

    async def connect(self, url: str) -> AiohttpChannelConnection:
        """
        Open a WebSocket to url.

        Raises:
            TransportFailure: If the connection cannot be established
        """
        session = aiohttp.ClientSession()
        try:
            ws = await asyncio.wait_for(session.ws_connect(url), timeout=self._connect_timeout)
        except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
            await session.close()
            raise TransportFailure(f"Cannot connect to {url}: {e}") from e
        return AiohttpChannelConnection(ws, session)


class AsyncioScheduler:
    """Scheduler backed by the running event loop."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def call_later(
        self,
        delay: float,
        callback: Callable[[], Union[Awaitable[Any], Any]],
    ) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()

        def fire():
            result = callback()
            if asyncio.iscoroutine(result):
                task = loop.create_task(result)
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

        return loop.call_later(delay, fire)
