"""
Monitor Ports (Interfaces)

Contracts for the collaborators the control service and the event
channel depend on. Implementations live in the infrastructure and web layers.
"""
from typing import Any, Callable, Protocol, runtime_checkable

from jobs_monitor.domain.entities import MonitorConfig


LogSink = Callable[[str], Any]


@runtime_checkable
class MonitorWorker(Protocol):
    """
    Port for the long-running scraping worker.

    The worker is opaque: it accepts a configuration and a log sink,
    emits log lines while it runs, and can be asked to stop.
    """

    async def start(self, config: MonitorConfig, log_sink: LogSink) -> None:
        """Run until stopped. Log lines go to log_sink."""
        ...

    def stop(self) -> None:
        """Signal the worker to terminate; does not wait for teardown."""
        ...

    def is_running(self) -> bool:
        """Whether the worker is currently active."""
        ...


@runtime_checkable
class ChannelTransport(Protocol):
    """
    Port for one bidirectional channel endpoint (a WebSocket connection).
    """

    async def send_text(self, data: str) -> None:
        ...

    async def receive_text(self) -> str:
        ...

    async def close(self, code: int = 1000) -> None:
        ...
