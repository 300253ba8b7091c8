"""
Domain Entities

Core objects shared by the backend and the client session.
Immutable where the lifecycle allows it; state transitions return new instances.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple


def _local_time() -> str:
    return datetime.now().strftime("%H:%M:%S")


@dataclass(frozen=True)
class LogEntry:
    """
    Immutable log line as rendered by a client session.

    Value Object: Identity is defined by all its attributes.
    """
    message: str
    timestamp: str = field(default_factory=_local_time)


@dataclass(frozen=True)
class MonitorConfig:
    """
    Configuration handed to the worker for a single monitoring run.

    Built once per start request from validated input and discarded on stop.
    """
    target_url: str
    target_positions: Tuple[str, ...]
    refresh_interval_ms: int = 30000
    profile_selectors: Tuple[str, ...] = ("Profile 11",)

    def __post_init__(self):
        if not self.target_url:
            raise ValueError("target_url is required")
        if not self.target_positions:
            raise ValueError("at least one target position is required")
        if self.refresh_interval_ms <= 0:
            raise ValueError("refresh_interval_ms must be positive")

    @classmethod
    def build(
        cls,
        target_url: str,
        target_positions: Sequence[str],
        refresh_interval_ms: int = 30000,
        profile_selectors: Sequence[str] = ("Profile 11",),
    ) -> 'MonitorConfig':
        """Create a config from plain sequences."""
        return cls(
            target_url=target_url,
            target_positions=tuple(target_positions),
            refresh_interval_ms=refresh_interval_ms,
            profile_selectors=tuple(profile_selectors),
        )

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_interval_ms / 1000

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "target_url": self.target_url,
            "target_positions": list(self.target_positions),
            "refresh_interval_ms": self.refresh_interval_ms,
            "profile_selectors": list(self.profile_selectors),
        }


@dataclass
class RunState:
    """
    Process-wide run flag for the monitor.

    Only the control service mutates it. At most one worker is active.
    """
    is_running: bool = False
    config: Optional[MonitorConfig] = None
    started_at: Optional[datetime] = None

    def mark_started(self, config: MonitorConfig) -> None:
        self.is_running = True
        self.config = config
        self.started_at = datetime.now()

    def mark_stopped(self) -> None:
        self.is_running = False
        self.config = None
        self.started_at = None


@dataclass(frozen=True)
class RunStatus:
    """Snapshot of the run state returned by status queries."""
    is_running: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"isRunning": self.is_running}


class ConnectionStatus(Enum):
    """
    Lifecycle states of a client's event channel connection.
    """
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    GAVE_UP = "gave_up"


@dataclass(frozen=True)
class ConnectionState:
    """
    Reconnection state machine value.

    Every transition returns a new instance; nothing here touches timers,
    so the machine can be driven step by step in tests.
    """
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    retry_count: int = 0
    max_retries: int = 10

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED

    @property
    def gave_up(self) -> bool:
        return self.status == ConnectionStatus.GAVE_UP

    def connecting(self) -> 'ConnectionState':
        """Begin a connection attempt."""
        if self.status == ConnectionStatus.GAVE_UP:
            raise ValueError("Retry ceiling reached; use manual_reconnect()")
        return replace(self, status=ConnectionStatus.CONNECTING)

    def opened(self) -> 'ConnectionState':
        """Channel opened; the retry counter starts over."""
        return replace(self, status=ConnectionStatus.CONNECTED, retry_count=0)

    def dropped(self) -> 'ConnectionState':
        """Channel closed or failed to open."""
        if self.status == ConnectionStatus.GAVE_UP:
            return self
        retry_count = self.retry_count + 1
        if retry_count >= self.max_retries:
            return replace(self, status=ConnectionStatus.GAVE_UP, retry_count=retry_count)
        return replace(self, status=ConnectionStatus.DISCONNECTED, retry_count=retry_count)

    def manual_reconnect(self) -> 'ConnectionState':
        """User-requested reconnect: reset the counter and connect now."""
        return replace(self, status=ConnectionStatus.CONNECTING, retry_count=0)

    def retry_delay(self, policy) -> Optional[float]:
        """
        Seconds to wait before the next automatic attempt.

        Args:
            policy: Object exposing delay_for(retry_count)

        Returns:
            Delay in seconds, or None once the machine gave up
        """
        if self.status == ConnectionStatus.GAVE_UP:
            return None
        return policy.delay_for(self.retry_count)
