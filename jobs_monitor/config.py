"""
Monitor configuration and settings.

Centralizes configuration for the backend and the client session,
including default values and environment variables.
"""
from dataclasses import dataclass
from typing import Optional, Tuple, Dict, Any
import os


HIRING_LINK_PREFIX = "https://hiring.amazon"


def _env_list(name: str, default: str) -> Tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class MonitorSettings:
    """Configuration for the backend server."""

    # Server
    host: str = "0.0.0.0"
    port: int = 8002
    cors_origins: Tuple[str, ...] = ("*",)

    # Input validation
    link_prefix: str = HIRING_LINK_PREFIX

    # Worker defaults
    refresh_interval_ms: int = 30000
    profile_selectors: Tuple[str, ...] = ("Profile 11",)
    request_timeout: float = 30.0

    # Event channel
    ping_interval: float = 30.0
    subscriber_queue_size: int = 1000

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'MonitorSettings':
        """Create settings from environment variables."""
        return cls(
            host=os.getenv("MONITOR_HOST", "0.0.0.0"),
            port=int(os.getenv("MONITOR_PORT", "8002")),
            cors_origins=_env_list("MONITOR_CORS_ORIGINS", "*"),
            link_prefix=os.getenv("MONITOR_LINK_PREFIX", HIRING_LINK_PREFIX),
            refresh_interval_ms=int(os.getenv("MONITOR_REFRESH_INTERVAL_MS", "30000")),
            profile_selectors=_env_list("MONITOR_PROFILES", "Profile 11"),
            request_timeout=float(os.getenv("MONITOR_REQUEST_TIMEOUT", "30")),
            ping_interval=float(os.getenv("MONITOR_PING_INTERVAL", "30")),
            subscriber_queue_size=int(os.getenv("MONITOR_SUBSCRIBER_QUEUE_SIZE", "1000")),
            log_level=os.getenv("MONITOR_LOG_LEVEL", "INFO"),
            log_json=_env_bool("MONITOR_LOG_JSON", "false"),
            log_file=os.getenv("MONITOR_LOG_FILE") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "host": self.host,
            "port": self.port,
            "cors_origins": list(self.cors_origins),
            "link_prefix": self.link_prefix,
            "refresh_interval_ms": self.refresh_interval_ms,
            "profile_selectors": list(self.profile_selectors),
            "ping_interval": self.ping_interval,
            "log_level": self.log_level,
        }


@dataclass(frozen=True)
class ClientSettings:
    """Configuration for a client session."""

    api_url: str = "http://localhost:8002"
    ws_url: str = "ws://localhost:8002/ws"
    link_prefix: str = HIRING_LINK_PREFIX

    # Reconnection
    max_retries: int = 10
    backoff_base: float = 1.0   # Seconds
    backoff_max: float = 30.0   # Seconds
    heartbeat_interval: float = 30.0
    initial_status_delay: float = 3.0

    # Request deadlines
    status_timeout: float = 5.0
    control_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> 'ClientSettings':
        """Create settings from environment variables."""
        api_url = os.getenv("MONITOR_API_URL", "http://localhost:8002").rstrip("/")
        default_ws = api_url.replace("https://", "wss://", 1).replace("http://", "ws://", 1) + "/ws"
        return cls(
            api_url=api_url,
            ws_url=os.getenv("MONITOR_WS_URL", default_ws),
            link_prefix=os.getenv("MONITOR_LINK_PREFIX", HIRING_LINK_PREFIX),
            max_retries=int(os.getenv("MONITOR_MAX_RETRIES", "10")),
            heartbeat_interval=float(os.getenv("MONITOR_HEARTBEAT_INTERVAL", "30")),
            status_timeout=float(os.getenv("MONITOR_STATUS_TIMEOUT", "5")),
            control_timeout=float(os.getenv("MONITOR_CONTROL_TIMEOUT", "10")),
        )
