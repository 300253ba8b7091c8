# Domain Layer
"""
Domain layer containing:
- Entities: Log entries, monitor configuration, run and connection state
- Errors: Categorized exceptions for control, transport and worker failures
- Ports: Protocols for the worker and channel transports
"""
from .entities import (
    LogEntry,
    MonitorConfig,
    RunState,
    RunStatus,
    ConnectionStatus,
    ConnectionState,
)
from .errors import (
    MonitorError,
    ControlError,
    InvalidInput,
    AlreadyRunning,
    NotRunning,
    TransportFailure,
    UpstreamTimeout,
    WorkerFailure,
)
from .ports import MonitorWorker, ChannelTransport, LogSink

__all__ = [
    'LogEntry',
    'MonitorConfig',
    'RunState',
    'RunStatus',
    'ConnectionStatus',
    'ConnectionState',
    'MonitorError',
    'ControlError',
    'InvalidInput',
    'AlreadyRunning',
    'NotRunning',
    'TransportFailure',
    'UpstreamTimeout',
    'WorkerFailure',
    'MonitorWorker',
    'ChannelTransport',
    'LogSink',
]
