"""Structured logging and the broadcast log sink."""
from .monitor_logger import (
    ROOT_LOGGER_NAME,
    BroadcastLogHandler,
    HumanFormatter,
    JSONFormatter,
    StructuredLogEntry,
    attach_broadcast_sink,
    configure_logging,
    detach_broadcast_sink,
    get_logger,
)

__all__ = [
    "ROOT_LOGGER_NAME",
    "BroadcastLogHandler",
    "HumanFormatter",
    "JSONFormatter",
    "StructuredLogEntry",
    "attach_broadcast_sink",
    "configure_logging",
    "detach_broadcast_sink",
    "get_logger",
]
