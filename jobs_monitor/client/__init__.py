"""
Client side of the monitor: the reconnecting session and its transports.
"""
from .session import MonitorClientSession
from .transport import AiohttpChannelConnector, AsyncioScheduler

__all__ = [
    "MonitorClientSession",
    "AiohttpChannelConnector",
    "AsyncioScheduler",
]
