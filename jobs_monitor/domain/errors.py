"""
Monitor Error Types

Categorized errors for the control surface, the event channel,
the client session and the background worker.
"""


class MonitorError(Exception):
    """Base exception for all monitor errors."""
    pass


class ControlError(MonitorError):
    """
    A control request was rejected.

    Returned to the caller synchronously as a 400 response.
    """
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ControlError):
    """Request fields are malformed or empty after filtering."""

    def __init__(self, message: str = "Provide valid Amazon job links and target positions"):
        super().__init__(message)


class AlreadyRunning(ControlError):
    """Start requested while a worker is active."""

    def __init__(self, message: str = "Script is already running"):
        super().__init__(message)


class NotRunning(ControlError):
    """Stop requested while no worker is active."""

    def __init__(self, message: str = "Script is not running"):
        super().__init__(message)


class TransportFailure(MonitorError):
    """
    Sending to or receiving from a channel endpoint failed.

    Isolated per subscriber; never propagated to the publisher.
    """
    pass


class UpstreamTimeout(MonitorError):
    """
    A control request from the client exceeded its deadline.
    """

    def __init__(self, operation: str, timeout: float):
        super().__init__(f"{operation} timed out after {timeout:g}s")
        self.operation = operation
        self.timeout = timeout


class WorkerFailure(MonitorError):
    """
    The background worker raised.

    Surfaced only as a broadcast log line since the start call already returned.
    """
    pass
