"""
Resilience patterns.

Provides:
- Exponential backoff
- Reconnect schedule for client sessions
- Retry policies
"""
from .retry_policy import (
    ExponentialBackoff,
    ReconnectPolicy,
    RetryPolicy,
    RetryExhaustedError,
)

__all__ = [
    "ExponentialBackoff",
    "ReconnectPolicy",
    "RetryPolicy",
    "RetryExhaustedError",
]
