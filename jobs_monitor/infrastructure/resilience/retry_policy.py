"""
Retry Policy Implementation

Provides backoff calculation for client reconnection and
retry logic for the worker's page fetches.
"""
import asyncio
import random
from dataclasses import dataclass, field
from typing import Optional, Callable, Any, Set, Type


class RetryExhaustedError(Exception):
    """Raised when all retry attempts have been exhausted."""

    def __init__(
        self,
        message: str,
        attempts: int,
        last_exception: Optional[Exception] = None,
    ):
        self.message = message
        self.attempts = attempts
        self.last_exception = last_exception
        super().__init__(message)


@dataclass(frozen=True)
class ExponentialBackoff:
    """
    Exponential backoff configuration.

    Calculates delay as: base_delay * (multiplier ^ attempt) + jitter
    """
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 30.0
    jitter: float = 0.0  # Random factor (0-1)

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay for given attempt number.

        Args:
            attempt: Attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = self.base_delay * (self.multiplier ** attempt)
        delay = min(delay, self.max_delay)

        if self.jitter > 0:
            jitter_range = delay * self.jitter
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0, delay)


@dataclass(frozen=True)
class ReconnectPolicy:
    """
    Backoff schedule for a client's event channel.

    Retry n (1-indexed) waits min(base * 2^(n-1), cap) seconds.
    No automatic retry is scheduled once max_retries is reached.
    """
    max_retries: int = 10
    backoff: ExponentialBackoff = field(default_factory=ExponentialBackoff)

    def delay_for(self, retry_count: int) -> Optional[float]:
        """
        Delay before retry number retry_count.

        Returns:
            Delay in seconds, or None when the ceiling is reached
        """
        if retry_count < 1:
            return 0.0
        if retry_count >= self.max_retries:
            return None
        return self.backoff.get_delay(retry_count - 1)


@dataclass
class RetryPolicy:
    """
    Configurable retry policy with backoff support.

    Usage:
        policy = RetryPolicy(max_attempts=3)

        async def risky_call():
            return await http_client.get(url)

        result = await policy.execute(risky_call)
    """
    max_attempts: int = 3
    backoff: ExponentialBackoff = field(default_factory=ExponentialBackoff)
    retryable_exceptions: Set[Type[Exception]] = field(
        default_factory=lambda: {Exception}
    )
    non_retryable_exceptions: Set[Type[Exception]] = field(default_factory=set)
    on_retry: Optional[Callable[[int, Exception, float], Any]] = None

    def should_retry(self, exception: Exception) -> bool:
        """
        Determine if the exception should trigger a retry.

        Args:
            exception: The exception that occurred

        Returns:
            True if should retry, False otherwise
        """
        # Non-retryable has higher priority
        for non_retryable in self.non_retryable_exceptions:
            if isinstance(exception, non_retryable):
                return False

        for retryable in self.retryable_exceptions:
            if isinstance(exception, retryable):
                return True

        return False

    async def execute(
        self,
        func: Callable,
        *args,
        **kwargs,
    ) -> Any:
        """
        Execute function with retry logic.

        Args:
            func: Async function to execute
            *args: Positional arguments
            **kwargs: Keyword arguments

        Returns:
            Result from successful execution

        Raises:
            RetryExhaustedError: If all attempts fail
        """
        last_exception: Optional[Exception] = None

        for attempt in range(self.max_attempts):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                last_exception = e

                if not self.should_retry(e):
                    raise

                if attempt < self.max_attempts - 1:
                    delay = self.backoff.get_delay(attempt)

                    if self.on_retry:
                        callback_result = self.on_retry(attempt + 1, e, delay)
                        if asyncio.iscoroutine(callback_result):
                            await callback_result

                    await asyncio.sleep(delay)

        raise RetryExhaustedError(
            f"Retry exhausted after {self.max_attempts} attempts",
            attempts=self.max_attempts,
            last_exception=last_exception,
        )
