"""Retry Handler Utility

Implements bounded retries for transient provider failures.

Features:
- Exponential, linear or fixed backoff from a base delay
- A fresh timeout envelope for every attempt
- Respects retry-after hints from rate limit errors
- Per-attempt callback for instrumentation
- Built-in structured logging for observability
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from chatdelta.models.config import ClientConfig, RetryStrategy
from chatdelta.services.llm.exceptions import (
    LLMProviderError,
    ProviderTimeoutError,
    RateLimitError,
)

logger = structlog.get_logger(__name__)


T = TypeVar("T")

# (attempt_index, result, error, latency_ms)
AttemptCallback = Callable[[int, Any, Optional[Exception], float], None]


def is_retryable(error: Exception) -> bool:
    """Whether an error should trigger another attempt."""
    return isinstance(error, LLMProviderError) and error.retryable


class RetryHandler:
    """Async retry handler with strategy-shaped backoff.

    Delay between attempt k and k+1 (k is 0-indexed):
    - Exponential: base * 2^k
    - Linear: base * (k + 1)
    - Fixed: base

    The configured timeout applies to each attempt separately, so the
    worst case wall time is ``(retries + 1) * timeout`` plus the delays.
    """

    def __init__(self, config: ClientConfig) -> None:
        """Initialize retry handler with configuration.

        Args:
            config: Client configuration with timeout, retries and strategy
        """
        self.config = config

    def calculate_delay(
        self, attempt: int, retry_after: Optional[float] = None
    ) -> float:
        """Calculate delay before the attempt following ``attempt``.

        If retry_after is provided (e.g., from rate limit headers),
        it is used instead of the strategy delay.

        Args:
            attempt: Attempt number that just failed (0-indexed)
            retry_after: Optional retry-after value from error

        Returns:
            Delay in seconds to wait before next attempt
        """
        if retry_after is not None and retry_after > 0:
            return retry_after

        base = self.config.retry_base_delay_seconds
        strategy = self.config.retry_strategy
        if strategy == RetryStrategy.EXPONENTIAL:
            return base * (2**attempt)
        if strategy == RetryStrategy.LINEAR:
            return base * (attempt + 1)
        return base

    async def execute(
        self,
        func: Callable[[], Awaitable[T]],
        on_attempt: Optional[AttemptCallback] = None,
    ) -> T:
        """Execute function with timeout and retry logic.

        Args:
            func: Async function to execute; called once per attempt
            on_attempt: Optional callback invoked after every attempt with
                (attempt_index, result, error, latency_ms)

        Returns:
            Result of successful function execution

        Raises:
            LLMProviderError: The last error if it is not retryable or
                all attempts are exhausted
        """
        max_attempts = self.config.max_attempts
        timeout = self.config.timeout_seconds

        for attempt in range(max_attempts):
            start = time.monotonic()
            try:
                result = await asyncio.wait_for(func(), timeout=timeout)
            except asyncio.TimeoutError:
                error: Exception = ProviderTimeoutError(timeout_seconds=timeout)
            except LLMProviderError as e:
                error = e
            else:
                if on_attempt is not None:
                    on_attempt(attempt, result, None, _elapsed_ms(start))
                return result

            if on_attempt is not None:
                on_attempt(attempt, None, error, _elapsed_ms(start))

            if not is_retryable(error) or attempt + 1 >= max_attempts:
                raise error

            retry_after = None
            if isinstance(error, RateLimitError) and error.retry_after is not None:
                retry_after = error.retry_after

            delay = self.calculate_delay(attempt, retry_after)

            logger.warning(
                "retry_attempt",
                attempt=attempt + 1,
                max_attempts=max_attempts,
                error_type=type(error).__name__,
                error_message=str(error),
                delay_seconds=delay,
                retry_after=retry_after,
            )

            await asyncio.sleep(delay)

        raise RuntimeError(  # pragma: no cover
            "Retry loop completed without result or exception"
        )


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000

