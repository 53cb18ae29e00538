"""
Retry helpers: the live channel's reconnect policy and a generic async retry.
"""

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from ffms.errors import (
    AuthenticationError,
    ConfigurationError,
    FFMSError,
    ProtocolError,
    RetryExhaustedError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger("ffms")

T = TypeVar("T")


@dataclass
class ReconnectPolicy:
    """Delay policy for re-opening the live channel after it closes."""

    delay_ms: int = 5000
    """Delay before the first reconnect attempt (default: 5s)."""

    max_attempts: Optional[int] = None
    """Maximum consecutive attempts without a successful open. None means unbounded."""

    backoff_multiplier: float = 1.0
    """Growth factor applied per attempt. 1.0 keeps the delay fixed."""

    max_delay_ms: int = 60000
    """Upper bound for the delay once backoff is applied."""

    jitter_factor: float = 0.0
    """Jitter factor 0-1 to randomize delays."""

    def delay_for(self, attempt: int) -> float:
        """
        Calculate the delay before a reconnect attempt.

        Args:
            attempt: Consecutive attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        exponent = attempt
        if self.backoff_multiplier > 1.0 and self.delay_ms > 0:
            # stop growing once the cap is reached; larger exponents overflow
            ratio = max(self.max_delay_ms, self.delay_ms) / self.delay_ms
            exponent = min(attempt, math.ceil(math.log(ratio, self.backoff_multiplier)))

        delay = self.delay_ms * (self.backoff_multiplier**exponent)

        if self.backoff_multiplier != 1.0:
            delay = min(delay, self.max_delay_ms)

        if self.jitter_factor:
            delay += delay * self.jitter_factor * (random.random() * 2 - 1)

        return max(0.0, delay) / 1000.0

    def allows(self, attempt: int) -> bool:
        """Check whether another reconnect attempt is permitted."""
        return self.max_attempts is None or attempt < self.max_attempts


@dataclass
class RetryConfig:
    """Configuration for retry_async."""

    max_retries: int = 3
    """Number of attempts before giving up."""

    delay_ms: int = 1000
    """Fixed delay between attempts in milliseconds."""


DEFAULT_RETRY_CONFIG = RetryConfig()

_NON_RETRYABLE = (
    AuthenticationError,
    ConfigurationError,
    ProtocolError,
    UnauthorizedError,
)


def is_retryable_error(error: BaseException) -> bool:
    """
    Check if an error is worth another attempt.

    Args:
        error: The exception to check

    Returns:
        True if the operation should be retried
    """
    if isinstance(error, _NON_RETRYABLE):
        return False

    if isinstance(error, ValidationError):
        # An explicit {"valid": false} has no cause; only transport failures retry.
        return error.cause is not None and is_retryable_error(error.cause)

    if isinstance(error, FFMSError) and error.cause is not None:
        return is_retryable_error(error.cause)

    return True


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    config: Optional[RetryConfig] = None,
) -> T:
    """
    Execute an async function, retrying with a fixed delay on failure.

    Example:
        ```python
        await retry_async(client.initialize, RetryConfig(max_retries=5))
        ```

    Args:
        fn: Async function to execute
        config: Retry configuration

    Returns:
        Result of the function

    Raises:
        RetryExhaustedError: If every attempt fails
        FFMSError: Immediately, for errors that cannot succeed on retry
    """
    cfg = config or DEFAULT_RETRY_CONFIG
    attempts = max(1, cfg.max_retries)

    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except Exception as error:
            if not is_retryable_error(error):
                raise

            if attempt >= attempts:
                raise RetryExhaustedError(
                    f"Failed after {attempts} retries: {error}",
                    attempts=attempts,
                    cause=error,
                ) from error

            logger.warning(f"Retrying... Attempt {attempt} of {attempts}")
            await asyncio.sleep(cfg.delay_ms / 1000)

    raise RetryExhaustedError(f"Failed after {attempts} retries", attempts=attempts)
