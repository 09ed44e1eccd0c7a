"""
Retry policy for Gemini calls.

Classification and aggregation both go through ``retry_async`` so a run has
one backoff policy: exponential, capped, with a longer floor when Gemini
reports a quota or rate-limit problem.
"""

import asyncio
import functools
import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

from sentiment_backend.infrastructure.constants.llm_constants import (
    GEMINI_RATE_LIMIT_DELAY,
    GEMINI_RETRY_BACKOFF_FACTOR,
    GEMINI_RETRY_INITIAL_DELAY,
    GEMINI_RETRY_MAX_DELAY,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_MARKERS = (
    "rate limit",
    "rate_limit",
    "429",
    "too many requests",
    "quota exceeded",
    "resource_exhausted",
)

TRANSIENT_MARKERS = (
    "timeout",
    "timed out",
    "connection",
    "temporary",
    "unavailable",
    "overloaded",
    "internal server error",
    "500",
    "502",
    "503",
)


def _message_has(error: Exception, markers: Tuple[str, ...]) -> bool:
    message = str(error).lower()
    return any(marker in message for marker in markers)


def is_rate_limit_error(error: Exception) -> bool:
    """Check if an error is a rate limit or quota error."""
    return _message_has(error, RATE_LIMIT_MARKERS)


def is_transient_error(error: Exception) -> bool:
    """Check if an error is likely to go away on its own."""
    if isinstance(error, asyncio.TimeoutError):
        return True
    return _message_has(error, TRANSIENT_MARKERS)


@dataclass
class RetryConfig:
    """
    How often and how patiently a call is retried.

    ``max_attempts`` counts every call, the first one included.
    """

    max_attempts: int = 3
    base_delay: float = GEMINI_RETRY_INITIAL_DELAY
    max_delay: float = GEMINI_RETRY_MAX_DELAY
    exponential_base: float = GEMINI_RETRY_BACKOFF_FACTOR
    rate_limit_delay: float = GEMINI_RATE_LIMIT_DELAY
    jitter: bool = True
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)
    should_retry: Optional[Callable[[Exception], bool]] = None

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def allows_retry(self, error: Exception) -> bool:
        if self.should_retry is None:
            return True
        return self.should_retry(error)

    def get_delay(self, attempt: int, error: Optional[Exception] = None) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
        delay = min(self.base_delay * self.exponential_base ** attempt, self.max_delay)
        if error is not None and is_rate_limit_error(error):
            delay = max(delay, self.rate_limit_delay)
        if self.jitter:
            # At most 10% and never more than a second on top
            delay += min(1.0, delay * 0.1) * random.random()
        return delay


DEFAULT_RETRY_CONFIG = RetryConfig()


def with_retry(
    config: Optional[RetryConfig] = None,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
):
    """
    Decorator that retries an async function according to ``config``.

    Exceptions outside ``retryable_exceptions`` propagate at once, as do
    errors rejected by ``config.should_retry``. When the attempts run out
    the last error is raised.
    """
    retry_config = config or DEFAULT_RETRY_CONFIG
    exceptions = retryable_exceptions or retry_config.retryable_exceptions

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            max_attempts = retry_config.max_attempts
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if not retry_config.allows_retry(e):
                        logger.error(
                            f"{func.__name__} failed with a non-retryable error "
                            f"on attempt {attempt}: {e}"
                        )
                        raise
                    if attempt == max_attempts:
                        logger.error(
                            f"{func.__name__} gave up after {max_attempts} attempts: {e}"
                        )
                        raise

                    delay = retry_config.get_delay(attempt - 1, e)
                    logger.warning(
                        f"{func.__name__} attempt {attempt}/{max_attempts} failed: {e}. "
                        f"Retrying in {delay:.2f}s"
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator


async def retry_async(
    func: Callable[..., T],
    *args,
    config: Optional[RetryConfig] = None,
    **kwargs
) -> T:
    """Call ``func(*args, **kwargs)`` with the retry policy in ``config``."""

    @with_retry(config=config or DEFAULT_RETRY_CONFIG)
    @functools.wraps(func)
    async def _execute():
        return await func(*args, **kwargs)

    return await _execute()
