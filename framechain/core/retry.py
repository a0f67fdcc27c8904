"""
Retry utilities with exponential backoff.

Used for idempotent network operations such as downloading a generated
asset before it is persisted. Gateway submissions are never retried here:
a resubmitted generation would bill and produce a different image.
"""

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from framechain.core.logging_config import get_logger

logger = get_logger("core.retry")

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True
    jitter_range: Tuple[float, float] = (0.5, 1.5)
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)


DEFAULT_RETRY_CONFIG = RetryConfig()


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """
    Delay before the next attempt: base * exponential_base ^ attempt, capped,
    then optionally scaled by a random jitter multiplier.
    """
    delay = min(config.base_delay * (config.exponential_base ** attempt), config.max_delay)
    if config.jitter:
        delay *= random.uniform(*config.jitter_range)
    return delay


async def retry_async_call(
    func: Callable[..., T],
    *args: Any,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[Exception, int], None]] = None,
    **kwargs: Any
) -> T:
    """
    Call an async function, retrying with exponential backoff.

    Args:
        func: Async function to call
        *args: Positional arguments for the function
        config: Retry configuration (uses defaults if not provided)
        on_retry: Optional callback called with (exception, attempt) before sleeping
        **kwargs: Keyword arguments for the function

    Returns:
        Result of the function call

    Example:
        body = await retry_async_call(
            client.get, url,
            config=DOWNLOAD_RETRY_CONFIG
        )
    """
    config = config or DEFAULT_RETRY_CONFIG
    attempts = config.max_retries + 1

    for attempt in range(attempts):
        try:
            return await func(*args, **kwargs)
        except config.retryable_exceptions as e:
            if attempt + 1 >= attempts:
                logger.error(f"All {attempts} attempts failed. Last error: {e}")
                raise

            delay = calculate_delay(attempt, config)
            logger.warning(
                f"Attempt {attempt + 1}/{attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            if on_retry:
                on_retry(e, attempt)
            await asyncio.sleep(delay)

    raise RuntimeError("Retry logic failed unexpectedly")


# Asset downloads: short backoff
DOWNLOAD_RETRY_CONFIG = RetryConfig(
    max_retries=3,
    base_delay=1.0,
    max_delay=10.0,
    exponential_base=2.0,
    jitter=True
)
