"""
Retry Decorator with Exponential Backoff
Retries vendor calls that were throttled
"""

import asyncio
import functools
import random
from typing import Optional, Tuple, Type

from .logger import get_logger
from .exceptions import RateLimitError

logger = get_logger()


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retry_after: Optional[float] = None
) -> float:
    """Seconds to wait before retry number ``attempt + 1``; a server hint wins"""
    if retry_after:
        return min(float(retry_after), max_delay)

    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        delay = delay * (0.5 + random.random())
    return delay


def retry_async(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Tuple[Type[Exception], ...] = (RateLimitError,)
):
    """
    Async retry decorator with exponential backoff

    Args:
        max_retries: Retries after the first call
        base_delay: Delay before the first retry in seconds
        max_delay: Upper bound for any single delay
        exponential_base: Growth factor between retries
        jitter: Randomize delays between 0.5x and 1.5x
        retryable_exceptions: Exception types worth another call; anything
            else propagates immediately
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as e:
                    if attempt >= max_retries:
                        logger.error(f"Max retries ({max_retries}) exceeded for {func.__name__}: {e}")
                        raise

                    retry_after = e.details.get("retry_after") if isinstance(e, RateLimitError) else None
                    delay = backoff_delay(attempt, base_delay, max_delay, exponential_base, jitter, retry_after)
                    attempt += 1
                    logger.warning(
                        f"Retry {attempt}/{max_retries} for {func.__name__} "
                        f"after {delay:.1f}s: {str(e)[:100]}"
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
