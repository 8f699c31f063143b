"""
Retry Configuration for Remote Catalog Calls

The remote client never retries on its own; the catalog gateway decides
whether a failed read is worth another attempt before it falls back to the
local replica.

Usage:
    from storefront.core.retry import retry_async, RetryConfig

    page = await retry_async(client.list_products, RetryConfig(max_attempts=2), query)
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from storefront.core.exceptions import TransientFailure

logger = logging.getLogger(__name__)

__all__ = [
    "RetryConfig",
    "retry_async",
    "with_retry",
    "NO_RETRY_CONFIG",
]

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior"""

    max_attempts: int = 1
    base_delay: float = 0.5  # seconds
    max_delay: float = 5.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Tuple[Type[Exception], ...] = (TransientFailure,)
    on_retry: Optional[Callable[[int, Exception], None]] = None

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for a given attempt number"""
        delay = min(
            self.base_delay * (self.exponential_base ** (attempt - 1)),
            self.max_delay
        )
        if self.jitter:
            delay *= (0.5 + random.random())
        return delay


NO_RETRY_CONFIG = RetryConfig(max_attempts=1)


async def retry_async(
    func: Callable[..., Awaitable[T]],
    config: Optional[RetryConfig] = None,
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    Await ``func(*args, **kwargs)``, retrying on the configured exceptions.

    The last exception is re-raised once attempts are exhausted.
    """
    config = config or NO_RETRY_CONFIG
    name = getattr(func, "__name__", repr(func))

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except config.retryable_exceptions as e:
            if attempt >= config.max_attempts:
                if config.max_attempts > 1:
                    logger.error(f"All {config.max_attempts} attempts failed for {name}: {e}")
                raise

            delay = config.get_delay(attempt)
            logger.warning(
                f"Attempt {attempt}/{config.max_attempts} failed for {name}: {e}. "
                f"Retrying in {delay:.2f}s"
            )

            if config.on_retry:
                config.on_retry(attempt, e)

            await asyncio.sleep(delay)

    raise RuntimeError("max_attempts must be at least 1")


def with_retry(config: Optional[RetryConfig] = None):
    """
    Decorator form of :func:`retry_async`.

    Example:
        @with_retry(RetryConfig(max_attempts=3))
        async def fetch_featured():
            return await client.get_featured()
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_async(func, config, *args, **kwargs)
        return wrapper
    return decorator
