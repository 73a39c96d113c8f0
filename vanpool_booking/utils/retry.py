"""
Exponential backoff for operations that lose a race to a concurrent write.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Optional

from ..config import get_settings
from ..utils.exceptions import ConcurrencyError

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (ConcurrencyError, asyncio.TimeoutError)


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay: float = 0.05
    max_delay: float = 1.0
    exponential_base: float = 2.0
    jitter: bool = True


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Backoff delay before the attempt following ``attempt`` (0-based)."""
    delay = min(config.base_delay * config.exponential_base ** attempt, config.max_delay)
    return delay * random.uniform(0.5, 1.0) if config.jitter else delay


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    config: RetryConfig,
    args: tuple = (),
    kwargs: Optional[dict] = None,
    retryable_exceptions: tuple = (Exception,),
    non_retryable_exceptions: tuple = (),
) -> Any:
    """
    Await ``func(*args, **kwargs)`` until it succeeds or attempts run out.

    Only ``retryable_exceptions`` are retried; ``non_retryable_exceptions``
    and anything else propagate immediately. When every attempt fails the
    last error is re-raised.
    """
    kwargs = kwargs or {}
    attempts = max(config.max_attempts, 1)
    name = getattr(func, "__name__", repr(func))

    for attempt in range(attempts):
        try:
            result = await func(*args, **kwargs)
        except non_retryable_exceptions:
            raise
        except retryable_exceptions as exc:
            if attempt + 1 == attempts:
                logger.error(f"{name} gave up after {attempts} attempt(s): {exc}")
                raise
            delay = compute_delay(config, attempt)
            logger.warning(f"{name} attempt {attempt + 1}/{attempts} failed ({exc}); retrying in {delay:.2f}s")
            await asyncio.sleep(delay)
        else:
            if attempt:
                logger.info(f"{name} succeeded on attempt {attempt + 1}")
            return result


def retry_on_concurrency_error(
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    jitter: bool = True,
):
    """Retry the decorated coroutine on concurrency conflicts.

    Unset arguments fall back to the ``retry_*`` settings; with
    ``enable_retry_mechanisms`` off the wrapped call runs exactly once.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            settings = get_settings()
            config = RetryConfig(
                max_attempts=(
                    (max_attempts if max_attempts is not None else settings.max_retry_attempts)
                    if settings.enable_retry_mechanisms
                    else 1
                ),
                base_delay=settings.retry_base_delay if base_delay is None else base_delay,
                max_delay=settings.retry_max_delay if max_delay is None else max_delay,
                jitter=jitter,
            )
            return await retry_async(
                func, config, args=args, kwargs=kwargs, retryable_exceptions=RETRYABLE_ERRORS
            )

        return wrapper

    return decorator
