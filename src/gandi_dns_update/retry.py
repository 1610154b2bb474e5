"""Retry decorator with exponential backoff for provider API calls."""

import random
import time
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import structlog

logger = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


def _backoff_delay(attempt: int, base_delay: float, max_delay: float, exc: Exception) -> float:
    """Delay before the next attempt.

    A ``retry_after`` attribute on the exception (seconds, from the server's
    Retry-After header) takes precedence over the computed backoff.
    """
    retry_after = getattr(exc, "retry_after", None)
    if isinstance(retry_after, int | float) and retry_after >= 0:
        return min(float(retry_after), max_delay)
    delay = min(base_delay * (2**attempt), max_delay)
    return delay * (0.5 + random.random())


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    retryable_exceptions: tuple[type[Exception], ...] = (),
    should_retry: Callable[[Exception], bool] | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator for retrying API calls with exponential backoff.

    Exceptions outside ``retryable_exceptions``, or rejected by
    ``should_retry``, propagate at once. After the last attempt the final
    exception is re-raised as is.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        retryable_exceptions: Tuple of exception types to retry on
        should_retry: Optional predicate narrowing which exceptions are retried
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    if should_retry is not None and not should_retry(e):
                        raise
                    if attempt >= max_retries:
                        raise

                    delay = _backoff_delay(attempt, base_delay, max_delay, e)
                    attempt += 1
                    logger.warning(
                        "Request failed, retrying",
                        call=func.__name__,
                        attempt=attempt,
                        max_retries=max_retries,
                        delay=round(delay, 2),
                        error=str(e),
                    )
                    time.sleep(delay)

        return wrapper

    return decorator
