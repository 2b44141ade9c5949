"""Retry logic with exponential backoff for model calls.

Provides a decorator that retries transient failures (rate limits, server
errors, dropped connections) with exponential backoff and jitter. Client
errors such as a bad request or a rejected API key are raised immediately.
"""

import functools
import logging
import random
import time
from typing import Any, Callable, Optional, Set, Tuple, Type, TypeVar, cast

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# HTTP status codes that should trigger retry
RETRYABLE_STATUS_CODES: Set[int] = {
    429,  # Rate limit
    500,  # Server error
    502,  # Bad gateway
    503,  # Service unavailable
    504,  # Gateway timeout
}

# HTTP status codes that should NOT trigger retry
NON_RETRYABLE_STATUS_CODES: Set[int] = {
    400,  # Bad request
    401,  # Unauthorized
    403,  # Forbidden
    404,  # Not found
    422,  # Unprocessable entity
}

_NETWORK_ERROR_MARKERS = (
    "timeout",
    "timed out",
    "connection",
    "network",
    "temporarily unavailable",
)

MAX_RETRIES = 3
BASE_DELAY = 1.0  # seconds
MAX_JITTER = 1.0  # seconds


def retry_with_backoff(
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    max_jitter: float = MAX_JITTER,
    retryable_exceptions: Tuple[Type[Exception], ...] = (),
    sleep: Optional[Callable[[float], None]] = None,
) -> Callable[[F], F]:
    """Decorator that retries a synchronous call with exponential backoff.

    The delay before retry ``n`` (0-based) is ``base_delay * 2**n`` plus up to
    ``max_jitter`` seconds of random jitter.

    Args:
        max_retries: Retry attempts after the first call (0 disables retry)
        base_delay: Base delay in seconds
        max_jitter: Maximum random jitter in seconds
        retryable_exceptions: Exception types that are always retried
        sleep: Sleep function (defaults to time.sleep)

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not is_retryable(e, retryable_exceptions):
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "%s failed after %d retries: %s", func.__name__, max_retries, e
                        )
                        raise

                    delay = (base_delay * (2 ** attempt)) + (random.random() * max_jitter)
                    logger.warning(
                        "%s attempt %d/%d failed: %s. Retrying in %.2fs...",
                        func.__name__, attempt + 1, max_retries + 1, e, delay,
                    )
                    (sleep or time.sleep)(delay)

            raise RuntimeError("Unexpected retry loop exit")

        return cast(F, wrapper)

    return decorator


def is_retryable(
    exception: Exception,
    retryable_exceptions: Tuple[Type[Exception], ...] = (),
) -> bool:
    """Determine if an exception should trigger a retry.

    A known status code decides first; otherwise the message is checked for
    network failure markers, then the exception type against
    *retryable_exceptions*.
    """
    status_code = extract_status_code(exception)

    if status_code is not None:
        if status_code in NON_RETRYABLE_STATUS_CODES:
            return False
        if status_code in RETRYABLE_STATUS_CODES:
            return True

    message = str(exception).lower()
    if any(marker in message for marker in _NETWORK_ERROR_MARKERS):
        return True

    return isinstance(exception, retryable_exceptions)


def extract_status_code(exception: Exception) -> Optional[int]:
    """Extract an HTTP status code from an SDK or HTTP client exception."""
    # google-genai APIError carries ``code``; httpx/requests use ``status_code``
    for attr in ("status_code", "code"):
        value = getattr(exception, attr, None)
        if isinstance(value, int):
            return value

    response = getattr(exception, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status

    return None
