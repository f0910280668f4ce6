"""
Shared helpers for codeask.
"""

import functools
import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


def retry_on_failure(
    max_attempts: int = 3,
    delay: float = 0.5,
    backoff: float = 2.0,
    exceptions: tuple = (Exception,),
) -> Callable:
    """
    Retry a callable with exponential backoff.

    Args:
        max_attempts: Total number of attempts (including the first)
        delay: Seconds to wait before the second attempt
        backoff: Multiplier applied to the delay after each failure
        exceptions: Exception types that trigger a retry; anything else
            propagates immediately

    Returns:
        Decorator wrapping the function
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            wait = delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_attempts:
                        raise
                    logger.warning(
                        f"{func.__name__} failed (attempt {attempt}/{max_attempts}): {e}; "
                        f"retrying in {wait:.1f}s"
                    )
                    time.sleep(wait)
                    wait *= backoff
        return wrapper
    return decorator
