"""
Retry utilities for handling transient failures.

Uses tenacity for retry logic with exponential backoff. The market core
never retries on its own; these helpers are for callers that want to
resubmit after a storage conflict.
"""

from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from config import settings
from config.logging_config import get_logger

logger = get_logger(__name__)


def _last_result(retry_state: RetryCallState) -> Any:
    """Hand back the final result instead of raising RetryError."""
    return retry_state.outcome.result()


async def retry_while(
    func: Callable[..., Awaitable[Any]],
    *args,
    should_retry: Callable[[Any], bool],
    max_attempts: Optional[int] = None,
    wait_seconds: Optional[float] = None,
    max_wait_seconds: Optional[float] = None,
    **kwargs,
) -> Any:
    """
    Call an async function again while its result asks for it.

    Args:
        func: Async function to call
        *args: Positional arguments for func
        should_retry: Predicate on the result; True means try again
        max_attempts: Total attempts (default from settings)
        wait_seconds: Base backoff (default from settings)
        max_wait_seconds: Backoff ceiling (default from settings)
        **kwargs: Keyword arguments for func

    Returns:
        The first result that should not be retried, or the last result
        once attempts run out. Exceptions raised by func propagate.
    """
    if max_attempts is None:
        max_attempts = settings.retry.max_attempts
    if wait_seconds is None:
        wait_seconds = settings.retry.wait_seconds
    if max_wait_seconds is None:
        max_wait_seconds = settings.retry.max_wait_seconds

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=wait_seconds, max=max_wait_seconds),
        retry=retry_if_result(should_retry),
        before_sleep=lambda state: logger.warning(
            "Retrying after transient failure",
            fn=getattr(func, "__name__", repr(func)),
            attempt=state.attempt_number,
            max_attempts=max_attempts,
        ),
        retry_error_callback=_last_result,
    ):
        with attempt:
            result = await func(*args, **kwargs)
        if not attempt.retry_state.outcome.failed:
            attempt.retry_state.set_result(result)
    return result
