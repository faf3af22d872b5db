"""
Retry policy for upstream calls.

Transient failures (HTTP 429 and 5xx) are retried with capped exponential
backoff; everything else propagates immediately. After the last attempt the
final exception propagates unchanged, and callers translate it into an
``UpstreamServiceError``.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_DELAY = 2.0
DEFAULT_MAX_DELAY = 8.0


def is_transient_status(status_code: int) -> bool:
    """Rate-limit and server-error responses are worth retrying."""
    return status_code == 429 or status_code >= 500


def backoff_delay(
    attempt: int, base: float = DEFAULT_BASE_DELAY, cap: float = DEFAULT_MAX_DELAY
) -> float:
    """Delay before retry number ``attempt`` (0-based): base * 2**attempt, capped."""
    return float(min(base * (2**attempt), cap))


async def call_with_retry(
    call: Callable[[], Awaitable[T]],
    *,
    is_transient: Callable[[Exception], bool],
    max_retries: int,
    label: str,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run ``call``, retrying transient failures.

    Args:
        call: Zero-argument coroutine factory, invoked once per attempt
        is_transient: Decides whether an exception is worth retrying
        max_retries: Retries after the first attempt
        label: Name used in log messages
        sleep: Injected for tests

    Raises:
        Whatever ``call`` raised on its final attempt.
    """
    attempt = 0
    while True:
        try:
            return await call()
        except Exception as exc:
            if attempt >= max_retries or not is_transient(exc):
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                "UPSTREAM_RETRY",
                extra={"upstream": label, "attempt": attempt + 1, "delay": delay},
            )
            await sleep(delay)
            attempt += 1
