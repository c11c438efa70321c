"""Retry wrapper for request operations.

:func:`retry_async` re-invokes an async operation after a failure, waiting
between attempts, until it succeeds or the retry budget is spent.  The
wait before retry *k* (0-based) is ``delay * backoff ** k``, optionally
capped by ``max_delay``.  With the default ``backoff=1.0`` the delay is
fixed: 1 s, 1 s, 1 s, ...  Set ``backoff=2.0`` for exponential growth:
1 s, 2 s, 4 s, ...

By default every :class:`Exception` is retried, including aborts and 4xx
status errors.  Pass ``retry_on`` (for example :func:`retryable_only`) to
narrow that down.  When retries run out, or the predicate rejects an error,
the last error propagates unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from reqio.exceptions import AbortError, HttpStatusError, NetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryPredicate = Callable[[Exception], bool]
Sleep = Callable[[float], Awaitable[None]]

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def retry_everything(error: Exception) -> bool:
    """Default predicate: every error is worth another attempt."""
    return True


def retryable_only(error: Exception) -> bool:
    """Retry network failures, aborts, 429 and 5xx responses; fail fast on the rest."""
    if isinstance(error, (NetworkError, AbortError)):
        return True
    if isinstance(error, HttpStatusError):
        return error.status_code in RETRYABLE_STATUS_CODES
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry and how long to wait in between.

    Attributes:
        attempts: Default number of retries after the first attempt.
        delay: Wait before the first retry, in seconds.
        backoff: Multiplier applied to the delay for each further retry.
        max_delay: Upper bound for a single wait, or ``None``.
        retry_on: Predicate deciding whether an error is retried.
    """

    attempts: int = 3
    delay: float = 1.0
    backoff: float = 1.0
    max_delay: Optional[float] = None
    retry_on: RetryPredicate = retry_everything

    def delay_for(self, retry_index: int) -> float:
        """Seconds to wait before retry number *retry_index* (0-based)."""
        delay = self.delay * (self.backoff ** retry_index)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return max(0.0, delay)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    retries: Optional[int] = None,
    policy: Optional[RetryPolicy] = None,
    sleep: Sleep = asyncio.sleep,
    label: str = "operation",
) -> T:
    """Run *operation*, retrying on failure.

    Args:
        operation: Zero-argument coroutine function performing one attempt.
        retries: Retries allowed after the first attempt.  Defaults to
            ``policy.attempts``.  ``retries=n`` means at most ``n + 1``
            calls to *operation*.
        policy: Delay and predicate settings.  Defaults to
            :class:`RetryPolicy` defaults.
        sleep: Coroutine used to wait, injectable for tests.
        label: Name used in log messages (the endpoint, for requests).

    Returns:
        The first successful result of *operation*.

    Raises:
        Exception: The error of the final attempt, unchanged.
    """
    policy = policy or RetryPolicy()
    remaining = policy.attempts if retries is None else retries
    retry_index = 0

    while True:
        try:
            return await operation()
        except Exception as exc:
            if remaining <= 0 or not policy.retry_on(exc):
                if retry_index:
                    logger.warning(
                        "Request to %s failed after %d attempts: %s",
                        label, retry_index + 1, exc,
                    )
                raise
            delay = policy.delay_for(retry_index)
            logger.debug("Attempt %d for %s failed: %s", retry_index + 1, label, exc)
            await sleep(delay)
            logger.info("Retrying request to %s. Retries left: %d", label, remaining)
            remaining -= 1
            retry_index += 1
