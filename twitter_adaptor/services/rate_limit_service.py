"""Rate limit classification and backoff policy for Twitter API calls."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

import tweepy
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

logger = logging.getLogger(__name__)

T = TypeVar("T")

TOO_MANY_REQUESTS = 429
RESET_HEADER = "x-rate-limit-reset"
RESET_MARGIN_MS = 5000


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of classifying a failed call."""

    is_rate_limited: bool
    wait_ms: int = 0
    retries_exhausted: bool = False

    @property
    def should_retry(self) -> bool:
        return self.is_rate_limited and not self.retries_exhausted


class RateLimitPolicy:
    """Decides whether a failure was a rate limit and how long to wait.

    The policy never sleeps or retries on its own; callers act on the
    returned decision.
    """

    def __init__(
        self,
        max_retries: int = 5,
        base_delay_ms: int = 5000,
        clock: Callable[[], float] = time.time,
    ):
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self._clock = clock

    def is_rate_limited(self, error: BaseException) -> bool:
        """Check if an error carries the platform's "too many requests" status."""
        if isinstance(error, tweepy.errors.TooManyRequests):
            return True
        return _status_of(error) == TOO_MANY_REQUESTS

    def evaluate(self, error: BaseException, retry_count: int = 0) -> RateLimitDecision:
        """Classify a failure and compute the wait before the next attempt.

        Args:
            error: The exception raised by the failed call.
            retry_count: How many retries were already attempted.

        Returns:
            RateLimitDecision. When ``retries_exhausted`` is set the caller
            must re-raise the original error.
        """
        if not self.is_rate_limited(error):
            return RateLimitDecision(is_rate_limited=False)

        if retry_count >= self.max_retries:
            return RateLimitDecision(is_rate_limited=True, retries_exhausted=True)

        reset_at = _reset_of(error)
        if reset_at is not None:
            wait_ms = int(reset_at * 1000 - self._clock() * 1000) + RESET_MARGIN_MS
        else:
            wait_ms = self.base_delay_ms * 2**retry_count

        return RateLimitDecision(is_rate_limited=True, wait_ms=max(0, wait_ms))


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RateLimitPolicy,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Run an operation, waiting and retrying while it is rate limited.

    Non rate-limit errors and errors after the last allowed retry are raised
    unchanged.
    """

    def wait_for_reset(retry_state: RetryCallState) -> float:
        error = retry_state.outcome.exception()
        return policy.evaluate(error, retry_state.attempt_number - 1).wait_ms / 1000

    def log_retry(retry_state: RetryCallState) -> None:
        logger.warning(
            "Rate limited, waiting %.1fs before retry %d/%d",
            retry_state.next_action.sleep,
            retry_state.attempt_number,
            policy.max_retries,
        )

    retrying = AsyncRetrying(
        retry=retry_if_exception(policy.is_rate_limited),
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=wait_for_reset,
        before_sleep=log_retry,
        sleep=sleep,
        reraise=True,
    )
    return await retrying(operation)


def _status_of(error: BaseException) -> Optional[int]:
    """Extract an HTTP status from the error or its attached response."""
    for source in (error, getattr(error, "response", None)):
        if source is None:
            continue
        for attr in ("status", "status_code"):
            value = getattr(source, attr, None)
            if isinstance(value, int):
                return value
    return None


def _reset_of(error: BaseException) -> Optional[float]:
    """Read the rate limit reset time (epoch seconds), if the platform sent one."""
    headers = getattr(error, "headers", None)
    if headers is None:
        headers = getattr(getattr(error, "response", None), "headers", None)
    if not headers:
        return None

    value = headers.get(RESET_HEADER)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring malformed %s header: %r", RESET_HEADER, value)
        return None
