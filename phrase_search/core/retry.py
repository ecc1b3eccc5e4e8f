"""Retry policy with exponential backoff for transient provider failures."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from .errors import (
    PhraseSearchError,
    ProviderUnavailableError,
    RateLimitedError,
    SearchTimeoutError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS = (RateLimitedError, ProviderUnavailableError)


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff configuration applied around embedding calls.

    Args:
        max_attempts: Total attempts including the first one (>= 1).
        initial_delay: Delay in seconds before the second attempt.
        multiplier: Growth factor applied per attempt.
        max_delay: Upper bound for a single delay.
    """

    max_attempts: int = 3
    initial_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 8.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")

    def delay_for(self, attempt: int, error: Exception | None = None) -> float:
        """Return the sleep before retrying after failed `attempt` (1-based)."""

        delay = min(self.max_delay, self.initial_delay * self.multiplier ** (attempt - 1))
        retry_after = getattr(error, "retry_after", None)
        if retry_after is not None and retry_after > delay:
            return float(retry_after)
        return delay


def remaining_time(deadline: Optional[float], clock: Callable[[], float]) -> Optional[float]:
    """Seconds left until `deadline`, or `None` when unbounded."""

    if deadline is None:
        return None
    return deadline - clock()


def time_left(
    deadline: Optional[float], clock: Callable[[], float], operation: str
) -> Optional[float]:
    """Remaining seconds for `operation`; raises once the deadline has passed."""

    remaining = remaining_time(deadline, clock)
    if remaining is not None and remaining <= 0:
        raise SearchTimeoutError(f"{operation} timed out")
    return remaining


def next_delay(
    policy: RetryPolicy,
    attempt: int,
    error: PhraseSearchError,
    *,
    deadline: Optional[float],
    clock: Callable[[], float],
    operation: str,
) -> Optional[float]:
    """Backoff before retrying after failed `attempt`, or `None` when exhausted.

    Raises `SearchTimeoutError` when the backoff would overrun `deadline`.
    """

    if attempt >= policy.max_attempts:
        logger.error("%s failed after %d attempt(s): %s", operation, attempt, error)
        return None
    delay = policy.delay_for(attempt, error)
    remaining = remaining_time(deadline, clock)
    if remaining is not None and delay >= remaining:
        raise SearchTimeoutError(
            f"{operation} timed out waiting to retry after: {error}"
        ) from error
    logger.warning(
        "%s failed (attempt %d/%d, %s); retrying in %.2fs",
        operation,
        attempt,
        policy.max_attempts,
        error.kind,
        delay,
    )
    return delay


def call_with_retry(
    fn: Callable[[Optional[float]], T],
    policy: RetryPolicy,
    *,
    deadline: Optional[float] = None,
    clock: Callable[[], float],
    sleep: Callable[[float], None],
    operation: str = "call",
) -> T:
    """Call `fn(remaining_timeout)` and retry transient failures per `policy`.

    Raises the last transient error once attempts are exhausted, or
    `SearchTimeoutError` when the next backoff would overrun `deadline`.
    """

    attempt = 1
    while True:
        remaining = time_left(deadline, clock, operation)
        try:
            return fn(remaining)
        except RETRYABLE_ERRORS as exc:
            delay = next_delay(
                policy, attempt, exc, deadline=deadline, clock=clock, operation=operation
            )
            if delay is None:
                raise
            sleep(delay)
            attempt += 1
