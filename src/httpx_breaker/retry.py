from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from httpx_breaker.circuit_breaker.exceptions import CircuitRejectedError


@dataclass(frozen=True)
class RetryBackoffPolicy:
    """Configuration for retry attempt count and backoff boundaries."""

    attempts: int | None
    min_seconds: float
    max_seconds: float

    def __post_init__(self) -> None:
        if self.attempts is not None and self.attempts < 1:
            raise ValueError("attempts must be >= 1 when provided")
        if self.min_seconds < 0:
            raise ValueError("min_seconds must be >= 0")
        if self.max_seconds < 0:
            raise ValueError("max_seconds must be >= 0")
        if self.max_seconds < self.min_seconds:
            raise ValueError("max_seconds must be >= min_seconds")


class wait_for_circuit_reset(wait_base):
    """Wait until the rejecting breaker is due to probe again.

    Falls back to ``fallback`` when the last attempt did not end with a
    rejection carrying a positive ``retry_after``. The result never exceeds
    ``max_seconds``.
    """

    def __init__(self, *, fallback: wait_base, max_seconds: float) -> None:
        self._fallback = fallback
        self._max_seconds = max_seconds

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        error = None if outcome is None else outcome.exception()
        if isinstance(error, CircuitRejectedError) and error.retry_after > 0:
            return min(error.retry_after, self._max_seconds)
        return min(self._fallback(retry_state), self._max_seconds)


def build_rejection_retrying(
    *,
    policy: RetryBackoffPolicy,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    before_sleep: Callable[[RetryCallState], None] | None = None,
    reraise: bool = True,
) -> AsyncRetrying:
    """Build an ``AsyncRetrying`` that retries circuit breaker rejections only.

    Errors raised by the protected call itself are never retried here; the
    breaker leaves that policy to the caller.
    """
    stop = (
        stop_never if policy.attempts is None else stop_after_attempt(policy.attempts)
    )
    wait = wait_for_circuit_reset(
        fallback=wait_exponential_jitter(
            initial=policy.min_seconds,
            max=policy.max_seconds,
        ),
        max_seconds=policy.max_seconds,
    )
    options: dict[str, Any] = {}
    if sleep is not None:
        options["sleep"] = sleep
    if before_sleep is not None:
        options["before_sleep"] = before_sleep
    return AsyncRetrying(
        retry=retry_if_exception_type(CircuitRejectedError),
        wait=wait,
        stop=stop,
        reraise=reraise,
        **options,
    )
