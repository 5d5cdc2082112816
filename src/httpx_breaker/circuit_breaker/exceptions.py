"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open.
  - A call being rejected because every half-open probe slot is taken.
"""


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class CircuitRejectedError(CircuitBreakerError):
    """Raised when the breaker refuses to admit a call.

    Attributes:
        breaker_id: Identity of the breaker rejecting the call.
        state: Breaker state at rejection time.
        retry_after: Seconds until a half-open probe may be attempted.
    """

    reason = "rejected"

    def __init__(self, breaker_id: str, *, state: str, retry_after: float) -> None:
        """Initialize a rejection payload.

        Args:
            breaker_id: Breaker rejecting the call.
            state: Breaker state value at rejection time.
            retry_after: Seconds until the next probe window opens.
        """
        self.breaker_id = breaker_id
        self.state = state
        self.retry_after = retry_after
        super().__init__(
            f"{self.reason}: {breaker_id} state={state} retry_after={retry_after:g}s"
        )


class CircuitOpenError(CircuitRejectedError):
    """Raised when a call is rejected because the circuit is open."""

    reason = "circuit_open"


class CircuitHalfOpenError(CircuitRejectedError):
    """Raised when a half-open breaker has no free probe slot."""

    reason = "probe_slots_exhausted"
