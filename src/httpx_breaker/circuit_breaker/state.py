"""Circuit breaker state primitives and admission results."""

from dataclasses import dataclass
from enum import StrEnum

from httpx_breaker.circuit_breaker.exceptions import (
    CircuitHalfOpenError,
    CircuitOpenError,
    CircuitRejectedError,
)


class CircuitState(StrEnum):
    """Circuit breaker state values."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class RejectionReason(StrEnum):
    """Why an admission attempt was refused."""

    CIRCUIT_OPEN = "circuit_open"
    PROBE_SLOTS_EXHAUSTED = "probe_slots_exhausted"


@dataclass(frozen=True)
class Admitted:
    """Admission granted; hand it back when reporting the call outcome.

    Attributes:
        breaker_id: Breaker that admitted the call.
        state: Breaker state the call was admitted under.
        episode: Breaker episode the call belongs to. Outcome reports carrying
            an older episode are ignored.
    """

    breaker_id: str
    state: CircuitState
    episode: int

    @property
    def is_probe(self) -> bool:
        return self.state == CircuitState.HALF_OPEN


@dataclass(frozen=True)
class Rejected:
    """Admission refused. The caller must not contact the dependency.

    Attributes:
        breaker_id: Breaker that rejected the call.
        state: Breaker state at rejection time.
        reason: Rejection reason.
        retry_after: Seconds until the reset period elapses (``0.0`` when
            rejected for lack of a probe slot).
    """

    breaker_id: str
    state: CircuitState
    reason: RejectionReason
    retry_after: float

    def to_error(self) -> CircuitRejectedError:
        """Build the exception matching this rejection."""
        if self.reason == RejectionReason.CIRCUIT_OPEN:
            return CircuitOpenError(
                self.breaker_id, state=self.state, retry_after=self.retry_after
            )
        return CircuitHalfOpenError(
            self.breaker_id, state=self.state, retry_after=self.retry_after
        )


Admission = Admitted | Rejected


@dataclass(frozen=True)
class BreakerSnapshot:
    """Point-in-time view of breaker internals useful for metrics/logging.

    Attributes:
        breaker_id: Breaker identity.
        state: Current breaker state.
        episode: Transition counter, bumped on every state change.
        fault_count: Faults counted in the current window while ``CLOSED``.
        fault_window_started_at_ms: Start of the counting window, if started.
        success_count: Successful probes in the current ``HALF_OPEN`` episode.
        in_flight_probes: Probe slots taken in the current ``HALF_OPEN`` episode.
        opened_at_ms: Timestamp when the breaker entered ``OPEN``, if open.
    """

    breaker_id: str
    state: CircuitState
    episode: int
    fault_count: int
    fault_window_started_at_ms: int | None
    success_count: int
    in_flight_probes: int
    opened_at_ms: int | None
