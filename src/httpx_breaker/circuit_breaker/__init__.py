"""Process-local circuit breaker for calls to remote dependencies.

Key behavior notes:
  - ``OPEN`` becomes ``HALF_OPEN`` lazily, on the first admission attempt made
    after the reset period. No timers or background threads are involved.
  - Half-open probing admits at most ``num_requests_to_close_circuit`` calls
    per episode. The same number of successes closes the circuit; a single
    fault reopens it.
  - A probe slot is released only when the episode ends. Every admitted call
    must report exactly one outcome, or its slot stays taken.
  - Outcome reports that carry an ``Admitted`` token from a superseded
    episode are ignored.
"""

import logging

from httpx_breaker.circuit_breaker.breaker import CircuitBreaker
from httpx_breaker.circuit_breaker.clock import Clock, SystemClock
from httpx_breaker.circuit_breaker.exceptions import (
    CircuitBreakerError,
    CircuitHalfOpenError,
    CircuitOpenError,
    CircuitRejectedError,
)
from httpx_breaker.circuit_breaker.faults import (
    FaultClassifier,
    is_server_error,
    is_server_or_transport_error,
)
from httpx_breaker.circuit_breaker.ids import IdGenerator, SequentialIdGenerator
from httpx_breaker.circuit_breaker.metrics import BreakerListener
from httpx_breaker.circuit_breaker.state import (
    Admission,
    Admitted,
    BreakerSnapshot,
    CircuitState,
    Rejected,
    RejectionReason,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Admission",
    "Admitted",
    "BreakerListener",
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitBreakerError",
    "CircuitHalfOpenError",
    "CircuitOpenError",
    "CircuitRejectedError",
    "CircuitState",
    "Clock",
    "FaultClassifier",
    "IdGenerator",
    "Rejected",
    "RejectionReason",
    "SequentialIdGenerator",
    "SystemClock",
    "is_server_error",
    "is_server_or_transport_error",
]
