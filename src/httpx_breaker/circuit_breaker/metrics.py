"""Observability hooks for circuit breakers."""

from typing import Protocol

from httpx_breaker.circuit_breaker.state import CircuitState, RejectionReason


class BreakerListener(Protocol):
    """Listener protocol for circuit breaker events.

    Notes:
        Callbacks run synchronously after the breaker lock is released, in
        the thread that triggered the event. Exceptions raised by a listener
        are logged and do not reach the caller.
    """

    def on_state_change(
        self, breaker_id: str, old: CircuitState, new: CircuitState
    ) -> None:
        """Handle circuit state transitions."""

    def on_call_rejected(self, breaker_id: str, reason: RejectionReason) -> None:
        """Handle an admission rejection."""

    def on_fault_recorded(self, breaker_id: str, state: CircuitState) -> None:
        """Handle a fault report that changed breaker counters or state."""

    def on_success_recorded(self, breaker_id: str, state: CircuitState) -> None:
        """Handle a success report that changed breaker counters or state."""
