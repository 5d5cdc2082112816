"""Core circuit breaker implementation."""

import logging
import threading
from collections.abc import Awaitable, Callable, Sequence
from typing import ParamSpec, TypeVar

from httpx_breaker.circuit_breaker.clock import Clock, SystemClock
from httpx_breaker.circuit_breaker.faults import FaultClassifier, is_server_error
from httpx_breaker.circuit_breaker.ids import IdGenerator, default_id_generator
from httpx_breaker.circuit_breaker.metrics import BreakerListener
from httpx_breaker.circuit_breaker.state import (
    Admission,
    Admitted,
    BreakerSnapshot,
    CircuitState,
    Rejected,
    RejectionReason,
)
from httpx_breaker.logging import (
    BreakerLogger,
    is_supported_logger,
    log_debug,
    log_exception,
    log_info,
    log_warning,
)
from httpx_breaker.settings import CircuitBreakerSettings

T = TypeVar("T")
P = ParamSpec("P")

_Event = Callable[[BreakerListener], None]


class CircuitBreaker:
    """Admission gate and outcome tracker for one remote dependency.

    The breaker never performs the remote call itself. Callers ask
    :meth:`try_admit` (or :meth:`admit`) before contacting the dependency and
    report exactly one outcome afterwards through :meth:`on_success` or
    :meth:`on_fault`. :meth:`call` bundles those steps for async callables.

    All three operations are linearizable per instance. Time-based
    transitions are evaluated lazily on the next admission or report.
    """

    def __init__(
        self,
        settings: CircuitBreakerSettings | None = None,
        *,
        clock: Clock | None = None,
        is_fault: FaultClassifier = is_server_error,
        logger: BreakerLogger | None = None,
        listeners: Sequence[BreakerListener] | None = None,
        id_generator: IdGenerator | None = None,
    ) -> None:
        """Build a circuit breaker with optional custom dependencies.

        Args:
            settings: Thresholds and timings. Defaults to
                ``CircuitBreakerSettings()`` (environment overrides apply).
            clock: Time source. Defaults to wall-clock time.
            is_fault: Predicate deciding whether a call error counts as a
                fault. Defaults to HTTP responses with status >= 500.
            logger: Structured or stdlib logger for diagnostic events.
                Defaults to the package logger, which discards output unless
                the application configures logging.
            listeners: Optional listener hooks for breaker events.
            id_generator: Produces the breaker id when ``settings.id`` is
                unset. Defaults to a process-wide sequential counter.

        Raises:
            TypeError: If ``is_fault`` is not callable or ``logger`` lacks the
                required level methods.
        """
        if not callable(is_fault):
            raise TypeError("is_fault must be callable")
        if logger is not None and not is_supported_logger(logger):
            raise TypeError("logger must provide debug/info/warning/error/exception")

        self._settings = CircuitBreakerSettings() if settings is None else settings
        generate_id = default_id_generator if id_generator is None else id_generator
        self._id = self._settings.id or generate_id()
        self._clock = SystemClock() if clock is None else clock
        self.is_fault = is_fault
        self._logger = logging.getLogger(__name__) if logger is None else logger
        self._listeners = tuple(listeners) if listeners is not None else ()
        self._lock = threading.Lock()

        self._state = CircuitState.CLOSED
        self._episode = 0
        self._fault_count = 0
        self._fault_window_started_at_ms: int | None = None
        self._success_count = 0
        self._in_flight_probes = 0
        self._opened_at_ms: int | None = None

    @property
    def id(self) -> str:
        return self._id

    @property
    def settings(self) -> CircuitBreakerSettings:
        return self._settings

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def snapshot(self) -> BreakerSnapshot:
        """Return a consistent point-in-time view of breaker internals."""
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> BreakerSnapshot:
        return BreakerSnapshot(
            breaker_id=self._id,
            state=self._state,
            episode=self._episode,
            fault_count=self._fault_count,
            fault_window_started_at_ms=self._fault_window_started_at_ms,
            success_count=self._success_count,
            in_flight_probes=self._in_flight_probes,
            opened_at_ms=self._opened_at_ms,
        )

    def try_admit(self, now_ms: int | None = None) -> Admission:
        """Decide whether a call may proceed to the dependency.

        Args:
            now_ms: Current time in epoch milliseconds. Defaults to the clock.

        Returns:
            ``Admitted`` when the call may proceed, otherwise ``Rejected``.
        """
        now = self._clock.now_ms() if now_ms is None else now_ms
        events: list[_Event] = []
        with self._lock:
            if self._state == CircuitState.OPEN:
                assert self._opened_at_ms is not None
                reopen_at = self._opened_at_ms + self._settings.reset_period_ms
                if now < reopen_at:
                    result: Admission = self._reject_locked(
                        RejectionReason.CIRCUIT_OPEN, (reopen_at - now) / 1000.0
                    )
                else:
                    self._to_half_open_locked(events)
                    result = self._admit_probe_locked()
            elif self._state == CircuitState.HALF_OPEN:
                result = self._admit_probe_locked()
            else:
                result = Admitted(self._id, self._state, self._episode)
                log_debug(
                    self._logger,
                    "circuit_breaker.admitted",
                    breaker_id=self._id,
                    state=str(self._state),
                )

        if isinstance(result, Rejected):
            reason = result.reason
            events.append(lambda listener: listener.on_call_rejected(self._id, reason))
        self._emit(events)
        return result

    def admit(self, now_ms: int | None = None) -> Admitted:
        """Admit a call or raise the matching rejection error.

        Raises:
            CircuitOpenError: When the circuit is open.
            CircuitHalfOpenError: When no half-open probe slot is free.
        """
        result = self.try_admit(now_ms)
        if isinstance(result, Rejected):
            raise result.to_error()
        return result

    def on_fault(
        self, now_ms: int | None = None, *, admission: Admitted | None = None
    ) -> None:
        """Report a call outcome classified as a fault.

        Args:
            now_ms: Current time in epoch milliseconds. Defaults to the clock.
            admission: Token returned when the call was admitted. Reports for
                a superseded episode are ignored.
        """
        now = self._clock.now_ms() if now_ms is None else now_ms
        events: list[_Event] = []
        with self._lock:
            if self._is_stale_locked(admission, "fault"):
                return
            state = self._state
            if state == CircuitState.CLOSED:
                self._count_fault_locked(now, events)
            elif state == CircuitState.HALF_OPEN:
                self._to_open_locked(now, "probe_fault", events)
            else:
                return

        events.insert(0, lambda listener: listener.on_fault_recorded(self._id, state))
        self._emit(events)

    def on_success(self, *, admission: Admitted | None = None) -> None:
        """Report a successful call outcome.

        Only meaningful while ``HALF_OPEN``; a no-op in other states.
        """
        events: list[_Event] = []
        with self._lock:
            if self._is_stale_locked(admission, "success"):
                return
            if self._state != CircuitState.HALF_OPEN:
                return
            self._success_count += 1
            log_debug(
                self._logger,
                "circuit_breaker.success_recorded",
                breaker_id=self._id,
                state=str(self._state),
                success_count=self._success_count,
            )
            if self._success_count >= self._settings.num_requests_to_close_circuit:
                self._to_closed_locked(events)

        events.insert(
            0,
            lambda listener: listener.on_success_recorded(
                self._id, CircuitState.HALF_OPEN
            ),
        )
        self._emit(events)

    async def call(
        self,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke an async callable under circuit breaker protection.

        Args:
            func: Async callable contacting the dependency.
            *args: Positional arguments forwarded to ``func``.
            **kwargs: Keyword arguments forwarded to ``func``.

        Returns:
            The result of ``func`` when admitted and successful.

        Raises:
            CircuitOpenError: When the circuit is open.
            CircuitHalfOpenError: When no half-open probe slot is free.
            Exception: The original exception from ``func``, unchanged.
        """
        admission = self.admit()
        try:
            result = await func(*args, **kwargs)
        except Exception as exc:
            if self.is_fault(exc):
                self.on_fault(admission=admission)
            raise
        self.on_success(admission=admission)
        return result

    def _is_stale_locked(self, admission: Admitted | None, outcome: str) -> bool:
        if admission is None or admission.episode == self._episode:
            return False
        log_debug(
            self._logger,
            "circuit_breaker.stale_report_ignored",
            breaker_id=self._id,
            state=str(self._state),
            outcome=outcome,
            admitted_episode=admission.episode,
            episode=self._episode,
        )
        return True

    def _reject_locked(self, reason: RejectionReason, retry_after: float) -> Rejected:
        log_info(
            self._logger,
            "circuit_breaker.rejected",
            breaker_id=self._id,
            state=str(self._state),
            reason=str(reason),
            retry_after=retry_after,
        )
        return Rejected(self._id, self._state, reason, retry_after)

    def _admit_probe_locked(self) -> Admission:
        cap = self._settings.num_requests_to_close_circuit
        if self._in_flight_probes >= cap:
            return self._reject_locked(RejectionReason.PROBE_SLOTS_EXHAUSTED, 0.0)
        self._in_flight_probes += 1
        log_debug(
            self._logger,
            "circuit_breaker.admitted",
            breaker_id=self._id,
            state=str(self._state),
            in_flight_probes=self._in_flight_probes,
            probe_cap=cap,
        )
        return Admitted(self._id, self._state, self._episode)

    def _count_fault_locked(self, now: int, events: list[_Event]) -> None:
        window_start = self._fault_window_started_at_ms
        if window_start is None:
            self._fault_window_started_at_ms = now
        elif now > window_start + self._settings.threshold_period_ms:
            log_debug(
                self._logger,
                "circuit_breaker.fault_window_reset",
                breaker_id=self._id,
                state=str(self._state),
                stale_fault_count=self._fault_count,
            )
            self._fault_count = 0
            self._fault_window_started_at_ms = now

        self._fault_count += 1
        log_debug(
            self._logger,
            "circuit_breaker.fault_recorded",
            breaker_id=self._id,
            state=str(self._state),
            fault_count=self._fault_count,
            threshold=self._settings.threshold,
        )
        if self._fault_count >= self._settings.threshold:
            self._to_open_locked(now, "threshold_reached", events)

    def _transition_locked(self, new: CircuitState, events: list[_Event]) -> None:
        old = self._state
        self._state = new
        self._episode += 1
        events.append(lambda listener: listener.on_state_change(self._id, old, new))

    def _to_open_locked(self, now: int, cause: str, events: list[_Event]) -> None:
        self._transition_locked(CircuitState.OPEN, events)
        self._opened_at_ms = now
        self._success_count = 0
        self._in_flight_probes = 0
        self._fault_count = 0
        self._fault_window_started_at_ms = None
        log_warning(
            self._logger,
            "circuit_breaker.opened",
            breaker_id=self._id,
            state=str(self._state),
            cause=cause,
            reset_period_ms=self._settings.reset_period_ms,
        )

    def _to_half_open_locked(self, events: list[_Event]) -> None:
        self._transition_locked(CircuitState.HALF_OPEN, events)
        self._opened_at_ms = None
        self._fault_count = 0
        self._success_count = 0
        self._in_flight_probes = 0
        log_info(
            self._logger,
            "circuit_breaker.half_opened",
            breaker_id=self._id,
            state=str(self._state),
        )

    def _to_closed_locked(self, events: list[_Event]) -> None:
        self._transition_locked(CircuitState.CLOSED, events)
        self._success_count = 0
        self._in_flight_probes = 0
        self._fault_count = 0
        self._fault_window_started_at_ms = None
        log_info(
            self._logger,
            "circuit_breaker.closed",
            breaker_id=self._id,
            state=str(self._state),
        )

    def _emit(self, events: Sequence[_Event]) -> None:
        for event in events:
            for listener in self._listeners:
                try:
                    event(listener)
                except Exception:
                    log_exception(
                        self._logger,
                        "circuit_breaker.listener_failed",
                        breaker_id=self._id,
                        listener=type(listener).__name__,
                    )
