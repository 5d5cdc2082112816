from __future__ import annotations

from typing import Any

import httpx

from httpx_breaker.circuit_breaker.breaker import CircuitBreaker
from httpx_breaker.circuit_breaker.faults import FaultClassifier
from httpx_breaker.circuit_breaker.state import Admitted


def _status_error(
    request: httpx.Request, response: httpx.Response
) -> httpx.HTTPStatusError | None:
    """Return the error an error-status response represents, if any."""
    if not response.is_error:
        return None
    return httpx.HTTPStatusError(
        f"{response.status_code} response for {request.method} {request.url}",
        request=request,
        response=response,
    )


class _BreakerReporter:
    """Shared outcome reporting for the sync and async transports."""

    def __init__(
        self, breaker: CircuitBreaker, is_fault: FaultClassifier | None
    ) -> None:
        self._breaker = breaker
        self._is_fault = breaker.is_fault if is_fault is None else is_fault

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def report_error(self, admission: Admitted, error: BaseException) -> None:
        if self._is_fault(error):
            self._breaker.on_fault(admission=admission)

    def report_response(
        self,
        admission: Admitted,
        request: httpx.Request,
        response: httpx.Response,
    ) -> None:
        error = _status_error(request, response)
        if error is None:
            self._breaker.on_success(admission=admission)
            return
        self.report_error(admission, error)


class CircuitBreakerTransport(httpx.BaseTransport):
    """Sync httpx transport gating every request through one breaker.

    Rejected requests raise ``CircuitOpenError`` or ``CircuitHalfOpenError``
    without touching the wrapped transport. Error-status responses are still
    returned to the caller; they only count as faults when the classifier
    says so.
    """

    def __init__(
        self,
        breaker: CircuitBreaker,
        *,
        transport: httpx.BaseTransport | None = None,
        is_fault: FaultClassifier | None = None,
    ) -> None:
        """Wrap ``transport`` with circuit breaker admission and reporting.

        Args:
            breaker: Breaker protecting the dependency behind this transport.
            transport: Transport performing the actual I/O. Defaults to
                ``httpx.HTTPTransport()``.
            is_fault: Fault classifier. Defaults to ``breaker.is_fault``.
        """
        self._reporter = _BreakerReporter(breaker, is_fault)
        self._transport = httpx.HTTPTransport() if transport is None else transport

    @property
    def breaker(self) -> CircuitBreaker:
        return self._reporter.breaker

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        admission = self.breaker.admit()
        try:
            response = self._transport.handle_request(request)
        except Exception as exc:
            self._reporter.report_error(admission, exc)
            raise
        self._reporter.report_response(admission, request, response)
        return response

    def close(self) -> None:
        self._transport.close()


class AsyncCircuitBreakerTransport(httpx.AsyncBaseTransport):
    """Async httpx transport gating every request through one breaker."""

    def __init__(
        self,
        breaker: CircuitBreaker,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        is_fault: FaultClassifier | None = None,
    ) -> None:
        """Wrap ``transport`` with circuit breaker admission and reporting.

        Args:
            breaker: Breaker protecting the dependency behind this transport.
            transport: Transport performing the actual I/O. Defaults to
                ``httpx.AsyncHTTPTransport()``.
            is_fault: Fault classifier. Defaults to ``breaker.is_fault``.
        """
        self._reporter = _BreakerReporter(breaker, is_fault)
        self._transport = (
            httpx.AsyncHTTPTransport() if transport is None else transport
        )

    @property
    def breaker(self) -> CircuitBreaker:
        return self._reporter.breaker

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        admission = self.breaker.admit()
        try:
            response = await self._transport.handle_async_request(request)
        except Exception as exc:
            self._reporter.report_error(admission, exc)
            raise
        self._reporter.report_response(admission, request, response)
        return response

    async def aclose(self) -> None:
        await self._transport.aclose()


def create_client(
    breaker: CircuitBreaker,
    *,
    transport: httpx.BaseTransport | None = None,
    is_fault: FaultClassifier | None = None,
    **client_kwargs: Any,
) -> httpx.Client:
    """Build an ``httpx.Client`` whose requests go through ``breaker``."""
    return httpx.Client(
        transport=CircuitBreakerTransport(
            breaker, transport=transport, is_fault=is_fault
        ),
        **client_kwargs,
    )


def create_async_client(
    breaker: CircuitBreaker,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    is_fault: FaultClassifier | None = None,
    **client_kwargs: Any,
) -> httpx.AsyncClient:
    """Build an ``httpx.AsyncClient`` whose requests go through ``breaker``."""
    return httpx.AsyncClient(
        transport=AsyncCircuitBreakerTransport(
            breaker, transport=transport, is_fault=is_fault
        ),
        **client_kwargs,
    )
