"""Fault classifiers deciding which call errors count against a breaker."""

from collections.abc import Callable

import httpx

FaultClassifier = Callable[[BaseException], bool]

SERVER_ERROR_STATUS = 500


def _response_status(error: BaseException) -> int | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status
    return None


def is_server_error(error: BaseException) -> bool:
    """Return whether ``error`` carries an HTTP response with status >= 500."""
    status = _response_status(error)
    return status is not None and status >= SERVER_ERROR_STATUS


def is_server_or_transport_error(error: BaseException) -> bool:
    """Like :func:`is_server_error`, also counting timeouts and network errors."""
    if isinstance(error, httpx.TransportError):
        return True
    return is_server_error(error)
