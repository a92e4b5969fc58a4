"""Error taxonomy for the networking layer.

Every low-level failure raised by either transport (``requests`` for the
blocking mode, ``httpx`` for the concurrent mode) is mapped onto one
:class:`ErrorKind` by :func:`classify_exception`. All execution modes go
through that single function so a given failure is categorized the same
way no matter how the request was issued.
"""

from __future__ import annotations

from enum import Enum

import httpx
import requests
import urllib3.exceptions


class ErrorKind(str, Enum):
    INVALID_PROXY = "invalid_proxy"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    REQUEST_ERROR = "request_error"
    RUNTIME_ERROR = "runtime_error"


class HttpClientError(Exception):
    """Base class for all networking errors."""

    kind: ErrorKind = ErrorKind.REQUEST_ERROR

    def __init__(self, detail: str, cause: BaseException | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.cause = cause


class InvalidProxyError(HttpClientError):
    """Proxy URL could not be parsed or attached to a client."""

    kind = ErrorKind.INVALID_PROXY


class RequestTimeoutError(HttpClientError):
    """Exchange did not complete within the configured timeout."""

    kind = ErrorKind.TIMEOUT


class NetworkError(HttpClientError):
    """Failure before or during connection establishment."""

    kind = ErrorKind.NETWORK_ERROR


class RequestError(HttpClientError):
    """Any other transport-level failure."""

    kind = ErrorKind.REQUEST_ERROR


class DispatchError(HttpClientError):
    """The concurrent execution substrate could not schedule work."""

    kind = ErrorKind.RUNTIME_ERROR


_ERROR_TYPES: dict[ErrorKind, type[HttpClientError]] = {
    ErrorKind.INVALID_PROXY: InvalidProxyError,
    ErrorKind.TIMEOUT: RequestTimeoutError,
    ErrorKind.NETWORK_ERROR: NetworkError,
    ErrorKind.REQUEST_ERROR: RequestError,
    ErrorKind.RUNTIME_ERROR: DispatchError,
}


def _origin(error: BaseException) -> object:
    """Return the urllib3 error wrapped by a requests exception."""
    origin: object = error.args[0] if error.args else None
    if isinstance(origin, urllib3.exceptions.MaxRetryError):
        origin = origin.reason
    return origin


def classify_exception(error: BaseException) -> ErrorKind:
    """Map a transport exception to an ErrorKind.

    Checked in order: timeout, connection establishment, everything else.
    urllib3 derives NewConnectionError (and NameResolutionError) from
    ConnectTimeoutError, so a failed connect is matched ahead of the
    timeout types.
    """
    if isinstance(error, urllib3.exceptions.NewConnectionError):
        return ErrorKind.NETWORK_ERROR
    if isinstance(
        error, requests.exceptions.ConnectionError
    ) and isinstance(_origin(error), urllib3.exceptions.NewConnectionError):
        return ErrorKind.NETWORK_ERROR

    if isinstance(
        error,
        (
            requests.exceptions.Timeout,
            httpx.TimeoutException,
            urllib3.exceptions.TimeoutError,
            TimeoutError,
        ),
    ):
        return ErrorKind.TIMEOUT

    if isinstance(error, requests.exceptions.ConnectionError):
        origin = _origin(error)
        # requests re-raises body read timeouts as ConnectionError.
        if isinstance(origin, urllib3.exceptions.TimeoutError):
            return ErrorKind.TIMEOUT
        # Connection was established but the peer broke the exchange.
        if isinstance(origin, urllib3.exceptions.ProtocolError):
            return ErrorKind.REQUEST_ERROR
        return ErrorKind.NETWORK_ERROR

    if isinstance(error, (httpx.ConnectError, httpx.ProxyError)):
        return ErrorKind.NETWORK_ERROR

    return ErrorKind.REQUEST_ERROR


def describe_exception(error: BaseException) -> str:
    """Human-readable detail for a transport exception."""
    message = str(error).strip()
    if not message:
        return type(error).__name__
    return f"{type(error).__name__}: {message}"


def error_from_exception(error: BaseException) -> HttpClientError:
    """Wrap a transport exception in the matching HttpClientError."""
    if isinstance(error, HttpClientError):
        return error
    kind = classify_exception(error)
    return _ERROR_TYPES[kind](describe_exception(error), cause=error)
