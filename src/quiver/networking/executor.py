"""Single-request execution for both client modes.

``execute`` runs on a blocking client and ``execute_async`` on a
concurrent one. Each performs exactly one exchange: no retries, no
caching. The policy timeout bounds the whole exchange, body included.
Transport failures are returned as ``Err`` values built by the shared
classifier in ``errors``; HTTP status codes are never failures.
"""

from __future__ import annotations

import asyncio
import logging
from time import monotonic
from typing import Any, Mapping, Union

import httpx
import requests
import urllib3.exceptions
from urllib3 import HTTPHeaderDict

from .client import HttpClient
from .errors import (
    HttpClientError,
    RequestError,
    RequestTimeoutError,
    error_from_exception,
)
from .models import HeaderPairs, HttpResponse, RequestSpec
from .types import Err, Ok, Result

logger = logging.getLogger(__name__)

HttpResult = Result[HttpResponse, HttpClientError]

_REQUESTS_ERRORS = (
    HttpClientError,
    requests.exceptions.RequestException,
    urllib3.exceptions.HTTPError,
)

_READ_CHUNK_SIZE = 64 * 1024
_HTTPX_ERRORS = (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError)

TransportResponse = Union[requests.Response, httpx.Response]


def _build_meta(
    client: HttpClient,
    spec: RequestSpec,
    response: TransportResponse | None,
    elapsed: float,
    final_error: str | None = None,
) -> dict[str, Any]:
    """Construct metadata dictionary from response and request."""
    meta: dict[str, Any] = {
        "method": spec.method,
        "url": spec.url,
        "mode": client.mode.value,
        "timeout_s": client.policy.timeout_seconds,
        "elapsed_s": elapsed,
    }
    if isinstance(response, requests.Response):
        meta["status"] = response.status_code
        meta["status_code"] = response.status_code
        meta["url"] = response.url
        meta["reason"] = response.reason
    elif isinstance(response, httpx.Response):
        meta["status"] = response.status_code
        meta["status_code"] = response.status_code
        meta["url"] = str(response.url)
        meta["reason"] = response.reason_phrase
    if final_error is not None:
        meta["final_error"] = final_error
    return meta


def _ordered_headers(
    pairs: HeaderPairs, prepared: Mapping[str, str]
) -> HTTPHeaderDict:
    """Caller headers first, in order and with repeats, then defaults.

    requests folds headers into a case-insensitive dict. urllib3's
    HTTPHeaderDict keeps repeated names, and urllib3 writes each of its
    entries as a separate header line.
    """
    ordered = HTTPHeaderDict()
    for name, value in pairs:
        ordered.add(name, value)
    for name, value in prepared.items():
        if name not in ordered:
            ordered[name] = value
    return ordered


def _requests_header_pairs(response: requests.Response) -> HeaderPairs:
    return tuple(response.raw.headers.items())


def _deadline_error(client: HttpClient) -> RequestTimeoutError:
    return RequestTimeoutError(
        f"request did not complete within {client.policy.timeout_ms} ms"
    )


def _limit_socket_wait(raw: Any, remaining: float) -> None:
    """Cap the next socket read at the time left before the deadline."""
    connection = getattr(raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is not None:
        sock.settimeout(remaining)


def _read_body(
    client: HttpClient, response: requests.Response, deadline: float
) -> bytes:
    """Buffer the body, failing once the request deadline has passed.

    Redirect responses were already drained by requests while it resolved
    the redirect chain.
    """
    if response.is_redirect:
        body = response.content
        if monotonic() >= deadline:
            raise _deadline_error(client)
        return body

    raw = response.raw
    chunks: list[bytes] = []
    while True:
        remaining = deadline - monotonic()
        if remaining <= 0:
            raise _deadline_error(client)
        _limit_socket_wait(raw, remaining)
        chunk = raw.read1(_READ_CHUNK_SIZE, decode_content=True)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def _send_blocking(
    session: requests.Session, client: HttpClient, spec: RequestSpec
) -> requests.Response:
    prepared = session.prepare_request(
        requests.Request(method=spec.method, url=spec.url, data=spec.body)
    )
    prepared.headers = _ordered_headers(spec.headers, prepared.headers)
    return session.send(
        prepared,
        timeout=client.policy.timeout_seconds,
        allow_redirects=client.policy.follow_redirects,
        stream=True,
    )


def _failure(
    client: HttpClient,
    spec: RequestSpec,
    exc: BaseException,
    started: float,
    error: HttpClientError | None = None,
) -> Err[HttpClientError]:
    error = error or error_from_exception(exc)
    logger.debug(
        "%s %s failed (%s): %s",
        spec.method,
        spec.url,
        error.kind.value,
        error.detail,
    )
    return Err(
        error,
        meta=_build_meta(
            client,
            spec,
            None,
            monotonic() - started,
            final_error=type(exc).__name__,
        ),
    )


def _success(
    client: HttpClient,
    spec: RequestSpec,
    response: TransportResponse,
    value: HttpResponse,
    started: float,
) -> Ok[HttpResponse]:
    elapsed = monotonic() - started
    logger.debug(
        "%s %s -> %s in %.3fs", spec.method, spec.url, value.status, elapsed
    )
    return Ok(value, meta=_build_meta(client, spec, response, elapsed))


def execute(client: HttpClient, spec: RequestSpec) -> HttpResult:
    """Perform one exchange on a blocking client.

    Args:
        client: Client built with ``ExecutionMode.BLOCKING``.
        spec: Request to send.

    Returns:
        ``Ok`` with the buffered response for any HTTP status, or ``Err``
        with a classified error when no complete response was obtained.

    Raises:
        TypeError: If ``client`` was built for the concurrent mode.
    """
    session = client.session
    started = monotonic()
    deadline = started + client.policy.timeout_seconds
    try:
        response = _send_blocking(session, client, spec)
        try:
            body = _read_body(client, response, deadline)
        finally:
            response.close()
        value = HttpResponse(
            status=response.status_code,
            header_list=_requests_header_pairs(response),
            body=body,
            url=response.url,
        )
    except _REQUESTS_ERRORS as exc:
        return _failure(client, spec, exc, started)
    except Exception as exc:  # pragma: no cover - unexpected failure
        return _failure(
            client, spec, exc, started, RequestError(str(exc), cause=exc)
        )
    return _success(client, spec, response, value, started)


async def execute_async(client: HttpClient, spec: RequestSpec) -> HttpResult:
    """Perform one exchange on a concurrent client.

    Same contract as :func:`execute`; the exchange runs on the current
    event loop.

    Raises:
        TypeError: If ``client`` was built for the blocking mode.
    """
    async_client = client.async_client
    started = monotonic()
    try:
        async with asyncio.timeout(client.policy.timeout_seconds):
            response = await async_client.request(
                spec.method,
                spec.url,
                headers=list(spec.headers),
                content=spec.body,
            )
        value = HttpResponse(
            status=response.status_code,
            header_list=tuple(response.headers.multi_items()),
            body=response.content,
            url=str(response.url),
        )
    except TimeoutError as exc:
        return _failure(client, spec, exc, started, _deadline_error(client))
    except _HTTPX_ERRORS as exc:
        return _failure(client, spec, exc, started)
    except Exception as exc:  # pragma: no cover - unexpected failure
        return _failure(
            client, spec, exc, started, RequestError(str(exc), cause=exc)
        )
    return _success(client, spec, response, value, started)
