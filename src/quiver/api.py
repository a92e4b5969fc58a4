"""Public call surface.

Single calls return an ``Ok``/``Err`` result for every outcome, including
a client that could not be built. ``get_batch`` returns one result per URL
and raises only when the whole batch cannot run.

Example::

    from quiver.api import get, get_batch
    from quiver.networking.config import RequestOptions

    result = get("https://example.com", [("Accept", "text/html")])
    if result.ok:
        print(result.value.status, result.value.text)
    else:
        print(result.kind, result.detail)

    results = get_batch(
        ["https://example.com/1", "https://example.com/2"],
        options=RequestOptions(timeout_ms=5_000),
    )
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from quiver.networking.batch import run_batch, run_on_event_loop
from quiver.networking.client import ExecutionMode, build_client
from quiver.networking.config import RequestOptions, resolve
from quiver.networking.errors import DispatchError, InvalidProxyError
from quiver.networking.executor import HttpResult, execute, execute_async
from quiver.networking.models import HeadersInput, RequestSpec
from quiver.networking.types import Err

OptionsInput = RequestOptions | Mapping[str, Any] | None


def _coerce_options(options: OptionsInput) -> RequestOptions | None:
    if options is None or isinstance(options, RequestOptions):
        return options
    return RequestOptions.from_mapping(options)


def _request(spec: RequestSpec, options: OptionsInput) -> HttpResult:
    policy = resolve(_coerce_options(options))
    try:
        client = build_client(policy, ExecutionMode.BLOCKING)
    except InvalidProxyError as exc:
        return Err(exc, meta={"method": spec.method, "url": spec.url})
    with client:
        return execute(client, spec)


async def _request_async_once(
    spec: RequestSpec, options: RequestOptions | None
) -> HttpResult:
    policy = resolve(options)
    async with build_client(policy, ExecutionMode.CONCURRENT) as client:
        return await execute_async(client, spec)


def _request_async(spec: RequestSpec, options: OptionsInput) -> HttpResult:
    resolved = _coerce_options(options)
    try:
        return run_on_event_loop(lambda: _request_async_once(spec, resolved))
    except (InvalidProxyError, DispatchError) as exc:
        return Err(exc, meta={"method": spec.method, "url": spec.url})


def get(
    url: str, headers: HeadersInput = (), options: OptionsInput = None
) -> HttpResult:
    """Blocking GET."""
    return _request(RequestSpec("GET", url, headers), options)


def post(
    url: str,
    headers: HeadersInput = (),
    body: bytes | str = b"",
    options: OptionsInput = None,
) -> HttpResult:
    """Blocking POST."""
    return _request(RequestSpec("POST", url, headers, body), options)


def get_async(
    url: str, headers: HeadersInput = (), options: OptionsInput = None
) -> HttpResult:
    """GET executed as an asyncio task and awaited to completion."""
    return _request_async(RequestSpec("GET", url, headers), options)


def post_async(
    url: str,
    headers: HeadersInput = (),
    body: bytes | str = b"",
    options: OptionsInput = None,
) -> HttpResult:
    """POST executed as an asyncio task and awaited to completion."""
    return _request_async(RequestSpec("POST", url, headers, body), options)


def get_batch(
    urls: Iterable[str],
    headers: HeadersInput = (),
    options: OptionsInput = None,
    *,
    max_concurrency: int | None = None,
) -> list[HttpResult]:
    """Concurrent GET of every URL; results follow input order.

    Raises:
        InvalidProxyError: If the configured proxy cannot be used.
        DispatchError: If the batch could not be scheduled.
    """
    policy = resolve(_coerce_options(options))
    return run_batch(policy, urls, headers, max_concurrency=max_concurrency)
