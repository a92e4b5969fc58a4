"""Concurrent batch dispatch over one shared client.

Each URL gets its own asyncio task issuing a GET with the shared headers.
Results come back in input order, one per URL, and a failed request only
affects its own slot.
"""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Awaitable, Callable, Iterable, Sequence, TypeVar

from .client import ExecutionMode, HttpClient, build_client
from .config import ResolvedPolicy
from .errors import DispatchError, RequestError
from .executor import HttpResult, execute_async
from .models import HeadersInput, RequestSpec, normalize_headers
from .types import Err

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _guarded(
    spec: RequestSpec,
    client: HttpClient,
    semaphore: asyncio.Semaphore | None,
) -> HttpResult:
    try:
        if semaphore is None:
            return await execute_async(client, spec)
        async with semaphore:
            return await execute_async(client, spec)
    except Exception as exc:  # pragma: no cover - unexpected failure
        logger.exception("batch request for %s failed unexpectedly", spec.url)
        return Err(
            RequestError(str(exc), cause=exc),
            meta={"method": spec.method, "url": spec.url},
        )


async def dispatch_batch(
    client: HttpClient,
    urls: Sequence[str],
    headers: HeadersInput = (),
    *,
    max_concurrency: int | None = None,
) -> list[HttpResult]:
    """GET every URL concurrently and return results in input order.

    Args:
        client: Client built with ``ExecutionMode.CONCURRENT``; shared
            read-only by every task.
        urls: URLs to fetch.
        headers: Headers sent with every request.
        max_concurrency: Optional cap on in-flight requests. ``None``
            leaves fan-out bounded only by the client's connection limits.

    Returns:
        One result per URL, same length and order as ``urls``.

    Raises:
        DispatchError: If the tasks could not be scheduled.
        TypeError: If ``client`` was built for the blocking mode.
    """
    if max_concurrency is not None and max_concurrency <= 0:
        raise ValueError("max_concurrency must be > 0 when provided")
    if client.mode is not ExecutionMode.CONCURRENT:
        raise TypeError("batch dispatch needs a concurrent client")
    shared_headers = normalize_headers(headers)
    specs = [
        RequestSpec(method="GET", url=url, headers=shared_headers)
        for url in urls
    ]
    if not specs:
        return []

    semaphore = (
        asyncio.Semaphore(max_concurrency)
        if max_concurrency is not None
        else None
    )
    started = perf_counter()
    tasks: list[asyncio.Task[HttpResult]] = []
    for spec in specs:
        work = _guarded(spec, client, semaphore)
        try:
            tasks.append(asyncio.ensure_future(work))
        except RuntimeError as exc:
            work.close()
            for task in tasks:
                task.cancel()
            raise DispatchError(
                f"could not schedule batch request: {exc}", cause=exc
            ) from exc

    results = list(await asyncio.gather(*tasks))

    failures = sum(1 for result in results if not result.ok)
    logger.info(
        "batch of %d completed in %.3fs: %d ok, %d failed",
        len(results),
        perf_counter() - started,
        len(results) - failures,
        failures,
    )
    return results


def run_on_event_loop(factory: Callable[[], Awaitable[T]]) -> T:
    """Drive a coroutine to completion on a fresh event loop.

    Raises:
        DispatchError: If no event loop can be started here, e.g. when
            called from inside a running loop.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        pass
    else:
        raise DispatchError(
            "cannot start an event loop from inside a running one; "
            "await the coroutine API instead"
        )
    try:
        runner = asyncio.Runner()
    except (RuntimeError, OSError) as exc:
        raise DispatchError(
            f"could not start event loop: {exc}", cause=exc
        ) from exc
    with runner:
        return runner.run(factory())


async def _run_batch(
    policy: ResolvedPolicy,
    urls: Sequence[str],
    headers: HeadersInput,
    max_concurrency: int | None,
) -> list[HttpResult]:
    async with build_client(policy, ExecutionMode.CONCURRENT) as client:
        return await dispatch_batch(
            client, urls, headers, max_concurrency=max_concurrency
        )


def run_batch(
    policy: ResolvedPolicy,
    urls: Iterable[str],
    headers: HeadersInput = (),
    *,
    max_concurrency: int | None = None,
) -> list[HttpResult]:
    """Blocking entry point: build a concurrent client and dispatch.

    Raises:
        InvalidProxyError: If the policy's proxy cannot be used.
        DispatchError: If the event loop or tasks could not be started.
    """
    url_list = list(urls)
    return run_on_event_loop(
        lambda: _run_batch(policy, url_list, headers, max_concurrency)
    )
