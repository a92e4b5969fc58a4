"""HTTP client construction for the quiver networking layer.

A single builder turns a :class:`ResolvedPolicy` into an :class:`HttpClient`
for either execution mode. The blocking mode is backed by a
``requests.Session`` and the concurrent mode by an ``httpx.AsyncClient``;
both are configured from the same policy fields so they behave the same
apart from blocking vs. non-blocking execution.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

import httpx
import requests
from urllib3.exceptions import LocationParseError
from urllib3.util import parse_url

from .config import DEFAULT_USER_AGENT, ResolvedPolicy
from .errors import InvalidProxyError

logger = logging.getLogger(__name__)

_PROXY_SCHEMES = frozenset({"http", "https", "socks5", "socks5h"})


class ExecutionMode(str, Enum):
    BLOCKING = "blocking"
    CONCURRENT = "concurrent"


def _validate_proxy(proxy_url: str) -> str:
    """Check that a proxy URL can be attached to a client."""
    try:
        parsed = parse_url(proxy_url)
    except LocationParseError as exc:
        raise InvalidProxyError(
            f"invalid proxy url {proxy_url!r}: {exc}", cause=exc
        ) from exc
    if parsed.scheme is None or parsed.scheme.lower() not in _PROXY_SCHEMES:
        raise InvalidProxyError(
            f"invalid proxy url {proxy_url!r}: scheme must be one of "
            f"{sorted(_PROXY_SCHEMES)}"
        )
    if not parsed.host:
        raise InvalidProxyError(f"invalid proxy url {proxy_url!r}: missing host")
    return proxy_url


class HttpClient:
    """Reusable client bound to one policy and one execution mode.

    The policy is fixed at construction. Nothing on the client is mutated
    by requests, so one instance can serve many in-flight requests.
    """

    def __init__(
        self,
        policy: ResolvedPolicy,
        mode: ExecutionMode,
        transport: requests.Session | httpx.AsyncClient,
    ) -> None:
        self._policy = policy
        self._mode = mode
        self._transport = transport

    @property
    def policy(self) -> ResolvedPolicy:
        return self._policy

    @property
    def mode(self) -> ExecutionMode:
        return self._mode

    @property
    def session(self) -> requests.Session:
        """Underlying blocking session."""
        if not isinstance(self._transport, requests.Session):
            raise TypeError(
                f"{self._mode.value} client has no blocking session"
            )
        return self._transport

    @property
    def async_client(self) -> httpx.AsyncClient:
        """Underlying non-blocking client."""
        if not isinstance(self._transport, httpx.AsyncClient):
            raise TypeError(
                f"{self._mode.value} client has no non-blocking transport"
            )
        return self._transport

    def close(self) -> None:
        self.session.close()

    async def aclose(self) -> None:
        await self.async_client.aclose()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"HttpClient(mode={self._mode.value}, policy={self._policy!r})"


def _build_session(policy: ResolvedPolicy) -> requests.Session:
    session = requests.Session()
    session.trust_env = False
    session.headers["User-Agent"] = DEFAULT_USER_AGENT
    session.max_redirects = policy.max_redirects
    if policy.proxy_url is not None:
        session.proxies = {"http": policy.proxy_url, "https": policy.proxy_url}
    return session


def _build_async_client(policy: ResolvedPolicy) -> httpx.AsyncClient:
    try:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(policy.timeout_seconds),
            follow_redirects=policy.follow_redirects,
            max_redirects=policy.max_redirects,
            proxy=policy.proxy_url,
            headers={"User-Agent": DEFAULT_USER_AGENT},
            trust_env=False,
        )
    except (ValueError, httpx.InvalidURL) as exc:
        raise InvalidProxyError(
            f"invalid proxy url {policy.proxy_url!r}: {exc}", cause=exc
        ) from exc


def build_client(
    policy: ResolvedPolicy, mode: ExecutionMode = ExecutionMode.BLOCKING
) -> HttpClient:
    """Build a client for ``mode`` from a resolved policy.

    Args:
        policy: Fully-defaulted policy (see ``config.resolve``).
        mode: Blocking or concurrent execution.

    Returns:
        A client ready to be shared by any number of requests.

    Raises:
        InvalidProxyError: If ``policy.proxy_url`` cannot be used. HTTP,
            HTTPS and SOCKS5 (``socks5``, ``socks5h``) proxies are accepted.
    """
    if policy.proxy_url is not None:
        _validate_proxy(policy.proxy_url)

    mode = ExecutionMode(mode)
    transport: requests.Session | httpx.AsyncClient
    if mode is ExecutionMode.BLOCKING:
        transport = _build_session(policy)
    else:
        transport = _build_async_client(policy)

    logger.debug(
        "built %s client (timeout_ms=%s, proxy=%s, follow_redirects=%s, "
        "max_redirects=%s)",
        mode.value,
        policy.timeout_ms,
        policy.proxy_url is not None,
        policy.follow_redirects,
        policy.max_redirects,
    )
    return HttpClient(policy, mode, transport)
