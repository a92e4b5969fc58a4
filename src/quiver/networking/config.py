"""Configuration models and policy resolution for the HttpClient."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_FOLLOW_REDIRECTS = True
DEFAULT_MAX_REDIRECTS = 10
DEFAULT_USER_AGENT = "quiver/0.1.0"

# Older callers pass the option names used by the first release.
_LEGACY_KEYS = {"proxy": "proxy_url"}


@dataclass(frozen=True)
class RequestOptions:
    """Sparse per-call options.

    Every field is optional; ``None`` means "use the default". Defaults are
    applied in one place only, by :func:`resolve`.
    """

    timeout_ms: int | None = None
    proxy_url: str | None = None
    follow_redirects: bool | None = None
    max_redirects: int | None = None

    def __post_init__(self) -> None:
        if self.timeout_ms is not None:
            if isinstance(self.timeout_ms, bool) or not isinstance(
                self.timeout_ms, int
            ):
                raise ValueError("timeout_ms must be an integer")
            if self.timeout_ms <= 0:
                raise ValueError("timeout_ms must be > 0 when provided")
        if self.max_redirects is not None:
            if isinstance(self.max_redirects, bool) or not isinstance(
                self.max_redirects, int
            ):
                raise ValueError("max_redirects must be an integer")
            if self.max_redirects < 0:
                raise ValueError("max_redirects must be >= 0")
        if self.follow_redirects is not None and not isinstance(
            self.follow_redirects, bool
        ):
            raise ValueError("follow_redirects must be a boolean")
        if self.proxy_url is not None and not isinstance(self.proxy_url, str):
            raise ValueError("proxy_url must be a string")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> RequestOptions:
        """Build options from a plain mapping such as decoded JSON."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            name = _LEGACY_KEYS.get(key, key)
            if name not in known:
                raise ValueError(f"unknown request option: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class ResolvedPolicy:
    """Fully-defaulted client policy. Immutable once constructed."""

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    proxy_url: str | None = None
    follow_redirects: bool = DEFAULT_FOLLOW_REDIRECTS
    max_redirects: int = DEFAULT_MAX_REDIRECTS

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


def resolve(options: RequestOptions | None) -> ResolvedPolicy:
    """Apply defaults to sparse options.

    Pure and total: proxy syntax is not checked here, that happens when a
    client is built from the policy.
    """
    if options is None:
        return ResolvedPolicy()
    return ResolvedPolicy(
        timeout_ms=(
            DEFAULT_TIMEOUT_MS
            if options.timeout_ms is None
            else options.timeout_ms
        ),
        proxy_url=options.proxy_url,
        follow_redirects=(
            DEFAULT_FOLLOW_REDIRECTS
            if options.follow_redirects is None
            else options.follow_redirects
        ),
        max_redirects=(
            DEFAULT_MAX_REDIRECTS
            if options.max_redirects is None
            else options.max_redirects
        ),
    )
