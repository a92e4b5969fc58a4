"""Request and response value objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Tuple, Union

HeaderPairs = Tuple[Tuple[str, str], ...]
HeadersInput = Union[Mapping[Any, Any], Iterable[Tuple[Any, Any]], None]


def _to_str(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("latin-1")
    if isinstance(value, str):
        return value
    return str(value)


def normalize_headers(headers: HeadersInput) -> HeaderPairs:
    """Turn a mapping or an iterable of pairs into ordered string pairs.

    Duplicate names are kept; each occurrence is sent on its own line.
    """
    if headers is None:
        return ()
    items = headers.items() if isinstance(headers, Mapping) else headers
    pairs = []
    for item in items:
        name, value = item
        pairs.append((_to_str(name), _to_str(value)))
    return tuple(pairs)


@dataclass(frozen=True)
class RequestSpec:
    """One HTTP exchange to perform."""

    method: str
    url: str
    headers: HeaderPairs = ()
    body: bytes | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", normalize_headers(self.headers))
        if isinstance(self.body, str):
            object.__setattr__(self, "body", self.body.encode("utf-8"))
        elif self.body is not None and not isinstance(self.body, bytes):
            object.__setattr__(self, "body", bytes(self.body))


@dataclass(frozen=True)
class HttpResponse:
    """Fully buffered response.

    ``headers`` keeps the last value for repeated names; ``header_list``
    keeps every value in the order it was received. Names are lowercase in
    both.
    """

    status: int
    header_list: HeaderPairs = ()
    body: bytes = b""
    url: str = ""
    headers: Mapping[str, str] = field(init=False)

    def __post_init__(self) -> None:
        pairs = tuple(
            (_to_str(name).lower(), _to_str(value))
            for name, value in self.header_list
        )
        object.__setattr__(self, "header_list", pairs)
        object.__setattr__(self, "headers", MappingProxyType(dict(pairs)))

    def get_all(self, name: str) -> list[str]:
        """Return every value received for ``name`` (case-insensitive)."""
        wanted = name.lower()
        return [value for key, value in self.header_list if key == wanted]

    @property
    def text(self) -> str:
        try:
            return self.body.decode("utf-8")
        except UnicodeDecodeError:
            return self.body.decode("latin-1")
