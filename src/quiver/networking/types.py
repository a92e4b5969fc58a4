"""Result types returned by the HttpClient."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Generic, Mapping, TypeVar, Union

from .errors import ErrorKind, HttpClientError

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


def _freeze_meta(meta: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(meta))


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value and request metadata."""

    value: T
    meta: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "meta", _freeze_meta(self.meta))

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying the error and request metadata."""

    error: E
    meta: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "meta", _freeze_meta(self.meta))

    @property
    def ok(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        if isinstance(self.error, HttpClientError):
            return self.error.kind
        return ErrorKind.REQUEST_ERROR

    @property
    def detail(self) -> str:
        if isinstance(self.error, HttpClientError):
            return self.error.detail
        return str(self.error)


Result = Union[Ok[T], Err[E]]
