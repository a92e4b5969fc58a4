# pyright: reportUnknownMemberType=false
import dataclasses

import pytest

from quiver.networking.config import (
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_TIMEOUT_MS,
    RequestOptions,
    ResolvedPolicy,
    resolve,
)


def test_options_defaults_are_all_absent():
    options = RequestOptions()

    assert options.timeout_ms is None
    assert options.proxy_url is None
    assert options.follow_redirects is None
    assert options.max_redirects is None


def test_resolve_empty_options_yields_fixed_defaults():
    policy = resolve(RequestOptions())

    assert (
        policy.timeout_ms,
        policy.proxy_url,
        policy.follow_redirects,
        policy.max_redirects,
    ) == (30000, None, True, 10)
    assert DEFAULT_TIMEOUT_MS == 30000
    assert DEFAULT_MAX_REDIRECTS == 10


def test_resolve_none_matches_empty_options():
    assert resolve(None) == resolve(RequestOptions())


def test_resolve_is_deterministic():
    options = RequestOptions(timeout_ms=250, follow_redirects=False)

    assert resolve(options) == resolve(options)


def test_resolve_keeps_explicit_values():
    policy = resolve(
        RequestOptions(
            timeout_ms=1500,
            proxy_url="http://proxy.local:3128",
            follow_redirects=False,
            max_redirects=0,
        )
    )

    assert policy == ResolvedPolicy(
        timeout_ms=1500,
        proxy_url="http://proxy.local:3128",
        follow_redirects=False,
        max_redirects=0,
    )
    assert policy.timeout_seconds == 1.5


def test_resolve_does_not_validate_proxy_syntax():
    policy = resolve(RequestOptions(proxy_url="::not a proxy::"))

    assert policy.proxy_url == "::not a proxy::"


def test_policy_is_immutable():
    policy = resolve(None)

    with pytest.raises(dataclasses.FrozenInstanceError):
        policy.timeout_ms = 5  # type: ignore[misc]


def test_options_reject_non_positive_timeout():
    with pytest.raises(ValueError):
        RequestOptions(timeout_ms=0)
    with pytest.raises(ValueError):
        RequestOptions(timeout_ms=-1)


def test_options_reject_non_integer_timeout():
    with pytest.raises(ValueError):
        RequestOptions(timeout_ms=1.5)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        RequestOptions(timeout_ms=True)  # type: ignore[arg-type]


def test_options_reject_negative_max_redirects():
    with pytest.raises(ValueError):
        RequestOptions(max_redirects=-1)


def test_options_accept_zero_max_redirects():
    assert RequestOptions(max_redirects=0).max_redirects == 0


def test_options_reject_non_bool_follow_redirects():
    with pytest.raises(ValueError):
        RequestOptions(follow_redirects="yes")  # type: ignore[arg-type]


def test_from_mapping_accepts_legacy_proxy_key():
    options = RequestOptions.from_mapping(
        {"timeout_ms": 5000, "proxy": "http://proxy.local:8080"}
    )

    assert options == RequestOptions(
        timeout_ms=5000, proxy_url="http://proxy.local:8080"
    )


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ValueError, match="unknown request option"):
        RequestOptions.from_mapping({"retries": 3})
