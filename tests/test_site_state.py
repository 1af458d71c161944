from __future__ import annotations

import pytest

from conftest import ClosingTransport, FakeClock, SleepRecorder
from discourse_mcp.http.auth import ApiKeyAuth, NoAuth, UserApiKeyAuth
from discourse_mcp.site import (
    NO_SITE_MESSAGE,
    AuthPair,
    RateLimiter,
    SiteNotSelectedError,
    SiteState,
    normalize_base,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("https://forum.example.com/c/general/4", "https://forum.example.com"),
        ("https://forum.example.com/", "https://forum.example.com"),
        ("  http://localhost:3000/latest  ", "http://localhost:3000"),
        ("https://forum.example.com:443/x", "https://forum.example.com"),
        ("http://[::1]:8080/latest", "http://[::1]:8080"),
        ("https://[2001:db8::1]/c/4", "https://[2001:db8::1]"),
    ],
)
def test_normalize_base(raw, expected):
    assert normalize_base(raw) == expected


@pytest.mark.parametrize("raw", ["not a url", "ftp://forum.example.com", "https://"])
def test_normalize_base_rejects_invalid(raw):
    with pytest.raises(ValueError, match="Invalid site URL"):
        normalize_base(raw)


def test_client_is_reused_per_base():
    state = SiteState()
    base, first = state.build_client_for_site("https://forum.example.com/latest")
    _, second = state.build_client_for_site("https://forum.example.com/t/1")
    _, other = state.build_client_for_site("https://other.example.com")

    assert base == "https://forum.example.com"
    assert first is second
    assert other is not first


def test_override_beats_default_and_first_match_wins():
    state = SiteState(
        default_auth=UserApiKeyAuth(key="default"),
        auth_overrides=[
            AuthPair(site="https://forum.example.com/path", api_key="first"),
            AuthPair(site="https://forum.example.com", api_key="second"),
        ],
    )

    _, client = state.build_client_for_site("https://forum.example.com")
    assert client.auth == ApiKeyAuth(key="first")

    _, fallback = state.build_client_for_site("https://other.example.com")
    assert fallback.auth == UserApiKeyAuth(key="default")


def test_override_carries_basic_auth():
    state = SiteState(
        auth_overrides=[
            AuthPair(
                site="https://staging.example.com",
                http_basic_user="proxy",
                http_basic_pass="pw",
            )
        ]
    )

    _, client = state.build_client_for_site("https://staging.example.com")

    assert client.auth == NoAuth()
    assert client.basic_auth is not None
    assert client.basic_auth.user == "proxy"


def test_auth_pair_prefers_api_key_over_user_api_key():
    pair = AuthPair(site="https://x.example.com", api_key="a", user_api_key="u")
    assert pair.credential().type == "api_key"
    assert AuthPair(site="https://x.example.com", user_api_key="u").credential().type == (
        "user_api_key"
    )
    assert AuthPair(site="https://x.example.com").credential().type == "none"


def test_ensure_selected_site_requires_selection():
    state = SiteState()
    with pytest.raises(SiteNotSelectedError) as exc_info:
        state.ensure_selected_site()
    assert str(exc_info.value) == NO_SITE_MESSAGE

    state.select_site("https://forum.example.com/latest")
    base, client = state.ensure_selected_site()
    assert base == "https://forum.example.com"
    assert client.base_url == base
    assert state.get_site_base() == base


def test_get_auth_type_uses_override():
    state = SiteState(
        auth_overrides=[AuthPair(site="https://admin.example.com", api_key="k")]
    )
    assert state.get_auth_type("https://admin.example.com/x") == "api_key"
    assert state.get_auth_type("https://public.example.com") == "none"


@pytest.mark.parametrize(
    "default_auth,overrides,expected",
    [
        (None, [], False),
        (ApiKeyAuth(key="k"), [], True),
        (UserApiKeyAuth(key="u"), [], False),
        (None, [AuthPair(site="https://a.example.com", user_api_key="u")], False),
        (None, [AuthPair(site="https://a.example.com", api_key="k")], True),
    ],
)
def test_has_admin_auth(default_auth, overrides, expected):
    state = SiteState(default_auth=default_auth, auth_overrides=overrides)
    assert state.has_admin_auth() is expected


@pytest.mark.asyncio
async def test_rate_limiter_spaces_starts_per_key():
    clock = FakeClock()
    sleep = SleepRecorder(clock)
    limiter = RateLimiter(clock=clock, sleep=sleep)

    await limiter.wait("post")
    clock.advance(0.2)
    await limiter.wait("post")
    assert sleep.calls == [pytest.approx(0.8)]

    await limiter.wait("upload")
    assert len(sleep.calls) == 1

    clock.advance(5)
    await limiter.wait("post")
    assert len(sleep.calls) == 1


@pytest.mark.asyncio
async def test_rate_limiter_custom_interval_and_reset():
    clock = FakeClock()
    sleep = SleepRecorder(clock)
    limiter = RateLimiter(clock=clock, sleep=sleep)

    await limiter.wait("draft", 0.5)
    clock.advance(0.1)
    await limiter.wait("draft", 0.5)
    assert sleep.calls == [pytest.approx(0.4)]

    limiter.reset()
    await limiter.wait("draft", 0.5)
    assert len(sleep.calls) == 1


@pytest.mark.asyncio
async def test_aclose_closes_every_site_client(upstream):
    upstream.json("GET", "/about.json", {"about": {}})
    transport = ClosingTransport(upstream.handler)
    state = SiteState(transport=transport)
    _, forum = state.build_client_for_site("https://forum.example.com")
    _, other = state.build_client_for_site("https://other.example.com")

    await forum.get("/about.json")
    await other.get("/about.json")
    await state.aclose()

    assert transport.closed == 2
