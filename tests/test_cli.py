from __future__ import annotations

import httpx
import pytest

from conftest import SITE, Upstream
from discourse_mcp.cli import build_registrar, cli_overrides, main, parse_args
from discourse_mcp.config import Settings
from discourse_mcp.http.errors import HttpStatusError


def test_snake_and_kebab_spellings():
    args = parse_args(
        ["--allow-writes", "--read_only=false", "--timeout-ms", "500", "--site", SITE]
    )
    assert cli_overrides(args) == {
        "allow_writes": True,
        "read_only": False,
        "timeout_ms": 500,
        "site": SITE,
    }


def test_bool_flags_accept_explicit_values():
    args = parse_args(["--show_emails", "yes", "--read-only", "0"])
    assert args.show_emails is True
    assert args.read_only is False


def test_dash_prefixed_value_is_kept():
    assert parse_args(["--default-search", "-tag:foo"]).default_search == "-tag:foo"
    assert parse_args(["--default_search=-tag:bar"]).default_search == "-tag:bar"


def test_unset_options_are_not_overrides():
    assert cli_overrides(parse_args([])) == {}


def test_invalid_bool_is_rejected():
    with pytest.raises(SystemExit):
        parse_args(["--allow_writes=maybe"])


def test_invalid_config_exits_with_code_2(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    assert main(["--tools_mode", "everything"]) == 2


def _about_transport(upstream: Upstream) -> httpx.MockTransport:
    upstream.json("GET", "/about.json", {"about": {"title": "Tethered Forum"}})
    return upstream.transport


@pytest.mark.asyncio
async def test_tethered_startup_hides_select_site(upstream):
    settings = Settings(site=f"{SITE}/latest")

    registrar, state = await build_registrar(
        settings, transport=_about_transport(upstream)
    )

    assert state.get_site_base() == SITE
    assert "discourse_select_site" not in registrar.tools
    assert "discourse_search" in registrar.tools
    assert len(registrar.resources) == 6


@pytest.mark.asyncio
async def test_untethered_startup_with_admin_key_and_writes(upstream):
    settings = Settings(api_key="k", allow_writes=True, read_only=False)

    registrar, state = await build_registrar(settings, transport=upstream.transport)

    assert state.get_site_base() is None
    assert upstream.requests == []
    assert "discourse_select_site" in registrar.tools
    assert "discourse_list_users" in registrar.tools
    assert "discourse_create_post" in registrar.tools


@pytest.mark.asyncio
async def test_tether_failure_propagates(upstream):
    upstream.add("GET", "/about.json", httpx.Response(404, text="nope"))

    with pytest.raises(HttpStatusError) as exc_info:
        await build_registrar(Settings(site=SITE), transport=upstream.transport)

    assert exc_info.value.status == 404
