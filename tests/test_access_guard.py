from __future__ import annotations

from conftest import SITE, payload
from discourse_mcp.http.auth import ApiKeyAuth, UserApiKeyAuth
from discourse_mcp.site.state import AuthPair
from discourse_mcp.tools.guards import (
    WRITES_DISABLED_MESSAGE,
    require_admin_access,
    require_write_access,
)


def test_writes_disabled_is_checked_first(make_state):
    state = make_state(select=None)
    denied = require_write_access(state, allow_writes=False)
    assert denied["isError"] is True
    assert payload(denied) == {"error": WRITES_DISABLED_MESSAGE}


def test_write_requires_selected_site(make_state):
    denied = require_write_access(make_state(select=None), allow_writes=True)
    assert payload(denied)["error"].startswith("No site selected")


def test_write_requires_some_auth(make_state):
    denied = require_write_access(make_state(), allow_writes=True)
    assert payload(denied)["error"] == (
        f"No auth configured for selected site ({SITE}). "
        "Add a matching auth_pairs entry and restart."
    )


def test_write_allowed_with_user_api_key(make_state):
    state = make_state(default_auth=UserApiKeyAuth(key="u"))
    assert require_write_access(state, allow_writes=True) is None


def test_admin_requires_api_key(make_state):
    state = make_state(default_auth=UserApiKeyAuth(key="u"))
    denied = require_admin_access(state)
    assert payload(denied)["error"] == f"Admin API key required for selected site ({SITE})."


def test_admin_allowed_by_matching_override(make_state):
    state = make_state(auth_overrides=[AuthPair(site=SITE, api_key="k")])
    assert require_admin_access(state) is None
    assert require_admin_access(make_state(default_auth=ApiKeyAuth(key="k"))) is None
