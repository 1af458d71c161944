"""Call-time access checks for write and admin tools.

Each check returns an error envelope describing the denial, or ``None`` when
the call may proceed. Denials are returned, never raised.
"""

from __future__ import annotations

from typing import Literal

from discourse_mcp.site.state import NO_SITE_MESSAGE, SiteState
from discourse_mcp.tools.core.result import ToolResult, json_error

WRITES_DISABLED_MESSAGE = (
    "Writes are disabled. Run with --allow_writes --read_only=false to enable."
)


def _require_site_auth(
    site_state: SiteState, requirement: Literal["any", "api_key"]
) -> ToolResult | None:
    base = site_state.get_site_base()
    if not base:
        return json_error(NO_SITE_MESSAGE)

    auth_type = site_state.get_auth_type(base)
    if auth_type == "none":
        return json_error(
            f"No auth configured for selected site ({base}). "
            "Add a matching auth_pairs entry and restart."
        )
    if requirement == "api_key" and auth_type != "api_key":
        return json_error(f"Admin API key required for selected site ({base}).")
    return None


def require_write_access(site_state: SiteState, allow_writes: bool) -> ToolResult | None:
    if not allow_writes:
        return json_error(WRITES_DISABLED_MESSAGE)
    return _require_site_auth(site_state, "any")


def require_admin_access(site_state: SiteState) -> ToolResult | None:
    return _require_site_auth(site_state, "api_key")
