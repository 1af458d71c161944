from __future__ import annotations

from typing import Literal
from urllib.parse import urlencode

from pydantic import BaseModel, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response, paginated_response
from ..core.types import as_list
from ..guards.access import require_admin_access

# Fixed by the Discourse admin API
DISCOURSE_PAGE_SIZE = 100


class ListUsersArgs(BaseModel):
    query: Literal[
        "active", "new", "staff", "suspended", "silenced", "pending", "staged"
    ] = Field("active", description="User query type")
    filter: str | None = Field(
        None, description="Search by username, email, or IP address"
    )
    order: (
        Literal[
            "created",
            "last_emailed",
            "seen",
            "username",
            "trust_level",
            "days_visited",
            "posts",
        ]
        | None
    ) = Field(None, description="Sort order field")
    asc: bool = Field(
        False, description="Sort ascending (default: false/descending)"
    )
    page: int = Field(0, ge=0, description="Page number (0-indexed)")


class ListUsersTool(BaseTool):
    name = "discourse_list_users"
    title = "List Users"
    description = (
        "List users via admin API. Requires admin API key. Returns ~100 users per "
        "page (Discourse's fixed page size). Returns JSON with users array and "
        "pagination meta."
    )
    args_schema = ListUsersArgs
    access = "admin"
    failure_message = "Failed to list users"

    async def _arun(self, args: ListUsersArgs) -> ToolResult:
        denied = require_admin_access(self.site_state)
        if denied is not None:
            return denied

        client = self.client()
        params: dict[str, str] = {"page": str(args.page + 1)}
        if args.filter:
            params["filter"] = args.filter
        if args.order:
            params["order"] = args.order
        if args.asc:
            params["asc"] = "true"

        rows = as_list(
            await client.get(f"/admin/users/list/{args.query}.json?{urlencode(params)}")
        )
        users = [
            {
                "id": user.get("id"),
                "username": user.get("username"),
                "name": user.get("name") or None,
                "email": user.get("email") or None,
                "avatar_template": user.get("avatar_template") or None,
                "trust_level": user.get("trust_level") or 0,
                "created_at": user.get("created_at") or None,
                "last_seen_at": user.get("last_seen_at") or None,
                "admin": bool(user.get("admin")),
                "moderator": bool(user.get("moderator")),
                "suspended": bool(user.get("suspended")),
                "silenced": bool(user.get("silenced")),
            }
            for user in rows
        ]
        return json_response(
            paginated_response(
                "users",
                users,
                {
                    "page": args.page,
                    "limit": DISCOURSE_PAGE_SIZE,
                    "has_more": len(rows) >= DISCOURSE_PAGE_SIZE,
                },
            )
        )
