from __future__ import annotations

from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response
from ..core.types import as_dict
from ..guards.access import require_admin_access

BIO_LIMIT = 500


class GetUserArgs(BaseModel):
    username: str = Field(..., min_length=1)


class GetUserTool(BaseTool):
    name = "discourse_get_user"
    title = "Get User"
    description = (
        "Get user info. Returns JSON with id, username, name, trust_level, "
        "created_at, bio, admin, and moderator."
    )
    args_schema = GetUserArgs
    failure_message = "Failed to get user {username}"

    async def _arun(self, args: GetUserArgs) -> ToolResult:
        client = self.client()
        user_path = f"/u/{quote(args.username, safe='')}"
        data = as_dict(await client.get(f"{user_path}.json"))
        user = as_dict(data.get("user")) or data

        bio = user.get("bio_raw")
        response: dict[str, Any] = {
            "id": user.get("id"),
            "username": user.get("username") or args.username,
            "name": user.get("name") or None,
            "trust_level": user.get("trust_level"),
            "created_at": user.get("created_at") or None,
            "bio": bio[:BIO_LIMIT] if bio else None,
            "admin": bool(user.get("admin")),
            "moderator": bool(user.get("moderator")),
        }

        # Emails are only ever fetched with an admin key and explicit opt-in
        if self.context.show_emails and require_admin_access(self.site_state) is None:
            emails = as_dict(await client.get(f"{user_path}/emails.json"))
            response["email"] = emails.get("email") or None

        return json_response(response)
