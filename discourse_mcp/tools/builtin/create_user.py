from __future__ import annotations

from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, Field

from discourse_mcp.http.client import HttpClient
from discourse_mcp.http.errors import TransportError

from ..base_tool import BaseTool
from ..core.context import ToolContext
from ..core.result import ToolResult, json_error, json_response
from ..core.types import as_dict
from ..guards.access import require_write_access

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


async def pick_avatar(
    context: ToolContext, client: HttpClient, username: str, upload_id: int
) -> str | None:
    """Set an uploaded avatar; returns the error text instead of raising."""
    try:
        await context.rate_limiter.wait("user")
        await client.put(
            f"/u/{quote(username, safe='')}/preferences/avatar/pick.json",
            {"upload_id": upload_id, "type": "uploaded"},
        )
    except TransportError as exc:
        context.logger.error(
            f"Failed to set avatar for user {username}: {exc}", username=username
        )
        return str(exc)
    return None


class CreateUserArgs(BaseModel):
    username: str = Field(..., min_length=1, max_length=20)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=10, max_length=200)
    active: bool = True
    approved: bool = True
    upload_id: int | None = Field(
        None, gt=0, description="Avatar upload_id (from discourse_upload_file)"
    )


class CreateUserTool(BaseTool):
    name = "discourse_create_user"
    title = "Create User"
    description = (
        "Create a new user account. If upload_id is provided, sets the user's avatar "
        "after creation. Returns JSON with success status and user details."
    )
    args_schema = CreateUserArgs
    access = "write"
    failure_message = "Failed to create user"

    async def _arun(self, args: CreateUserArgs) -> ToolResult:
        denied = require_write_access(self.site_state, self.context.allow_writes)
        if denied is not None:
            return denied

        await self.context.rate_limiter.wait("user")
        client = self.client()

        response = as_dict(
            await client.post(
                "/users.json", args.model_dump(exclude={"upload_id"})
            )
        )
        if not response.get("success"):
            details = {
                key: response[key] for key in ("errors", "values") if response.get(key)
            }
            return json_error(response.get("message") or "Unknown error", details)

        # Discourse may normalize the requested username
        username = response.get("username") or args.username
        avatar_error = None
        if args.upload_id is not None:
            avatar_error = await pick_avatar(
                self.context, client, username, args.upload_id
            )

        result: dict[str, Any] = {
            "success": True,
            "username": username,
            "name": args.name,
            "email": args.email,
            "active": response.get("active", args.active),
            "avatar_updated": args.upload_id is not None and avatar_error is None,
            "message": response.get("message") or "Account created",
        }
        if avatar_error:
            result["avatar_error"] = avatar_error
        return json_response(result)
