from __future__ import annotations

from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_error, json_response
from ..core.types import UrlStr, as_dict
from ..guards.access import require_write_access
from .create_user import pick_avatar

PROFILE_FIELDS = (
    "name",
    "bio_raw",
    "location",
    "website",
    "title",
    "date_of_birth",
    "locale",
    "profile_background_upload_url",
    "card_background_upload_url",
)


class UpdateUserArgs(BaseModel):
    username: str = Field(..., min_length=1, description="Username of user to update")
    name: str | None = Field(None, description="Display name")
    bio_raw: str | None = Field(None, description="Bio in markdown")
    location: str | None = Field(None, description="Location")
    website: UrlStr | None = Field(None, description="Website URL")
    title: str | None = Field(None, description="User title")
    date_of_birth: str | None = Field(
        None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="Date of birth (YYYY-MM-DD)"
    )
    locale: str | None = Field(None, description="Language preference")
    profile_background_upload_url: str | None = Field(
        None, description="Profile background image URL"
    )
    card_background_upload_url: str | None = Field(
        None, description="Card background image URL"
    )
    upload_id: int | None = Field(
        None, gt=0, description="Avatar upload_id (from discourse_upload_file)"
    )


class UpdateUserTool(BaseTool):
    name = "discourse_update_user"
    title = "Update User"
    description = (
        "Update user profile fields. If upload_id is provided, also sets the user's "
        "avatar. Returns JSON with success status and updated user details."
    )
    args_schema = UpdateUserArgs
    access = "write"
    failure_message = "Failed to update user"

    async def _arun(self, args: UpdateUserArgs) -> ToolResult:
        denied = require_write_access(self.site_state, self.context.allow_writes)
        if denied is not None:
            return denied

        payload = {
            field: getattr(args, field)
            for field in PROFILE_FIELDS
            if getattr(args, field) is not None
        }
        if not payload and args.upload_id is None:
            return json_error("At least one field or upload_id is required")

        await self.context.rate_limiter.wait("user")
        client = self.client()
        user_path = f"/u/{quote(args.username, safe='')}.json"
        updated_fields = list(payload)

        response: dict[str, Any] = {}
        if payload:
            response = as_dict(await client.put(user_path, payload))

        avatar_error = None
        if args.upload_id is not None:
            avatar_error = await pick_avatar(
                self.context, client, args.username, args.upload_id
            )
            if avatar_error is None:
                updated_fields.append("avatar")

        if not as_dict(response.get("user")):
            response = as_dict(await client.get(user_path))
        user = as_dict(response.get("user"))

        result: dict[str, Any] = {
            "success": True,
            "username": args.username,
            "updated_fields": updated_fields,
            "avatar_updated": args.upload_id is not None and avatar_error is None,
            "user": {
                "id": user.get("id"),
                "username": user.get("username"),
                "name": user.get("name") or None,
                "bio_raw": user.get("bio_raw") or None,
                "location": user.get("location") or None,
                "website": user.get("website") or None,
                "title": user.get("title") or None,
                "trust_level": user.get("trust_level") or 0,
                "admin": bool(user.get("admin")),
                "moderator": bool(user.get("moderator")),
            },
        }
        if avatar_error:
            result["avatar_error"] = avatar_error
        return json_response(result)
