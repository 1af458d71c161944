from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response
from ..core.types import as_dict
from ..guards.access import require_write_access

HEX_COLOR = r"^[0-9a-fA-F]{6}$"

# Discourse category style_type values
STYLE_ICON = 1
STYLE_EMOJI = 2


class CreateCategoryArgs(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str | None = Field(None, pattern=HEX_COLOR)
    text_color: str | None = Field(None, pattern=HEX_COLOR)
    emoji: str | None = None
    icon: str | None = None
    parent_category_id: int | None = Field(None, gt=0)
    description: str | None = Field(None, min_length=1, max_length=10000)


class CreateCategoryTool(BaseTool):
    name = "discourse_create_category"
    title = "Create Category"
    description = "Create a new category. Returns JSON with id, slug, and name."
    args_schema = CreateCategoryArgs
    access = "write"
    failure_message = "Failed to create category"

    async def _arun(self, args: CreateCategoryArgs) -> ToolResult:
        denied = require_write_access(self.site_state, self.context.allow_writes)
        if denied is not None:
            return denied

        await self.context.rate_limiter.wait("category")
        client = self.client()

        payload: dict[str, Any] = args.model_dump(exclude_none=True)
        if args.emoji:
            payload["style_type"] = STYLE_EMOJI
        elif args.icon:
            payload["style_type"] = STYLE_ICON

        data = as_dict(await client.post("/categories.json", payload))
        category = as_dict(data.get("category")) or data
        name = category.get("name")
        slug = category.get("slug") or (
            re.sub(r"\s+", "-", str(name).lower()) if name else None
        )
        return json_response(
            {"id": category.get("id"), "slug": slug, "name": name or args.name}
        )
