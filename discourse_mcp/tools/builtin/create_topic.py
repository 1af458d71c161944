from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response
from ..core.types import TagList, as_dict
from ..guards.access import require_write_access
from .create_post import author_headers


class CreateTopicArgs(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    raw: str = Field(..., min_length=1, max_length=30000)
    category_id: int | None = Field(None, gt=0)
    tags: TagList | None = None
    author_username: str | None = None


class CreateTopicTool(BaseTool):
    name = "discourse_create_topic"
    title = "Create Topic"
    description = "Create a new topic. Returns JSON with id, topic_id, slug, and title."
    args_schema = CreateTopicArgs
    access = "write"
    failure_message = "Failed to create topic"

    async def _arun(self, args: CreateTopicArgs) -> ToolResult:
        denied = require_write_access(self.site_state, self.context.allow_writes)
        if denied is not None:
            return denied

        await self.context.rate_limiter.wait("topic")
        client = self.client()

        payload: dict[str, Any] = {"title": args.title, "raw": args.raw}
        if args.category_id is not None:
            payload["category"] = args.category_id
        if args.tags:
            payload["tags"] = args.tags

        data = as_dict(
            await client.post(
                "/posts.json", payload, headers=author_headers(args.author_username)
            )
        )
        post = as_dict(data.get("post"))
        topic = as_dict(data.get("topic"))
        return json_response(
            {
                "id": data.get("id") or post.get("id"),
                "topic_id": data.get("topic_id")
                or data.get("topicId")
                or topic.get("id"),
                "slug": data.get("topic_slug") or topic.get("slug") or None,
                "title": data.get("topic_title") or data.get("title") or args.title,
            }
        )
