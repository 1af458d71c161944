from __future__ import annotations

from pydantic import BaseModel, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response
from ..core.types import as_dict
from ..guards.access import require_write_access


def author_headers(author_username: str | None) -> dict[str, str]:
    """Act as another user; only honoured by Discourse for admin API keys."""
    return {"Api-Username": author_username} if author_username else {}


class CreatePostArgs(BaseModel):
    topic_id: int = Field(..., gt=0)
    raw: str = Field(..., min_length=1, max_length=30000)
    author_username: str | None = None


class CreatePostTool(BaseTool):
    name = "discourse_create_post"
    title = "Create Post"
    description = (
        "Create a post in a topic. Returns JSON with id, topic_id, and post_number."
    )
    args_schema = CreatePostArgs
    access = "write"
    failure_message = "Failed to create post"

    async def _arun(self, args: CreatePostArgs) -> ToolResult:
        denied = require_write_access(self.site_state, self.context.allow_writes)
        if denied is not None:
            return denied

        await self.context.rate_limiter.wait("post")
        client = self.client()
        data = as_dict(
            await client.post(
                "/posts.json",
                {"topic_id": args.topic_id, "raw": args.raw},
                headers=author_headers(args.author_username),
            )
        )
        post = as_dict(data.get("post"))
        return json_response(
            {
                "id": data.get("id") or post.get("id"),
                "topic_id": data.get("topic_id") or args.topic_id,
                "post_number": data.get("post_number") or post.get("post_number"),
            }
        )
