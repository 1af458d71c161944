from __future__ import annotations

from pydantic import BaseModel, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response
from ..core.types import as_dict

POST_CACHE_TTL_MS = 10_000


class ReadPostArgs(BaseModel):
    post_id: int = Field(..., gt=0)


class ReadPostTool(BaseTool):
    name = "discourse_read_post"
    title = "Read Post"
    description = (
        "Read a specific post. Returns JSON with id, topic_id, post_number, "
        "username, created_at, and raw content."
    )
    args_schema = ReadPostArgs
    failure_message = "Failed to read post {post_id}"

    async def _arun(self, args: ReadPostArgs) -> ToolResult:
        client = self.client()
        data = as_dict(
            await client.get_cached(
                f"/posts/{args.post_id}.json?include_raw=true", POST_CACHE_TTL_MS
            )
        )
        raw = str(data.get("raw") or data.get("cooked") or "")
        limit = self.context.max_read_length
        return json_response(
            {
                "id": data.get("id") or args.post_id,
                "topic_id": data.get("topic_id") or None,
                "topic_slug": data.get("topic_slug") or None,
                "post_number": data.get("post_number") or None,
                "username": data.get("username") or None,
                "created_at": data.get("created_at") or None,
                "raw": raw[:limit],
                "truncated": len(raw) > limit,
            }
        )
