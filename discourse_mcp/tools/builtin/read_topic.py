from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response
from ..core.types import as_dict, as_list

MAX_BATCHES = 10


class ReadTopicArgs(BaseModel):
    topic_id: int = Field(..., gt=0)
    post_limit: int = Field(
        5, ge=1, le=50, description="Max posts to return (default 5, max 50)"
    )
    start_post_number: int | None = Field(
        None, ge=1, description="Start from this post number (1-based)"
    )


class ReadTopicTool(BaseTool):
    """Walks the topic's post stream in batches until enough posts are collected.

    Discourse returns a window of posts around ``post_number``; each batch
    continues after the highest post number seen so far.
    """

    name = "discourse_read_topic"
    title = "Read Topic"
    description = (
        "Read topic metadata and posts. Returns JSON with id, title, slug, "
        "category_id, tags, and posts array."
    )
    args_schema = ReadTopicArgs
    failure_message = "Failed to read topic {topic_id}"

    async def _arun(self, args: ReadTopicArgs) -> ToolResult:
        client = self.client()
        start = args.start_post_number or 1
        current = start
        posts: list[dict[str, Any]] = []
        topic: dict[str, Any] = {}

        for batch in range(MAX_BATCHES):
            if len(posts) >= args.post_limit:
                break
            if current > 1:
                path = f"/t/{args.topic_id}.json?post_number={current}&include_raw=true"
            else:
                path = f"/t/{args.topic_id}.json?include_raw=true"
            data = as_dict(await client.get(path))
            if batch == 0:
                topic = data

            stream = as_list(as_dict(data.get("post_stream")).get("posts"))
            ordered = sorted(stream, key=lambda p: p.get("post_number") or 0)
            fresh = [p for p in ordered if (p.get("post_number") or 0) >= current]

            for post in fresh:
                if len(posts) >= args.post_limit:
                    break
                posts.append(
                    {
                        "id": post.get("id"),
                        "post_number": post.get("post_number"),
                        "username": post.get("username"),
                        "created_at": post.get("created_at"),
                        "raw": self.truncate(
                            post.get("raw") or post.get("cooked") or post.get("excerpt")
                        ),
                    }
                )

            if not fresh:
                break
            current = (fresh[-1].get("post_number") or current) + 1

        tags = topic.get("tags")
        posts_count = topic.get("posts_count") or 0
        return json_response(
            {
                "id": args.topic_id,
                "title": topic.get("title") or f"Topic {args.topic_id}",
                "slug": topic.get("slug") or str(args.topic_id),
                "category_id": topic.get("category_id") or None,
                "tags": tags if isinstance(tags, list) else [],
                "posts_count": posts_count or len(posts),
                "posts": posts,
                "meta": {
                    "start_post": start,
                    "returned": len(posts),
                    "has_more": posts_count > start + len(posts) - 1,
                },
            }
        )
