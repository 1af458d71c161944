from __future__ import annotations

from urllib.parse import quote

from pydantic import BaseModel, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response, paginated_response
from ..core.types import as_dict, as_list

# user_actions filter: 4 = new topics, 5 = replies
POST_ACTION_FILTER = "4,5"


class ListUserPostsArgs(BaseModel):
    username: str = Field(..., min_length=1)
    page: int = Field(0, ge=0)
    limit: int = Field(
        30, ge=1, le=50, description="Posts per page (max 50, default 30)"
    )


class ListUserPostsTool(BaseTool):
    name = "discourse_list_user_posts"
    title = "List User Posts"
    description = (
        "Get paginated list of user posts/replies. Returns JSON object with posts "
        "array (id, topic_id, post_number, slug, title, created_at, excerpt, "
        "category_id) and meta (page, limit, has_more)."
    )
    args_schema = ListUserPostsArgs
    failure_message = "Failed to get posts for {username}"

    async def _arun(self, args: ListUserPostsArgs) -> ToolResult:
        client = self.client()
        offset = args.page * args.limit
        data = as_dict(
            await client.get(
                f"/user_actions.json?offset={offset}"
                f"&username={quote(args.username, safe='')}"
                f"&filter={POST_ACTION_FILTER}"
            )
        )
        actions = as_list(data.get("user_actions"))

        posts = [
            {
                "id": action.get("post_id", action.get("id")),
                "topic_id": action.get("topic_id"),
                "post_number": action.get("post_number"),
                "slug": action.get("slug"),
                "title": action.get("title"),
                "created_at": action.get("created_at"),
                "excerpt": action.get("excerpt") or None,
                "category_id": action.get("category_id") or None,
            }
            for action in actions[: args.limit]
        ]
        return json_response(
            paginated_response(
                "posts",
                posts,
                {
                    "page": args.page,
                    "limit": args.limit,
                    "has_more": len(actions) >= args.limit,
                },
            )
        )
