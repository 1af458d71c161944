from __future__ import annotations

from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response, paginated_response
from ..core.types import as_dict, as_list


class FilterTopicsArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    filter: str = Field(
        ...,
        min_length=1,
        description=(
            "Filter query, e.g. 'category:support status:open created-after:30 "
            "order:activity'"
        ),
    )
    page: int = Field(0, ge=0, description="Page number (0-based, default: 0)")
    per_page: int = Field(20, ge=1, le=50, description="Items per page (max 50)")


class FilterTopicsTool(BaseTool):
    name = "discourse_filter_topics"
    title = "Filter Topics"
    description = (
        "Filter topics with a concise query language. Returns JSON object with "
        "results array (id, slug, title) and meta (page, limit, has_more). "
        "Query syntax: category/categories (comma=OR, '=category'=without subcats, "
        "'-'=exclude), tag/tags (comma=OR, '+'=AND), "
        "status:(open|closed|archived|listed|unlisted|public), "
        "in:(bookmarked|watching|tracking|muted|pinned), dates: "
        "created/activity-(before|after) YYYY-MM-DD or N days, order: "
        "activity|created|latest-post|likes|views with optional -asc."
    )
    args_schema = FilterTopicsArgs
    failure_message = "Failed to filter topics"

    async def _arun(self, args: FilterTopicsArgs) -> ToolResult:
        client = self.client()
        query = urlencode(
            {"q": args.filter, "page": args.page, "per_page": args.per_page}
        )
        data = as_dict(await client.get(f"/filter.json?{query}"))
        listing = as_dict(data.get("topic_list")) or data
        topics = as_list(listing.get("topics"))
        more_url = listing.get("more_topics_url") or listing.get("more_url")

        results = [
            {
                "id": t.get("id"),
                "slug": t.get("slug") or str(t.get("id")),
                "title": t.get("title") or t.get("fancy_title") or f"Topic {t.get('id')}",
            }
            for t in topics[: args.per_page]
        ]
        return json_response(
            paginated_response(
                "results",
                results,
                {
                    "page": args.page,
                    "limit": args.per_page,
                    "has_more": bool(more_url) or len(topics) > args.per_page,
                },
            )
        )
