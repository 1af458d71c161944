from __future__ import annotations

from urllib.parse import urlencode

from pydantic import BaseModel, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response, paginated_response
from ..core.types import as_dict, as_list


class SearchArgs(BaseModel):
    query: str = Field(..., min_length=1, description="Search query")
    with_private: bool = False
    max_results: int = Field(10, ge=1, le=50)


class SearchTool(BaseTool):
    name = "discourse_search"
    title = "Discourse Search"
    description = (
        "Search site content. Returns JSON array of matching topics with id, "
        "slug, and title."
    )
    args_schema = SearchArgs
    failure_message = "Search failed"

    async def _arun(self, args: SearchArgs) -> ToolResult:
        client = self.client()
        prefix = self.context.default_search_prefix
        full_query = f"{prefix} {args.query}" if prefix else args.query
        query = urlencode({"expanded": "true", "q": full_query})

        data = await client.get(f"/search.json?{query}")
        topics = as_list(as_dict(data).get("topics"))

        results = [
            {"id": t.get("id"), "slug": t.get("slug"), "title": t.get("title")}
            for t in topics[: args.max_results]
        ]
        return json_response(
            paginated_response(
                "results",
                results,
                {"total": len(results), "has_more": len(topics) > args.max_results},
            )
        )
