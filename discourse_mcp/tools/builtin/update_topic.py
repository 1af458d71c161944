from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from discourse_mcp.http.errors import HttpStatusError

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_error, json_response
from ..core.types import TagList, UrlStr, as_dict, as_list
from ..guards.access import require_write_access

CONFLICT_MESSAGE = "Conflict: topic was modified since last read"
REREAD_HINT = "Re-read the topic to get current state before updating"

UPDATABLE_FIELDS = ("title", "category_id", "tags", "featured_link")


class UpdateTopicArgs(BaseModel):
    topic_id: int = Field(..., gt=0, description="Topic ID to update")
    title: str | None = Field(None, min_length=1, max_length=300, description="New title")
    category_id: int | None = Field(None, gt=0, description="Move to category")
    tags: TagList | None = Field(None, description="Replace all tags")
    featured_link: UrlStr | None = Field(None, description="Featured link URL")
    original_title: str | None = Field(
        None, description="For conflict detection - expected current title"
    )
    original_tags: list[str] | None = Field(
        None, description="For conflict detection - expected current tags"
    )


class UpdateTopicTool(BaseTool):
    """Update topic fields with optional optimistic locking.

    When ``original_title`` or ``original_tags`` is given, the current topic
    is fetched first and any mismatch is returned as a conflict without
    writing. Tags are compared as sorted lists.
    """

    name = "discourse_update_topic"
    title = "Update Topic"
    description = (
        "Update an existing topic (title, category, tags, featured_link). "
        "Returns JSON with updated topic details."
    )
    args_schema = UpdateTopicArgs
    access = "write"
    failure_message = "Failed to update topic"

    async def _arun(self, args: UpdateTopicArgs) -> ToolResult:
        payload = {
            field: getattr(args, field)
            for field in UPDATABLE_FIELDS
            if getattr(args, field) is not None
        }
        if not payload:
            return json_error(
                "At least one of title, category_id, tags, or featured_link is required"
            )

        denied = require_write_access(self.site_state, self.context.allow_writes)
        if denied is not None:
            return denied

        await self.context.rate_limiter.wait("topic")
        client = self.client()

        if args.original_title is not None or args.original_tags is not None:
            conflict = await self._check_conflict(args)
            if conflict is not None:
                return conflict

        try:
            data = as_dict(await client.put(f"/t/-/{args.topic_id}.json", payload))
        except HttpStatusError as exc:
            return self._map_status_error(exc)

        topic = as_dict(data.get("basic_topic")) or data
        tags = topic.get("tags")
        return json_response(
            {
                "success": True,
                "topic_id": args.topic_id,
                "updated_fields": list(payload),
                "topic": {
                    "id": topic.get("id", args.topic_id),
                    "title": topic.get("title", args.title),
                    "slug": topic.get("slug"),
                    "category_id": topic.get("category_id", args.category_id),
                    "tags": tags if isinstance(tags, list) else (args.tags or []),
                    "featured_link": topic.get("featured_link", args.featured_link),
                },
            }
        )

    async def _check_conflict(self, args: UpdateTopicArgs) -> ToolResult | None:
        current = as_dict(await self.client().get(f"/t/{args.topic_id}.json"))

        if args.original_title is not None and current.get("title") != args.original_title:
            return json_error(
                CONFLICT_MESSAGE,
                {
                    "hint": REREAD_HINT,
                    "expected_title": args.original_title,
                    "actual_title": current.get("title"),
                },
            )

        if args.original_tags is not None:
            actual_tags = as_list(current.get("tags"))
            if sorted(actual_tags) != sorted(args.original_tags):
                return json_error(
                    CONFLICT_MESSAGE,
                    {
                        "hint": REREAD_HINT,
                        "expected_tags": args.original_tags,
                        "actual_tags": actual_tags,
                    },
                )
        return None

    @staticmethod
    def _map_status_error(exc: HttpStatusError) -> ToolResult:
        if exc.status == 403:
            return json_error(
                "Permission denied: cannot update this topic", {"status": exc.status}
            )
        if exc.status == 409:
            return json_error(CONFLICT_MESSAGE, {"hint": REREAD_HINT, "status": exc.status})
        if exc.status == 422:
            errors: Any = as_dict(exc.body).get("errors") or str(exc)
            if isinstance(errors, list):
                errors = ", ".join(str(e) for e in errors)
            return json_error(
                f"Validation failed: {errors}", {"status": exc.status, "body": exc.body}
            )
        raise exc
