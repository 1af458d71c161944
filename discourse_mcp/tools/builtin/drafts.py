"""Draft tools.

Drafts are addressed by key:

- ``new_topic``: draft for a new topic
- ``topic_<id>``: reply draft for topic ``<id>``
- ``new_private_message``: draft for a new private message

The stored ``data`` is a JSON string holding ``reply`` plus optional
``title``, ``categoryId``, ``tags`` and ``action``. Every draft carries a
sequence number used for optimistic locking: saves and deletes must present
the sequence last read, and a stale one is reported as a conflict.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal
from urllib.parse import quote, urlencode

from pydantic import BaseModel, Field, StringConstraints

from discourse_mcp.http.errors import HttpStatusError

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_error, json_response
from ..core.types import TagList, as_dict
from ..guards.access import require_write_access

DRAFT_INTERVAL_S = 0.5

DraftKey = Annotated[str, StringConstraints(min_length=1, max_length=40)]


def _draft_path(draft_key: str) -> str:
    return f"/drafts/{quote(draft_key, safe='')}.json"


def infer_action(draft_key: str) -> str | None:
    if draft_key == "new_topic":
        return "createTopic"
    if draft_key == "new_private_message":
        return "privateMessage"
    if draft_key.startswith("topic_"):
        return "reply"
    return None


class GetDraftArgs(BaseModel):
    draft_key: DraftKey = Field(
        ...,
        description='Draft key (e.g., "new_topic", "topic_123", "new_private_message")',
    )
    sequence: int | None = Field(
        None, ge=0, description="Expected sequence number (optional)"
    )


class GetDraftTool(BaseTool):
    name = "discourse_get_draft"
    title = "Get Draft"
    description = (
        "Retrieve a specific draft by key. Returns JSON with draft_key, sequence, "
        "and parsed data (title, reply, categoryId, tags, action)."
    )
    args_schema = GetDraftArgs
    failure_message = "Failed to get draft"

    async def _arun(self, args: GetDraftArgs) -> ToolResult:
        client = self.client()
        path = _draft_path(args.draft_key)
        if args.sequence is not None:
            path += "?" + urlencode({"sequence": args.sequence})

        data = as_dict(await client.get(path))
        draft = data.get("draft")
        if not draft:
            return json_response({"draft_key": args.draft_key, "found": False})

        try:
            parsed = json.loads(draft)
        except (TypeError, ValueError):
            parsed = None
        if not isinstance(parsed, dict):
            parsed = {"raw": draft}

        tags = parsed.get("tags")
        return json_response(
            {
                "draft_key": args.draft_key,
                "sequence": data.get("draft_sequence"),
                "found": True,
                "data": {
                    "title": parsed.get("title") or None,
                    "reply": parsed.get("reply") or None,
                    "category_id": parsed.get("categoryId") or None,
                    "tags": tags if isinstance(tags, list) else [],
                    "action": parsed.get("action") or None,
                },
            }
        )


class SaveDraftArgs(BaseModel):
    draft_key: DraftKey = Field(
        ...,
        description=(
            'Draft key: "new_topic" for new topics, "topic_<id>" for replies '
            '(e.g., "topic_123")'
        ),
    )
    reply: str = Field(
        ..., min_length=1, max_length=50000, description="The draft content/body text"
    )
    title: str | None = Field(
        None,
        min_length=1,
        max_length=300,
        description="Topic title (required for new_topic drafts)",
    )
    category_id: int | None = Field(None, gt=0, description="Category ID for the topic")
    tags: TagList | None = Field(None, description="Array of tag names")
    sequence: int = Field(
        0,
        ge=0,
        description=(
            "Current sequence number (use 0 for new drafts, or the sequence from "
            "get for updates)"
        ),
    )
    action: Literal["createTopic", "reply", "edit", "privateMessage"] | None = Field(
        None, description="Draft action type (defaults based on draft_key)"
    )


class SaveDraftTool(BaseTool):
    name = "discourse_save_draft"
    title = "Create/Save Draft"
    description = (
        "Create or update a draft. Returns JSON with draft_key and new sequence number."
    )
    args_schema = SaveDraftArgs
    access = "write"
    failure_message = "Failed to save draft"

    async def _arun(self, args: SaveDraftArgs) -> ToolResult:
        denied = require_write_access(self.site_state, self.context.allow_writes)
        if denied is not None:
            return denied

        await self.context.rate_limiter.wait("draft", DRAFT_INTERVAL_S)
        client = self.client()

        draft: dict[str, Any] = {"reply": args.reply}
        action = args.action or infer_action(args.draft_key)
        if action:
            draft["action"] = action
        if args.title:
            draft["title"] = args.title
        if args.category_id is not None:
            draft["categoryId"] = args.category_id
        if args.tags:
            draft["tags"] = args.tags
        if args.draft_key.startswith("topic_"):
            topic_id = args.draft_key.removeprefix("topic_")
            if topic_id.isdigit():
                draft["topic_id"] = int(topic_id)

        result = as_dict(
            await client.post(
                "/drafts.json",
                {
                    "draft_key": args.draft_key,
                    "data": json.dumps(draft),
                    "sequence": args.sequence,
                },
            )
        )

        new_sequence = result.get("draft_sequence", args.sequence)
        conflict_user = as_dict(result.get("conflict_user"))
        if conflict_user:
            return json_error(
                "Draft conflict detected",
                {
                    "conflict_user_id": conflict_user.get("id"),
                    "new_sequence": new_sequence,
                },
            )

        return json_response(
            {"draft_key": args.draft_key, "sequence": new_sequence, "saved": True}
        )


class DeleteDraftArgs(BaseModel):
    draft_key: DraftKey = Field(..., description="Draft key to delete")
    sequence: int = Field(
        ..., ge=0, description="Current sequence number (required for deletion)"
    )


def _is_sequence_conflict(exc: HttpStatusError) -> bool:
    if exc.status == 409:
        return True
    detail = f"{exc} {exc.body}".lower()
    return "conflict" in detail or "sequence" in detail


class DeleteDraftTool(BaseTool):
    name = "discourse_delete_draft"
    title = "Delete Draft"
    description = (
        "Delete a draft by key. Requires current sequence number to prevent conflicts."
    )
    args_schema = DeleteDraftArgs
    access = "write"
    failure_message = "Failed to delete draft"

    async def _arun(self, args: DeleteDraftArgs) -> ToolResult:
        denied = require_write_access(self.site_state, self.context.allow_writes)
        if denied is not None:
            return denied

        await self.context.rate_limiter.wait("draft", DRAFT_INTERVAL_S)
        client = self.client()
        try:
            await client.delete(
                _draft_path(args.draft_key), {"sequence": args.sequence}
            )
        except HttpStatusError as exc:
            if _is_sequence_conflict(exc):
                return json_error(
                    "Sequence mismatch - draft may have been modified",
                    {
                        "draft_key": args.draft_key,
                        "hint": "Re-read the draft to get its current sequence",
                    },
                )
            raise
        return json_response({"draft_key": args.draft_key, "deleted": True})
