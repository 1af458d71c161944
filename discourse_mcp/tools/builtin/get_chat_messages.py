from __future__ import annotations

from typing import Literal
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response
from ..core.types import as_dict, as_list


class GetChatMessagesArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    channel_id: int = Field(..., gt=0, description="The chat channel ID")
    page_size: int = Field(
        50, ge=1, le=50, description="Number of messages to return (default: 50, max: 50)"
    )
    target_message_id: int | None = Field(
        None, gt=0, description="Message ID to query around or paginate from"
    )
    direction: Literal["past", "future"] | None = Field(
        None,
        description="Pagination direction: 'past' for older messages, 'future' for newer",
    )
    target_date: str | None = Field(
        None, description="ISO 8601 date string to query messages around"
    )


class GetChatMessagesTool(BaseTool):
    name = "discourse_get_chat_messages"
    title = "Get Chat Messages"
    description = (
        "Get messages from a chat channel. Returns JSON array with id, username, "
        "created_at, message, and pagination meta."
    )
    args_schema = GetChatMessagesArgs
    failure_message = "Failed to get chat messages"

    async def _arun(self, args: GetChatMessagesArgs) -> ToolResult:
        client = self.client()
        params: dict[str, str] = {"page_size": str(args.page_size)}
        if args.target_message_id is not None:
            params["target_message_id"] = str(args.target_message_id)
        if args.direction:
            params["direction"] = args.direction
        if args.target_date:
            params["target_date"] = args.target_date

        data = as_dict(
            await client.get(
                f"/chat/api/channels/{args.channel_id}/messages?{urlencode(params)}"
            )
        )
        meta = as_dict(data.get("meta"))

        messages = [
            {
                "id": msg.get("id"),
                "username": as_dict(msg.get("user")).get("username") or None,
                "created_at": msg.get("created_at") or None,
                "message": self.truncate(msg.get("message") or msg.get("cooked")),
                "edited": bool(msg.get("edited")),
                "thread_id": msg.get("thread_id") or None,
                "in_reply_to_id": as_dict(msg.get("in_reply_to")).get("id") or None,
            }
            for msg in as_list(data.get("messages"))
        ]
        return json_response(
            {
                "channel_id": args.channel_id,
                "messages": messages,
                "meta": {
                    "returned": len(messages),
                    "can_load_more_past": bool(meta.get("can_load_more_past")),
                    "can_load_more_future": bool(meta.get("can_load_more_future")),
                    "target_message_id": meta.get("target_message_id") or None,
                },
            }
        )
