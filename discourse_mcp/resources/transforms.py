"""Lean shapes for resource listings.

Raw Discourse objects carry far more than an agent needs; these keep the
identifiers and counts that make listings useful for lookups and migrations.

Category ``perms`` entries are ``{gid, perm}`` where ``perm`` is
1 = full (create topics, reply, see), 2 = create_post (reply, see) and
3 = readonly (see only). ``gid`` 0 is the "everyone" group.
"""

from __future__ import annotations

import json
from typing import Any

from discourse_mcp.tools.core.types import as_dict, as_records

REPLY_PREVIEW_LIMIT = 200


def _first(raw: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return default


def transform_category(raw: dict[str, Any]) -> dict[str, Any]:
    group_permissions = raw.get("group_permissions")
    if isinstance(group_permissions, list):
        perms = [
            {
                "gid": _first(gp, "group_id", "gid", default=0),
                "perm": _first(gp, "permission_type", "perm", default=1),
            }
            for gp in as_records(group_permissions)
        ]
    elif raw.get("permission") is not None:
        perms = [{"gid": 0, "perm": raw["permission"]}]
    elif not raw.get("read_restricted"):
        perms = [{"gid": 0, "perm": 1}]
    else:
        perms = []

    return {
        "id": raw.get("id"),
        "name": raw.get("name"),
        "slug": raw.get("slug"),
        "pid": raw.get("parent_category_id"),
        "read_restricted": bool(raw.get("read_restricted")),
        "topic_count": raw.get("topic_count") or 0,
        "post_count": raw.get("post_count") or 0,
        "perms": perms,
    }


def transform_group(raw: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": raw.get("id"),
        "name": raw.get("name"),
        "automatic": bool(raw.get("automatic")),
        "user_count": raw.get("user_count"),
    }


def transform_tag(raw: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": _first(raw, "id", "name"),
        "count": _first(raw, "count", "topic_count", default=0),
    }


def transform_chat_channel(raw: dict[str, Any]) -> dict[str, Any]:
    channel_id = raw.get("id")
    return {
        "id": channel_id,
        "title": raw.get("title") or f"Channel {channel_id}",
        "slug": raw.get("slug") or str(channel_id),
        "status": raw.get("status") or "open",
        "members_count": _first(raw, "memberships_count", "members_count", default=0),
        "description": raw.get("description") or None,
    }


def transform_user_chat_channel(
    raw: dict[str, Any], tracking: dict[str, Any] | None = None
) -> dict[str, Any]:
    channel_id = raw.get("id")
    # JSON object keys are strings even though channel ids are ints
    per_channel = as_dict((tracking or {}).get("channel_tracking"))
    counts = as_dict(per_channel.get(str(channel_id), per_channel.get(channel_id)))
    return {
        "id": channel_id,
        "title": raw.get("title") or f"Channel {channel_id}",
        "slug": raw.get("slug") or None,
        "status": raw.get("status") or "open",
        "unread_count": counts.get("unread_count") or 0,
        "mention_count": counts.get("mention_count") or 0,
    }


def _reply_preview(data: Any) -> str | None:
    if not data:
        return None
    try:
        parsed = json.loads(data)
    except (TypeError, ValueError):
        return None
    reply = as_dict(parsed).get("reply")
    if not reply:
        return None
    reply = str(reply)
    if len(reply) > REPLY_PREVIEW_LIMIT:
        return reply[:REPLY_PREVIEW_LIMIT] + "..."
    return reply


def transform_draft(raw: dict[str, Any]) -> dict[str, Any]:
    return {
        "draft_key": raw.get("draft_key"),
        "sequence": raw.get("sequence") or 0,
        "title": raw.get("title") or None,
        "category_id": raw.get("category_id") or None,
        "created_at": raw.get("created_at") or None,
        "reply_preview": _reply_preview(raw.get("data")),
    }
