"""Read-only resources under the ``discourse://`` URI scheme.

Resources cover static or slowly changing site data (categories, tags,
groups, chat channels, drafts). Every read returns::

    {"contents": [{"uri": ..., "mimeType": "application/json", "text": ...}]}

Listings that may legitimately be unavailable (tags disabled, chat plugin
missing) degrade to an empty collection instead of failing the read.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol
from urllib.parse import urlencode

from discourse_mcp.http.errors import TransportError
from discourse_mcp.site.state import SiteState
from discourse_mcp.tools.core.result import dumps, paginated_response
from discourse_mcp.tools.core.types import as_dict, as_records
from discourse_mcp.utils.logger import get_logger

from .transforms import (
    transform_category,
    transform_chat_channel,
    transform_draft,
    transform_group,
    transform_tag,
    transform_user_chat_channel,
)

SITE_CACHE_TTL_MS = 30_000

ResourcePayload = dict[str, Any]
ResourceHandler = Callable[[str], Awaitable[ResourcePayload]]


class ResourceRegistrar(Protocol):
    def register_resource(
        self,
        name: str,
        uri: str,
        *,
        description: str,
        handler: ResourceHandler,
    ) -> None: ...


def resource_payload(uri: str, data: Any) -> ResourcePayload:
    return {
        "contents": [
            {"uri": uri, "mimeType": "application/json", "text": dumps(data)}
        ]
    }


class DiscourseResources:
    def __init__(self, site_state: SiteState, logger: Any = None) -> None:
        self.site_state = site_state
        self.logger = logger or get_logger("discourse_mcp.resources")

    def _client(self):
        _, client = self.site_state.ensure_selected_site()
        return client

    async def categories(self, uri: str) -> ResourcePayload:
        client = self._client()
        site = as_dict(await client.get_cached("/site.json", SITE_CACHE_TTL_MS))
        raw_categories = as_records(site.get("categories"))
        ids = [c.get("id") for c in raw_categories if c.get("id") is not None]

        if ids:
            query = urlencode(
                [("include_permissions", "true")] + [("ids[]", i) for i in ids]
            )
            try:
                detailed = as_dict(
                    await client.get_cached(
                        f"/categories/find.json?{query}", SITE_CACHE_TTL_MS
                    )
                )
            except TransportError as exc:
                # Permissions need elevated access; site.json data still stands
                self.logger.debug("Category permissions unavailable", error=str(exc))
            else:
                if as_records(detailed.get("categories")):
                    raw_categories = as_records(detailed["categories"])

        categories = [transform_category(c) for c in raw_categories]
        return resource_payload(
            uri, paginated_response("categories", categories, {"total": len(categories)})
        )

    async def tags(self, uri: str) -> ResourcePayload:
        client = self._client()
        try:
            data = as_dict(await client.get("/tags.json"))
        except TransportError as exc:
            # Tagging may be disabled on the site
            self.logger.debug("Tags unavailable", error=str(exc))
            data = {}
        tags = [transform_tag(t) for t in as_records(data.get("tags"))]
        return resource_payload(
            uri, paginated_response("tags", tags, {"total": len(tags)})
        )

    async def groups(self, uri: str) -> ResourcePayload:
        return await self._listing(
            uri, "/groups.json", "groups", "groups", transform_group
        )

    async def chat_channels(self, uri: str) -> ResourcePayload:
        return await self._listing(
            uri, "/chat/api/channels", "channels", "channels", transform_chat_channel
        )

    async def user_chat_channels(self, uri: str) -> ResourcePayload:
        client = self._client()
        try:
            data = as_dict(await client.get("/chat/api/me/channels"))
        except TransportError as exc:
            self.logger.error(f"Failed to fetch user chat channels: {exc}")
            data = {}
        tracking = as_dict(data.get("tracking"))
        public = [
            transform_user_chat_channel(ch, tracking)
            for ch in as_records(data.get("public_channels"))
        ]
        direct = [
            transform_user_chat_channel(ch, tracking)
            for ch in as_records(data.get("direct_message_channels"))
        ]
        return resource_payload(
            uri,
            {
                "public_channels": public,
                "dm_channels": direct,
                "meta": {"total": len(public) + len(direct)},
            },
        )

    async def drafts(self, uri: str) -> ResourcePayload:
        return await self._listing(
            uri, "/drafts.json", "drafts", "drafts", transform_draft
        )

    async def _listing(
        self,
        uri: str,
        path: str,
        source_key: str,
        collection: str,
        transform: Callable[[dict[str, Any]], dict[str, Any]],
    ) -> ResourcePayload:
        client = self._client()
        try:
            data = as_dict(await client.get(path))
        except TransportError as exc:
            self.logger.error(f"Failed to fetch {collection}: {exc}", path=path)
            data = {}
        items = [transform(item) for item in as_records(data.get(source_key))]
        return resource_payload(
            uri, paginated_response(collection, items, {"total": len(items)})
        )


def register_all_resources(
    registrar: ResourceRegistrar, site_state: SiteState, *, logger: Any = None
) -> list[str]:
    resources = DiscourseResources(site_state, logger)
    specs: list[tuple[str, str, str, ResourceHandler]] = [
        (
            "site_categories",
            "discourse://site/categories",
            "List all categories with hierarchy (pid), permissions (perms), and "
            "counts. Use for migration workflows.",
            resources.categories,
        ),
        (
            "site_tags",
            "discourse://site/tags",
            "List all tags with usage counts. Returns empty if tags are disabled.",
            resources.tags,
        ),
        (
            "site_groups",
            "discourse://site/groups",
            "List all groups with id, name, automatic flag, and user_count.",
            resources.groups,
        ),
        (
            "chat_channels",
            "discourse://chat/channels",
            "List all public chat channels with id, title, slug, status, "
            "members_count, and description.",
            resources.chat_channels,
        ),
        (
            "user_chat_channels",
            "discourse://user/chat-channels",
            "List user's chat channels (public + DMs) with unread/mention counts. "
            "Requires authentication.",
            resources.user_chat_channels,
        ),
        (
            "user_drafts",
            "discourse://user/drafts",
            "List user's drafts with draft_key, sequence, title, category_id, "
            "created_at, and reply_preview. Requires authentication.",
            resources.drafts,
        ),
    ]
    for name, uri, description, handler in specs:
        registrar.register_resource(name, uri, description=description, handler=handler)
    return [uri for _, uri, _, _ in specs]
