from __future__ import annotations

import httpx
import pytest

from conftest import SITE, FakeRegistrar, payload
from discourse_mcp.http.auth import ApiKeyAuth, UserApiKeyAuth
from discourse_mcp.site.state import NO_SITE_MESSAGE
from discourse_mcp.tools.registry import RegistryOptions, register_all_tools

pytestmark = pytest.mark.asyncio


class RecordingRemoteTools:
    def __init__(self, fail: bool = False) -> None:
        self.calls = []
        self.fail = fail

    async def register_remote_tools(self, registrar, site_state, logger):
        self.calls.append(site_state.get_site_base())
        if self.fail:
            raise RuntimeError("discovery endpoint missing")
        return ["remote_echo"]


async def test_select_site_then_search(make_state, make_tools, upstream):
    upstream.json("GET", "/about.json", {"about": {"title": "Example Forum"}})
    upstream.json(
        "GET",
        "/search.json",
        {"topics": [{"id": 1, "slug": "hello-world", "title": "Hello World"}]},
    )
    state = make_state(select=None)
    fake = make_tools(state=state, default_search_prefix="tag:ai order:latest")

    selected = await fake.call("discourse_select_site", site=f"{SITE}/latest")
    assert payload(selected) == {"site": SITE, "title": "Example Forum"}
    assert state.get_site_base() == SITE

    result = await fake.call("discourse_search", query="hello world")
    assert "isError" not in result
    assert payload(result) == {
        "results": [{"id": 1, "slug": "hello-world", "title": "Hello World"}],
        "meta": {"total": 1, "has_more": False},
    }
    params = upstream.last("/search.json").url.params
    assert params["q"] == "tag:ai order:latest hello world"
    assert params["expanded"] == "true"


async def test_select_site_title_falls_back_to_base(make_state, make_tools, upstream):
    upstream.json("GET", "/about.json", {})
    fake = make_tools(state=make_state(select=None))

    result = await fake.call("discourse_select_site", site=SITE)

    assert payload(result)["title"] == SITE


async def test_select_site_rejects_invalid_url(make_tools):
    result = await make_tools().call("discourse_select_site", site="not a url")

    body = payload(result)
    assert result["isError"] is True
    assert body["error"] == "Validation failed"
    assert body["issues"][0]["path"] == "site"


async def test_select_site_failure_leaves_selection_unchanged(
    make_state, make_tools, upstream
):
    upstream.add("GET", "/about.json", httpx.Response(403, text="forbidden"))
    state = make_state(select=None)
    fake = make_tools(state=state)

    result = await fake.call("discourse_select_site", site=SITE)

    assert result["isError"] is True
    assert payload(result)["error"].startswith("Failed to select site: HTTP 403")
    assert state.get_site_base() is None


async def test_select_site_registers_remote_tools(make_state, upstream):
    upstream.json("GET", "/about.json", {"about": {"title": "T"}})
    source = RecordingRemoteTools()
    fake = FakeRegistrar()
    register_all_tools(
        fake, make_state(select=None), RegistryOptions(), remote_tools=source
    )

    await fake.call("discourse_select_site", site=SITE)

    assert source.calls == [SITE]


async def test_remote_tools_skipped_in_api_only_mode(make_state, upstream):
    upstream.json("GET", "/about.json", {"about": {"title": "T"}})
    source = RecordingRemoteTools()
    fake = FakeRegistrar()
    register_all_tools(
        fake,
        make_state(select=None),
        RegistryOptions(tools_mode="discourse_api_only"),
        remote_tools=source,
    )

    await fake.call("discourse_select_site", site=SITE)

    assert source.calls == []


async def test_remote_tool_failure_does_not_fail_selection(make_state, upstream):
    upstream.json("GET", "/about.json", {"about": {"title": "T"}})
    fake = FakeRegistrar()
    register_all_tools(
        fake,
        make_state(select=None),
        RegistryOptions(),
        remote_tools=RecordingRemoteTools(fail=True),
    )

    result = await fake.call("discourse_select_site", site=SITE)

    assert "isError" not in result
    assert payload(result)["site"] == SITE


async def test_search_requires_selected_site(make_state, make_tools):
    fake = make_tools(state=make_state(select=None))

    result = await fake.call("discourse_search", query="anything")

    assert result["isError"] is True
    assert payload(result) == {"error": NO_SITE_MESSAGE}


async def test_search_caps_results(make_tools, upstream):
    upstream.json(
        "GET",
        "/search.json",
        {"topics": [{"id": i, "slug": f"t-{i}", "title": f"T{i}"} for i in range(3)]},
    )

    result = await make_tools().call("discourse_search", query="t", max_results=2)

    body = payload(result)
    assert [r["id"] for r in body["results"]] == [0, 1]
    assert body["meta"] == {"total": 2, "has_more": True}
    assert "q" in upstream.last().url.params
    assert upstream.last().url.params["q"] == "t"


async def test_search_upstream_error_carries_status(make_tools, upstream, sleeps):
    upstream.add("GET", "/search.json", httpx.Response(502, text="bad gateway"))

    result = await make_tools().call("discourse_search", query="x")

    body = payload(result)
    assert result["isError"] is True
    assert body["error"].startswith("Search failed: HTTP 502")
    assert body["status"] == 502
    assert body["body"] == "bad gateway"
    assert len(sleeps.calls) == 2


async def test_filter_topics_rejects_unknown_fields(make_tools):
    result = await make_tools().call(
        "discourse_filter_topics", filter="status:open", bogus=1
    )

    assert payload(result)["issues"][0]["path"] == "bogus"


async def test_filter_topics_paginates(make_tools, upstream):
    upstream.json(
        "GET",
        "/filter.json",
        {
            "topic_list": {
                "topics": [{"id": 5, "slug": "five", "title": "Five"}, {"id": 6}],
                "more_topics_url": "/filter?page=2",
            }
        },
    )

    result = await make_tools().call(
        "discourse_filter_topics", filter="category:support", page=1, per_page=2
    )

    body = payload(result)
    assert body["results"][1] == {"id": 6, "slug": "6", "title": "Topic 6"}
    assert body["meta"] == {"page": 1, "limit": 2, "has_more": True}
    params = upstream.last().url.params
    assert params["q"] == "category:support"
    assert params["page"] == "1"
    assert params["per_page"] == "2"


def _post(number: int) -> dict:
    return {
        "id": 100 + number,
        "post_number": number,
        "username": "alice",
        "created_at": "2024-01-01T00:00:00Z",
        "raw": f"post body {number}",
    }


async def test_read_topic_walks_batches(make_tools, upstream):
    def topic_window(request):
        start = int(request.url.params.get("post_number", "1"))
        numbers = range(1, 4) if start == 1 else range(2, 7)
        return httpx.Response(
            200,
            json={
                "title": "Batched",
                "slug": "batched",
                "category_id": 3,
                "tags": ["a"],
                "posts_count": 6,
                "post_stream": {"posts": [_post(n) for n in numbers]},
            },
        )

    upstream.add("GET", "/t/7.json", topic_window)

    result = await make_tools(max_read_length=9).call(
        "discourse_read_topic", topic_id=7
    )

    body = payload(result)
    assert [p["post_number"] for p in body["posts"]] == [1, 2, 3, 4, 5]
    assert body["posts"][0]["raw"] == "post body"
    assert body["title"] == "Batched"
    assert body["tags"] == ["a"]
    assert body["meta"] == {"start_post": 1, "returned": 5, "has_more": True}
    assert upstream.count("/t/7.json") == 2
    assert upstream.requests[1].url.params["post_number"] == "4"


async def test_read_topic_stops_when_stream_is_exhausted(make_tools, upstream):
    upstream.json(
        "GET",
        "/t/8.json",
        {"title": "Short", "posts_count": 2, "post_stream": {"posts": [_post(1), _post(2)]}},
    )

    result = await make_tools().call(
        "discourse_read_topic", topic_id=8, post_limit=10
    )

    body = payload(result)
    assert body["meta"] == {"start_post": 1, "returned": 2, "has_more": False}
    # Second batch asked from post 3 and found nothing new
    assert upstream.count("/t/8.json") == 2


async def test_read_post_truncates_and_caches(make_tools, upstream):
    upstream.json(
        "GET",
        "/posts/42.json",
        {"id": 42, "topic_id": 7, "post_number": 2, "username": "bob", "raw": "abcdefghij"},
    )
    fake = make_tools(max_read_length=4)

    first = payload(await fake.call("discourse_read_post", post_id=42))
    second = payload(await fake.call("discourse_read_post", post_id=42))

    assert first["raw"] == "abcd"
    assert first["truncated"] is True
    assert first["topic_id"] == 7
    assert second == first
    assert upstream.count("/posts/42.json") == 1


async def test_get_user_without_emails(make_tools, upstream):
    upstream.json(
        "GET",
        "/u/alice.json",
        {"user": {"id": 3, "username": "alice", "trust_level": 2, "bio_raw": "x" * 600}},
    )

    body = payload(await make_tools().call("discourse_get_user", username="alice"))

    assert body["id"] == 3
    assert len(body["bio"]) == 500
    assert body["admin"] is False
    assert "email" not in body
    assert upstream.count("/u/alice/emails.json") == 0


async def test_get_user_shows_email_with_admin_key(make_state, make_tools, upstream):
    upstream.json("GET", "/u/alice.json", {"user": {"id": 3, "username": "alice"}})
    upstream.json("GET", "/u/alice/emails.json", {"email": "alice@example.com"})
    fake = make_tools(
        state=make_state(default_auth=ApiKeyAuth(key="k")), show_emails=True
    )

    body = payload(await fake.call("discourse_get_user", username="alice"))

    assert body["email"] == "alice@example.com"


async def test_get_user_email_needs_admin_key(make_state, make_tools, upstream):
    upstream.json("GET", "/u/alice.json", {"user": {"id": 3, "username": "alice"}})
    fake = make_tools(
        state=make_state(default_auth=UserApiKeyAuth(key="u")), show_emails=True
    )

    body = payload(await fake.call("discourse_get_user", username="alice"))

    assert "email" not in body


async def test_list_user_posts(make_tools, upstream):
    upstream.json(
        "GET",
        "/user_actions.json",
        {
            "user_actions": [
                {"post_id": 1, "topic_id": 9, "post_number": 2, "slug": "s", "title": "T"},
                {"post_id": 2, "topic_id": 9, "post_number": 3, "slug": "s", "title": "T"},
            ]
        },
    )

    result = await make_tools().call(
        "discourse_list_user_posts", username="alice", page=2, limit=2
    )

    body = payload(result)
    assert [p["id"] for p in body["posts"]] == [1, 2]
    assert body["meta"] == {"page": 2, "limit": 2, "has_more": True}
    params = upstream.last().url.params
    assert params["offset"] == "4"
    assert params["filter"] == "4,5"


async def test_list_users_requires_admin_key_at_call_time(
    make_state, make_tools, upstream
):
    fake = make_tools(
        state=make_state(default_auth=UserApiKeyAuth(key="u")), has_admin_api_key=True
    )

    result = await fake.call("discourse_list_users")

    assert payload(result)["error"] == f"Admin API key required for selected site ({SITE})."
    assert upstream.requests == []


async def test_list_users_maps_page_to_one_based(make_state, make_tools, upstream):
    upstream.json(
        "GET",
        "/admin/users/list/staff.json",
        [{"id": 1, "username": "admin", "admin": True, "trust_level": 4}],
    )
    fake = make_tools(
        state=make_state(default_auth=ApiKeyAuth(key="k")), has_admin_api_key=True
    )

    result = await fake.call(
        "discourse_list_users", query="staff", page=0, order="created", asc=True
    )

    body = payload(result)
    assert body["users"][0]["admin"] is True
    assert body["meta"] == {"page": 0, "limit": 100, "has_more": False}
    params = upstream.last().url.params
    assert params["page"] == "1"
    assert params["order"] == "created"
    assert params["asc"] == "true"


async def test_get_chat_messages(make_tools, upstream):
    upstream.json(
        "GET",
        "/chat/api/channels/4/messages",
        {
            "messages": [
                {
                    "id": 11,
                    "user": {"username": "carol"},
                    "message": "hi there",
                    "in_reply_to": {"id": 10},
                }
            ],
            "meta": {"can_load_more_past": True},
        },
    )

    result = await make_tools().call(
        "discourse_get_chat_messages", channel_id=4, direction="past", page_size=10
    )

    body = payload(result)
    assert body["messages"][0]["username"] == "carol"
    assert body["messages"][0]["in_reply_to_id"] == 10
    assert body["meta"]["can_load_more_past"] is True
    assert body["meta"]["returned"] == 1
    assert upstream.last().url.params["direction"] == "past"


async def test_get_draft_not_found(make_tools, upstream):
    upstream.json("GET", "/drafts/new_topic.json", {"draft": None})

    body = payload(await make_tools().call("discourse_get_draft", draft_key="new_topic"))

    assert body == {"draft_key": "new_topic", "found": False}


async def test_get_draft_parses_data(make_tools, upstream):
    upstream.json(
        "GET",
        "/drafts/topic_5.json",
        {
            "draft": '{"reply":"wip","categoryId":3,"tags":["x"],"action":"reply"}',
            "draft_sequence": 4,
        },
    )

    body = payload(await make_tools().call("discourse_get_draft", draft_key="topic_5"))

    assert body["sequence"] == 4
    assert body["data"] == {
        "title": None,
        "reply": "wip",
        "category_id": 3,
        "tags": ["x"],
        "action": "reply",
    }
