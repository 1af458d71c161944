"""Shared pytest fixtures for all tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from discourse_mcp.http.auth import Credential
from discourse_mcp.site.ratelimit import RateLimiter
from discourse_mcp.site.state import AuthPair, SiteState
from discourse_mcp.utils.logger import get_logger

SITE = "https://example.com"

CannedResponse = httpx.Response | Callable[[httpx.Request], Any]


class ClosingTransport(httpx.MockTransport):
    """MockTransport that counts how often its owning client closes it."""

    def __init__(self, handler) -> None:
        super().__init__(handler)
        self.closed = 0

    async def aclose(self) -> None:
        self.closed += 1


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Records requested delays instead of sleeping."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.calls: list[float] = []
        self._clock = clock

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self._clock is not None:
            self._clock.advance(seconds)


class Upstream:
    """Canned Discourse responses keyed by (method, path).

    Several responses for one route are served in order; the last one then
    repeats. Every request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[CannedResponse]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *responses: CannedResponse) -> None:
        self.routes.setdefault((method.upper(), path), []).extend(responses)

    def json(self, method: str, path: str, payload: Any, status: int = 200) -> None:
        self.add(method, path, httpx.Response(status, json=payload))

    async def handler(self, request: httpx.Request):
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, text="not found")
        canned = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(canned):
            result = canned(request)
            if hasattr(result, "__await__"):
                result = await result
            return result
        return canned

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def last(self, path: str | None = None) -> httpx.Request:
        matching = [r for r in self.requests if path is None or r.url.path == path]
        assert matching, f"no request for {path}"
        return matching[-1]

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


class FakeRegistrar:
    """Captures tool and resource registrations."""

    def __init__(self) -> None:
        self.tools: dict[str, dict[str, Any]] = {}
        self.resources: dict[str, dict[str, Any]] = {}

    def register_tool(self, name, *, title, description, input_schema, handler):
        self.tools[name] = {
            "title": title,
            "description": description,
            "input_schema": input_schema,
            "handler": handler,
        }

    def register_resource(self, name, uri, *, description, handler):
        self.resources[uri] = {
            "name": name,
            "description": description,
            "handler": handler,
        }

    async def call(self, tool: str, /, **kwargs: Any) -> dict[str, Any]:
        return await self.tools[tool]["handler"](kwargs)

    async def read(self, uri: str) -> dict[str, Any]:
        return await self.resources[uri]["handler"](uri)


def payload(result: dict[str, Any]) -> Any:
    """Decode the JSON text of a tool envelope or resource payload."""
    block = (result.get("content") or result.get("contents"))[0]
    return json.loads(block["text"])


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def registrar() -> FakeRegistrar:
    return FakeRegistrar()


@pytest.fixture
def make_state(upstream: Upstream, sleeps: SleepRecorder):
    def _make(
        default_auth: Credential | None = None,
        auth_overrides: list[AuthPair] | None = None,
        *,
        select: str | None = SITE,
        timeout_ms: int = 5000,
    ) -> SiteState:
        state = SiteState(
            default_auth=default_auth,
            auth_overrides=auth_overrides,
            timeout_ms=timeout_ms,
            transport=upstream.transport,
            sleep=sleeps,
            rate_limiter=RateLimiter(sleep=SleepRecorder()),
            logger=get_logger("tests"),
        )
        if select:
            state.select_site(select)
        return state

    return _make


@pytest.fixture
def make_tools(make_state):
    """Register the tool set for ``options`` against a fresh FakeRegistrar."""
    from discourse_mcp.tools.registry import RegistryOptions, register_all_tools

    def _make(state: SiteState | None = None, **options: Any) -> FakeRegistrar:
        fake = FakeRegistrar()
        register_all_tools(
            fake, state or make_state(), RegistryOptions(**options)
        )
        return fake

    return _make
