"""HTTP client for one Discourse site.

Every call composes the site's auth headers, is bounded by a single deadline
covering all attempts, can be cancelled by the caller, and retries 429/5xx
with exponential backoff. Multipart uploads are sent exactly once.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import httpx

from discourse_mcp import __version__
from discourse_mcp.http.auth import BasicAuth, Credential, NoAuth
from discourse_mcp.http.cache import Clock, ResponseCache
from discourse_mcp.http.errors import (
    HttpStatusError,
    NetworkError,
    RequestTimeoutError,
    TransportError,
)
from discourse_mcp.http.retry import DEFAULT_MAX_ATTEMPTS, Sleep, create_retry_policy
from discourse_mcp.utils.logger import http_logger

T = TypeVar("T")

USER_AGENT = (
    f"Discourse-MCP/{__version__} (python; +https://github.com/discourse/discourse-mcp)"
)
DEFAULT_TIMEOUT_MS = 15000
_ERROR_BODY_LOG_LIMIT = 2000


class CancelToken:
    """Caller-side cancellation signal.

    Cancelling aborts any request currently awaiting the token; the call then
    fails with :class:`RequestTimeoutError` (``cancelled=True``).
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class UploadForm:
    """Multipart body: plain text fields plus ``(filename, bytes, mime)`` parts."""

    fields: dict[str, str] = field(default_factory=dict)
    files: dict[str, tuple[str, bytes, str]] = field(default_factory=dict)

    def parts(self) -> list[tuple[str, Any]]:
        # Plain fields go in as filename-less parts so the body is always
        # multipart/form-data, even for a URL-only upload.
        out: list[tuple[str, Any]] = [
            (name, (None, value.encode("utf-8"))) for name, value in self.fields.items()
        ]
        out.extend((name, part) for name, part in self.files.items())
        return out


def _safe_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


class HttpClient:
    """Async client bound to one base URL and one credential."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        auth: Credential | None = None,
        basic_auth: BasicAuth | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout_ms = timeout_ms
        self.auth: Credential = auth or NoAuth()
        self.basic_auth = basic_auth
        self.max_attempts = max_attempts
        self._base = httpx.URL(base_url)
        self._transport = transport
        self._sleep = sleep
        self._cache = ResponseCache(clock)
        self._client: httpx.AsyncClient | None = None

    def resolve_url(self, path: str) -> str:
        return str(self._base.join(path))

    def headers(self) -> dict[str, str]:
        h = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        h.update(self.auth.headers())
        if self.basic_auth is not None:
            h.update(self.basic_auth.headers())
        return h

    async def aclose(self) -> None:
        """Close the pooled connections; the next request opens a fresh pool."""
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    # Public API

    async def get(
        self,
        path: str,
        *,
        cancel_token: CancelToken | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request(
            "GET", path, None, cancel_token=cancel_token, extra_headers=headers
        )

    async def get_cached(
        self,
        path: str,
        ttl_ms: int,
        *,
        cancel_token: CancelToken | None = None,
    ) -> Any:
        url = self.resolve_url(path)
        hit, value = self._cache.get(url)
        if hit:
            return value
        value = await self._request("GET", path, None, cancel_token=cancel_token)
        self._cache.set(url, value, ttl_ms)
        return value

    async def post(
        self,
        path: str,
        body: Any,
        *,
        cancel_token: CancelToken | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request(
            "POST", path, body, cancel_token=cancel_token, extra_headers=headers
        )

    async def put(
        self,
        path: str,
        body: Any,
        *,
        cancel_token: CancelToken | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request(
            "PUT", path, body, cancel_token=cancel_token, extra_headers=headers
        )

    async def delete(
        self,
        path: str,
        body: Any = None,
        *,
        cancel_token: CancelToken | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        return await self._request(
            "DELETE", path, body, cancel_token=cancel_token, extra_headers=headers
        )

    async def post_multipart(
        self,
        path: str,
        form: UploadForm,
        *,
        cancel_token: CancelToken | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        merged = httpx.Headers(self.headers())
        if headers:
            merged.update(headers)
        # httpx must write its own Content-Type carrying the boundary
        merged.pop("Content-Type", None)
        # The form is consumed by the first attempt, so never retry
        return await self._execute(
            "POST",
            path,
            merged,
            files=form.parts(),
            cancel_token=cancel_token,
            max_attempts=1,
        )

    # Internals

    def _http(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                transport=self._transport,
                timeout=self.timeout_ms / 1000.0,
                follow_redirects=True,
            )
        return self._client

    async def _request(
        self,
        method: str,
        path: str,
        body: Any,
        *,
        cancel_token: CancelToken | None = None,
        extra_headers: dict[str, str] | None = None,
    ) -> Any:
        merged = httpx.Headers(self.headers())
        content: bytes | None = None
        if body is not None:
            merged["Content-Type"] = "application/json"
            content = json.dumps(body).encode("utf-8")
        if extra_headers:
            merged.update(extra_headers)
        return await self._execute(
            method, path, merged, content=content, cancel_token=cancel_token
        )

    async def _execute(
        self,
        method: str,
        path: str,
        headers: httpx.Headers,
        *,
        content: bytes | None = None,
        files: list[Any] | None = None,
        cancel_token: CancelToken | None = None,
        max_attempts: int | None = None,
    ) -> Any:
        url = self.resolve_url(path)
        http_logger.debug(f"HTTP {method} {url}")
        attempts = self.max_attempts if max_attempts is None else max_attempts

        async def with_retries() -> Any:
            attempt_number = 0
            try:
                policy = create_retry_policy(
                    method, url, max_attempts=attempts, sleep=self._sleep
                )
                async for attempt in policy:
                    with attempt:
                        attempt_number = attempt.retry_state.attempt_number
                        result = await self._send_once(
                            method, url, headers, content=content, files=files
                        )
            except TransportError:
                if attempt_number > 1:
                    http_logger.error(
                        f"Request failed after {attempt_number} attempts: {method} {url}",
                        method=method,
                        url=url,
                        attempts=attempt_number,
                    )
                raise
            return result

        try:
            async with asyncio.timeout(self.timeout_ms / 1000.0):
                return await self._race_cancel(with_retries, cancel_token, method, url)
        except TimeoutError as exc:
            message = f"Request timeout after {self.timeout_ms}ms for {method} {url}"
            http_logger.error(message, method=method, url=url)
            raise RequestTimeoutError(message, duration_ms=self.timeout_ms) from exc

    async def _race_cancel(
        self,
        work: Callable[[], Awaitable[T]],
        cancel_token: CancelToken | None,
        method: str,
        url: str,
    ) -> T:
        """Run ``work`` until it finishes or ``cancel_token`` fires, whichever is first."""
        if cancel_token is None:
            return await work()
        if not cancel_token.cancelled:
            task = asyncio.ensure_future(work())
            waiter = asyncio.ensure_future(cancel_token.wait())
            try:
                done, _ = await asyncio.wait(
                    {task, waiter}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                waiter.cancel()
                if not task.done():
                    task.cancel()
            if task in done:
                return task.result()
            await asyncio.gather(task, return_exceptions=True)

        message = f"Request cancelled for {method} {url}"
        http_logger.warning(message, method=method, url=url)
        raise RequestTimeoutError(
            message, duration_ms=self.timeout_ms, cancelled=True
        )

    async def _send_once(
        self,
        method: str,
        url: str,
        headers: httpx.Headers,
        *,
        content: bytes | None = None,
        files: list[Any] | None = None,
    ) -> Any:
        try:
            response = await self._http().request(
                method, url, headers=headers, content=content, files=files
            )
        except httpx.TimeoutException as exc:
            message = f"Request timeout after {self.timeout_ms}ms for {method} {url}"
            http_logger.error(message, method=method, url=url)
            raise RequestTimeoutError(message, duration_ms=self.timeout_ms) from exc
        except httpx.TransportError as exc:
            message = (
                f"Network error for {method} {url}: {exc}. Possible causes: DNS "
                "resolution failure, network connectivity issue, SSL/TLS error, "
                "or server unreachable."
            )
            http_logger.error(message, method=method, url=url, cause=repr(exc))
            raise NetworkError(message, cause=exc) from exc
        except httpx.HTTPError as exc:
            message = f"Fetch error for {method} {url}: {type(exc).__name__}: {exc}"
            http_logger.error(message, method=method, url=url)
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

        http_logger.debug(
            f"HTTP {method} {url} -> {response.status_code} {response.reason_phrase}"
        )

        if not response.is_success:
            text = response.text
            http_logger.error(
                f"HTTP {response.status_code} {response.reason_phrase} for {method} {url}",
                status=response.status_code,
                body=text[:_ERROR_BODY_LOG_LIMIT],
            )
            raise HttpStatusError(
                response.status_code,
                f"HTTP {response.status_code} {response.reason_phrase}".rstrip(),
                _safe_json(text),
            )

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError as exc:
                raise TransportError(
                    f"Malformed JSON response for {method} {url}"
                ) from exc
        return response.text
