"""Selected-site state shared by every tool and resource.

Credentials are resolved once per site from a default credential plus an
ordered list of per-site overrides. The first override whose normalized base
matches wins. One :class:`HttpClient` is created per base and reused, so its
response cache lives as long as the process.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel

from discourse_mcp.http.auth import (
    ApiKeyAuth,
    AuthType,
    BasicAuth,
    Credential,
    NoAuth,
    UserApiKeyAuth,
)
from discourse_mcp.http.client import DEFAULT_TIMEOUT_MS, HttpClient
from discourse_mcp.http.retry import Sleep
from discourse_mcp.site.ratelimit import RateLimiter
from discourse_mcp.utils.logger import get_logger

if TYPE_CHECKING:
    from discourse_mcp.config.settings import Settings

NO_SITE_MESSAGE = "No site selected. Call discourse_select_site first."


class SiteNotSelectedError(RuntimeError):
    def __init__(self, message: str = NO_SITE_MESSAGE) -> None:
        super().__init__(message)


class AuthPair(BaseModel):
    """Per-site credential override (one ``auth_pairs`` entry)."""

    site: str
    api_key: str | None = None
    api_username: str | None = None
    user_api_key: str | None = None
    user_api_client_id: str | None = None
    http_basic_user: str | None = None
    http_basic_pass: str | None = None

    def credential(self) -> Credential:
        if self.api_key:
            return ApiKeyAuth(key=self.api_key, username=self.api_username)
        if self.user_api_key:
            return UserApiKeyAuth(
                key=self.user_api_key, client_id=self.user_api_client_id
            )
        return NoAuth()

    def basic_auth(self) -> BasicAuth | None:
        if self.http_basic_user and self.http_basic_pass is not None:
            return BasicAuth(user=self.http_basic_user, password=self.http_basic_pass)
        return None


def normalize_base(raw_url: str) -> str:
    """Reduce a site URL to ``scheme://host[:port]``."""
    try:
        url = httpx.URL(raw_url.strip())
    except httpx.InvalidURL as exc:
        raise ValueError(f"Invalid site URL: {raw_url}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise ValueError(f"Invalid site URL: {raw_url}")
    host = f"[{url.host}]" if ":" in url.host else url.host
    base = f"{url.scheme}://{host}"
    if url.port is not None:
        base += f":{url.port}"
    return base


class SiteState:
    def __init__(
        self,
        *,
        default_auth: Credential | None = None,
        auth_overrides: list[AuthPair] | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep | None = None,
        rate_limiter: RateLimiter | None = None,
        logger: Any = None,
    ) -> None:
        self.default_auth: Credential = default_auth or NoAuth()
        self.auth_overrides = list(auth_overrides or [])
        self.timeout_ms = timeout_ms
        self.rate_limiter = rate_limiter or RateLimiter()
        self.logger = logger or get_logger("discourse_mcp.site")
        self._transport = transport
        self._sleep = sleep
        self._clients: dict[str, HttpClient] = {}
        self._selected: str | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> SiteState:
        return cls(
            default_auth=settings.default_credential(),
            auth_overrides=settings.auth_pairs,
            timeout_ms=settings.timeout_ms,
            transport=transport,
        )

    def _find_override(self, base: str) -> AuthPair | None:
        for pair in self.auth_overrides:
            try:
                if normalize_base(pair.site) == base:
                    return pair
            except ValueError:
                continue
        return None

    def _resolve(self, base: str) -> tuple[Credential, BasicAuth | None]:
        pair = self._find_override(base)
        if pair is None:
            return self.default_auth, None
        return pair.credential(), pair.basic_auth()

    def build_client_for_site(self, raw_url: str) -> tuple[str, HttpClient]:
        base = normalize_base(raw_url)
        client = self._clients.get(base)
        if client is None:
            auth, basic = self._resolve(base)
            client = HttpClient(
                base,
                timeout_ms=self.timeout_ms,
                auth=auth,
                basic_auth=basic,
                transport=self._transport,
                sleep=self._sleep,
            )
            self._clients[base] = client
            self.logger.debug("Created client", site=base, auth_type=auth.type)
        return base, client

    async def aclose(self) -> None:
        """Close every per-site client."""
        for client in self._clients.values():
            await client.aclose()

    def select_site(self, base: str) -> None:
        self._selected = normalize_base(base)
        self.logger.info("Selected site", site=self._selected)

    def ensure_selected_site(self) -> tuple[str, HttpClient]:
        if self._selected is None:
            raise SiteNotSelectedError()
        return self.build_client_for_site(self._selected)

    def get_site_base(self) -> str | None:
        return self._selected

    def get_auth_type(self, base: str) -> AuthType:
        auth, _ = self._resolve(normalize_base(base))
        return auth.type

    def has_admin_auth(self) -> bool:
        if self.default_auth.type == "api_key":
            return True
        return any(pair.credential().type == "api_key" for pair in self.auth_overrides)
