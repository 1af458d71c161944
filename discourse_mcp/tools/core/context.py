from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from discourse_mcp.site.ratelimit import RateLimiter
from discourse_mcp.site.state import SiteState

ToolsMode = Literal["auto", "discourse_api_only", "tool_exec_api"]

DEFAULT_MAX_READ_LENGTH = 50000


class ToolContext(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    site_state: SiteState
    logger: Any
    rate_limiter: RateLimiter
    max_read_length: int = DEFAULT_MAX_READ_LENGTH
    default_search_prefix: str | None = None
    # Empty list disables local file uploads
    allowed_upload_paths: list[str] = Field(default_factory=list)
    show_emails: bool = False
    allow_writes: bool = False
    tools_mode: ToolsMode = "auto"
    # Optional RemoteToolSource consulted after a site is selected
    remote_tools: Any | None = None
