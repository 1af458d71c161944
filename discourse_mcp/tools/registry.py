"""Capability registrar: decides which tools a process exposes.

The exposed set is computed once at startup from three independent axes:

- ``allow_writes`` adds the write tools
- ``has_admin_api_key`` adds the admin tools
- ``hide_select_site`` (tethered mode) removes ``discourse_select_site``

Read tools are always present. Registration targets the minimal
:class:`ToolRegistrar` protocol so it never depends on the MCP server type.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from pydantic import BaseModel, Field

from discourse_mcp.site.state import SiteState
from discourse_mcp.utils.logger import tool_logger

from .base_tool import BaseTool, ToolHandler
from .builtin import TOOL_CLASSES
from .builtin.select_site import SelectSiteTool
from .core.context import DEFAULT_MAX_READ_LENGTH, ToolContext, ToolsMode


class ToolRegistrar(Protocol):
    def register_tool(
        self,
        name: str,
        *,
        title: str,
        description: str,
        input_schema: dict[str, Any],
        handler: ToolHandler,
    ) -> None: ...


class RemoteToolSource(Protocol):
    """External procedures discovered from the selected site.

    Returns the names it registered. Failures are logged by the caller and
    never fail site selection.
    """

    async def register_remote_tools(
        self, registrar: ToolRegistrar, site_state: SiteState, logger: Any
    ) -> Sequence[str]: ...


class RegistryOptions(BaseModel):
    allow_writes: bool = False
    tools_mode: ToolsMode = "auto"
    hide_select_site: bool = False
    default_search_prefix: str | None = None
    allowed_upload_paths: list[str] = Field(default_factory=list)
    has_admin_api_key: bool = False
    show_emails: bool = False
    max_read_length: int = DEFAULT_MAX_READ_LENGTH


def _names(access: str) -> frozenset[str]:
    return frozenset(cls.name for cls in TOOL_CLASSES if cls.access == access)


READ_TOOLS = _names("read")
ADMIN_TOOLS = _names("admin")
WRITE_TOOLS = _names("write")


def select_tool_classes(options: RegistryOptions) -> list[type[BaseTool]]:
    selected = []
    for tool_cls in TOOL_CLASSES:
        if tool_cls.access == "admin" and not options.has_admin_api_key:
            continue
        if tool_cls.access == "write" and not options.allow_writes:
            continue
        if tool_cls is SelectSiteTool and options.hide_select_site:
            continue
        selected.append(tool_cls)
    return selected


def register_all_tools(
    registrar: ToolRegistrar,
    site_state: SiteState,
    options: RegistryOptions,
    *,
    logger: Any = None,
    remote_tools: RemoteToolSource | None = None,
) -> list[str]:
    """Register the tool set implied by ``options``; returns registered names."""
    context = ToolContext(
        site_state=site_state,
        logger=logger or tool_logger,
        rate_limiter=site_state.rate_limiter,
        max_read_length=options.max_read_length,
        default_search_prefix=options.default_search_prefix,
        allowed_upload_paths=options.allowed_upload_paths,
        show_emails=options.show_emails,
        allow_writes=options.allow_writes,
        tools_mode=options.tools_mode,
        remote_tools=remote_tools,
    )

    registered = [
        tool_cls.name
        for tool_cls in select_tool_classes(options)
        if tool_cls.register(registrar, context)
    ]
    tool_logger.info("Registered tools", count=len(registered), tools=registered)
    return registered
