"""MCP binding for registered tools and resources.

:class:`McpRegistrar` satisfies both ``ToolRegistrar`` and
``ResourceRegistrar``. It keeps what was registered and answers the MCP
list/call/read requests of a low-level ``mcp`` server, converting tool
envelopes into ``CallToolResult`` and resource payloads into
``ReadResourceContents``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server

from discourse_mcp import __version__
from discourse_mcp.resources.registry import ResourceHandler, ResourcePayload
from discourse_mcp.tools.base_tool import ToolHandler
from discourse_mcp.tools.core.result import ToolResult, json_error
from discourse_mcp.utils.logger import get_logger

SERVER_NAME = "discourse-mcp"

logger = get_logger("discourse_mcp.server")


@dataclass(slots=True)
class RegisteredTool:
    name: str
    title: str
    description: str
    input_schema: dict[str, Any]
    handler: ToolHandler


@dataclass(slots=True)
class RegisteredResource:
    name: str
    uri: str
    description: str
    handler: ResourceHandler


def to_call_tool_result(envelope: ToolResult) -> types.CallToolResult:
    content = [
        types.TextContent(type="text", text=str(block.get("text", "")))
        for block in envelope.get("content", [])
        if block.get("type") == "text"
    ]
    return types.CallToolResult(content=content, isError=bool(envelope.get("isError")))


def to_read_contents(payload: ResourcePayload) -> list[ReadResourceContents]:
    return [
        ReadResourceContents(content=item["text"], mime_type=item.get("mimeType"))
        for item in payload.get("contents", [])
    ]


class McpRegistrar:
    def __init__(self, name: str = SERVER_NAME, version: str = __version__) -> None:
        self.server: Server = Server(name, version=version)
        self.tools: dict[str, RegisteredTool] = {}
        self.resources: dict[str, RegisteredResource] = {}
        self._bind()

    def register_tool(
        self,
        name: str,
        *,
        title: str,
        description: str,
        input_schema: dict[str, Any],
        handler: ToolHandler,
    ) -> None:
        if name in self.tools:
            logger.warning("Replacing registered tool", tool=name)
        self.tools[name] = RegisteredTool(name, title, description, input_schema, handler)

    def register_resource(
        self,
        name: str,
        uri: str,
        *,
        description: str,
        handler: ResourceHandler,
    ) -> None:
        self.resources[uri] = RegisteredResource(name, uri, description, handler)

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        tool = self.tools.get(name)
        if tool is None:
            return json_error(f"Unknown tool: {name}")
        return await tool.handler(arguments or {})

    async def read_resource(self, uri: str) -> ResourcePayload:
        resource = self.resources.get(uri)
        if resource is None:
            raise ValueError(f"Unknown resource: {uri}")
        return await resource.handler(uri)

    def _bind(self) -> None:
        server = self.server

        @server.list_tools()
        async def list_tools() -> list[types.Tool]:
            return [
                types.Tool(
                    name=tool.name,
                    title=tool.title,
                    description=tool.description,
                    inputSchema=tool.input_schema,
                )
                for tool in self.tools.values()
            ]

        # Arguments are validated by each tool so failures come back as
        # structured validation envelopes.
        @server.call_tool(validate_input=False)
        async def call_tool(
            name: str, arguments: dict[str, Any]
        ) -> types.CallToolResult:
            return to_call_tool_result(await self.call_tool(name, arguments))

        @server.list_resources()
        async def list_resources() -> list[types.Resource]:
            return [
                types.Resource(
                    name=resource.name,
                    uri=resource.uri,
                    description=resource.description,
                    mimeType="application/json",
                )
                for resource in self.resources.values()
            ]

        @server.read_resource()
        async def read_resource(uri: Any) -> list[ReadResourceContents]:
            return to_read_contents(await self.read_resource(str(uri)))

    async def run_stdio(self) -> None:
        async with stdio_server() as (read_stream, write_stream):
            logger.info(
                "Serving over stdio",
                tools=len(self.tools),
                resources=len(self.resources),
            )
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )
