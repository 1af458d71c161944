from .base_tool import BaseTool, ToolHandler
from .core.context import ToolContext
from .registry import (
    ADMIN_TOOLS,
    READ_TOOLS,
    WRITE_TOOLS,
    RegistryOptions,
    RemoteToolSource,
    ToolRegistrar,
    register_all_tools,
)

__all__ = [
    "ADMIN_TOOLS",
    "READ_TOOLS",
    "WRITE_TOOLS",
    "BaseTool",
    "RegistryOptions",
    "RemoteToolSource",
    "ToolContext",
    "ToolHandler",
    "ToolRegistrar",
    "register_all_tools",
]
