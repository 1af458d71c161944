from .context import DEFAULT_MAX_READ_LENGTH, ToolContext, ToolsMode
from .result import (
    ToolResult,
    json_error,
    json_response,
    paginated_response,
    validation_error,
)

__all__ = [
    "DEFAULT_MAX_READ_LENGTH",
    "ToolContext",
    "ToolResult",
    "ToolsMode",
    "json_error",
    "json_response",
    "paginated_response",
    "validation_error",
]
