from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import BaseModel, ValidationError

from discourse_mcp.http.client import HttpClient
from discourse_mcp.http.errors import HttpStatusError, TransportError
from discourse_mcp.site.state import SiteNotSelectedError
from discourse_mcp.utils.logger import tool_logger

from .core.context import ToolContext
from .core.result import ToolResult, json_error, validation_error

if TYPE_CHECKING:
    from .registry import ToolRegistrar

ToolAccess = Literal["read", "admin", "write"]
ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolResult]]


class BaseTool(ABC):
    """Base class for Discourse tools.

    Subclasses declare ``name``, ``title``, ``description`` and
    ``args_schema`` and implement ``_arun``, which receives the validated
    arguments model. ``arun`` is the handler given to the registrar: it
    validates input and converts every failure into an error envelope, so a
    caller never sees a raw exception.

    ``failure_message`` is formatted with the validated arguments and
    prefixes unexpected errors, e.g. ``"Failed to read topic {topic_id}"``.
    """

    name: ClassVar[str]
    title: ClassVar[str]
    description: ClassVar[str]
    args_schema: ClassVar[type[BaseModel]]
    access: ClassVar[ToolAccess] = "read"
    failure_message: ClassVar[str] = "Tool failed"

    def __init__(
        self, context: ToolContext, registrar: ToolRegistrar | None = None
    ) -> None:
        self.context = context
        self.registrar = registrar

    @classmethod
    def input_schema(cls) -> dict[str, Any]:
        return cls.args_schema.model_json_schema()

    @classmethod
    def register(cls, registrar: ToolRegistrar, context: ToolContext) -> bool:
        """Register one instance; write tools refuse when writes are disabled."""
        if cls.access == "write" and not context.allow_writes:
            return False
        tool = cls(context, registrar)
        registrar.register_tool(
            cls.name,
            title=cls.title,
            description=cls.description,
            input_schema=cls.input_schema(),
            handler=tool.arun,
        )
        return True

    @property
    def site_state(self):
        return self.context.site_state

    def client(self) -> HttpClient:
        _, client = self.context.site_state.ensure_selected_site()
        return client

    def truncate(self, text: Any) -> str:
        return str(text or "")[: self.context.max_read_length]

    async def arun(self, tool_input: dict[str, Any] | None = None) -> ToolResult:
        raw = tool_input or {}
        # Argument values may carry passwords or API payloads; log names only
        tool_logger.info("Tool call", tool=self.name, args=sorted(raw))

        try:
            args = self.args_schema.model_validate(raw)
        except ValidationError as ve:
            return validation_error(ve)

        try:
            return await self._arun(args)
        except SiteNotSelectedError as exc:
            return json_error(str(exc))
        except HttpStatusError as exc:
            details: dict[str, Any] = {"status": exc.status}
            if exc.body not in (None, ""):
                details["body"] = exc.body
            return json_error(f"{self._failure(args)}: {exc}", details)
        except TransportError as exc:
            return json_error(f"{self._failure(args)}: {exc}")
        except Exception as exc:
            tool_logger.error(
                "Tool execution failed",
                tool=self.name,
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            return json_error(f"{self._failure(args)}: {exc}")

    def _failure(self, args: BaseModel) -> str:
        return self.failure_message.format(**args.model_dump())

    @abstractmethod
    async def _arun(self, args: Any) -> ToolResult:
        raise NotImplementedError
