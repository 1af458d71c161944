from __future__ import annotations

from pydantic import BaseModel, Field

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_response
from ..core.types import UrlStr


class SelectSiteArgs(BaseModel):
    site: UrlStr = Field(..., description="Base URL of the Discourse site")


class SelectSiteTool(BaseTool):
    name = "discourse_select_site"
    title = "Select Site"
    description = (
        "Validate and select a Discourse site. Returns JSON with site URL and title."
    )
    args_schema = SelectSiteArgs
    failure_message = "Failed to select site"

    async def _arun(self, args: SelectSiteArgs) -> ToolResult:
        base, client = self.site_state.build_client_for_site(args.site)
        about = await client.get("/about.json")
        title = None
        if isinstance(about, dict):
            title = (about.get("about") or {}).get("title") or about.get("title")
        self.site_state.select_site(base)

        if self.context.tools_mode != "discourse_api_only":
            await self._register_remote_tools()

        return json_response({"site": base, "title": title or base})

    async def _register_remote_tools(self) -> None:
        source = self.context.remote_tools
        if source is None or self.registrar is None:
            return
        try:
            names = await source.register_remote_tools(
                self.registrar, self.site_state, self.context.logger
            )
        except Exception as exc:
            # Remote discovery is best effort; the selection already succeeded
            self.context.logger.warning(
                "Remote tool registration failed",
                site=self.site_state.get_site_base(),
                error=str(exc),
            )
            return
        if names:
            self.context.logger.info("Registered remote tools", tools=list(names))
