"""Discourse MCP adapter: Discourse REST API exposed as MCP tools and resources."""

__version__ = "0.3.0"
