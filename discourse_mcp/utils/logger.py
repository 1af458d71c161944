"""Structured logging for the Discourse MCP adapter using structlog."""

import logging
import os

import structlog
from structlog.types import FilteringBoundLogger


def _resolve_level(value: str | None) -> int:
    if not value:
        return logging.INFO
    level = logging.getLevelName(value.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_structlog(level: str | None = None):
    """Configure structlog with pretty or JSON output based on LOG_FORMAT env.

    Output goes to stderr: stdout carries the MCP stdio protocol and must
    only ever contain JSON-RPC frames.
    """
    log_format = os.getenv("LOG_FORMAT", "pretty").lower()
    log_colors_env = os.getenv("LOG_COLORS", "false").lower()
    log_colors = log_colors_env in ("true", "1", "yes", "on")
    root_level = _resolve_level(level or os.getenv("LOG_LEVEL"))

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=log_colors)

    logging.root.handlers = []
    handler = logging.StreamHandler()  # stderr
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=[
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
            ],
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(root_level)

    logging.captureWarnings(True)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("mcp").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def set_log_level(level: str) -> None:
    """Apply a level picked up after import (e.g. from CLI or profile)."""
    resolved = _resolve_level(level)
    logging.root.setLevel(resolved)
    logging.getLogger("discourse_mcp").setLevel(resolved)


configure_structlog()


def get_logger(name: str, level: int | None = None) -> FilteringBoundLogger:
    """Get a configured structlog logger."""
    if level is not None:
        logging.getLogger(name).setLevel(level)
    return structlog.get_logger(name)


logger = get_logger("discourse_mcp")
http_logger = get_logger("discourse_mcp.http")
tool_logger = get_logger("discourse_mcp.tools")
