"""Command-line entry point: ``discourse-mcp`` / ``python main.py``.

Every option accepts both ``--snake_case`` and ``--kebab-case`` spellings
and both ``--flag value`` and ``--flag=value``. Boolean options may be given
bare (``--allow_writes``) or with an explicit value (``--read_only=false``).
"""

from __future__ import annotations

import asyncio
import os
import sys
from argparse import ArgumentParser, ArgumentTypeError, Namespace
from collections.abc import Sequence
from typing import Any

import httpx
from dotenv import load_dotenv

from discourse_mcp import __version__
from discourse_mcp.config.settings import (
    ConfigValidationError,
    Settings,
    load_settings,
)
from discourse_mcp.http.errors import TransportError
from discourse_mcp.resources.registry import register_all_resources
from discourse_mcp.server import McpRegistrar
from discourse_mcp.site.state import SiteState
from discourse_mcp.tools.core.types import as_dict
from discourse_mcp.tools.registry import RemoteToolSource, register_all_tools
from discourse_mcp.utils.logger import configure_structlog, get_logger, set_log_level

startup_logger = get_logger("discourse_mcp.startup")

BOOL_OPTIONS = ("read_only", "allow_writes", "show_emails")
VALUE_OPTIONS = (
    ("site", "Tether to this Discourse site and hide discourse_select_site"),
    ("timeout_ms", "Per-call HTTP timeout in milliseconds (default 15000)"),
    ("log_level", "Log level: debug, info, warning, error"),
    ("tools_mode", "auto, discourse_api_only or tool_exec_api"),
    ("default_search", "Prefix added to every discourse_search query"),
    ("max_read_length", "Maximum characters of post content returned"),
    ("auth_pairs", "JSON array of per-site credentials"),
    ("allowed_upload_paths", "Directories local uploads may read from"),
    ("api_key", "Default admin API key"),
    ("api_username", "Username the default API key acts as"),
    ("user_api_key", "Default user API key"),
    ("user_api_client_id", "Client id for the default user API key"),
)
INT_OPTIONS = ("timeout_ms", "max_read_length")


def str2bool(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    raise ArgumentTypeError(f"expected a boolean, got {value!r}")


def _spellings(name: str) -> list[str]:
    flags = [f"--{name}"]
    kebab = name.replace("_", "-")
    if kebab != name:
        flags.append(f"--{kebab}")
    return flags


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="discourse-mcp",
        description="Serve a Discourse site's REST API as MCP tools over stdio",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        *_spellings("profile"), dest="profile", help="JSON profile with settings"
    )
    for name in BOOL_OPTIONS:
        parser.add_argument(
            *_spellings(name),
            dest=name,
            nargs="?",
            const=True,
            default=None,
            type=str2bool,
            metavar="BOOL",
        )
    for name, help_text in VALUE_OPTIONS:
        parser.add_argument(
            *_spellings(name),
            dest=name,
            default=None,
            type=int if name in INT_OPTIONS else str,
            help=help_text,
        )
    parser.add_argument(
        *_spellings("log_format"),
        dest="log_format",
        choices=["pretty", "json"],
        help="Log format (pretty or json). Overrides LOG_FORMAT env var.",
    )
    parser.add_argument(
        *_spellings("log_colors"),
        dest="log_colors",
        type=str2bool,
        help="Enable colored logs (true/false). Overrides LOG_COLORS env var.",
    )
    return parser


def _value_flags(parser: ArgumentParser) -> set[str]:
    return {
        flag
        for action in parser._actions
        if action.nargs is None and action.option_strings
        for flag in action.option_strings
    }


def normalize_argv(argv: Sequence[str], value_flags: set[str]) -> list[str]:
    """Glue ``--flag -value`` into ``--flag=-value``.

    Discourse search negations such as ``-tag:foo`` start with a dash, which
    argparse would otherwise read as an unknown option.
    """
    out: list[str] = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        nxt = argv[i + 1] if i + 1 < len(argv) else None
        if (
            arg in value_flags
            and nxt is not None
            and nxt.startswith("-")
            and not nxt.startswith("--")
        ):
            out.append(f"{arg}={nxt}")
            i += 2
            continue
        out.append(arg)
        i += 1
    return out


def parse_args(argv: Sequence[str] | None = None) -> Namespace:
    parser = build_parser()
    raw = list(sys.argv[1:] if argv is None else argv)
    return parser.parse_args(normalize_argv(raw, _value_flags(parser)))


def cli_overrides(args: Namespace) -> dict[str, Any]:
    names = [*BOOL_OPTIONS, *(name for name, _ in VALUE_OPTIONS)]
    return {name: getattr(args, name) for name in names if getattr(args, name) is not None}


async def tether(site_state: SiteState, site: str) -> str:
    """Probe ``/about.json`` and preselect ``site``; returns the site title."""
    base, client = site_state.build_client_for_site(site)
    about = as_dict(await client.get("/about.json"))
    site_state.select_site(base)
    return as_dict(about.get("about")).get("title") or about.get("title") or base


async def build_registrar(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    remote_tools: RemoteToolSource | None = None,
) -> tuple[McpRegistrar, SiteState]:
    site_state = SiteState.from_settings(settings, transport=transport)

    tethered = False
    if settings.site:
        title = await tether(site_state, settings.site)
        tethered = True
        startup_logger.info(
            "Tethered to site", site=site_state.get_site_base(), title=title
        )

    registrar = McpRegistrar()
    options = settings.registry_options(
        has_admin_api_key=site_state.has_admin_auth(), hide_select_site=tethered
    )
    register_all_tools(registrar, site_state, options, remote_tools=remote_tools)
    register_all_resources(registrar, site_state)
    return registrar, site_state


async def run(settings: Settings) -> None:
    registrar, site_state = await build_registrar(settings)
    try:
        await registrar.run_stdio()
    finally:
        await site_state.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)

    # CLI logging flags take precedence over env vars
    if args.log_format:
        os.environ["LOG_FORMAT"] = args.log_format
    if args.log_colors is not None:
        os.environ["LOG_COLORS"] = "true" if args.log_colors else "false"

    load_dotenv(override=False)
    configure_structlog()

    try:
        settings = load_settings(cli_overrides(args), profile=args.profile)
    except ConfigValidationError as e:
        startup_logger.error("Invalid configuration", errors=e.errors)
        return 2

    set_log_level(settings.log_level)
    startup_logger.info(
        "Starting discourse-mcp",
        version=__version__,
        writes_enabled=settings.writes_enabled,
        tools_mode=settings.tools_mode,
        site=settings.site,
    )

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        startup_logger.info("Interrupted, shutting down")
    except (TransportError, ValueError) as e:
        startup_logger.error("Failed to start", error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
