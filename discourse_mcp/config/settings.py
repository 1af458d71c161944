"""Runtime settings for the Discourse MCP adapter.

Settings are layered, later layers winning:

1. field defaults
2. ``DISCOURSE_<FIELD>`` environment variables (``.env`` is loaded first)
3. a JSON profile passed with ``--profile``
4. command-line flags

Writes are effective only when ``allow_writes`` is set and ``read_only`` is
cleared; the defaults keep the adapter read-only.
"""

from __future__ import annotations

import json
import os
from copy import deepcopy
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from discourse_mcp.http.auth import ApiKeyAuth, Credential, NoAuth, UserApiKeyAuth
from discourse_mcp.http.client import DEFAULT_TIMEOUT_MS
from discourse_mcp.site.state import AuthPair
from discourse_mcp.tools.core.context import DEFAULT_MAX_READ_LENGTH, ToolsMode
from discourse_mcp.tools.registry import RegistryOptions

ENV_PREFIX = "DISCOURSE_"


class ConfigValidationError(Exception):
    """Structured configuration validation error."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    site: str | None = None
    read_only: bool = True
    allow_writes: bool = False
    timeout_ms: int = Field(DEFAULT_TIMEOUT_MS, gt=0)
    log_level: str = "info"
    tools_mode: ToolsMode = "auto"
    default_search: str | None = None
    max_read_length: int = Field(DEFAULT_MAX_READ_LENGTH, gt=0)
    auth_pairs: list[AuthPair] = Field(default_factory=list)
    allowed_upload_paths: list[str] = Field(default_factory=list)
    show_emails: bool = False
    api_key: str | None = None
    api_username: str | None = None
    user_api_key: str | None = None
    user_api_client_id: str | None = None

    @field_validator("auth_pairs", mode="before")
    @classmethod
    def _parse_auth_pairs(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError as exc:
                raise ValueError(f"auth_pairs must be a JSON array: {exc}") from exc
        return value

    @field_validator("allowed_upload_paths", mode="before")
    @classmethod
    def _parse_paths(cls, value: Any) -> Any:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    return json.loads(stripped)
                except ValueError as exc:
                    raise ValueError(
                        f"allowed_upload_paths must be a JSON array or comma list: {exc}"
                    ) from exc
            return [part.strip() for part in stripped.split(",") if part.strip()]
        return value

    @property
    def writes_enabled(self) -> bool:
        return self.allow_writes and not self.read_only

    def default_credential(self) -> Credential:
        if self.api_key:
            return ApiKeyAuth(key=self.api_key, username=self.api_username)
        if self.user_api_key:
            return UserApiKeyAuth(key=self.user_api_key, client_id=self.user_api_client_id)
        return NoAuth()

    def registry_options(
        self, *, has_admin_api_key: bool, hide_select_site: bool = False
    ) -> RegistryOptions:
        return RegistryOptions(
            allow_writes=self.writes_enabled,
            tools_mode=self.tools_mode,
            hide_select_site=hide_select_site,
            default_search_prefix=self.default_search,
            allowed_upload_paths=self.allowed_upload_paths,
            has_admin_api_key=has_admin_api_key,
            show_emails=self.show_emails,
            max_read_length=self.max_read_length,
        )


def deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Merge updates into base without mutating inputs; None never overrides."""
    result = deepcopy(base)
    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif value is None:
            continue
        else:
            result[key] = value
    return result


def settings_from_env(environ: dict[str, str] | None = None) -> dict[str, Any]:
    environ = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    for field in Settings.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{field.upper()}")
        if raw is not None and raw != "":
            values[field] = raw
    return values


def load_profile(path: str | Path) -> dict[str, Any]:
    profile_path = Path(path).expanduser()
    try:
        data = json.loads(profile_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigValidationError([f"Cannot read profile {profile_path}: {exc}"]) from exc
    except ValueError as exc:
        raise ConfigValidationError([f"Invalid JSON in profile {profile_path}: {exc}"]) from exc
    if not isinstance(data, dict):
        raise ConfigValidationError([f"Profile {profile_path} must contain a JSON object"])
    return data


def _extract_validation_errors(exc: ValidationError) -> list[str]:
    errors = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err["loc"]) if err["loc"] else "config"
        msg = err["msg"]
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, ") :]
        errors.append(f"{loc}: {msg}")
    return errors


def load_settings(
    overrides: dict[str, Any] | None = None,
    *,
    profile: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Build validated settings from env, an optional profile, and CLI overrides.

    Raises:
        ConfigValidationError: With one human-readable message per problem.
    """
    merged = settings_from_env(environ)
    if profile:
        merged = deep_merge(merged, load_profile(profile))
    merged = deep_merge(merged, overrides or {})
    try:
        return Settings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigValidationError(_extract_validation_errors(exc)) from exc
