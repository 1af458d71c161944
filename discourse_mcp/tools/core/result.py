from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

__all__ = [
    "ToolResult",
    "json_response",
    "json_error",
    "paginated_response",
    "validation_error",
    "dumps",
]

ToolResult = dict[str, Any]

_META_KEYS = ("total", "page", "limit", "has_more", "next_cursor")


def dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


def json_response(data: Any) -> ToolResult:
    """Success envelope: one text block holding the JSON payload.

    Shape:
    {"content": [{"type": "text", "text": "<json>"}]}
    """
    return {"content": [{"type": "text", "text": dumps(data)}]}


def json_error(message: str, details: dict[str, Any] | None = None) -> ToolResult:
    """Error envelope; ``details`` keys are merged next to ``error``.

    Shape:
    {"content": [{"type": "text", "text": "{\\"error\\": ...}"}], "isError": true}
    """
    payload: dict[str, Any] = {"error": message}
    if details:
        payload.update(details)
    return {"content": [{"type": "text", "text": dumps(payload)}], "isError": True}


def paginated_response(
    collection: str, items: list[Any], meta: dict[str, Any]
) -> dict[str, Any]:
    """Named collection plus pagination meta; unknown or absent keys are dropped."""
    return {
        collection: items,
        "meta": {key: meta[key] for key in _META_KEYS if key in meta},
    }


def _issue_path(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc) or "(root)"


def validation_error(exc: ValidationError) -> ToolResult:
    issues = [
        {"path": _issue_path(err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return json_error("Validation failed", {"issues": issues})
