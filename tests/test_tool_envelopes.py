from __future__ import annotations

import json

from pydantic import BaseModel, TypeAdapter, ValidationError

from discourse_mcp.tools.core.result import (
    json_error,
    json_response,
    paginated_response,
    validation_error,
)


class _Inner(BaseModel):
    email: str


class _Outer(BaseModel):
    user: _Inner


def _text(envelope):
    return envelope["content"][0]["text"]


def test_json_response_is_compact_text_block():
    envelope = json_response({"title": "héllo", "n": 1})
    assert envelope == {
        "content": [{"type": "text", "text": '{"title":"héllo","n":1}'}]
    }
    assert "isError" not in envelope


def test_json_error_merges_details():
    envelope = json_error("Boom", {"status": 500})
    assert envelope["isError"] is True
    assert json.loads(_text(envelope)) == {"error": "Boom", "status": 500}


def test_paginated_response_keeps_only_present_meta_keys():
    result = paginated_response(
        "results", [1, 2], {"total": 2, "has_more": False, "other": "x"}
    )
    assert result == {"results": [1, 2], "meta": {"total": 2, "has_more": False}}


def test_validation_error_reports_nested_path():
    try:
        _Outer.model_validate({"user": {}})
    except ValidationError as exc:
        envelope = validation_error(exc)

    body = json.loads(_text(envelope))
    assert envelope["isError"] is True
    assert body["error"] == "Validation failed"
    assert body["issues"] == [{"path": "user.email", "message": "Field required"}]


def test_validation_error_root_path():
    try:
        TypeAdapter(int).validate_python("nope")
    except ValidationError as exc:
        envelope = validation_error(exc)

    issue = json.loads(_text(envelope))["issues"][0]
    assert issue["path"] == "(root)"
