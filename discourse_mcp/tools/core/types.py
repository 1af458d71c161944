from __future__ import annotations

from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    AnyUrl,
    Field,
    StringConstraints,
    TypeAdapter,
    ValidationError,
)

_url_adapter = TypeAdapter(AnyUrl)


def _check_url(value: str) -> str:
    # Validate only; the caller's spelling is what gets sent upstream
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise ValueError("Invalid url") from None
    return value


UrlStr = Annotated[str, AfterValidator(_check_url)]
TagName = Annotated[str, StringConstraints(min_length=1, max_length=100)]
TagList = Annotated[list[TagName], Field(max_length=10)]


def as_dict(value: Any) -> dict[str, Any]:
    """Upstream payloads are untrusted; anything but an object reads as empty."""
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def as_records(value: Any) -> list[dict[str, Any]]:
    """Object items of an upstream list; anything else in the list is dropped."""
    return [item for item in as_list(value) if isinstance(item, dict)]
