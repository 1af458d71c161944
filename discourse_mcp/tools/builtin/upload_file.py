"""Upload an image or file to Discourse.

Three sources are accepted, exactly one per call:

- ``image_data``: base64 payload (optionally a ``data:`` URI) plus ``filename``
- ``url`` with an http(s) scheme: Discourse fetches the file itself
- ``url`` as a ``file://`` URL or absolute path: read locally, but only from
  inside ``allowed_upload_paths`` after resolving symlinks
"""

from __future__ import annotations

import base64
import os
import re
from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit
from urllib.request import url2pathname

from pydantic import BaseModel, Field

from discourse_mcp.http.client import UploadForm

from ..base_tool import BaseTool
from ..core.result import ToolResult, json_error, json_response
from ..core.types import as_dict
from ..guards.access import require_write_access

USER_REQUIRED_TYPES = ("avatar", "profile_background", "card_background")

MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
}

_DATA_URI = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)

UPLOAD_RESULT_FIELDS = (
    "id",
    "url",
    "short_url",
    "short_path",
    "original_filename",
    "extension",
    "width",
    "height",
    "filesize",
    "human_filesize",
)


class UploadRejected(ValueError):
    """Input that fails upload policy; reported as a plain error envelope."""


def infer_mime_type(filename: str, data_uri_mime: str | None = None) -> str:
    if data_uri_mime:
        return data_uri_mime
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return MIME_TYPES.get(ext, "application/octet-stream")


def resolve_local_path(raw: str) -> str | None:
    """Return the local path named by ``raw``, or None for a remote URL."""
    parts = urlsplit(raw)
    scheme = parts.scheme.lower()
    if not scheme:
        if not os.path.isabs(raw):
            raise UploadRejected("Local file path must be absolute")
        return raw
    if scheme in ("http", "https"):
        return None
    if scheme == "file":
        if parts.netloc not in ("", "localhost"):
            raise UploadRejected(f"Invalid file URL: unsupported host {parts.netloc}")
        return url2pathname(parts.path)
    raise UploadRejected(f"Unsupported URL scheme: {scheme}. Use http(s) or file://")


def check_allowed(path: str, allowed_dirs: list[str]) -> Path:
    """Resolve symlinks and require the file to sit inside an allowed directory."""
    if not os.path.isabs(path):
        raise UploadRejected("Local file path must be absolute")
    if not allowed_dirs:
        raise UploadRejected(
            "Local file uploads are disabled. Configure --allowed_upload_paths to enable."
        )
    try:
        resolved = Path(path).resolve(strict=True)
    except OSError as exc:
        raise UploadRejected(f"Cannot access file: {exc}") from exc

    for allowed in allowed_dirs:
        try:
            root = Path(allowed).resolve(strict=True)
        except OSError:
            root = Path(os.path.normpath(allowed))
        if resolved == root or resolved.is_relative_to(root):
            return resolved
    raise UploadRejected(
        f"File path not in allowed directories. Allowed: {', '.join(allowed_dirs)}"
    )


def decode_image_data(image_data: str, filename: str) -> tuple[bytes, str]:
    data_uri_mime = None
    payload = image_data
    match = _DATA_URI.match(image_data)
    if match:
        data_uri_mime, payload = match.group(1), match.group(2)
    try:
        content = base64.b64decode(payload, validate=False)
    except ValueError as exc:
        raise UploadRejected(f"Invalid base64 image_data: {exc}") from exc
    return content, infer_mime_type(filename, data_uri_mime)


class UploadFileArgs(BaseModel):
    upload_type: Literal["avatar", "profile_background", "card_background", "composer"] = (
        Field(..., description="Type of upload")
    )
    image_data: str | None = Field(
        None, description="Base64 image data (with or without data URI prefix)"
    )
    url: str | None = Field(
        None,
        description=(
            "Remote HTTP(S) URL for Discourse to fetch, or file:// URL / absolute "
            "local path"
        ),
    )
    filename: str | None = Field(
        None, description="Filename (required with image_data, optional for file paths)"
    )
    user_id: int | None = Field(
        None,
        gt=0,
        description="User ID (required for avatar/profile_background/card_background uploads)",
    )


class UploadFileTool(BaseTool):
    name = "discourse_upload_file"
    title = "Upload File"
    description = (
        "Upload an image or file to Discourse. Provide either: image_data (base64 "
        "with filename), a remote HTTP(S) URL, or an absolute local file path. "
        "user_id is required for avatar/background uploads. Returns upload_id for "
        "use in avatar/profile updates. Use short_url to embed images in posts."
    )
    args_schema = UploadFileArgs
    access = "write"
    failure_message = "Failed to upload file"

    async def _arun(self, args: UploadFileArgs) -> ToolResult:
        try:
            form = self._build_form(args)
        except UploadRejected as exc:
            return json_error(str(exc))

        denied = require_write_access(self.site_state, self.context.allow_writes)
        if denied is not None:
            return denied

        await self.context.rate_limiter.wait("upload")
        client = self.client()
        response = as_dict(await client.post_multipart("/uploads.json", form))
        return json_response({key: response.get(key) for key in UPLOAD_RESULT_FIELDS})

    def _build_form(self, args: UploadFileArgs) -> UploadForm:
        if bool(args.image_data) == bool(args.url):
            raise UploadRejected(
                "Must provide either image_data OR url, not both or neither"
            )
        if args.image_data and not args.filename:
            raise UploadRejected("filename is required when using image_data")
        if args.upload_type in USER_REQUIRED_TYPES and args.user_id is None:
            raise UploadRejected(f"user_id is required for {args.upload_type} uploads")

        form = UploadForm(fields={"type": args.upload_type})
        if args.user_id is not None:
            form.fields["user_id"] = str(args.user_id)

        if args.url:
            local = resolve_local_path(args.url)
            if local is None:
                form.fields["url"] = args.url
                return form
            path = check_allowed(local, self.context.allowed_upload_paths)
            filename = args.filename or os.path.basename(local)
            form.files["file"] = (
                filename,
                path.read_bytes(),
                infer_mime_type(filename),
            )
            return form

        content, mime = decode_image_data(args.image_data or "", args.filename or "")
        form.files["file"] = (args.filename or "upload", content, mime)
        return form
