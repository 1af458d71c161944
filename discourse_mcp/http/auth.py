"""Credential model for Discourse API requests.

A site is reached with at most one primary credential:

- ``none``: anonymous access
- ``api_key``: admin-style key, optionally acting as ``Api-Username``
- ``user_api_key``: user-scoped key, optionally with ``User-Api-Client-Id``

HTTP Basic auth (for sites behind a proxy login) is independent and is added
on top of whichever primary credential is active.
"""

from __future__ import annotations

import base64
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

AuthType = Literal["none", "api_key", "user_api_key"]


class NoAuth(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["none"] = "none"

    def headers(self) -> dict[str, str]:
        return {}


class ApiKeyAuth(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["api_key"] = "api_key"
    key: str
    username: str | None = None

    def headers(self) -> dict[str, str]:
        h = {"Api-Key": self.key}
        if self.username:
            h["Api-Username"] = self.username
        return h


class UserApiKeyAuth(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["user_api_key"] = "user_api_key"
    key: str
    client_id: str | None = None

    def headers(self) -> dict[str, str]:
        h = {"User-Api-Key": self.key}
        if self.client_id:
            h["User-Api-Client-Id"] = self.client_id
        return h


Credential = Annotated[
    NoAuth | ApiKeyAuth | UserApiKeyAuth, Field(discriminator="type")
]


class BasicAuth(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: str
    password: str

    def headers(self) -> dict[str, str]:
        token = base64.b64encode(f"{self.user}:{self.password}".encode()).decode(
            "ascii"
        )
        return {"Authorization": f"Basic {token}"}
