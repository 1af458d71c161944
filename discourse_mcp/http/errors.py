"""Transport failure taxonomy.

Exactly one of these is raised for a failed call. Callers that only care
about "the request failed" catch :class:`TransportError`; the retry policy
inspects :class:`HttpStatusError` for its status code.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "TransportError",
    "HttpStatusError",
    "RequestTimeoutError",
    "NetworkError",
]


class TransportError(RuntimeError):
    """Base class for failures raised by the HTTP client."""


class HttpStatusError(TransportError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, status: int, message: str, body: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.message = message
        self.body = body

    @property
    def retryable(self) -> bool:
        return self.status == 429 or self.status >= 500


class RequestTimeoutError(TransportError):
    """The call hit its deadline or the caller cancelled it."""

    def __init__(self, message: str, *, duration_ms: int, cancelled: bool = False):
        super().__init__(message)
        self.duration_ms = duration_ms
        self.cancelled = cancelled


class NetworkError(TransportError):
    """DNS, connection, or TLS level failure before any response arrived."""

    def __init__(self, message: str, *, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause
