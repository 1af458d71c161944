"""HTTP transport for the Discourse REST API."""

from .auth import ApiKeyAuth, BasicAuth, Credential, NoAuth, UserApiKeyAuth
from .client import CancelToken, HttpClient, UploadForm
from .errors import HttpStatusError, NetworkError, RequestTimeoutError, TransportError

__all__ = [
    "ApiKeyAuth",
    "BasicAuth",
    "CancelToken",
    "Credential",
    "HttpClient",
    "HttpStatusError",
    "NetworkError",
    "NoAuth",
    "RequestTimeoutError",
    "TransportError",
    "UploadForm",
    "UserApiKeyAuth",
]
