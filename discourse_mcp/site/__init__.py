from .ratelimit import RateLimiter
from .state import (
    NO_SITE_MESSAGE,
    AuthPair,
    SiteNotSelectedError,
    SiteState,
    normalize_base,
)

__all__ = [
    "NO_SITE_MESSAGE",
    "AuthPair",
    "RateLimiter",
    "SiteNotSelectedError",
    "SiteState",
    "normalize_base",
]
