from .settings import (
    ConfigValidationError,
    Settings,
    deep_merge,
    load_profile,
    load_settings,
)

__all__ = [
    "ConfigValidationError",
    "Settings",
    "deep_merge",
    "load_profile",
    "load_settings",
]
