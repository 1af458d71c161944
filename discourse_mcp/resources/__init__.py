from .registry import (
    DiscourseResources,
    ResourceHandler,
    ResourceRegistrar,
    register_all_resources,
    resource_payload,
)

__all__ = [
    "DiscourseResources",
    "ResourceHandler",
    "ResourceRegistrar",
    "register_all_resources",
    "resource_payload",
]
