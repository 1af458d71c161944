from .access import WRITES_DISABLED_MESSAGE, require_admin_access, require_write_access

__all__ = ["WRITES_DISABLED_MESSAGE", "require_admin_access", "require_write_access"]
