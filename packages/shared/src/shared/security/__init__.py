from shared.security.rbac import ROLE_PERMISSIONS, Permission, Role, has_permission
from shared.security.sanitize import sanitize_html_text, validate_free_text

__all__ = [
    "Permission",
    "ROLE_PERMISSIONS",
    "Role",
    "has_permission",
    "sanitize_html_text",
    "validate_free_text",
]
