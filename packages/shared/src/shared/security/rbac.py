from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    ADMIN = "admin"
    CONTRIBUTOR = "contributor"


class Permission(StrEnum):
    WRITE_DISASTER = "disaster:write"
    DELETE_DISASTER = "disaster:delete"
    SUBMIT_REPORT = "report:submit"
    WRITE_RESOURCE = "resource:write"
    VERIFY_IMAGE = "image:verify"


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.CONTRIBUTOR: frozenset(Permission) - {Permission.DELETE_DISASTER},
}


def has_permission(role: str, permission: Permission) -> bool:
    """Unknown roles hold no permissions."""
    try:
        parsed = Role(role)
    except ValueError:
        return False
    return permission in ROLE_PERMISSIONS.get(parsed, frozenset())
