from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header

from disaster_api.errors import ApiError, Forbidden
from shared.security import Permission, Role, has_permission

# Stand-in for a real identity provider.
MOCK_USERS: dict[str, Role] = {
    "netrunnerX": Role.ADMIN,
    "reliefAdmin": Role.ADMIN,
    "citizen1": Role.CONTRIBUTOR,
    "volunteer2": Role.CONTRIBUTOR,
}
DEFAULT_USER_ID = "citizen1"


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def resolve_user(user_id: str | None) -> CurrentUser:
    name = (user_id or "").strip() or DEFAULT_USER_ID
    role = MOCK_USERS.get(name)
    if role is None:
        raise ApiError("UNAUTHORIZED", f"Unknown user '{name}'", 401)
    return CurrentUser(user_id=name, role=role)


async def get_current_user(x_user: str | None = Header(default=None)) -> CurrentUser:
    return resolve_user(x_user)


def require_permission(user: CurrentUser, permission: Permission) -> None:
    if not has_permission(user.role, permission):
        raise Forbidden(f"Role '{user.role}' may not {permission.value}")


def permitted(permission: Permission):
    """Dependency resolving the acting user and checking one permission."""

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        require_permission(user, permission)
        return user

    return dependency
