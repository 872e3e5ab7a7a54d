from .constants import Permission
from .roles import coerce_role
from .role_map import ROLE_PERMISSIONS


class PermissionService:
    """Static role -> permission catalog lookups.

    Unknown roles resolve to an empty permission set instead of raising.
    """

    @staticmethod
    def permissions_for(role) -> frozenset[Permission]:
        resolved = coerce_role(role)
        if resolved is None:
            return frozenset()
        return ROLE_PERMISSIONS.get(resolved, frozenset())

    @staticmethod
    def has_permission(role, permission) -> bool:
        try:
            permission = Permission(permission)
        except ValueError:
            return False
        return permission in PermissionService.permissions_for(role)

    @staticmethod
    def is_known_role(role) -> bool:
        return coerce_role(role) is not None


permission_service = PermissionService()
