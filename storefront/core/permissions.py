from typing import Set

from storefront.models.user import User


def permission_code(resource: str, action: str) -> str:
    """Canonical string form of a (resource, action) permission."""
    return f"{resource}:{action}"


class PermissionChecker:
    """
    Permission checker utility for RBAC.
    Legacy admins (users.role == 'admin') pass every check.
    """

    def __init__(self, user: User, user_permissions: Set[str]):
        """
        Initialize permission checker.

        Args:
            user: The user object
            user_permissions: Set of permission codes ("resource:action") the user has
        """
        self.user = user
        self.permissions = user_permissions

    def is_admin(self) -> bool:
        return self.user.is_legacy_admin

    def has_permission(self, resource: str, action: str) -> bool:
        """
        Check if user may perform `action` on `resource`.

        Args:
            resource: e.g. 'tracking'
            action: e.g. 'update'

        Returns:
            True if user has the permission
        """
        if self.is_admin():
            return True

        return permission_code(resource, action) in self.permissions
