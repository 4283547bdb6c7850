from typing import Optional, Set
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.core.exceptions import StorefrontError, NotFoundError
from storefront.core.permissions import PermissionChecker
from storefront.database import transaction
from storefront.models.user import User
from storefront.models.role import Role
from storefront.models.permission import Permission, RolePermission

logger = logging.getLogger(__name__)


class PermissionService:
    """
    Role-Based Access Control service.
    A user holds one role (users.role_id); the role aggregates permissions.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_permission_codes(self, role_id: Optional[uuid.UUID]) -> Set[str]:
        """Get all "resource:action" codes granted to a role."""
        if not role_id:
            return set()

        stmt = (
            select(Permission.resource, Permission.action)
            .join(RolePermission, Permission.id == RolePermission.permission_id)
            .where(RolePermission.role_id == role_id)
        )
        result = await self.db.execute(stmt)
        return {f"{resource}:{action}" for resource, action in result.all()}

    async def get_checker(self, user: User) -> PermissionChecker:
        return PermissionChecker(user, await self.get_permission_codes(user.role_id))

    async def has_permission(self, user_id: uuid.UUID, resource: str, action: str) -> bool:
        """Check a (resource, action) permission for a user. Unknown users have none."""
        user = await self.db.get(User, user_id)
        if not user:
            return False

        checker = await self.get_checker(user)
        return checker.has_permission(resource, action)

    async def get_user_role(self, user_id: uuid.UUID) -> Optional[Role]:
        """Get the role of a user, with its permissions loaded."""
        result = await self.db.execute(
            select(User)
            .options(
                selectinload(User.role_details)
                .selectinload(Role.role_permissions)
                .selectinload(RolePermission.permission)
            )
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if not user:
            raise NotFoundError("User not found", {"user_id": str(user_id)})
        return user.role_details

    async def assign_role(self, user_id: uuid.UUID, role_name: str) -> User:
        """Assign a role (by name) to a user, replacing the current one."""
        try:
            async with transaction(self.db):
                user = await self.db.get(User, user_id)
                if not user:
                    raise NotFoundError("User not found", {"user_id": str(user_id)})

                result = await self.db.execute(select(Role).where(Role.name == role_name))
                role = result.scalar_one_or_none()
                if not role:
                    raise NotFoundError("Role not found", {"role_name": role_name})

                user.role_id = role.id
        except StorefrontError:
            raise
        except Exception as e:
            logger.error(f"Failed to assign role {role_name} to user {user_id}: {e}")
            raise

        logger.info(f"Role {role_name} assigned to user {user_id}")
        return user
