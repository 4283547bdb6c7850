from typing import Annotated, Optional
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.database import get_db
from storefront.core.security import get_token_user_id
from storefront.core.permissions import PermissionChecker
from storefront.models.user import User
from storefront.services.permission_service import PermissionService


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme; a missing header is reported as 401 below
security = HTTPBearer(auto_error=False)


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> User:
    """
    Dependency to get the current authenticated user.
    Validates the JWT token and returns the user object.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    user_id = get_token_user_id(credentials.credentials)
    if user_id is None:
        logger.warning("Rejected bearer token")
        raise credentials_exception

    user = await db.get(User, user_id)
    if user is None:
        logger.warning(f"User {user_id} from token not found")
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated"
        )

    return user


async def get_permission_checker(
    db: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
) -> PermissionChecker:
    """
    Get a PermissionChecker instance for the current user.
    """
    return await PermissionService(db).get_checker(user)


def require_permission(resource: str, action: str):
    """
    Dependency factory to require a (resource, action) permission.

    Usage:
        @router.get("/", dependencies=[Depends(require_permission("tracking", "read"))])
        async def list_tracking():
            ...
    """
    async def permission_dependency(
        permission_checker: Annotated[PermissionChecker, Depends(get_permission_checker)]
    ):
        if not permission_checker.has_permission(resource, action):
            logger.warning(
                f"Permission {resource}:{action} denied for user {permission_checker.user.id}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied. Required: {resource}:{action}"
            )
        return True

    return permission_dependency


# Type aliases for cleaner endpoint signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
DB = Annotated[AsyncSession, Depends(get_db)]
