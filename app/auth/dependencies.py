from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth.auth_bearer import JWTBearer, UNAUTHORIZED_MESSAGE
from auth.rbac import Permission, has_permission
from core.db import get_db
from models.user import User
from services.exceptions import AuthenticationError, PermissionDeniedError

FORBIDDEN_MESSAGE = "ليس لديك صلاحية للقيام بهذا الإجراء"


async def get_current_user(
    payload: dict = Depends(JWTBearer()),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = (await db.execute(select(User).where(User.id == payload["user_id"]))).scalar_one_or_none()
    if not user or not user.is_active:
        raise AuthenticationError(UNAUTHORIZED_MESSAGE)
    return user


def require_permission(permission: Permission):
    """Dependency factory: current user must hold `permission`."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if not has_permission(user.role, permission):
            raise PermissionDeniedError(FORBIDDEN_MESSAGE)
        return user

    return checker
