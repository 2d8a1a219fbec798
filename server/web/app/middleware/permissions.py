from typing import Optional

from fastapi import Header, HTTPException, Depends
from starlette.status import HTTP_403_FORBIDDEN, HTTP_401_UNAUTHORIZED
from sqlalchemy.ext.asyncio import AsyncSession

from server.web.app.db import get_db
from server.web.app.models import User, UserRole
from server.web.app.schemas import ModerationUser

MODERATION_ROLES = {UserRole.admin.value, UserRole.moderator.value}


class PermissionDenied(Exception):
    pass


def verify_moderation_permission(user: ModerationUser) -> None:
    if user.role not in MODERATION_ROLES:
        raise PermissionDenied("You do not have permission to perform moderation actions")


def verify_hard_delete_permission(user: ModerationUser) -> None:
    if user.role != UserRole.admin.value:
        raise PermissionDenied("Only administrators can permanently delete content")


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> ModerationUser:
    """
    Resolve the caller from the X-User-Id header.

    Authentication happens upstream; this only looks the user up.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    user = await db.get(User, x_user_id)
    if user is None:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )
    return ModerationUser.model_validate(user)


def ModerationPermissionChecker(hard_delete: bool = False):
    async def dependency(user: ModerationUser = Depends(get_current_user)) -> ModerationUser:
        try:
            if hard_delete:
                verify_hard_delete_permission(user)
            verify_moderation_permission(user)
        except PermissionDenied as e:
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail=str(e))
        return user
    return dependency
