from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import require_permission
from auth.rbac import Permission
from core.db import get_db
from models.user import User
from schemas.common import dump, dump_all, paginated, success_response
from schemas.user import UserCreateSchema, UserOut, UserUpdateSchema
from services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
async def list_users(
    page: int = Query(1),
    limit: int = Query(10),
    role: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    user: User = Depends(require_permission(Permission.VIEW_USERS)),
    db: AsyncSession = Depends(get_db),
):
    users, pagination = await UserService(db).list_users(page, limit, role=role, status=status, search=search)
    return success_response(paginated("users", dump_all(UserOut, users), pagination))


@router.get("/distributors")
async def active_distributors(
    user: User = Depends(require_permission(Permission.VIEW_USERS)),
    db: AsyncSession = Depends(get_db),
):
    distributors = await UserService(db).list_active_distributors()
    return success_response(dump_all(UserOut, distributors))


@router.get("/statistics")
async def user_statistics(
    user: User = Depends(require_permission(Permission.VIEW_STATISTICS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await UserService(db).statistics())


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    user: User = Depends(require_permission(Permission.VIEW_USERS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump(UserOut, await UserService(db).get_user(user_id)))


@router.post("", status_code=201)
async def create_user(
    body: UserCreateSchema,
    user: User = Depends(require_permission(Permission.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    created = await UserService(db).create_user(body)
    return success_response(dump(UserOut, created), "تم إنشاء المستخدم بنجاح")


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdateSchema,
    user: User = Depends(require_permission(Permission.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    updated = await UserService(db).update_user(user_id, body)
    return success_response(dump(UserOut, updated), "تم تحديث المستخدم بنجاح")


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    user: User = Depends(require_permission(Permission.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).delete_user(user_id, user)
    return success_response(None, "تم حذف المستخدم بنجاح")


@router.patch("/{user_id}/toggle-status")
async def toggle_user_status(
    user_id: int,
    user: User = Depends(require_permission(Permission.MANAGE_USERS)),
    db: AsyncSession = Depends(get_db),
):
    updated = await UserService(db).toggle_status(user_id, user)
    return success_response(dump(UserOut, updated), "تم تحديث حالة المستخدم بنجاح")
