from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import get_current_user
from core.db import get_db
from core.environment import get_login_rate_limit
from middleware.rate_limit import limiter
from models.user import User
from schemas.common import dump, success_response
from schemas.user import ChangePasswordSchema, UserLoginSchema, UserOut, UserRegisterSchema
from services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_payload(result: dict) -> dict:
    return {
        "user": dump(UserOut, result["user"]),
        "token": result["access_token"],
        "token_type": result["token_type"],
        "expires_in": result["expires_in"],
    }


@router.post("/register", status_code=201)
@limiter.limit(get_login_rate_limit)
async def register_user(request: Request, user: UserRegisterSchema, db: AsyncSession = Depends(get_db)):
    result = await UserService(db).register(user)
    return success_response(_token_payload(result), "تم إنشاء الحساب بنجاح")


@router.post("/login")
@limiter.limit(get_login_rate_limit)
async def login_user(request: Request, user: UserLoginSchema, db: AsyncSession = Depends(get_db)):
    result = await UserService(db).authenticate(user.username, user.password)
    return success_response(_token_payload(result), "تم تسجيل الدخول بنجاح")


@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return success_response(dump(UserOut, user))


@router.post("/logout")
async def logout(user: User = Depends(get_current_user)):
    # tokens are stateless; the client drops its copy
    return success_response(None, "تم تسجيل الخروج بنجاح")


@router.post("/change-password")
async def change_password(
    body: ChangePasswordSchema,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).change_password(user, body.current_password, body.new_password)
    return success_response(None, "تم تغيير كلمة المرور بنجاح")
