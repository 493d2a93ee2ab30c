import logging
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from auth.auth_handler import sign_jwt
from auth.passwords_handler import hash_password_async, verify_password_async
from core.metrics import track_performance
from models.user import User
from schemas.user import UserCreateSchema, UserRegisterSchema, UserUpdateSchema
from services.exceptions import (
    AuthenticationError,
    BusinessRuleError,
    DuplicateError,
    NotFoundError,
)
from services.query_utils import commit_or_rollback, paginate

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "اسم المستخدم أو كلمة المرور غير صحيحة"
USER_NOT_FOUND = "المستخدم غير موجود"
USERNAME_TAKEN = "اسم المستخدم موجود مسبقاً"
EMAIL_TAKEN = "البريد الإلكتروني موجود مسبقاً"


class UserService:
    """
    Account management and authentication.

    Distributors are ordinary users with role ``distributor``; their
    delivery profile (zone, rating, capacity, home coordinates) lives on
    the same row and is what the scheduling engine reads.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ensure_unique(self, username: Optional[str], email: Optional[str], exclude_id: Optional[int] = None):
        if username:
            stmt = select(User.id).where(User.username == username)
            if exclude_id:
                stmt = stmt.where(User.id != exclude_id)
            if (await self.db.execute(stmt)).first():
                raise DuplicateError(USERNAME_TAKEN)
        if email:
            stmt = select(User.id).where(func.lower(User.email) == email.lower())
            if exclude_id:
                stmt = stmt.where(User.id != exclude_id)
            if (await self.db.execute(stmt)).first():
                raise DuplicateError(EMAIL_TAKEN)

    async def get_user(self, user_id: int) -> User:
        user = (await self.db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if not user:
            raise NotFoundError(USER_NOT_FOUND)
        return user

    @track_performance(service_name="UserService")
    async def register(self, data: UserRegisterSchema) -> Dict:
        """Self-registration always yields an active distributor account."""
        await self._ensure_unique(data.username, data.email)

        user = User(
            username=data.username,
            email=data.email.lower(),
            password=await hash_password_async(data.password),
            full_name=data.full_name,
            phone=data.phone,
            role="distributor",
            status="active",
        )
        self.db.add(user)
        await commit_or_rollback(self.db, duplicate_message=USERNAME_TAKEN)

        logger.info("User registered", extra={"user_id": user.id, "username": user.username})
        return {"user": user, **sign_jwt(user.id, user.role)}

    @track_performance(service_name="UserService")
    async def authenticate(self, identifier: str, password: str) -> Dict:
        """
        Logs a user in by username or email.

        Unknown users, inactive accounts and wrong passwords all produce the
        same error so the response does not reveal which one failed.
        """
        stmt = select(User).where(
            or_(User.username == identifier, func.lower(User.email) == identifier.lower())
        )
        user = (await self.db.execute(stmt)).scalar_one_or_none()

        if not user or not user.is_active:
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not await verify_password_async(password, user.password):
            logger.warning("Failed login", extra={"user_id": user.id})
            raise AuthenticationError(INVALID_CREDENTIALS)

        user.last_login = datetime.now()
        await commit_or_rollback(self.db)
        return {"user": user, **sign_jwt(user.id, user.role)}

    async def change_password(self, user: User, current_password: str, new_password: str):
        if not await verify_password_async(current_password, user.password):
            raise BusinessRuleError("كلمة المرور الحالية غير صحيحة")
        user.password = await hash_password_async(new_password)
        await commit_or_rollback(self.db)

    @track_performance(service_name="UserService")
    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ):
        stmt = select(User)
        if role:
            stmt = stmt.where(User.role == role)
        if status:
            stmt = stmt.where(User.status == status)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                User.username.ilike(pattern),
                User.full_name.ilike(pattern),
                User.email.ilike(pattern),
            ))
        return await paginate(self.db, stmt.order_by(User.created_at.desc(), User.id.desc()), page, limit)

    async def create_user(self, data: UserCreateSchema) -> User:
        await self._ensure_unique(data.username, data.email)

        values = data.model_dump(exclude_none=True, exclude={"password"})
        values["email"] = values["email"].lower()
        user = User(**values, password=await hash_password_async(data.password))
        self.db.add(user)
        await commit_or_rollback(self.db, duplicate_message=USERNAME_TAKEN)

        logger.info("User created", extra={"user_id": user.id, "role": user.role})
        return user

    async def update_user(self, user_id: int, data: UserUpdateSchema) -> User:
        user = await self.get_user(user_id)
        values = data.model_dump(exclude_unset=True)
        await self._ensure_unique(values.get("username"), values.get("email"), exclude_id=user.id)

        password = values.pop("password", None)
        if password:
            user.password = await hash_password_async(password)
        if values.get("email"):
            values["email"] = values["email"].lower()
        for field, value in values.items():
            setattr(user, field, value)

        await commit_or_rollback(self.db, duplicate_message=USERNAME_TAKEN)
        return user

    async def delete_user(self, user_id: int, acting_user: User):
        user = await self.get_user(user_id)
        if user.role == "admin":
            raise BusinessRuleError("لا يمكن حذف المدير الرئيسي")
        if user.id == acting_user.id:
            raise BusinessRuleError("لا يمكنك حذف حسابك الخاص")

        await self.db.delete(user)
        await commit_or_rollback(self.db)
        logger.info("User deleted", extra={"user_id": user_id, "deleted_by": acting_user.id})

    async def toggle_status(self, user_id: int, acting_user: User) -> User:
        user = await self.get_user(user_id)
        if user.id == acting_user.id:
            raise BusinessRuleError("لا يمكنك تغيير حالة حسابك الخاص")
        user.status = "inactive" if user.status == "active" else "active"
        await commit_or_rollback(self.db)
        return user

    async def list_active_distributors(self):
        stmt = (
            select(User)
            .where(User.role == "distributor", User.status == "active")
            .order_by(User.full_name)
        )
        return (await self.db.execute(stmt)).scalars().all()

    async def statistics(self) -> Dict:
        by_role = dict((await self.db.execute(select(User.role, func.count()).group_by(User.role))).all())
        by_status = dict((await self.db.execute(select(User.status, func.count()).group_by(User.status))).all())
        return {
            "total": sum(by_role.values()),
            "by_role": by_role,
            "by_status": by_status,
            "active_distributors": len(await self.list_active_distributors()),
        }
