from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from models.enums import UserRole, UserStatus
from schemas.common import InputSchema, UpdateSchema, not_null

PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"


class UserRegisterSchema(InputSchema):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr = Field(...)
    password: str = Field(..., min_length=6, max_length=128)
    full_name: str = Field(..., min_length=2, max_length=100)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)

    @field_validator("username")
    def username_is_alphanumeric(cls, v):
        if not v.replace("_", "").isalnum():
            raise ValueError("username may only contain letters, digits and underscores")
        return v


class UserLoginSchema(BaseModel):
    # username or email
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ChangePasswordSchema(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class DistributorProfileFields(InputSchema):
    delivery_zone: Optional[str] = Field(None, max_length=50)
    performance_rating: Optional[float] = Field(None, ge=0, le=100)
    max_daily_capacity: Optional[int] = Field(None, ge=1, le=50)
    home_latitude: Optional[float] = Field(None, ge=-90, le=90)
    home_longitude: Optional[float] = Field(None, ge=-180, le=180)


class UserCreateSchema(UserRegisterSchema, DistributorProfileFields):
    role: UserRole = UserRole.DISTRIBUTOR
    status: UserStatus = UserStatus.ACTIVE


class UserUpdateSchema(DistributorProfileFields, UpdateSchema):
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)

    reject_nulls = not_null(
        "username", "email", "full_name", "role", "status", "performance_rating", "max_daily_capacity",
    )


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    full_name: str
    phone: Optional[str] = None
    role: str
    status: str
    last_login: Optional[datetime] = None
    delivery_zone: Optional[str] = None
    performance_rating: Optional[float] = None
    total_deliveries: int = 0
    successful_deliveries: int = 0
    max_daily_capacity: int = 5
    home_latitude: Optional[float] = None
    home_longitude: Optional[float] = None
    created_at: Optional[datetime] = None
