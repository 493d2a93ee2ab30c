from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from models.enums import StoreType, StoreCategory, StoreSize, PaymentTerms, StoreStatus
from schemas.common import InputSchema, UpdateSchema, not_null


class StoreBase(InputSchema):
    owner_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    credit_limit_eur: Optional[float] = Field(None, ge=0)
    credit_limit_syp: Optional[float] = Field(None, ge=0)
    delivery_zone: Optional[str] = Field(None, max_length=50)
    preferred_delivery_time: Optional[str] = Field(None, max_length=20)
    assigned_distributor_id: Optional[int] = None
    special_instructions: Optional[str] = None


class StoreCreate(StoreBase):
    name: str = Field(..., min_length=2, max_length=100)
    store_type: StoreType = StoreType.RETAIL
    category: StoreCategory = StoreCategory.GROCERY
    size_category: StoreSize = StoreSize.SMALL
    payment_terms: PaymentTerms = PaymentTerms.CASH
    status: StoreStatus = StoreStatus.ACTIVE


class StoreUpdate(StoreBase, UpdateSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    store_type: Optional[StoreType] = None
    category: Optional[StoreCategory] = None
    size_category: Optional[StoreSize] = None
    payment_terms: Optional[PaymentTerms] = None
    status: Optional[StoreStatus] = None

    reject_nulls = not_null(
        "name", "store_type", "category", "size_category", "payment_terms", "status",
        "credit_limit_eur", "credit_limit_syp",
    )


class StoreOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    owner_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    store_type: str
    category: str
    size_category: str
    payment_terms: str
    status: str
    credit_limit_eur: float = 0
    credit_limit_syp: float = 0
    current_balance_eur: float = 0
    current_balance_syp: float = 0
    total_purchases_eur: float = 0
    total_purchases_syp: float = 0
    total_orders: int = 0
    completed_orders: int = 0
    last_order_date: Optional[datetime] = None
    delivery_zone: Optional[str] = None
    preferred_delivery_time: Optional[str] = None
    assigned_distributor_id: Optional[int] = None
    special_instructions: Optional[str] = None
    created_at: Optional[datetime] = None

    is_within_credit_limit: bool


class StoreSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    delivery_zone: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
