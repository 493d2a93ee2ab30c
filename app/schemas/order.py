from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.enums import Currency, OrderStatus, PaymentStatus, Priority
from schemas.common import InputSchema, UpdateSchema, not_null
from schemas.store import StoreSummary


def _normalize_priority(v):
    # the dashboard still sends "medium"
    if v == "medium":
        return Priority.NORMAL.value
    return v


class OrderItemIn(InputSchema):
    product_id: int = Field(..., gt=0)
    quantity: int
    gift_quantity: int = Field(0, ge=0)
    discount_amount_eur: float = Field(0, ge=0)
    notes: Optional[str] = None

    @field_validator("quantity")
    def quantity_positive(cls, v):
        if v <= 0:
            raise ValueError("quantity must be greater than zero")
        return v


class OrderCreate(InputSchema):
    store_id: int = Field(..., gt=0)
    delivery_date: Optional[date] = None
    order_date: Optional[date] = None
    currency: Currency = Currency.EUR
    priority: Priority = Priority.NORMAL
    discount_amount_eur: float = Field(0, ge=0)
    notes: Optional[str] = None
    special_instructions: Optional[str] = None
    items: List[OrderItemIn] = Field(..., min_length=1)

    @field_validator("priority", mode="before")
    def map_medium(cls, v):
        return _normalize_priority(v)


class OrderUpdate(UpdateSchema):
    delivery_date: Optional[date] = None
    priority: Optional[Priority] = None
    currency: Optional[Currency] = None
    discount_amount_eur: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None
    special_instructions: Optional[str] = None
    items: Optional[List[OrderItemIn]] = Field(None, min_length=1)

    reject_nulls = not_null("priority", "currency")

    @field_validator("priority", mode="before")
    def map_medium(cls, v):
        return _normalize_priority(v)


class OrderStatusUpdate(InputSchema):
    status: OrderStatus
    notes: Optional[str] = None


class PaymentStatusUpdate(InputSchema):
    payment_status: PaymentStatus


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    product_name: str
    unit: Optional[str] = None
    quantity: int
    gift_quantity: int = 0
    unit_price_eur: float
    unit_price_syp: float = 0
    total_price_eur: float
    total_price_syp: float = 0
    discount_amount_eur: float = 0
    discount_amount_syp: float = 0
    final_price_eur: float
    final_price_syp: float = 0
    notes: Optional[str] = None


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    store_id: int
    store_name: str
    order_date: date
    delivery_date: Optional[date] = None
    total_amount_eur: float
    total_amount_syp: float
    discount_amount_eur: float
    discount_amount_syp: float
    final_amount_eur: float
    final_amount_syp: float
    commission_eur: float = 0
    commission_syp: float = 0
    currency: str
    status: str
    payment_status: str
    priority: str
    scheduling_status: str
    assigned_distributor_id: Optional[int] = None
    notes: Optional[str] = None
    special_instructions: Optional[str] = None
    created_by: Optional[int] = None
    created_by_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = []


class OrderSummary(BaseModel):
    """Order as embedded in scheduling drafts"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    order_date: date
    delivery_date: Optional[date] = None
    final_amount_eur: float
    final_amount_syp: float
    priority: str
    status: str
    store: Optional[StoreSummary] = None


class OrderWithStore(OrderOut):
    store: Optional[StoreSummary] = None
