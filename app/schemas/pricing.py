from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.enums import PricingRuleType, ProductCategory
from schemas.common import InputSchema, UpdateSchema, not_null


class PricingRuleBase(InputSchema):
    description: Optional[str] = None
    min_quantity: Optional[int] = Field(None, ge=1)
    product_ids: Optional[List[int]] = None
    store_ids: Optional[List[int]] = None
    category: Optional[ProductCategory] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None
    exclusive: Optional[bool] = None


class PricingRuleCreate(PricingRuleBase):
    name: str = Field(..., min_length=2, max_length=100)
    rule_type: PricingRuleType
    value: float = Field(..., ge=0)

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if self.rule_type == PricingRuleType.PERCENTAGE_DISCOUNT.value and self.value > 100:
            raise ValueError("percentage discount cannot exceed 100")
        return self


class PricingRuleUpdate(PricingRuleBase, UpdateSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    rule_type: Optional[PricingRuleType] = None
    value: Optional[float] = Field(None, ge=0)

    reject_nulls = not_null(
        "name", "rule_type", "value", "min_quantity", "priority", "is_active", "exclusive",
    )


class PricingRuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    rule_type: str
    value: float
    min_quantity: int
    product_ids: Optional[List[int]] = None
    store_ids: Optional[List[int]] = None
    category: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    priority: int
    is_active: bool
    exclusive: bool
    created_at: Optional[datetime] = None


class PriceCalculationRequest(InputSchema):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(1, ge=1)
    store_id: Optional[int] = None
    on_date: Optional[date] = None


class BulkPriceUpdateRequest(InputSchema):
    percentage_change: float = Field(..., gt=-100, le=1000)
    category: Optional[ProductCategory] = None
    product_ids: Optional[List[int]] = None
    change_reason: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def needs_target(self):
        if not self.category and not self.product_ids:
            raise ValueError("category or product_ids is required")
        return self


class PriceHistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    old_price_eur: float
    new_price_eur: float
    old_price_syp: float
    new_price_syp: float
    change_reason: Optional[str] = None
    changed_by: Optional[int] = None
    created_at: Optional[datetime] = None
