from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models.enums import ProductCategory, ProductStatus
from schemas.common import InputSchema, UpdateSchema, not_null


class ProductBase(InputSchema):
    description: Optional[str] = None
    price_syp: Optional[float] = Field(None, ge=0)
    cost_eur: Optional[float] = Field(None, ge=0)
    cost_syp: Optional[float] = Field(None, ge=0)
    stock_quantity: Optional[int] = Field(None, ge=0)
    minimum_stock: Optional[int] = Field(None, ge=0)
    barcode: Optional[str] = Field(None, max_length=50)
    is_featured: Optional[bool] = None
    expiry_date: Optional[date] = None
    shelf_life_days: Optional[int] = Field(None, ge=0)
    weight_grams: Optional[int] = Field(None, ge=0)


class ProductCreate(ProductBase):
    name: str = Field(..., min_length=2, max_length=100)
    category: ProductCategory = ProductCategory.BREAD
    unit: str = Field(..., min_length=1, max_length=20)
    price_eur: float = Field(..., gt=0)
    status: ProductStatus = ProductStatus.ACTIVE


class ProductUpdate(ProductBase, UpdateSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    category: Optional[ProductCategory] = None
    unit: Optional[str] = Field(None, min_length=1, max_length=20)
    price_eur: Optional[float] = Field(None, gt=0)
    status: Optional[ProductStatus] = None
    change_reason: Optional[str] = Field(None, max_length=255)

    reject_nulls = not_null(
        "name", "category", "unit", "price_eur", "price_syp", "cost_eur", "cost_syp",
        "stock_quantity", "minimum_stock", "is_featured", "status",
    )


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    category: str
    unit: str
    price_eur: float
    price_syp: float = 0
    cost_eur: float = 0
    cost_syp: float = 0
    stock_quantity: int = 0
    minimum_stock: int = 0
    barcode: Optional[str] = None
    is_featured: bool = False
    status: str
    total_sold: int = 0
    total_revenue_eur: float = 0
    total_revenue_syp: float = 0
    expiry_date: Optional[date] = None
    shelf_life_days: Optional[int] = None
    weight_grams: Optional[int] = None
    created_at: Optional[datetime] = None

    is_low_stock: bool
    profit_margin_eur: float
