from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import require_permission
from auth.rbac import Permission
from core.db import get_db
from models.enums import Currency
from models.user import User
from schemas.common import dump, dump_all, paginated, success_response
from schemas.pricing import (
    BulkPriceUpdateRequest,
    PriceCalculationRequest,
    PriceHistoryOut,
    PricingRuleCreate,
    PricingRuleOut,
    PricingRuleUpdate,
)
from services.pricing_service import PricingService

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.get("/rules")
async def list_rules(
    page: int = Query(1),
    limit: int = Query(10),
    is_active: Optional[bool] = None,
    user: User = Depends(require_permission(Permission.VIEW_PRICING)),
    db: AsyncSession = Depends(get_db),
):
    rules, pagination = await PricingService(db).list_rules(page, limit, is_active=is_active)
    return success_response(paginated("rules", dump_all(PricingRuleOut, rules), pagination))


@router.get("/rules/{rule_id}")
async def get_rule(
    rule_id: int,
    user: User = Depends(require_permission(Permission.VIEW_PRICING)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump(PricingRuleOut, await PricingService(db).get_rule(rule_id)))


@router.post("/rules", status_code=201)
async def create_rule(
    body: PricingRuleCreate,
    user: User = Depends(require_permission(Permission.MANAGE_PRICING)),
    db: AsyncSession = Depends(get_db),
):
    rule = await PricingService(db).create_rule(body, user)
    return success_response(dump(PricingRuleOut, rule), "تم إنشاء قاعدة التسعير بنجاح")


@router.put("/rules/{rule_id}")
async def update_rule(
    rule_id: int,
    body: PricingRuleUpdate,
    user: User = Depends(require_permission(Permission.MANAGE_PRICING)),
    db: AsyncSession = Depends(get_db),
):
    rule = await PricingService(db).update_rule(rule_id, body)
    return success_response(dump(PricingRuleOut, rule), "تم تحديث قاعدة التسعير بنجاح")


@router.delete("/rules/{rule_id}")
async def delete_rule(
    rule_id: int,
    user: User = Depends(require_permission(Permission.MANAGE_PRICING)),
    db: AsyncSession = Depends(get_db),
):
    await PricingService(db).delete_rule(rule_id)
    return success_response(None, "تم حذف قاعدة التسعير بنجاح")


@router.post("/calculate")
async def calculate_price(
    body: PriceCalculationRequest,
    user: User = Depends(require_permission(Permission.VIEW_PRICING)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await PricingService(db).calculate(body))


@router.post("/bulk-update")
async def bulk_update_prices(
    body: BulkPriceUpdateRequest,
    user: User = Depends(require_permission(Permission.MANAGE_PRICING)),
    db: AsyncSession = Depends(get_db),
):
    result = await PricingService(db).bulk_update(body, user)
    return success_response(result, f"تم تحديث أسعار {result['updated_count']} منتج بنجاح")


@router.get("/history")
async def price_history(
    page: int = Query(1),
    limit: int = Query(10),
    product_id: Optional[int] = None,
    user: User = Depends(require_permission(Permission.VIEW_PRICING)),
    db: AsyncSession = Depends(get_db),
):
    entries, pagination = await PricingService(db).history(page, limit, product_id=product_id)
    return success_response(paginated("history", dump_all(PriceHistoryOut, entries), pagination))


@router.get("/convert")
async def convert_currency(
    amount: float = Query(..., ge=0),
    from_currency: Currency = Query(Currency.EUR, alias="from"),
    user: User = Depends(require_permission(Permission.VIEW_PRICING)),
):
    return success_response(PricingService.convert(amount, from_currency.value))
