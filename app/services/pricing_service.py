import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.currency import eur_to_syp, money, syp_to_eur
from core.environment import get_eur_to_syp_rate
from core.metrics import track_performance
from models.pricing import PriceHistory, PricingRule
from models.product import Product
from models.user import User
from schemas.pricing import BulkPriceUpdateRequest, PriceCalculationRequest, PricingRuleCreate, PricingRuleUpdate
from services.exceptions import BusinessRuleError, NotFoundError
from services.query_utils import commit_or_rollback, paginate

logger = logging.getLogger(__name__)

RULE_NOT_FOUND = "قاعدة التسعير غير موجودة"
PRODUCT_NOT_FOUND = "المنتج غير موجود"


def apply_rule(price: float, rule: PricingRule) -> float:
    """Unit price after one rule; never below zero."""
    value = float(rule.value or 0)
    if rule.rule_type == "percentage_discount":
        price = price * (1 - value / 100)
    elif rule.rule_type == "fixed_discount":
        price = price - value
    elif rule.rule_type == "fixed_price":
        price = value
    return max(price, 0)


class PricingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_rule(self, rule_id: int) -> PricingRule:
        rule = (await self.db.execute(select(PricingRule).where(PricingRule.id == rule_id))).scalar_one_or_none()
        if not rule:
            raise NotFoundError(RULE_NOT_FOUND)
        return rule

    async def list_rules(self, page: int = 1, limit: int = 10, is_active: Optional[bool] = None):
        stmt = select(PricingRule)
        if is_active is not None:
            stmt = stmt.where(PricingRule.is_active == is_active)
        stmt = stmt.order_by(PricingRule.priority.desc(), PricingRule.id)
        return await paginate(self.db, stmt, page, limit)

    async def create_rule(self, data: PricingRuleCreate, created_by: User) -> PricingRule:
        rule = PricingRule(**data.model_dump(exclude_none=True), created_by=created_by.id)
        self.db.add(rule)
        await commit_or_rollback(self.db)
        logger.info(f"Pricing rule {rule.name} created", extra={"rule_type": rule.rule_type})
        return rule

    async def update_rule(self, rule_id: int, data: PricingRuleUpdate) -> PricingRule:
        rule = await self.get_rule(rule_id)
        values = data.model_dump(exclude_unset=True)

        start_date = values.get("start_date", rule.start_date)
        end_date = values.get("end_date", rule.end_date)
        if start_date and end_date and end_date < start_date:
            raise BusinessRuleError("تاريخ نهاية القاعدة يجب أن يكون بعد تاريخ البداية")
        rule_type = values.get("rule_type") or rule.rule_type
        rule_value = values["value"] if values.get("value") is not None else rule.value
        if rule_type == "percentage_discount" and float(rule_value) > 100:
            raise BusinessRuleError("نسبة الخصم لا يمكن أن تتجاوز 100%")

        for field, value in values.items():
            setattr(rule, field, value)
        await commit_or_rollback(self.db)
        return rule

    async def delete_rule(self, rule_id: int):
        rule = await self.get_rule(rule_id)
        await self.db.delete(rule)
        await commit_or_rollback(self.db)

    @track_performance(service_name="PricingService", include_metadata=True)
    async def calculate(self, request: PriceCalculationRequest) -> Dict:
        """
        Price one product line against the active rules.

        Rules are applied in descending priority; an exclusive rule ends the
        chain. SYP figures are derived from the EUR result at the configured
        exchange rate.
        """
        product = (await self.db.execute(
            select(Product).where(Product.id == request.product_id)
        )).scalar_one_or_none()
        if not product:
            raise NotFoundError(PRODUCT_NOT_FOUND)

        on_date = request.on_date or date.today()
        rules = (await self.db.execute(
            select(PricingRule)
            .where(PricingRule.is_active.is_(True))
            .order_by(PricingRule.priority.desc(), PricingRule.id)
        )).scalars().all()

        base_price = float(product.price_eur)
        unit_price = base_price
        applied: List[Dict] = []
        for rule in rules:
            if not rule.applies_to(product.id, product.category, request.quantity, request.store_id, on_date):
                continue
            before = unit_price
            unit_price = apply_rule(unit_price, rule)
            applied.append({
                "rule_id": rule.id,
                "name": rule.name,
                "rule_type": rule.rule_type,
                "value": float(rule.value),
                "discount_eur": money(before - unit_price),
            })
            if rule.exclusive:
                break

        unit_price = money(unit_price)
        base_total = money(base_price * request.quantity)
        final_total = money(unit_price * request.quantity)
        total_discount = money(base_total - final_total)

        return {
            "product_id": product.id,
            "product_name": product.name,
            "quantity": request.quantity,
            "base_price_eur": money(base_price),
            "base_price_syp": eur_to_syp(base_price),
            "unit_price_eur": unit_price,
            "unit_price_syp": eur_to_syp(unit_price),
            "final_price_eur": final_total,
            "final_price_syp": eur_to_syp(final_total),
            "total_discount_eur": total_discount,
            "total_discount_syp": eur_to_syp(total_discount),
            "discount_percentage": round(total_discount / base_total * 100, 2) if base_total else 0,
            "applied_rules": applied,
        }

    @track_performance(service_name="PricingService")
    async def bulk_update(self, request: BulkPriceUpdateRequest, changed_by: User) -> Dict:
        """Adjust prices by a percentage; products and history commit together."""
        stmt = select(Product)
        if request.product_ids:
            stmt = stmt.where(Product.id.in_(request.product_ids))
        if request.category:
            stmt = stmt.where(Product.category == request.category)
        products = (await self.db.execute(stmt.order_by(Product.id))).scalars().all()
        if not products:
            raise NotFoundError("لا توجد منتجات مطابقة للتحديث")

        factor = 1 + request.percentage_change / 100
        new_prices = {product.id: money(float(product.price_eur) * factor) for product in products}
        too_low = [product.name for product in products if new_prices[product.id] <= 0]
        if too_low:
            # the batch is all or nothing
            raise BusinessRuleError(f"السعر الجديد يجب أن يكون أكبر من صفر: {', '.join(too_low)}")

        updated = []
        for product in products:
            new_eur = new_prices[product.id]
            new_syp = eur_to_syp(new_eur)
            self.db.add(PriceHistory(
                product_id=product.id,
                old_price_eur=product.price_eur,
                new_price_eur=new_eur,
                old_price_syp=product.price_syp or 0,
                new_price_syp=new_syp,
                change_reason=request.change_reason or f"تحديث جماعي {request.percentage_change:+g}%",
                changed_by=changed_by.id,
            ))
            updated.append({
                "product_id": product.id,
                "name": product.name,
                "old_price_eur": float(product.price_eur),
                "new_price_eur": new_eur,
            })
            product.price_eur = new_eur
            product.price_syp = new_syp

        await commit_or_rollback(self.db)
        logger.info(
            f"Bulk price update applied to {len(updated)} products",
            extra={"percentage_change": request.percentage_change, "changed_by": changed_by.id},
        )
        return {"updated_count": len(updated), "products": updated}

    async def history(self, page: int = 1, limit: int = 10, product_id: Optional[int] = None):
        stmt = select(PriceHistory)
        if product_id:
            stmt = stmt.where(PriceHistory.product_id == product_id)
        stmt = stmt.order_by(PriceHistory.created_at.desc(), PriceHistory.id.desc())
        return await paginate(self.db, stmt, page, limit)

    @staticmethod
    def convert(amount: float, from_currency: str) -> Dict:
        from_currency = from_currency.upper()
        if from_currency == "EUR":
            return {"amount_eur": money(amount), "amount_syp": eur_to_syp(amount), "exchange_rate": get_eur_to_syp_rate()}
        if from_currency == "SYP":
            return {"amount_eur": syp_to_eur(amount), "amount_syp": money(amount), "exchange_rate": get_eur_to_syp_rate()}
        raise BusinessRuleError("العملة غير مدعومة")
