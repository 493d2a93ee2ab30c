import logging
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.currency import eur_to_syp
from core.metrics import track_performance
from models.order import OrderItem
from models.pricing import PriceHistory
from models.product import Product
from models.user import User
from schemas.product import ProductCreate, ProductUpdate
from services.exceptions import BusinessRuleError, DuplicateError, NotFoundError
from services.query_utils import commit_or_rollback, paginate
from services.validators import BusinessRules

logger = logging.getLogger(__name__)

PRODUCT_NOT_FOUND = "المنتج غير موجود"
PRODUCT_NAME_TAKEN = "يوجد منتج بهذا الاسم مسبقاً"
BARCODE_TAKEN = "الباركود مستخدم لمنتج آخر"


class ProductService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_product(self, product_id: int) -> Product:
        product = (await self.db.execute(select(Product).where(Product.id == product_id))).scalar_one_or_none()
        if not product:
            raise NotFoundError(PRODUCT_NOT_FOUND)
        return product

    async def _ensure_unique(self, name: Optional[str], barcode: Optional[str], exclude_id: Optional[int] = None):
        if name:
            stmt = select(Product.id).where(func.lower(Product.name) == name.lower())
            if exclude_id:
                stmt = stmt.where(Product.id != exclude_id)
            if (await self.db.execute(stmt)).first():
                raise DuplicateError(PRODUCT_NAME_TAKEN)
        if barcode:
            stmt = select(Product.id).where(Product.barcode == barcode)
            if exclude_id:
                stmt = stmt.where(Product.id != exclude_id)
            if (await self.db.execute(stmt)).first():
                raise DuplicateError(BARCODE_TAKEN)

    @track_performance(service_name="ProductService")
    async def list_products(
        self,
        page: int = 1,
        limit: int = 10,
        category: Optional[str] = None,
        status: Optional[str] = None,
        is_featured: Optional[bool] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        search: Optional[str] = None,
    ):
        stmt = select(Product)
        if category:
            stmt = stmt.where(Product.category == category)
        if status:
            stmt = stmt.where(Product.status == status)
        if is_featured is not None:
            stmt = stmt.where(Product.is_featured == is_featured)
        if min_price is not None:
            stmt = stmt.where(Product.price_eur >= min_price)
        if max_price is not None:
            stmt = stmt.where(Product.price_eur <= max_price)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
        return await paginate(self.db, stmt.order_by(Product.name), page, limit)

    @track_performance(service_name="ProductService")
    async def create_product(self, data: ProductCreate, created_by: User) -> Product:
        await self._ensure_unique(data.name, data.barcode)

        values = data.model_dump(exclude_none=True)
        if not values.get("price_syp"):
            values["price_syp"] = eur_to_syp(data.price_eur)
        if data.cost_eur is not None and not values.get("cost_syp"):
            values["cost_syp"] = eur_to_syp(data.cost_eur)

        product = Product(**values, created_by=created_by.id)
        self.db.add(product)
        await commit_or_rollback(self.db, duplicate_message=PRODUCT_NAME_TAKEN)

        logger.info(f"Product {product.name} created")
        return product

    @track_performance(service_name="ProductService")
    async def update_product(self, product_id: int, data: ProductUpdate, changed_by: User) -> Product:
        """Price changes are written to price history in the same transaction."""
        product = await self.get_product(product_id)
        values = data.model_dump(exclude_unset=True)
        change_reason = values.pop("change_reason", None)

        if values.get("name") and values["name"] != product.name:
            await self._ensure_unique(values["name"], None, exclude_id=product.id)
        if values.get("barcode") and values["barcode"] != product.barcode:
            await self._ensure_unique(None, values["barcode"], exclude_id=product.id)

        new_price = values.get("price_eur")
        if new_price is not None and new_price != product.price_eur:
            if "price_syp" not in values:
                values["price_syp"] = eur_to_syp(new_price)
            self.db.add(PriceHistory(
                product_id=product.id,
                old_price_eur=product.price_eur,
                new_price_eur=new_price,
                old_price_syp=product.price_syp or 0,
                new_price_syp=values["price_syp"],
                change_reason=change_reason,
                changed_by=changed_by.id,
            ))

        for field, value in values.items():
            setattr(product, field, value)

        await commit_or_rollback(self.db, duplicate_message=PRODUCT_NAME_TAKEN)
        return product

    async def delete_product(self, product_id: int):
        product = await self.get_product(product_id)
        used = (await self.db.execute(
            select(func.count(OrderItem.id)).where(OrderItem.product_id == product.id)
        )).scalar() or 0
        if used:
            raise BusinessRuleError("لا يمكن حذف منتج مستخدم في طلبات. قم بإيقافه بدلاً من ذلك")

        await self.db.delete(product)
        await commit_or_rollback(self.db)

    async def toggle_status(self, product_id: int) -> Product:
        product = await self.get_product(product_id)
        if product.status == "discontinued":
            raise BusinessRuleError("لا يمكن تفعيل منتج متوقف نهائياً")
        product.status = "inactive" if product.status == "active" else "active"
        await commit_or_rollback(self.db)
        return product

    async def search(self, term: str, limit: int = 20) -> List[Product]:
        BusinessRules.validate_search_term(term)
        pattern = f"%{term.strip()}%"
        stmt = (
            select(Product)
            .where(
                Product.status == "active",
                or_(Product.name.ilike(pattern), Product.description.ilike(pattern), Product.barcode == term.strip()),
            )
            .order_by(Product.is_featured.desc(), Product.name)
            .limit(min(max(limit, 1), BusinessRules.MAX_PAGE_SIZE))
        )
        return (await self.db.execute(stmt)).scalars().all()

    async def low_stock(self) -> List[Product]:
        stmt = (
            select(Product)
            .where(Product.status == "active", Product.stock_quantity <= Product.minimum_stock)
            .order_by(Product.stock_quantity)
        )
        return (await self.db.execute(stmt)).scalars().all()

    async def statistics(self) -> Dict:
        rows = (await self.db.execute(
            select(
                Product.category,
                func.count(Product.id),
                func.avg(Product.price_eur),
                func.min(Product.price_eur),
                func.max(Product.price_eur),
                func.coalesce(func.sum(Product.total_sold), 0),
                func.coalesce(func.sum(Product.total_revenue_eur), 0),
            ).group_by(Product.category)
        )).all()

        by_category = [
            {
                "category": category,
                "count": count,
                "avg_price_eur": round(float(avg or 0), 2),
                "min_price_eur": round(float(low or 0), 2),
                "max_price_eur": round(float(high or 0), 2),
                "total_sold": int(sold),
                "total_revenue_eur": round(float(revenue), 2),
            }
            for category, count, avg, low, high, sold, revenue in rows
        ]
        low_stock = len(await self.low_stock())
        active = (await self.db.execute(
            select(func.count(Product.id)).where(Product.status == "active")
        )).scalar() or 0

        return {
            "total": sum(c["count"] for c in by_category),
            "active": active,
            "low_stock": low_stock,
            "by_category": by_category,
        }
