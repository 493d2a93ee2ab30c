import logging
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.metrics import track_performance
from models.enums import FINAL_ORDER_STATUSES
from models.order import Order
from models.store import Store
from models.user import User
from schemas.store import StoreCreate, StoreUpdate
from services.exceptions import BusinessRuleError, DuplicateError, NotFoundError
from services.query_utils import commit_or_rollback, paginate
from services.validators import BusinessRules

logger = logging.getLogger(__name__)

STORE_NOT_FOUND = "المحل غير موجود"
STORE_NAME_TAKEN = "يوجد محل بهذا الاسم مسبقاً"


class StoreService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_store(self, store_id: int) -> Store:
        store = (await self.db.execute(select(Store).where(Store.id == store_id))).scalar_one_or_none()
        if not store:
            raise NotFoundError(STORE_NOT_FOUND)
        return store

    async def _ensure_name_free(self, name: str, exclude_id: Optional[int] = None):
        stmt = select(Store.id).where(func.lower(Store.name) == name.lower())
        if exclude_id:
            stmt = stmt.where(Store.id != exclude_id)
        if (await self.db.execute(stmt)).first():
            raise DuplicateError(STORE_NAME_TAKEN)

    @track_performance(service_name="StoreService")
    async def list_stores(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        category: Optional[str] = None,
        store_type: Optional[str] = None,
        distributor_id: Optional[int] = None,
        search: Optional[str] = None,
    ):
        stmt = select(Store)
        if status:
            stmt = stmt.where(Store.status == status)
        if category:
            stmt = stmt.where(Store.category == category)
        if store_type:
            stmt = stmt.where(Store.store_type == store_type)
        if distributor_id:
            stmt = stmt.where(Store.assigned_distributor_id == distributor_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                Store.name.ilike(pattern),
                Store.owner_name.ilike(pattern),
                Store.address.ilike(pattern),
                Store.phone.ilike(pattern),
            ))
        return await paginate(self.db, stmt.order_by(Store.name), page, limit)

    @track_performance(service_name="StoreService")
    async def create_store(self, data: StoreCreate, created_by: User) -> Store:
        BusinessRules.validate_coordinates(data.latitude, data.longitude)
        await self._ensure_name_free(data.name)

        store = Store(**data.model_dump(exclude_none=True), created_by=created_by.id)
        self.db.add(store)
        await commit_or_rollback(self.db, duplicate_message=STORE_NAME_TAKEN)

        logger.info(f"Store {store.name} created by {created_by.full_name}")
        return store

    async def update_store(self, store_id: int, data: StoreUpdate) -> Store:
        store = await self.get_store(store_id)
        values = data.model_dump(exclude_unset=True)

        BusinessRules.validate_coordinates(values.get("latitude"), values.get("longitude"))
        if values.get("name") and values["name"] != store.name:
            await self._ensure_name_free(values["name"], exclude_id=store.id)

        for field, value in values.items():
            setattr(store, field, value)

        await commit_or_rollback(self.db, duplicate_message=STORE_NAME_TAKEN)
        return store

    async def delete_store(self, store_id: int):
        store = await self.get_store(store_id)
        active_orders = (await self.db.execute(
            select(func.count(Order.id)).where(
                Order.store_id == store.id,
                Order.status.not_in(FINAL_ORDER_STATUSES),
            )
        )).scalar() or 0
        if active_orders:
            raise BusinessRuleError("لا يمكن حذف المحل لوجود طلبات نشطة مرتبطة به")

        await self.db.delete(store)
        await commit_or_rollback(self.db)
        logger.info(f"Store {store.name} deleted")

    async def nearby_stores(self, latitude: float, longitude: float, radius_km: float = 5) -> List[Dict]:
        """Active stores within `radius_km`, nearest first, distance rounded to 0.01 km."""
        BusinessRules.validate_coordinates(latitude, longitude)
        stores = (await self.db.execute(
            select(Store).where(
                Store.status == "active",
                Store.latitude.is_not(None),
                Store.longitude.is_not(None),
            )
        )).scalars().all()

        nearby = []
        for store in stores:
            distance = store.distance_to(latitude, longitude)
            if distance <= radius_km:
                nearby.append((store, round(distance, 2)))
        nearby.sort(key=lambda pair: pair[1])
        return nearby

    async def store_orders(self, store_id: int, page: int = 1, limit: int = 10, status: Optional[str] = None):
        await self.get_store(store_id)
        stmt = select(Order).where(Order.store_id == store_id)
        if status:
            stmt = stmt.where(Order.status == status)
        return await paginate(self.db, stmt.order_by(Order.order_date.desc(), Order.id.desc()), page, limit)

    async def statistics(self) -> Dict:
        by_status = dict((await self.db.execute(select(Store.status, func.count()).group_by(Store.status))).all())
        by_category = dict((await self.db.execute(
            select(Store.category, func.count()).group_by(Store.category)
        )).all())
        totals = (await self.db.execute(
            select(
                func.coalesce(func.sum(Store.total_purchases_eur), 0),
                func.coalesce(func.sum(Store.total_purchases_syp), 0),
                func.coalesce(func.sum(Store.current_balance_eur), 0),
            )
        )).one()
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_category": by_category,
            "total_purchases_eur": round(float(totals[0]), 2),
            "total_purchases_syp": round(float(totals[1]), 2),
            "outstanding_balance_eur": round(float(totals[2]), 2),
        }
