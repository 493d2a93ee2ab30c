import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from auth.rbac import Permission, has_permission
from core.currency import eur_to_syp, money
from core.environment import is_auto_scheduling_enabled
from core.metrics import metrics_context, track_performance
from core.prometheus_metrics import prometheus_collector
from models.order import Order, OrderItem
from models.product import Product
from models.store import Store
from models.user import User
from schemas.order import OrderCreate, OrderItemIn, OrderUpdate
from services.exceptions import BusinessRuleError, NotFoundError, PermissionDeniedError
from services.query_utils import commit_or_rollback, paginate
from services.scheduling_service import SchedulingService
from services.validators import BusinessRules

logger = logging.getLogger(__name__)

ORDER_NOT_FOUND = "الطلب غير موجود"
STORE_NOT_FOUND = "المحل غير موجود"
NOT_ALLOWED = "غير مصرح لك بالوصول إلى هذا الطلب"


class OrderService:
    """
    Order lifecycle: creation with server-side pricing, edits while in
    draft, status transitions and the side effects attached to them.

    Status machine:
        draft -> confirmed | cancelled
        confirmed -> in_progress | cancelled
        in_progress -> delivered | cancelled
        delivered, cancelled: final

    Confirming an order hands it to `SchedulingService.auto_schedule`;
    delivering it rolls sales into product, store and distributor totals.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _sees_all(user: User) -> bool:
        return has_permission(user.role, Permission.VIEW_ALL_ORDERS)

    def _check_visible(self, order: Order, user: User):
        if self._sees_all(user):
            return
        if order.created_by != user.id and order.assigned_distributor_id != user.id:
            raise PermissionDeniedError(NOT_ALLOWED)

    def _check_owner(self, order: Order, user: User):
        if self._sees_all(user):
            return
        if order.created_by != user.id:
            raise PermissionDeniedError(NOT_ALLOWED)

    async def _load(self, order_id: int) -> Order:
        stmt = select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        order = (await self.db.execute(stmt)).scalar_one_or_none()
        if not order:
            raise NotFoundError(ORDER_NOT_FOUND)
        return order

    async def get_order(self, order_id: int, user: User) -> Order:
        order = await self._load(order_id)
        self._check_visible(order, user)
        return order

    async def _next_order_number(self, on: date) -> str:
        prefix = f"ORD-{on:%Y%m%d}-"
        last = (await self.db.execute(
            select(func.max(Order.order_number)).where(Order.order_number.like(f"{prefix}%"))
        )).scalar()
        sequence = int(last.rsplit("-", 1)[1]) + 1 if last else 1
        return f"{prefix}{sequence:04d}"

    async def _build_items(self, items: List[OrderItemIn]) -> Tuple[List[OrderItem], Dict[int, Product]]:
        """Snapshot product name, unit and current prices onto each line."""
        ids = {item.product_id for item in items}
        products = {
            p.id: p for p in (await self.db.execute(select(Product).where(Product.id.in_(ids)))).scalars().all()
        }

        lines = []
        for item in items:
            product = products.get(item.product_id)
            if not product:
                raise NotFoundError(f"المنتج {item.product_id} غير موجود")
            if product.status != "active":
                raise BusinessRuleError(f"المنتج {product.name} غير متاح")
            if item.quantity <= 0:
                raise BusinessRuleError(f"الكمية يجب أن تكون أكبر من صفر للمنتج {product.name}")

            unit_eur = float(product.price_eur)
            unit_syp = float(product.price_syp or 0) or eur_to_syp(unit_eur)
            total_eur = money(unit_eur * item.quantity)
            total_syp = money(unit_syp * item.quantity)
            discount_eur = money(min(item.discount_amount_eur or 0, total_eur))
            discount_syp = money(min(eur_to_syp(discount_eur), total_syp))

            lines.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                unit=product.unit,
                quantity=item.quantity,
                gift_quantity=item.gift_quantity,
                unit_price_eur=unit_eur,
                unit_price_syp=unit_syp,
                total_price_eur=total_eur,
                total_price_syp=total_syp,
                discount_amount_eur=discount_eur,
                discount_amount_syp=discount_syp,
                final_price_eur=money(total_eur - discount_eur),
                final_price_syp=money(total_syp - discount_syp),
                notes=item.notes,
            ))
        return lines, products

    @staticmethod
    def _apply_totals(order: Order, lines: List[OrderItem], products: Dict[int, Product], order_discount_eur: float):
        total_eur = money(sum(line.total_price_eur for line in lines))
        total_syp = money(sum(line.total_price_syp for line in lines))
        discount_eur = money(min(sum(line.discount_amount_eur for line in lines) + (order_discount_eur or 0), total_eur))
        discount_syp = money(min(sum(line.discount_amount_syp for line in lines) + eur_to_syp(order_discount_eur or 0), total_syp))
        cost_eur = money(sum(float(products[line.product_id].cost_eur or 0) * line.quantity for line in lines))
        cost_syp = money(sum(float(products[line.product_id].cost_syp or 0) * line.quantity for line in lines))

        order.total_amount_eur = total_eur
        order.total_amount_syp = total_syp
        order.discount_amount_eur = discount_eur
        order.discount_amount_syp = discount_syp
        order.final_amount_eur = money(total_eur - discount_eur)
        order.final_amount_syp = money(total_syp - discount_syp)
        order.total_cost_eur = cost_eur
        order.total_cost_syp = cost_syp
        order.commission_eur = BusinessRules.commission(order.final_amount_eur, cost_eur)
        order.commission_syp = BusinessRules.commission(order.final_amount_syp, cost_syp)

    @track_performance(service_name="OrderService", include_metadata=True)
    async def create_order(self, data: OrderCreate, user: User) -> Order:
        """
        Creates a draft order priced from the current catalogue.

        Client-sent prices are never trusted: every line is priced from the
        product row, and the order number is ORD-YYYYMMDD-NNNN, sequential
        per day. Order, items and store counters commit together.

        Raises:
            NotFoundError: store or a product does not exist
            BusinessRuleError: inactive product or non-positive quantity
        """
        store = (await self.db.execute(select(Store).where(Store.id == data.store_id))).scalar_one_or_none()
        if not store:
            raise NotFoundError(STORE_NOT_FOUND)

        lines, products = await self._build_items(data.items)
        today = date.today()

        order = Order(
            order_number=await self._next_order_number(today),
            store_id=store.id,
            store_name=store.name,
            order_date=data.order_date or today,
            delivery_date=data.delivery_date,
            currency=data.currency,
            status="draft",
            payment_status="pending",
            priority=data.priority,
            scheduling_status="unscheduled",
            notes=data.notes,
            special_instructions=data.special_instructions,
            created_by=user.id,
            created_by_name=user.full_name or user.username,
            items=lines,
        )
        self._apply_totals(order, lines, products, data.discount_amount_eur)

        store.total_orders = (store.total_orders or 0) + 1
        store.last_order_date = datetime.now()

        self.db.add(order)
        await commit_or_rollback(self.db, duplicate_message="رقم الطلب مستخدم، يرجى إعادة المحاولة")

        logger.info(
            f"Order {order.order_number} created",
            extra={"order_id": order.id, "store_id": store.id, "final_amount_eur": order.final_amount_eur},
        )
        return await self._load(order.id)

    @track_performance(service_name="OrderService")
    async def update_order(self, order_id: int, data: OrderUpdate, user: User) -> Order:
        order = await self._load(order_id)
        self._check_owner(order, user)
        if order.status != "draft":
            raise BusinessRuleError("لا يمكن تحديث الطلب بعد تأكيده")

        values = data.model_dump(exclude_unset=True, exclude={"items", "discount_amount_eur"})
        for field, value in values.items():
            setattr(order, field, value)

        order_discount = data.discount_amount_eur
        if order_discount is None:
            # order-level part of the current discount
            line_discounts = sum(line.discount_amount_eur or 0 for line in order.items)
            order_discount = max((order.discount_amount_eur or 0) - line_discounts, 0)

        if data.items is not None:
            lines, products = await self._build_items(data.items)
            order.items = lines
        else:
            lines = list(order.items)
            ids = {line.product_id for line in lines}
            products = {
                p.id: p for p in (await self.db.execute(select(Product).where(Product.id.in_(ids)))).scalars().all()
            }
        self._apply_totals(order, lines, products, order_discount)

        await commit_or_rollback(self.db)
        return await self._load(order.id)

    async def delete_order(self, order_id: int, user: User):
        order = await self._load(order_id)
        self._check_owner(order, user)
        if order.status != "draft":
            raise BusinessRuleError("لا يمكن حذف الطلب بعد تأكيده")

        await self.db.delete(order)
        await commit_or_rollback(self.db)
        logger.info(f"Order {order.order_number} deleted", extra={"deleted_by": user.id})

    @track_performance(service_name="OrderService", include_metadata=True)
    async def update_status(self, order_id: int, status: str, user: User, notes: Optional[str] = None) -> Dict:
        """
        Moves an order along the status machine.

        Returns:
            dict: {"order": Order, "draft": SchedulingDraft | None}
        """
        order = await self._load(order_id)
        self._check_visible(order, user)
        BusinessRules.validate_order_transition(order.status, status)

        if order.status == status:
            return {"order": order, "draft": None}

        previous = order.status
        order.status = status
        if notes:
            order.notes = f"{order.notes}\n{notes}" if order.notes else notes

        draft = None
        if status == "confirmed" and is_auto_scheduling_enabled():
            async with metrics_context("SchedulingService", "auto_schedule", user_id=user.id):
                draft = await SchedulingService(self.db).auto_schedule(order, created_by=user.id)
        elif status == "delivered":
            await self._record_delivery(order)

        await commit_or_rollback(self.db)
        prometheus_collector.record_order_transition(previous, status, order.final_amount_eur)
        if draft is not None:
            draft = await SchedulingService(self.db).get_draft(draft.id)
        logger.info(
            f"Order {order.order_number} status {previous} -> {status}",
            extra={"order_id": order.id, "changed_by": user.id, "draft_created": draft is not None},
        )
        return {"order": await self._load(order.id), "draft": draft}

    async def _record_delivery(self, order: Order):
        product_ids = [line.product_id for line in order.items]
        products = {
            p.id: p for p in (await self.db.execute(select(Product).where(Product.id.in_(product_ids)))).scalars().all()
        }
        for line in order.items:
            product = products.get(line.product_id)
            if not product:
                continue
            product.total_sold = (product.total_sold or 0) + line.quantity
            product.total_revenue_eur = money((product.total_revenue_eur or 0) + line.final_price_eur)
            product.total_revenue_syp = money((product.total_revenue_syp or 0) + line.final_price_syp)
            product.stock_quantity = max((product.stock_quantity or 0) - line.quantity - (line.gift_quantity or 0), 0)

        store = order.store
        if store:
            store.completed_orders = (store.completed_orders or 0) + 1
            store.total_purchases_eur = money((store.total_purchases_eur or 0) + order.final_amount_eur)
            store.total_purchases_syp = money((store.total_purchases_syp or 0) + order.final_amount_syp)

        if order.assigned_distributor_id:
            distributor = (await self.db.execute(
                select(User).where(User.id == order.assigned_distributor_id)
            )).scalar_one_or_none()
            if distributor:
                distributor.total_deliveries = (distributor.total_deliveries or 0) + 1
                distributor.successful_deliveries = (distributor.successful_deliveries or 0) + 1

    async def update_payment_status(self, order_id: int, payment_status: str, user: User) -> Order:
        if not self._sees_all(user):
            raise PermissionDeniedError("غير مصرح لك بتحديث حالة الدفع")
        order = await self._load(order_id)
        order.payment_status = payment_status
        await commit_or_rollback(self.db)
        return order

    @track_performance(service_name="OrderService")
    async def list_orders(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
        store_id: Optional[int] = None,
        priority: Optional[str] = None,
        distributor_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ):
        stmt = select(Order)
        if not self._sees_all(user):
            stmt = stmt.where(or_(Order.created_by == user.id, Order.assigned_distributor_id == user.id))
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Order.order_number.ilike(pattern), Order.store_name.ilike(pattern), Order.notes.ilike(pattern)))
        if status:
            stmt = stmt.where(Order.status == status)
        if payment_status:
            stmt = stmt.where(Order.payment_status == payment_status)
        if store_id:
            stmt = stmt.where(Order.store_id == store_id)
        if priority:
            stmt = stmt.where(Order.priority == ("normal" if priority == "medium" else priority))
        if distributor_id:
            stmt = stmt.where(Order.assigned_distributor_id == distributor_id)
        if date_from:
            stmt = stmt.where(Order.order_date >= date_from)
        if date_to:
            stmt = stmt.where(Order.order_date <= date_to)

        stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc())
        return await paginate(self.db, stmt, page, limit)

    async def today_orders(self, user: User) -> List[Order]:
        stmt = select(Order).where(Order.order_date == date.today())
        if not self._sees_all(user):
            stmt = stmt.where(or_(Order.created_by == user.id, Order.assigned_distributor_id == user.id))
        return (await self.db.execute(stmt.order_by(Order.id.desc()))).scalars().all()

    async def statistics(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> Dict:
        def scoped(stmt):
            if date_from:
                stmt = stmt.where(Order.order_date >= date_from)
            if date_to:
                stmt = stmt.where(Order.order_date <= date_to)
            return stmt

        by_status = dict((await self.db.execute(
            scoped(select(Order.status, func.count(Order.id)).group_by(Order.status))
        )).all())
        by_payment = dict((await self.db.execute(
            scoped(select(Order.payment_status, func.count(Order.id)).group_by(Order.payment_status))
        )).all())
        sums = (await self.db.execute(scoped(
            select(
                func.coalesce(func.sum(Order.final_amount_eur), 0),
                func.coalesce(func.sum(Order.final_amount_syp), 0),
                func.coalesce(func.avg(Order.final_amount_eur), 0),
                func.coalesce(func.avg(Order.final_amount_syp), 0),
            ).where(Order.status != "cancelled")
        ))).one()
        today_count = (await self.db.execute(
            select(func.count(Order.id)).where(Order.order_date == date.today())
        )).scalar() or 0

        return {
            "total_orders": sum(by_status.values()),
            "by_status": {status: by_status.get(status, 0) for status in
                          ("draft", "confirmed", "in_progress", "delivered", "cancelled")},
            "total_amount_eur": round(float(sums[0]), 2),
            "total_amount_syp": round(float(sums[1]), 2),
            "average_order_value_eur": round(float(sums[2]), 2),
            "average_order_value_syp": round(float(sums[3]), 2),
            "pending_payments": by_payment.get("pending", 0) + by_payment.get("partial", 0),
            "paid_orders": by_payment.get("paid", 0),
            "overdue_payments": by_payment.get("overdue", 0),
            "today_orders": today_count,
        }
