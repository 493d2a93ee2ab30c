from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import get_current_user, require_permission
from auth.rbac import Permission
from core.db import get_db
from models.user import User
from schemas.common import dump, dump_all, paginated, success_response
from schemas.order import OrderCreate, OrderOut, OrderStatusUpdate, OrderUpdate, PaymentStatusUpdate
from schemas.scheduling import SchedulingDraftOut
from services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("")
async def list_orders(
    page: int = Query(1),
    limit: int = Query(10),
    search: Optional[str] = None,
    status: Optional[str] = None,
    payment_status: Optional[str] = None,
    store_id: Optional[int] = None,
    priority: Optional[str] = None,
    distributor_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    user: User = Depends(require_permission(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    orders, pagination = await OrderService(db).list_orders(
        user, page, limit, search=search, status=status, payment_status=payment_status,
        store_id=store_id, priority=priority, distributor_id=distributor_id,
        date_from=date_from, date_to=date_to,
    )
    return success_response(paginated("orders", dump_all(OrderOut, orders), pagination))


@router.get("/today")
async def today_orders(
    user: User = Depends(require_permission(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump_all(OrderOut, await OrderService(db).today_orders(user)))


@router.get("/statistics")
async def order_statistics(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    user: User = Depends(require_permission(Permission.VIEW_STATISTICS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await OrderService(db).statistics(date_from, date_to))


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    user: User = Depends(require_permission(Permission.VIEW_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump(OrderOut, await OrderService(db).get_order(order_id, user)))


@router.post("", status_code=201)
async def create_order(
    body: OrderCreate,
    user: User = Depends(require_permission(Permission.CREATE_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).create_order(body, user)
    return success_response(dump(OrderOut, order), "تم إنشاء الطلب بنجاح")


@router.put("/{order_id}")
async def update_order(
    order_id: int,
    body: OrderUpdate,
    user: User = Depends(require_permission(Permission.CREATE_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).update_order(order_id, body, user)
    return success_response(dump(OrderOut, order), "تم تحديث الطلب بنجاح")


@router.delete("/{order_id}")
async def delete_order(
    order_id: int,
    user: User = Depends(require_permission(Permission.CREATE_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    await OrderService(db).delete_order(order_id, user)
    return success_response(None, "تم حذف الطلب بنجاح")


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    user: User = Depends(require_permission(Permission.CREATE_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    result = await OrderService(db).update_status(order_id, body.status, user, body.notes)
    data = dump(OrderOut, result["order"])
    if result["draft"] is not None:
        data["scheduling_draft"] = dump(SchedulingDraftOut, result["draft"])
    return success_response(data, "تم تحديث حالة الطلب بنجاح")


@router.patch("/{order_id}/payment-status")
async def update_payment_status(
    order_id: int,
    body: PaymentStatusUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).update_payment_status(order_id, body.payment_status, user)
    return success_response(dump(OrderOut, order), "تم تحديث حالة الدفع بنجاح")
