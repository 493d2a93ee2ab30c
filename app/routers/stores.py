from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import require_permission
from auth.rbac import Permission
from core.db import get_db
from models.user import User
from schemas.common import dump, dump_all, paginated, success_response
from schemas.order import OrderOut
from schemas.store import StoreCreate, StoreOut, StoreUpdate
from services.store_service import StoreService

router = APIRouter(prefix="/stores", tags=["stores"])


@router.get("")
async def list_stores(
    page: int = Query(1),
    limit: int = Query(10),
    status: Optional[str] = None,
    category: Optional[str] = None,
    store_type: Optional[str] = None,
    distributor_id: Optional[int] = None,
    search: Optional[str] = None,
    user: User = Depends(require_permission(Permission.VIEW_STORES)),
    db: AsyncSession = Depends(get_db),
):
    stores, pagination = await StoreService(db).list_stores(
        page, limit, status=status, category=category, store_type=store_type,
        distributor_id=distributor_id, search=search,
    )
    return success_response(paginated("stores", dump_all(StoreOut, stores), pagination))


@router.get("/nearby")
async def nearby_stores(
    lat: float = Query(...),
    lng: float = Query(...),
    radius: float = Query(5, gt=0, le=500),
    user: User = Depends(require_permission(Permission.VIEW_STORES)),
    db: AsyncSession = Depends(get_db),
):
    nearby = await StoreService(db).nearby_stores(lat, lng, radius)
    return success_response([{**dump(StoreOut, store), "distance_km": distance} for store, distance in nearby])


@router.get("/statistics")
async def store_statistics(
    user: User = Depends(require_permission(Permission.VIEW_STORES)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await StoreService(db).statistics())


@router.get("/{store_id}")
async def get_store(
    store_id: int,
    user: User = Depends(require_permission(Permission.VIEW_STORES)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump(StoreOut, await StoreService(db).get_store(store_id)))


@router.get("/{store_id}/orders")
async def store_orders(
    store_id: int,
    page: int = Query(1),
    limit: int = Query(10),
    status: Optional[str] = None,
    user: User = Depends(require_permission(Permission.VIEW_ALL_ORDERS)),
    db: AsyncSession = Depends(get_db),
):
    orders, pagination = await StoreService(db).store_orders(store_id, page, limit, status=status)
    return success_response(paginated("orders", dump_all(OrderOut, orders), pagination))


@router.post("", status_code=201)
async def create_store(
    body: StoreCreate,
    user: User = Depends(require_permission(Permission.MANAGE_STORES)),
    db: AsyncSession = Depends(get_db),
):
    store = await StoreService(db).create_store(body, user)
    return success_response(dump(StoreOut, store), "تم إنشاء المحل بنجاح")


@router.put("/{store_id}")
async def update_store(
    store_id: int,
    body: StoreUpdate,
    user: User = Depends(require_permission(Permission.MANAGE_STORES)),
    db: AsyncSession = Depends(get_db),
):
    store = await StoreService(db).update_store(store_id, body)
    return success_response(dump(StoreOut, store), "تم تحديث المحل بنجاح")


@router.delete("/{store_id}")
async def delete_store(
    store_id: int,
    user: User = Depends(require_permission(Permission.MANAGE_STORES)),
    db: AsyncSession = Depends(get_db),
):
    await StoreService(db).delete_store(store_id)
    return success_response(None, "تم حذف المحل بنجاح")
