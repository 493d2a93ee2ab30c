from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import require_permission
from auth.rbac import Permission
from core.db import get_db
from models.user import User
from schemas.common import dump, dump_all, paginated, success_response
from schemas.product import ProductCreate, ProductOut, ProductUpdate
from services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
async def list_products(
    page: int = Query(1),
    limit: int = Query(10),
    category: Optional[str] = None,
    status: Optional[str] = None,
    is_featured: Optional[bool] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    search: Optional[str] = None,
    user: User = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    products, pagination = await ProductService(db).list_products(
        page, limit, category=category, status=status, is_featured=is_featured,
        min_price=min_price, max_price=max_price, search=search,
    )
    return success_response(paginated("products", dump_all(ProductOut, products), pagination))


@router.get("/search")
async def search_products(
    q: str = Query(""),
    limit: int = Query(20),
    user: User = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump_all(ProductOut, await ProductService(db).search(q, limit)))


@router.get("/low-stock")
async def low_stock_products(
    user: User = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump_all(ProductOut, await ProductService(db).low_stock()))


@router.get("/statistics")
async def product_statistics(
    user: User = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await ProductService(db).statistics())


@router.get("/{product_id}")
async def get_product(
    product_id: int,
    user: User = Depends(require_permission(Permission.VIEW_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump(ProductOut, await ProductService(db).get_product(product_id)))


@router.post("", status_code=201)
async def create_product(
    body: ProductCreate,
    user: User = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    product = await ProductService(db).create_product(body, user)
    return success_response(dump(ProductOut, product), "تم إنشاء المنتج بنجاح")


@router.put("/{product_id}")
async def update_product(
    product_id: int,
    body: ProductUpdate,
    user: User = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    product = await ProductService(db).update_product(product_id, body, user)
    return success_response(dump(ProductOut, product), "تم تحديث المنتج بنجاح")


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    user: User = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    await ProductService(db).delete_product(product_id)
    return success_response(None, "تم حذف المنتج بنجاح")


@router.patch("/{product_id}/toggle-status")
async def toggle_product_status(
    product_id: int,
    user: User = Depends(require_permission(Permission.MANAGE_PRODUCTS)),
    db: AsyncSession = Depends(get_db),
):
    product = await ProductService(db).toggle_status(product_id)
    return success_response(dump(ProductOut, product), "تم تحديث حالة المنتج بنجاح")
