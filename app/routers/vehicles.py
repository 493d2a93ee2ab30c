from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import require_permission
from auth.rbac import Permission
from core.db import get_db
from models.user import User
from schemas.common import dump, dump_all, paginated, success_response
from schemas.vehicle import VehicleAssign, VehicleCreate, VehicleOut, VehicleStatusUpdate, VehicleUpdate
from services.vehicle_service import VehicleService

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("")
async def list_vehicles(
    page: int = Query(1),
    limit: int = Query(10),
    status: Optional[str] = None,
    vehicle_type: Optional[str] = None,
    assigned: Optional[bool] = None,
    search: Optional[str] = None,
    user: User = Depends(require_permission(Permission.VIEW_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    vehicles, pagination = await VehicleService(db).list_vehicles(
        page, limit, status=status, vehicle_type=vehicle_type, assigned=assigned, search=search
    )
    return success_response(paginated("vehicles", dump_all(VehicleOut, vehicles), pagination))


@router.get("/available")
async def available_vehicles(
    user: User = Depends(require_permission(Permission.VIEW_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump_all(VehicleOut, await VehicleService(db).available_vehicles()))


@router.get("/statistics")
async def vehicle_statistics(
    user: User = Depends(require_permission(Permission.VIEW_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await VehicleService(db).statistics())


@router.get("/maintenance-due")
async def maintenance_due(
    user: User = Depends(require_permission(Permission.VIEW_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump_all(VehicleOut, await VehicleService(db).maintenance_due()))


@router.get("/insurance-expiring")
async def insurance_expiring(
    days: int = Query(30, ge=1, le=365),
    user: User = Depends(require_permission(Permission.VIEW_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump_all(VehicleOut, await VehicleService(db).insurance_expiring(days)))


@router.get("/export")
async def export_vehicles(
    user: User = Depends(require_permission(Permission.MANAGE_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    csv_data = await VehicleService(db).export_csv()
    filename = f"vehicles_export_{date.today():%Y-%m-%d}.csv"
    return Response(
        content=csv_data,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/distributor/{distributor_id}")
async def vehicles_by_distributor(
    distributor_id: int,
    user: User = Depends(require_permission(Permission.VIEW_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump_all(VehicleOut, await VehicleService(db).vehicles_by_distributor(distributor_id)))


@router.get("/{vehicle_id}")
async def get_vehicle(
    vehicle_id: int,
    user: User = Depends(require_permission(Permission.VIEW_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump(VehicleOut, await VehicleService(db).get_vehicle(vehicle_id)))


@router.post("", status_code=201)
async def create_vehicle(
    body: VehicleCreate,
    user: User = Depends(require_permission(Permission.MANAGE_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await VehicleService(db).create_vehicle(body, user)
    return success_response(dump(VehicleOut, vehicle), "تم إنشاء المركبة بنجاح")


@router.put("/{vehicle_id}")
async def update_vehicle(
    vehicle_id: int,
    body: VehicleUpdate,
    user: User = Depends(require_permission(Permission.MANAGE_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await VehicleService(db).update_vehicle(vehicle_id, body)
    return success_response(dump(VehicleOut, vehicle), "تم تحديث المركبة بنجاح")


@router.delete("/{vehicle_id}")
async def delete_vehicle(
    vehicle_id: int,
    user: User = Depends(require_permission(Permission.MANAGE_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    await VehicleService(db).delete_vehicle(vehicle_id)
    return success_response(None, "تم حذف المركبة بنجاح")


@router.post("/{vehicle_id}/assign")
async def assign_vehicle(
    vehicle_id: int,
    body: VehicleAssign,
    user: User = Depends(require_permission(Permission.MANAGE_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await VehicleService(db).assign_vehicle(vehicle_id, body.distributor_id)
    return success_response(dump(VehicleOut, vehicle), "تم تعيين المركبة للموزع بنجاح")


@router.post("/{vehicle_id}/unassign")
async def unassign_vehicle(
    vehicle_id: int,
    user: User = Depends(require_permission(Permission.MANAGE_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await VehicleService(db).unassign_vehicle(vehicle_id)
    return success_response(dump(VehicleOut, vehicle), "تم إلغاء تعيين المركبة بنجاح")


@router.patch("/{vehicle_id}/status")
async def update_vehicle_status(
    vehicle_id: int,
    body: VehicleStatusUpdate,
    user: User = Depends(require_permission(Permission.MANAGE_VEHICLES)),
    db: AsyncSession = Depends(get_db),
):
    vehicle = await VehicleService(db).update_status(vehicle_id, body.status, body.notes)
    return success_response(dump(VehicleOut, vehicle), "تم تحديث حالة المركبة بنجاح")
