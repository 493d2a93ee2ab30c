from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import require_permission
from auth.rbac import Permission
from core.db import get_db
from models.user import User
from schemas.common import dump, dump_all, paginated, success_response
from schemas.distribution_trip import DistributionTripOut, TripStatusUpdate
from services.trip_service import TripService

router = APIRouter(prefix="/distribution-trips", tags=["distribution-trips"])


@router.get("")
async def list_trips(
    page: int = Query(1),
    limit: int = Query(10),
    trip_date: Optional[date] = Query(None, alias="date"),
    distributor_id: Optional[int] = None,
    status: Optional[str] = None,
    user: User = Depends(require_permission(Permission.VIEW_TRIPS)),
    db: AsyncSession = Depends(get_db),
):
    trips, pagination = await TripService(db).list_trips(
        user, page, limit, trip_date=trip_date, distributor_id=distributor_id, status=status
    )
    return success_response(paginated("trips", dump_all(DistributionTripOut, trips), pagination))


@router.get("/{trip_id}")
async def get_trip(
    trip_id: int,
    user: User = Depends(require_permission(Permission.VIEW_TRIPS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump(DistributionTripOut, await TripService(db).get_trip(trip_id, user)))


@router.patch("/{trip_id}/status")
async def update_trip_status(
    trip_id: int,
    body: TripStatusUpdate,
    user: User = Depends(require_permission(Permission.VIEW_TRIPS)),
    db: AsyncSession = Depends(get_db),
):
    trip = await TripService(db).update_status(trip_id, body.status, user, body.notes)
    return success_response(dump(DistributionTripOut, trip), "تم تحديث حالة الرحلة بنجاح")
