import logging
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from auth.rbac import Permission, has_permission
from core.prometheus_metrics import prometheus_collector
from models.distribution_trip import DistributionTrip
from models.user import User
from services.exceptions import NotFoundError, PermissionDeniedError
from services.query_utils import commit_or_rollback, paginate
from services.validators import BusinessRules

logger = logging.getLogger(__name__)

TRIP_NOT_FOUND = "رحلة التوزيع غير موجودة"


class TripService:
    """Distribution trips opened by approved scheduling drafts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_trip(self, trip_id: int, user: User) -> DistributionTrip:
        trip = (await self.db.execute(
            select(DistributionTrip).where(DistributionTrip.id == trip_id)
        )).scalar_one_or_none()
        if not trip:
            raise NotFoundError(TRIP_NOT_FOUND)
        if not has_permission(user.role, Permission.MANAGE_TRIPS) and trip.distributor_id != user.id:
            raise PermissionDeniedError("غير مصرح لك بعرض هذه الرحلة")
        return trip

    async def list_trips(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        trip_date: Optional[date] = None,
        distributor_id: Optional[int] = None,
        status: Optional[str] = None,
    ):
        stmt = select(DistributionTrip)
        if not has_permission(user.role, Permission.MANAGE_TRIPS):
            # distributors only ever see their own trips
            distributor_id = user.id
        if distributor_id:
            stmt = stmt.where(DistributionTrip.distributor_id == distributor_id)
        if trip_date:
            stmt = stmt.where(DistributionTrip.trip_date == trip_date)
        if status:
            stmt = stmt.where(DistributionTrip.status == status)
        stmt = stmt.order_by(DistributionTrip.trip_date.desc(), DistributionTrip.id.desc())
        return await paginate(self.db, stmt, page, limit)

    async def update_status(self, trip_id: int, status: str, user: User, notes: Optional[str] = None) -> DistributionTrip:
        trip = await self.get_trip(trip_id, user)
        BusinessRules.validate_trip_transition(trip.status, status)

        previous = trip.status
        trip.status = status
        if notes:
            trip.notes = f"{trip.notes}\n{notes}" if trip.notes else notes
        await commit_or_rollback(self.db)
        prometheus_collector.record_trip_status(status)

        logger.info(
            f"Trip {trip.trip_number} status {previous} -> {status}",
            extra={"trip_id": trip.id, "changed_by": user.id},
        )
        return trip
