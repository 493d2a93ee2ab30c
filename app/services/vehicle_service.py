import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

import pandas as pd
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.metrics import track_performance
from models.enums import VehicleStatus
from models.user import User
from models.vehicle import Vehicle
from schemas.vehicle import VehicleCreate, VehicleUpdate
from services.exceptions import BusinessRuleError, DuplicateError, NotFoundError
from services.query_utils import commit_or_rollback, paginate

logger = logging.getLogger(__name__)

VEHICLE_NOT_FOUND = "لم يتم العثور على المركبة"
PLATE_TAKEN = "رقم اللوحة موجود مسبقاً"

CSV_COLUMNS = {
    "id": "ID",
    "vehicle_type": "Vehicle Type",
    "vehicle_model": "Model",
    "vehicle_plate": "License Plate",
    "vehicle_year": "Year",
    "vehicle_color": "Color",
    "status": "Status",
    "fuel_type": "Fuel Type",
    "transmission_type": "Transmission Type",
    "engine_capacity": "Engine Capacity",
    "distributor_name": "Assigned Distributor",
    "distributor_phone": "Distributor Phone",
    "insurance_company": "Insurance Company",
    "insurance_expiry_date": "Insurance Expiry Date",
    "registration_expiry_date": "Registration Expiry Date",
    "purchase_price_eur": "Purchase Price (EUR)",
    "purchase_price_syp": "Purchase Price (SYP)",
    "current_km": "Current KM",
    "next_maintenance_km": "Next Maintenance KM",
    "is_company_owned": "Company Owned",
    "created_at": "Created At",
    "notes": "Notes",
}


class VehicleService:
    """
    Fleet management: CRUD, distributor assignment and fleet statistics.

    Assignment rules:
    - only active, unassigned vehicles can be assigned
    - the target must be an active distributor without another active vehicle
    - moving a vehicle to inactive/retired releases its distributor
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_vehicle(self, vehicle_id: int) -> Vehicle:
        vehicle = (await self.db.execute(select(Vehicle).where(Vehicle.id == vehicle_id))).scalar_one_or_none()
        if not vehicle:
            raise NotFoundError(VEHICLE_NOT_FOUND)
        return vehicle

    async def _reload(self, vehicle_id: int) -> Vehicle:
        stmt = select(Vehicle).where(Vehicle.id == vehicle_id).execution_options(populate_existing=True)
        return (await self.db.execute(stmt)).scalar_one()

    async def _ensure_plate_free(self, plate: str, exclude_id: Optional[int] = None):
        stmt = select(Vehicle.id).where(func.upper(Vehicle.vehicle_plate) == plate.upper())
        if exclude_id:
            stmt = stmt.where(Vehicle.id != exclude_id)
        if (await self.db.execute(stmt)).first():
            raise DuplicateError(PLATE_TAKEN)

    @track_performance(service_name="VehicleService")
    async def list_vehicles(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        vehicle_type: Optional[str] = None,
        assigned: Optional[bool] = None,
        search: Optional[str] = None,
    ):
        """
        Lists vehicles newest first.

        Args:
            status: exact status filter
            vehicle_type: exact type filter
            assigned: True for vehicles with a distributor, False for free ones
            search: case-insensitive match on model or plate

        Returns:
            tuple: (vehicles, Pagination)
        """
        stmt = select(Vehicle)
        if status:
            stmt = stmt.where(Vehicle.status == status)
        if vehicle_type:
            stmt = stmt.where(Vehicle.vehicle_type == vehicle_type)
        if assigned is True:
            stmt = stmt.where(Vehicle.assigned_distributor_id.is_not(None))
        elif assigned is False:
            stmt = stmt.where(Vehicle.assigned_distributor_id.is_(None))
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Vehicle.vehicle_model.ilike(pattern), Vehicle.vehicle_plate.ilike(pattern)))

        stmt = stmt.order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
        return await paginate(self.db, stmt, page, limit)

    @track_performance(service_name="VehicleService")
    async def create_vehicle(self, data: VehicleCreate, created_by: User) -> Vehicle:
        await self._ensure_plate_free(data.vehicle_plate)

        vehicle = Vehicle(
            **data.model_dump(exclude_none=True),
            created_by=created_by.id,
            created_by_name=created_by.full_name,
        )
        self.db.add(vehicle)
        await commit_or_rollback(self.db, duplicate_message=PLATE_TAKEN)

        logger.info(f"Vehicle {vehicle.vehicle_plate} created by {created_by.full_name}")
        return await self._reload(vehicle.id)

    @track_performance(service_name="VehicleService")
    async def update_vehicle(self, vehicle_id: int, data: VehicleUpdate) -> Vehicle:
        vehicle = await self.get_vehicle(vehicle_id)
        values = data.model_dump(exclude_unset=True)

        if values.get("vehicle_plate") and values["vehicle_plate"] != vehicle.vehicle_plate:
            await self._ensure_plate_free(values["vehicle_plate"], exclude_id=vehicle.id)

        for field, value in values.items():
            setattr(vehicle, field, value)

        await commit_or_rollback(self.db, duplicate_message=PLATE_TAKEN)
        return await self._reload(vehicle.id)

    async def delete_vehicle(self, vehicle_id: int):
        vehicle = await self.get_vehicle(vehicle_id)
        if vehicle.assigned_distributor_id:
            raise BusinessRuleError("لا يمكن حذف مركبة معينة لموزع. قم بإلغاء التعيين أولاً")

        await self.db.delete(vehicle)
        await commit_or_rollback(self.db)
        logger.info(f"Vehicle {vehicle.vehicle_plate} deleted")

    @track_performance(service_name="VehicleService")
    async def assign_vehicle(self, vehicle_id: int, distributor_id: int) -> Vehicle:
        vehicle = await self.get_vehicle(vehicle_id)

        if vehicle.status != VehicleStatus.ACTIVE.value:
            raise BusinessRuleError("لا يمكن تعيين مركبة غير نشطة")
        if vehicle.assigned_distributor_id:
            raise BusinessRuleError("المركبة معينة لموزع آخر بالفعل")

        distributor = (await self.db.execute(
            select(User).where(User.id == distributor_id, User.role == "distributor", User.status == "active")
        )).scalar_one_or_none()
        if not distributor:
            raise NotFoundError("لم يتم العثور على الموزع أو أنه غير نشط")

        existing = (await self.db.execute(
            select(Vehicle.id).where(Vehicle.assigned_distributor_id == distributor_id, Vehicle.status == "active")
        )).first()
        if existing:
            raise BusinessRuleError("الموزع لديه مركبة معينة بالفعل")

        vehicle.assigned_distributor_id = distributor_id
        await commit_or_rollback(self.db)

        logger.info(f"Vehicle {vehicle.vehicle_plate} assigned to {distributor.full_name}")
        return await self._reload(vehicle.id)

    async def unassign_vehicle(self, vehicle_id: int) -> Vehicle:
        vehicle = await self.get_vehicle(vehicle_id)
        if not vehicle.assigned_distributor_id:
            raise BusinessRuleError("المركبة غير معينة لأي موزع")

        previous = vehicle.assigned_distributor_id
        vehicle.assigned_distributor_id = None
        await commit_or_rollback(self.db)

        logger.info(f"Vehicle {vehicle.vehicle_plate} unassigned from distributor {previous}")
        return await self._reload(vehicle.id)

    async def update_status(self, vehicle_id: int, status: str, notes: Optional[str] = None) -> Vehicle:
        if status not in {s.value for s in VehicleStatus}:
            raise BusinessRuleError("حالة المركبة غير صحيحة")

        vehicle = await self.get_vehicle(vehicle_id)
        vehicle.status = status
        if status in (VehicleStatus.INACTIVE.value, VehicleStatus.RETIRED.value):
            vehicle.assigned_distributor_id = None
        if notes:
            vehicle.notes = notes

        await commit_or_rollback(self.db)
        logger.info(f"Vehicle {vehicle.vehicle_plate} status changed to {status}")
        return await self._reload(vehicle.id)

    async def available_vehicles(self) -> List[Vehicle]:
        stmt = (
            select(Vehicle)
            .where(Vehicle.status == "active", Vehicle.assigned_distributor_id.is_(None))
            .order_by(Vehicle.vehicle_type, Vehicle.vehicle_model)
        )
        return (await self.db.execute(stmt)).scalars().all()

    async def vehicles_by_distributor(self, distributor_id: int) -> List[Vehicle]:
        stmt = select(Vehicle).where(Vehicle.assigned_distributor_id == distributor_id).order_by(Vehicle.id)
        return (await self.db.execute(stmt)).scalars().all()

    async def maintenance_due(self) -> List[Vehicle]:
        stmt = select(Vehicle).where(
            Vehicle.current_km.is_not(None),
            Vehicle.next_maintenance_km.is_not(None),
            Vehicle.current_km >= Vehicle.next_maintenance_km,
            Vehicle.status != "retired",
        )
        return (await self.db.execute(stmt)).scalars().all()

    async def insurance_expiring(self, days: int = 30) -> List[Vehicle]:
        stmt = (
            select(Vehicle)
            .where(
                Vehicle.insurance_expiry_date.is_not(None),
                Vehicle.insurance_expiry_date <= date.today() + timedelta(days=days),
                Vehicle.status != "retired",
            )
            .order_by(Vehicle.insurance_expiry_date)
        )
        return (await self.db.execute(stmt)).scalars().all()

    async def statistics(self) -> Dict:
        total = (await self.db.execute(select(func.count(Vehicle.id)))).scalar() or 0
        active = (await self.db.execute(
            select(func.count(Vehicle.id)).where(Vehicle.status == "active")
        )).scalar() or 0
        assigned = (await self.db.execute(
            select(func.count(Vehicle.id)).where(Vehicle.assigned_distributor_id.is_not(None))
        )).scalar() or 0
        maintenance = (await self.db.execute(
            select(func.count(Vehicle.id)).where(Vehicle.status == "maintenance")
        )).scalar() or 0

        return {
            "total": total,
            "active": active,
            "assigned": assigned,
            "available": active - assigned,
            "maintenance": maintenance,
            "utilizationRate": round(assigned / total * 100) if total else 0,
        }

    async def export_csv(self) -> str:
        vehicles = (await self.db.execute(
            select(Vehicle).order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
        )).scalars().all()

        rows = []
        for v in vehicles:
            row = {column: getattr(v, column, None) for column in CSV_COLUMNS if hasattr(Vehicle, column)}
            row["distributor_name"] = v.assigned_distributor.full_name if v.assigned_distributor else None
            row["distributor_phone"] = v.assigned_distributor.phone if v.assigned_distributor else None
            rows.append(row)

        df = pd.DataFrame(rows, columns=list(CSV_COLUMNS))
        df = df.rename(columns=CSV_COLUMNS)
        # BOM so spreadsheet apps detect UTF-8 (Arabic names)
        return "\ufeff" + df.to_csv(index=False)
