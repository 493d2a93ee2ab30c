from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.common import InputSchema, UpdateSchema, not_null
from models.enums import VehicleType, VehicleStatus, FuelType, TransmissionType


def _check_year(v):
    if v is None:
        return v
    max_year = date.today().year + 1
    if v < 1990 or v > max_year:
        raise ValueError(f"vehicle_year must be between 1990 and {max_year}")
    return v


class VehicleBase(InputSchema):
    vehicle_color: Optional[str] = Field(None, max_length=30)
    insurance_company: Optional[str] = Field(None, max_length=100)
    insurance_expiry_date: Optional[date] = None
    registration_expiry_date: Optional[date] = None
    engine_capacity: Optional[float] = Field(None, ge=0)
    last_maintenance_date: Optional[date] = None
    last_maintenance_km: Optional[int] = Field(None, ge=0)
    next_maintenance_km: Optional[int] = Field(None, ge=0)
    current_km: Optional[int] = Field(None, ge=0)
    purchase_date: Optional[date] = None
    purchase_price_eur: Optional[float] = Field(None, ge=0)
    purchase_price_syp: Optional[float] = Field(None, ge=0)
    load_capacity_eur: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = None
    is_company_owned: Optional[bool] = None


class VehicleCreate(VehicleBase):
    vehicle_type: VehicleType = VehicleType.VAN
    vehicle_model: str = Field(..., min_length=2, max_length=100)
    vehicle_plate: str = Field(..., min_length=3, max_length=20)
    vehicle_year: int
    status: VehicleStatus = VehicleStatus.ACTIVE
    fuel_type: FuelType = FuelType.GASOLINE
    transmission_type: TransmissionType = TransmissionType.MANUAL

    @field_validator("vehicle_year")
    def check_year(cls, v):
        return _check_year(v)

    @field_validator("vehicle_plate")
    def normalize_plate(cls, v):
        return v.strip().upper()


class VehicleUpdate(VehicleBase, UpdateSchema):
    vehicle_type: Optional[VehicleType] = None
    vehicle_model: Optional[str] = Field(None, min_length=2, max_length=100)
    vehicle_plate: Optional[str] = Field(None, min_length=3, max_length=20)
    vehicle_year: Optional[int] = None
    fuel_type: Optional[FuelType] = None
    transmission_type: Optional[TransmissionType] = None

    reject_nulls = not_null(
        "vehicle_type", "vehicle_model", "vehicle_plate", "vehicle_year",
        "fuel_type", "transmission_type", "is_company_owned",
    )

    @field_validator("vehicle_year")
    def check_year(cls, v):
        return _check_year(v)

    @field_validator("vehicle_plate")
    def normalize_plate(cls, v):
        return v.strip().upper() if v else v


class VehicleAssign(BaseModel):
    distributor_id: int = Field(..., gt=0)


class VehicleStatusUpdate(BaseModel):
    # plain string so an unknown status gets the Arabic domain message
    status: str
    notes: Optional[str] = None


class DistributorSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None


class VehicleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    vehicle_type: str
    vehicle_model: str
    vehicle_plate: str
    vehicle_year: int
    vehicle_color: Optional[str] = None
    status: str
    assigned_distributor_id: Optional[int] = None
    assigned_distributor: Optional[DistributorSummary] = None
    insurance_company: Optional[str] = None
    insurance_expiry_date: Optional[date] = None
    registration_expiry_date: Optional[date] = None
    fuel_type: str
    transmission_type: str
    engine_capacity: Optional[float] = None
    last_maintenance_date: Optional[date] = None
    last_maintenance_km: Optional[int] = None
    next_maintenance_km: Optional[int] = None
    current_km: Optional[int] = None
    purchase_date: Optional[date] = None
    purchase_price_eur: Optional[float] = None
    purchase_price_syp: Optional[float] = None
    load_capacity_eur: Optional[float] = None
    notes: Optional[str] = None
    is_company_owned: bool = True
    created_by: Optional[int] = None
    created_by_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # computed on the model
    vehicle_type_info: dict
    status_info: dict
    fuel_type_info: dict
    is_maintenance_due: bool
    age: int
    can_be_assigned: bool
    is_insurance_expiring: bool
    is_registration_expiring: bool
