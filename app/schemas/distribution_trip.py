from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from models.enums import TripStatus
from schemas.common import InputSchema


class TripStatusUpdate(InputSchema):
    status: TripStatus
    notes: Optional[str] = None


class DistributionTripOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    trip_number: str
    trip_date: date
    distributor_id: int
    distributor_name: str
    planned_start_time: str
    order_ids: List[int] = []
    total_orders: int
    total_stores: int
    total_amount_eur: float
    total_amount_syp: float
    status: str
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
