from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.enums import Priority
from schemas.common import InputSchema
from schemas.order import OrderSummary, OrderWithStore


class DraftModifications(InputSchema):
    distributor_id: Optional[int] = Field(None, gt=0)
    delivery_date: Optional[date] = None
    priority: Optional[Priority] = None

    def is_empty(self) -> bool:
        return self.distributor_id is None and self.delivery_date is None and self.priority is None


class ApproveDraftRequest(InputSchema):
    modifications: Optional[DraftModifications] = None
    admin_notes: Optional[str] = None
    create_distribution_trip: bool = True


class RejectDraftRequest(InputSchema):
    reason: Optional[str] = None
    reassign_to_manual: bool = False


class ManualScheduleRequest(InputSchema):
    order_id: Optional[int] = None


class DistributorName(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    phone: Optional[str] = None
    delivery_zone: Optional[str] = None
    performance_rating: Optional[float] = None


class SchedulingDraftOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    suggested_distributor_id: int
    suggested_distributor_name: str
    confidence_score: int
    suggested_delivery_date: date
    suggested_priority: str
    reasoning: Optional[dict] = None
    reasoning_text: str
    alternative_suggestions: Optional[List[dict]] = None
    route_optimization: Optional[dict] = None
    estimated_delivery_time: Optional[str] = None
    estimated_duration: Optional[int] = None
    status: str
    admin_notes: Optional[str] = None
    modifications: Optional[dict] = None
    approved_distributor_id: Optional[int] = None
    approved_delivery_date: Optional[date] = None
    approved_priority: Optional[str] = None
    created_by: Optional[int] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    order: Optional[OrderSummary] = None
    suggested_distributor: Optional[DistributorName] = None


class SchedulingDraftDetail(SchedulingDraftOut):
    order: Optional[OrderWithStore] = None
