from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import require_permission
from auth.rbac import Permission
from core.db import get_db
from models.enums import DraftStatus
from models.user import User
from schemas.common import dump, dump_all, paginated, success_response
from schemas.distribution_trip import DistributionTripOut
from schemas.scheduling import (
    ApproveDraftRequest,
    ManualScheduleRequest,
    RejectDraftRequest,
    SchedulingDraftDetail,
    SchedulingDraftOut,
)
from services.scheduling_service import SchedulingService

router = APIRouter(prefix="/auto-scheduling", tags=["auto-scheduling"])

reviewer = require_permission(Permission.REVIEW_SCHEDULING)


@router.get("/pending-reviews")
async def pending_reviews(
    page: int = Query(1),
    limit: int = Query(10),
    status: DraftStatus = Query(DraftStatus.PENDING_REVIEW),
    user: User = Depends(reviewer),
    db: AsyncSession = Depends(get_db),
):
    drafts, pagination = await SchedulingService(db).list_drafts(page, limit, status.value)
    return success_response(paginated("drafts", dump_all(SchedulingDraftOut, drafts), pagination))


@router.get("/statistics")
async def scheduling_statistics(
    period: str = Query("week"),
    user: User = Depends(reviewer),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await SchedulingService(db).statistics(period))


@router.get("/drafts/{draft_id}")
async def get_draft(
    draft_id: int,
    user: User = Depends(reviewer),
    db: AsyncSession = Depends(get_db),
):
    return success_response(dump(SchedulingDraftDetail, await SchedulingService(db).get_draft(draft_id)))


@router.post("/drafts/{draft_id}/approve")
async def approve_draft(
    draft_id: int,
    body: ApproveDraftRequest,
    user: User = Depends(reviewer),
    db: AsyncSession = Depends(get_db),
):
    result = await SchedulingService(db).approve_draft(draft_id, body, user)
    data = {
        "draft": dump(SchedulingDraftOut, result["draft"]),
        "trip": dump(DistributionTripOut, result["trip"]) if result["trip"] else None,
    }
    return success_response(data, result["message"])


@router.post("/drafts/{draft_id}/reject")
async def reject_draft(
    draft_id: int,
    body: RejectDraftRequest,
    user: User = Depends(reviewer),
    db: AsyncSession = Depends(get_db),
):
    draft = await SchedulingService(db).reject_draft(draft_id, body, user)
    return success_response(dump(SchedulingDraftOut, draft), "تم رفض اقتراح الجدولة")


@router.post("/manual-schedule", status_code=201)
async def manual_schedule(
    body: ManualScheduleRequest,
    user: User = Depends(reviewer),
    db: AsyncSession = Depends(get_db),
):
    result = await SchedulingService(db).manual_schedule(body.order_id, user)
    data = {
        "draft": dump(SchedulingDraftOut, result["draft"]),
        "alternatives": result["alternatives"],
    }
    return success_response(data, result["message"])
