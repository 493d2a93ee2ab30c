import logging
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.metrics import track_performance
from core.prometheus_metrics import prometheus_collector
from models.distribution_trip import DistributionTrip
from models.order import Order
from models.scheduling_draft import SchedulingDraft
from models.user import User
from models.vehicle import Vehicle
from schemas.scheduling import ApproveDraftRequest, RejectDraftRequest
from services.exceptions import (
    BakeryDomainError,
    BusinessRuleError,
    NoAvailableDistributorError,
    NotFoundError,
)
from services.query_utils import commit_or_rollback, paginate
from services.scoring import (
    ALTERNATIVES,
    DistributorCandidate,
    OrderRequirements,
    analyze_requirements,
    has_capacity,
    plan_logistics,
    rank_candidates,
)

logger = logging.getLogger(__name__)

DRAFT_NOT_FOUND = "مسودة الجدولة غير موجودة"
NO_DISTRIBUTORS = "لا توجد موزعون متاحون لهذا الطلب"
ORDER_NOT_FOUND = "الطلب غير موجود"
DISTRIBUTOR_UNAVAILABLE = "لم يتم العثور على الموزع أو أنه غير نشط"

OPEN_TRIP_STATUSES = ("pending", "in_progress")
REVIEWABLE_STATUS = "pending_review"
BLOCKING_DRAFT_STATUSES = ("pending_review", "approved", "modified")

PERIODS = {
    "today": None,  # from midnight
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "all": None,
}


def generate_trip_number(trip_date) -> str:
    return f"TRIP-{trip_date:%Y%m%d}-{uuid.uuid4().hex[:4].upper()}"


class SchedulingService:
    """
    Auto-scheduling workflow for confirmed orders.

    The service produces one draft per order: the best-scoring distributor,
    a suggested delivery date and priority, and up to two alternatives. A
    draft never changes the order by itself; an admin approves (optionally
    with modifications) or rejects it, and only approval writes the
    assignment back to the order and opens a distribution trip.

    Draft lifecycle:
        pending_review -> approved | modified | rejected

    Scoring is delegated to `services.scoring`; this class only gathers
    facts from the database and persists the outcome.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load_candidates(self, req: OrderRequirements) -> List[DistributorCandidate]:
        """
        Builds scoring inputs for every distributor who may take the order.

        Eligible distributors are active, serve the order's zone (or every
        zone) and still have room on the requested delivery date.

        Returns:
            list[DistributorCandidate]: best rated first, least loaded first on ties
        """
        distributors = (await self.db.execute(
            select(User).where(
                User.role == "distributor",
                User.status == "active",
                or_(User.delivery_zone.is_(None), User.delivery_zone == req.delivery_zone, User.delivery_zone == "all"),
            )
        )).scalars().all()
        if not distributors:
            return []

        ids = [d.id for d in distributors]

        trips = dict((await self.db.execute(
            select(DistributionTrip.distributor_id, func.count(DistributionTrip.id))
            .where(
                DistributionTrip.distributor_id.in_(ids),
                DistributionTrip.trip_date == req.delivery_date,
                DistributionTrip.status.in_(OPEN_TRIP_STATUSES),
            )
            .group_by(DistributionTrip.distributor_id)
        )).all())

        store_deliveries = dict((await self.db.execute(
            select(Order.assigned_distributor_id, func.count(Order.id))
            .where(
                Order.assigned_distributor_id.in_(ids),
                Order.store_id == req.store_id,
                Order.status == "delivered",
            )
            .group_by(Order.assigned_distributor_id)
        )).all())

        capacities = {}
        for vehicle in (await self.db.execute(
            select(Vehicle).where(Vehicle.assigned_distributor_id.in_(ids), Vehicle.status == "active")
        )).scalars().all():
            capacities[vehicle.assigned_distributor_id] = vehicle.effective_load_capacity_eur

        candidates = [
            DistributorCandidate(
                id=d.id,
                full_name=d.full_name,
                delivery_zone=d.delivery_zone,
                performance_rating=d.performance_rating,
                total_deliveries=d.total_deliveries or 0,
                success_rate=d.success_rate,
                max_daily_capacity=d.max_daily_capacity,
                trips_on_date=trips.get(d.id, 0),
                store_deliveries=store_deliveries.get(d.id, 0),
                load_capacity_eur=capacities.get(d.id),
                home_latitude=d.home_latitude,
                home_longitude=d.home_longitude,
            )
            for d in distributors
        ]
        candidates = [c for c in candidates if has_capacity(c)]
        candidates.sort(key=lambda c: (-(c.performance_rating or 0), c.trips_on_date))
        return candidates

    async def _get_order(self, order_id: int) -> Order:
        order = (await self.db.execute(select(Order).where(Order.id == order_id))).scalar_one_or_none()
        if not order:
            raise NotFoundError(ORDER_NOT_FOUND)
        return order

    async def _draft_for_order(self, order_id: int) -> Optional[SchedulingDraft]:
        return (await self.db.execute(
            select(SchedulingDraft).where(SchedulingDraft.order_id == order_id)
        )).scalar_one_or_none()

    @track_performance(service_name="SchedulingService", include_metadata=True)
    async def generate_draft(self, order: Order, created_by: Optional[int] = None) -> Dict:
        """
        Scores the available distributors for `order` and stages a draft.

        The draft is added and flushed but not committed; callers own the
        transaction so the draft lands together with whatever triggered it.

        Args:
            order (Order): order with its store loaded
            created_by (int, optional): user that requested the suggestion

        Returns:
            dict: {"draft": SchedulingDraft, "alternatives": list, "message": str}

        Raises:
            NoAvailableDistributorError: nobody can take the order
        """
        store = order.store
        req = analyze_requirements(
            store_id=order.store_id,
            order_value=float(order.total_amount_eur or 0),
            order_date=order.order_date,
            delivery_date=order.delivery_date,
            delivery_zone=store.delivery_zone if store else None,
            store_distributor_id=store.assigned_distributor_id if store else None,
            store_latitude=store.latitude if store else None,
            store_longitude=store.longitude if store else None,
            preferred_delivery_time=store.preferred_delivery_time if store else None,
            order_priority=order.priority,
        )

        candidates = await self._load_candidates(req)
        if not candidates:
            raise NoAvailableDistributorError(NO_DISTRIBUTORS)

        ranked = rank_candidates(req, candidates)
        best = ranked[0]
        alternatives = [alt.as_alternative() for alt in ranked[1:1 + ALTERNATIVES]]
        logistics = plan_logistics(req, order.order_date, best)

        draft = SchedulingDraft(
            order_id=order.id,
            suggested_distributor_id=best.distributor.id,
            suggested_distributor_name=best.distributor.full_name,
            confidence_score=best.confidence_score,
            suggested_delivery_date=logistics["suggested_delivery_date"],
            suggested_priority=req.priority,
            reasoning={**best.reasoning, "scores": best.scores},
            alternative_suggestions=alternatives,
            route_optimization=logistics["route_optimization"],
            estimated_delivery_time=logistics["estimated_delivery_time"],
            estimated_duration=logistics["estimated_duration"],
            status=REVIEWABLE_STATUS,
            created_by=created_by,
        )
        self.db.add(draft)
        order.scheduling_status = "pending_review"
        await self.db.flush()

        prometheus_collector.record_draft_created(best.confidence_score)
        logger.info(
            "Scheduling draft staged",
            extra={
                "order_id": order.id,
                "distributor_id": best.distributor.id,
                "confidence_score": best.confidence_score,
                "candidates": len(ranked),
            },
        )
        return {
            "draft": draft,
            "alternatives": alternatives,
            "message": f"تم إنشاء اقتراح جدولة بدرجة ثقة {best.confidence_score}%",
        }

    async def auto_schedule(self, order: Order, created_by: Optional[int] = None) -> Optional[SchedulingDraft]:
        """
        Hook run when an order is confirmed. A scheduling failure never
        blocks the confirmation: the order is flagged for manual scheduling.
        """
        if await self._draft_for_order(order.id):
            return None
        try:
            result = await self.generate_draft(order, created_by=created_by)
        except BakeryDomainError as e:
            order.scheduling_status = "manual_required"
            logger.warning(f"Auto-scheduling skipped for order {order.order_number}: {e.message}")
            return None
        return result["draft"]

    @track_performance(service_name="SchedulingService")
    async def manual_schedule(self, order_id: Optional[int], user: User) -> Dict:
        """Runs the engine on demand. A rejected draft is replaced; any other draft blocks."""
        if not order_id:
            raise BusinessRuleError("معرف الطلب مطلوب")
        order = await self._get_order(order_id)
        if order.status in ("delivered", "cancelled"):
            raise BusinessRuleError("لا يمكن جدولة طلب مسلم أو ملغي")

        existing = await self._draft_for_order(order.id)
        if existing:
            if existing.status in BLOCKING_DRAFT_STATUSES:
                raise BusinessRuleError("يوجد اقتراح جدولة لهذا الطلب بالفعل")
            await self.db.delete(existing)
            await self.db.flush()

        try:
            result = await self.generate_draft(order, created_by=user.id)
        except NoAvailableDistributorError:
            await self.db.rollback()
            raise
        await commit_or_rollback(self.db)

        draft = await self.get_draft(result["draft"].id)
        return {**result, "draft": draft, "message": "تم إنشاء اقتراح جدولة جديد بنجاح"}

    async def list_drafts(self, page: int = 1, limit: int = 10, status: str = REVIEWABLE_STATUS):
        stmt = (
            select(SchedulingDraft)
            .where(SchedulingDraft.status == status)
            .order_by(SchedulingDraft.created_at.asc(), SchedulingDraft.id.asc())
        )
        drafts, pagination = await paginate(self.db, stmt, page, limit)
        if status == REVIEWABLE_STATUS:
            prometheus_collector.update_pending_drafts(pagination.totalItems)
        return drafts, pagination

    async def get_draft(self, draft_id: int) -> SchedulingDraft:
        stmt = (
            select(SchedulingDraft)
            .where(SchedulingDraft.id == draft_id)
            .execution_options(populate_existing=True)
        )
        draft = (await self.db.execute(stmt)).scalar_one_or_none()
        if not draft:
            raise NotFoundError(DRAFT_NOT_FOUND)
        return draft

    async def _get_reviewable(self, draft_id: int) -> SchedulingDraft:
        draft = await self.get_draft(draft_id)
        if not draft.is_pending:
            raise BusinessRuleError("تمت مراجعة مسودة الجدولة مسبقاً")
        return draft

    @track_performance(service_name="SchedulingService", include_metadata=True)
    async def approve_draft(self, draft_id: int, request: ApproveDraftRequest, reviewer: User) -> Dict:
        """
        Approves a pending draft and applies it to the order.

        Modifications override the suggestion field by field; any non-empty
        modification marks the draft ``modified`` instead of ``approved``.
        The order update, the draft update and the optional trip are
        committed together.

        Returns:
            dict: {"draft": SchedulingDraft, "trip": DistributionTrip | None, "message": str}
        """
        draft = await self._get_reviewable(draft_id)
        order = await self._get_order(draft.order_id)
        if order.status in ("delivered", "cancelled"):
            raise BusinessRuleError("لا يمكن جدولة طلب مسلم أو ملغي")

        mods = request.modifications if request.modifications and not request.modifications.is_empty() else None

        distributor_id = (mods.distributor_id if mods else None) or draft.suggested_distributor_id
        delivery_date = (mods.delivery_date if mods else None) or draft.suggested_delivery_date
        priority = (mods.priority if mods else None) or draft.suggested_priority

        distributor = (await self.db.execute(
            select(User).where(User.id == distributor_id, User.role == "distributor", User.status == "active")
        )).scalar_one_or_none()
        if not distributor:
            raise NotFoundError(DISTRIBUTOR_UNAVAILABLE)

        now = datetime.now()
        draft.status = "modified" if mods else "approved"
        draft.modifications = mods.model_dump(mode="json", exclude_none=True) if mods else None
        draft.approved_distributor_id = distributor.id
        draft.approved_delivery_date = delivery_date
        draft.approved_priority = priority
        draft.admin_notes = request.admin_notes
        draft.reviewed_by = reviewer.id
        draft.reviewed_at = now

        order.assigned_distributor_id = distributor.id
        order.delivery_date = delivery_date
        order.priority = priority
        order.scheduling_status = "scheduled"

        trip = None
        if request.create_distribution_trip:
            trip = DistributionTrip(
                trip_number=generate_trip_number(now),
                trip_date=delivery_date,
                distributor_id=distributor.id,
                distributor_name=distributor.full_name,
                planned_start_time="08:00:00",
                order_ids=[order.id],
                total_orders=1,
                total_stores=1,
                total_amount_eur=order.final_amount_eur,
                total_amount_syp=order.final_amount_syp,
                status="pending",
                notes=request.admin_notes,
                created_by=reviewer.id,
            )
            self.db.add(trip)

        await commit_or_rollback(self.db)
        prometheus_collector.record_draft_reviewed(draft.status)
        if trip is not None:
            prometheus_collector.record_trip_status(trip.status)

        logger.info(
            "Scheduling draft approved",
            extra={"draft_id": draft.id, "order_id": order.id, "status": draft.status, "reviewed_by": reviewer.id},
        )
        message = "تم تعديل وإعتماد الجدولة بنجاح" if mods else "تم إعتماد الجدولة بنجاح"
        return {"draft": await self.get_draft(draft.id), "trip": trip, "message": message}

    @track_performance(service_name="SchedulingService")
    async def reject_draft(self, draft_id: int, request: RejectDraftRequest, reviewer: User) -> SchedulingDraft:
        reason = (request.reason or "").strip()
        if not reason:
            raise BusinessRuleError("سبب الرفض مطلوب")

        draft = await self._get_reviewable(draft_id)
        order = await self._get_order(draft.order_id)

        draft.status = "rejected"
        draft.admin_notes = reason
        draft.reviewed_by = reviewer.id
        draft.reviewed_at = datetime.now()
        order.scheduling_status = "manual_required" if request.reassign_to_manual else "unscheduled"

        await commit_or_rollback(self.db)
        prometheus_collector.record_draft_reviewed("rejected")

        logger.info("Scheduling draft rejected", extra={"draft_id": draft.id, "reviewed_by": reviewer.id})
        return await self.get_draft(draft.id)

    async def statistics(self, period: str = "week") -> Dict:
        """Per-status confidence figures, review accuracy and most suggested distributors."""
        if period not in PERIODS:
            raise BusinessRuleError("الفترة غير صحيحة")

        since = None
        if period == "today":
            since = datetime.combine(datetime.now().date(), datetime.min.time())
        elif PERIODS[period]:
            since = datetime.now() - PERIODS[period]

        def scoped(stmt):
            return stmt.where(SchedulingDraft.created_at >= since) if since else stmt

        rows = (await self.db.execute(scoped(
            select(
                SchedulingDraft.status,
                func.count(SchedulingDraft.id),
                func.avg(SchedulingDraft.confidence_score),
                func.min(SchedulingDraft.confidence_score),
                func.max(SchedulingDraft.confidence_score),
            ).group_by(SchedulingDraft.status)
        ))).all()

        by_status = {
            status: {
                "count": count,
                "avg_confidence": round(float(avg or 0), 1),
                "min_confidence": low,
                "max_confidence": high,
            }
            for status, count, avg, low, high in rows
        }

        approved = by_status.get("approved", {}).get("count", 0)
        modified = by_status.get("modified", {}).get("count", 0)
        rejected = by_status.get("rejected", {}).get("count", 0)
        reviewed = approved + modified + rejected
        total = sum(s["count"] for s in by_status.values())
        avg_confidence = (
            sum(s["avg_confidence"] * s["count"] for s in by_status.values()) / total if total else 0
        )

        top = (await self.db.execute(scoped(
            select(
                SchedulingDraft.suggested_distributor_id,
                SchedulingDraft.suggested_distributor_name,
                func.count(SchedulingDraft.id).label("suggestions"),
                func.avg(SchedulingDraft.confidence_score),
            )
            .group_by(SchedulingDraft.suggested_distributor_id, SchedulingDraft.suggested_distributor_name)
            .order_by(func.count(SchedulingDraft.id).desc())
            .limit(5)
        ))).all()

        return {
            "period": period,
            "total_drafts": total,
            "by_status": by_status,
            "accuracy_metrics": {
                "approval_rate": round((approved + modified) / reviewed * 100, 1) if reviewed else 0,
                "perfect_accuracy_rate": round(approved / reviewed * 100, 1) if reviewed else 0,
                "average_confidence": round(avg_confidence, 1),
                "approved_without_changes": approved,
                "modified_approvals": modified,
                "rejected": rejected,
            },
            "top_distributors": [
                {
                    "distributor_id": distributor_id,
                    "distributor_name": name,
                    "suggestions": suggestions,
                    "avg_confidence": round(float(avg or 0), 1),
                }
                for distributor_id, name, suggestions, avg in top
            ],
        }

    async def pending_count(self) -> int:
        return (await self.db.execute(
            select(func.count(SchedulingDraft.id)).where(SchedulingDraft.status == REVIEWABLE_STATUS)
        )).scalar() or 0
