from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import get_db
from core.prometheus_metrics import prometheus_collector
from services.scheduling_service import SchedulingService

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("/prometheus")  # Public endpoint for Prometheus scraping
async def prometheus_metrics(db: AsyncSession = Depends(get_db)):
    """Scrape endpoint; the review backlog gauge is refreshed from the database on each scrape."""
    prometheus_collector.update_pending_drafts(await SchedulingService(db).pending_count())
    return Response(content=prometheus_collector.get_prometheus_metrics(), media_type=CONTENT_TYPE_LATEST)
