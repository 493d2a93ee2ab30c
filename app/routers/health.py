import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import DATABASE_BACKEND, get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/api/health")
async def api_health(db: AsyncSession = Depends(get_db)):
    """Liveness plus a database round trip"""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database ping failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "success": False,
                "message": "قاعدة البيانات غير متاحة",
                "data": {"status": "degraded", "database": "unavailable"},
            },
        )

    return {
        "success": True,
        "message": "الخادم يعمل بشكل طبيعي",
        "data": {
            "status": "ok",
            "database": "connected",
            "backend": DATABASE_BACKEND,
            "timestamp": datetime.now().isoformat(),
        },
    }
