import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schemas.common import Pagination
from services.exceptions import BusinessRuleError, DatabaseQueryError, DuplicateError
from services.validators import BusinessRules

logger = logging.getLogger(__name__)


async def paginate(db: AsyncSession, stmt, page: int, limit: int):
    """Run `stmt` for one page and return (rows, Pagination)."""
    page, limit = BusinessRules.clamp_pagination(page, limit)
    try:
        total = (await db.execute(select(func.count()).select_from(stmt.order_by(None).subquery()))).scalar() or 0
        rows = (await db.execute(stmt.offset((page - 1) * limit).limit(limit))).scalars().all()
    except SQLAlchemyError as e:
        raise DatabaseQueryError(str(e))
    return rows, Pagination.build(page, limit, total)


UNIQUE_VIOLATION_SQLSTATE = "23505"
INVALID_DATA_MESSAGE = "بيانات غير صحيحة"


def is_unique_violation(error: IntegrityError) -> bool:
    """True for Postgres unique_violation and SQLite UNIQUE failures."""
    orig = error.orig
    if getattr(orig, "sqlstate", None) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    text = str(orig).lower()
    return "unique constraint" in text or "duplicate key" in text


async def commit_or_rollback(db: AsyncSession, duplicate_message: Optional[str] = None):
    """Commit the unit of work; any failure rolls the whole of it back."""
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if not is_unique_violation(e):
            logger.warning(f"Integrity check failed on commit: {e.orig}")
            raise BusinessRuleError(INVALID_DATA_MESSAGE)
        if duplicate_message:
            # another request wrote the same unique value first
            raise DuplicateError(duplicate_message)
        raise DatabaseQueryError(str(e))
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Commit failed: {e}")
        raise DatabaseQueryError(str(e))
