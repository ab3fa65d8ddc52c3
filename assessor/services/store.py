"""Assessment store: append-only writes and recency-ordered reads."""
import logging
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from assessor.core.errors import PersistenceError
from assessor.models.assessment import AssessmentRecord
from assessor.models.user import User
from assessor.services.scoring import LEVEL_WINDOW, average, compute_level

logger = logging.getLogger(__name__)


async def add_records(db: AsyncSession, user: User, records: Sequence[AssessmentRecord]) -> list[AssessmentRecord]:
    """Insert all records and refresh the user's level in one transaction.

    Either every record lands or none does.
    """
    if not records:
        return []
    user_id = user.id
    try:
        db.add_all(records)
        await db.flush()
        recent = await recent_scores(db, user_id, LEVEL_WINDOW)
        user.skill_level = compute_level(average(recent))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to persist %d record(s) for user %s: %s", len(records), user_id, e)
        raise PersistenceError(str(e)) from e
    return list(records)


def _newest_first(stmt):
    return stmt.order_by(AssessmentRecord.created_at.desc(), AssessmentRecord.id.desc())


async def list_for_user(db: AsyncSession, user_id: int, limit: int | None = None) -> list[AssessmentRecord]:
    stmt = _newest_first(select(AssessmentRecord).where(AssessmentRecord.user_id == user_id))
    if limit:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_for_session(db: AsyncSession, user_id: int, session_id: str) -> list[AssessmentRecord]:
    stmt = _newest_first(
        select(AssessmentRecord).where(
            AssessmentRecord.user_id == user_id,
            AssessmentRecord.session_id == session_id,
        )
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def recent_scores(db: AsyncSession, user_id: int, limit: int) -> list[float]:
    stmt = _newest_first(select(AssessmentRecord.score).where(AssessmentRecord.user_id == user_id)).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
