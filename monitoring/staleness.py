"""
Journal staleness evaluation
"""

from datetime import datetime, timedelta
from typing import NamedTuple, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models.journal_entry import JournalEntry
from models.base import utcnow
from core.config import settings

DEFAULT_THRESHOLD = timedelta(days=7)


class StalenessVerdict(NamedTuple):
    stale: bool
    last_timestamp: Optional[datetime]


def is_stale(
    last_timestamp: Optional[datetime],
    now: datetime,
    threshold: timedelta = DEFAULT_THRESHOLD
) -> bool:
    """No entry at all counts as stale; otherwise strictly older than threshold."""
    if last_timestamp is None:
        return True
    return (now - last_timestamp) > threshold


class StalenessEvaluator:
    """
    Classifies a subject's journal as stale or fresh.

    Only reads the newest entry; deciding whether to notify is up to the
    caller.
    """

    def __init__(self, db_session: AsyncSession, threshold: Optional[timedelta] = None):
        self.db = db_session
        self.threshold = threshold or timedelta(days=settings.STALENESS_THRESHOLD_DAYS)

    async def last_entry_timestamp(self, subject_id: str) -> Optional[datetime]:
        result = await self.db.execute(
            select(JournalEntry.timestamp)
            .where(JournalEntry.subject_id == subject_id)
            .order_by(JournalEntry.timestamp.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def evaluate(self, subject_id: str, now: Optional[datetime] = None) -> StalenessVerdict:
        last_timestamp = await self.last_entry_timestamp(subject_id)
        now = now or utcnow()
        return StalenessVerdict(
            stale=is_stale(last_timestamp, now, self.threshold),
            last_timestamp=last_timestamp
        )
