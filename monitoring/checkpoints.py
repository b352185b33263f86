"""
Per-subject checkpoint persistence
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select
from models.checkpoint import SubjectCheckpoint
from models.base import CheckpointStatus, utcnow
from core.exceptions import CheckpointError
import logging

logger = logging.getLogger(__name__)

UPSERTABLE_FIELDS = frozenset({
    "last_seen_event_id",
    "last_checked_at",
    "enabled",
    "stale_notified_at",
    "status",
    "total_runs",
    "last_success_at",
    "last_failure_at",
    "error_message",
})


class CheckpointStore:
    """
    Keyed read/merge access to subject checkpoints.

    Ensures:
    - At most one row per subject (unique index, lazy creation)
    - upsert only touches the fields it is given
    - Database errors surface as CheckpointError for the caller's subject

    Writers for different subjects never contend; a single writer per
    subject per run is assumed.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get(self, subject_id: str) -> Optional[SubjectCheckpoint]:
        """Retrieve checkpoint for a subject"""
        try:
            result = await self.db.execute(
                select(SubjectCheckpoint).where(SubjectCheckpoint.subject_id == subject_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise CheckpointError(
                "Failed to read checkpoint",
                context={"subject_id": subject_id, "operation": "read"},
                original_exception=e
            )

    async def upsert(self, subject_id: str, **fields) -> SubjectCheckpoint:
        """Create or merge a checkpoint, leaving unspecified fields alone"""
        unknown = set(fields) - UPSERTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown checkpoint fields: {', '.join(sorted(unknown))}")

        checkpoint = await self.get(subject_id)

        try:
            if checkpoint is None:
                checkpoint = SubjectCheckpoint(subject_id=subject_id, **fields)
                self.db.add(checkpoint)
            else:
                for name, value in fields.items():
                    setattr(checkpoint, name, value)
                checkpoint.updated_at = utcnow()

            await self.db.commit()
            return checkpoint

        except SQLAlchemyError as e:
            await self.db.rollback()
            raise CheckpointError(
                "Failed to upsert checkpoint",
                context={
                    "subject_id": subject_id,
                    "operation": "upsert",
                    "fields": sorted(fields)
                },
                original_exception=e
            )

    async def get_or_create(self, subject_id: str) -> SubjectCheckpoint:
        checkpoint = await self.get(subject_id)
        if checkpoint is None:
            logger.info(f"Creating checkpoint for subject {subject_id}")
            checkpoint = await self.upsert(subject_id, enabled=True)
        return checkpoint

    async def record_success(self, subject_id: str, **fields) -> SubjectCheckpoint:
        """Advance the checkpoint after a successful pass"""
        checkpoint = await self.get(subject_id)
        now = utcnow()
        return await self.upsert(
            subject_id,
            status=CheckpointStatus.SUCCESS,
            last_success_at=now,
            total_runs=(checkpoint.total_runs or 0) + 1 if checkpoint else 1,
            error_message=None,
            **fields
        )

    async def record_failure(self, subject_id: str, error_message: str) -> SubjectCheckpoint:
        """Mark the last pass as failed without moving the cursor"""
        checkpoint = await self.get(subject_id)
        return await self.upsert(
            subject_id,
            status=CheckpointStatus.FAILED,
            last_failure_at=utcnow(),
            total_runs=(checkpoint.total_runs or 0) + 1 if checkpoint else 1,
            error_message=error_message[:2000]
        )
